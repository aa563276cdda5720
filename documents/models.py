# documents/models.py
from __future__ import annotations

import uuid

from django.db import models
from django.db.models import Q

from core.models import TrackedModel


class DocumentKind(models.TextChoices):
    QUOTATION = "quotation", "Quotation"
    INVOICE = "invoice", "Invoice"
    PRODUCTION_TICKET = "production_ticket", "Production Ticket"


class DocumentStatus(models.TextChoices):
    DRAFT = "draft", "Draft"
    PENDING = "pending", "Pending"
    ACCEPTED = "accepted", "Accepted"   # quotations
    PAID = "paid", "Paid"               # invoices
    FINAL = "final", "Final"            # production tickets


class IdentifierCounter(models.Model):
    """Per-(kind, year) sequence backing human-readable document numbers."""

    kind = models.CharField(max_length=30, choices=DocumentKind.choices)
    year = models.PositiveIntegerField()
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["kind", "year"], name="uniq_counter_kind_year"),
        ]

    def __str__(self) -> str:
        return f"{self.kind} · {self.year} · {self.last_value}"


class Document(TrackedModel):
    kind = models.CharField(max_length=30, choices=DocumentKind.choices)
    number = models.CharField(max_length=40, unique=True)
    status = models.CharField(max_length=20, choices=DocumentStatus.choices, default=DocumentStatus.DRAFT)

    company_name = models.CharField(max_length=200, blank=True, default="")
    company_address = models.TextField(blank=True, default="")

    # Name fields: one of these is the kind's designated unique name.
    bill_to = models.CharField(max_length=200, blank=True, default="")
    project_name = models.CharField(max_length=200, blank=True, default="")

    contact_person = models.CharField(max_length=200, blank=True, default="")
    production_date = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    # Derived: sum of item totals, recomputed on every write.
    total_amount = models.BigIntegerField(default=0)

    class Meta:
        indexes = [
            models.Index(fields=["kind", "status"], name="doc_kind_status_idx"),
            models.Index(fields=["kind", "updated_at"], name="doc_kind_updated_idx"),
        ]
        # Backstop for the name resolver: two racing writers that resolved the
        # same name cannot both commit.
        constraints = [
            models.UniqueConstraint(
                fields=["kind", "bill_to"],
                name="uniq_live_bill_to_per_kind",
                condition=Q(deleted_at__isnull=True, kind__in=["quotation", "invoice"]) & ~Q(bill_to=""),
            ),
            models.UniqueConstraint(
                fields=["kind", "project_name"],
                name="uniq_live_project_per_kind",
                condition=Q(deleted_at__isnull=True, kind="production_ticket") & ~Q(project_name=""),
            ),
        ]

    def __str__(self) -> str:
        return f"{self.kind} · {self.number}"


class DocumentItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name="items")
    order = models.PositiveIntegerField(default=0)

    product_name = models.CharField(max_length=200, blank=True, default="")
    total = models.BigIntegerField(default=0)

    class Meta:
        ordering = ["order"]
        indexes = [models.Index(fields=["document", "order"], name="item_doc_order_idx")]

    def __str__(self) -> str:
        return f"{self.document_id} · {self.product_name}"


class ItemDetail(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    item = models.ForeignKey(DocumentItem, on_delete=models.CASCADE, related_name="details")
    order = models.PositiveIntegerField(default=0)

    detail = models.TextField(blank=True, default="")
    unit_price = models.DecimalField(max_digits=16, decimal_places=2, default=0)
    qty = models.DecimalField(max_digits=12, decimal_places=2, default=1)
    amount = models.BigIntegerField(default=0)

    class Meta:
        ordering = ["order"]
        indexes = [models.Index(fields=["item", "order"], name="detail_item_order_idx")]

    def __str__(self) -> str:
        return f"{self.item_id} · {self.detail[:40]}"


class DocumentRemark(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name="remarks")
    order = models.PositiveIntegerField(default=0)

    text = models.TextField(blank=True, default="")
    is_completed = models.BooleanField(default=False)

    class Meta:
        ordering = ["order"]
        indexes = [models.Index(fields=["document", "order"], name="remark_doc_order_idx")]

    def __str__(self) -> str:
        return f"{self.document_id} · {self.text[:40]}"


class DocumentSignature(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    document = models.ForeignKey(Document, on_delete=models.CASCADE, related_name="signatures")
    order = models.PositiveIntegerField(default=0)

    name = models.CharField(max_length=200, blank=True, default="")
    position = models.CharField(max_length=200, blank=True, default="")
    image_ref = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["order"]
        indexes = [models.Index(fields=["document", "order"], name="signature_doc_order_idx")]

    def __str__(self) -> str:
        return f"{self.document_id} · {self.name}"
