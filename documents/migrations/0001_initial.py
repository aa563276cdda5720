from __future__ import annotations

import uuid

import django.db.models.deletion
from django.db import migrations, models
from django.db.models import Q

import core.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="IdentifierCounter",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("quotation", "Quotation"),
                            ("invoice", "Invoice"),
                            ("production_ticket", "Production Ticket"),
                        ],
                        max_length=30,
                    ),
                ),
                ("year", models.PositiveIntegerField()),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("kind", "year"), name="uniq_counter_kind_year"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Document",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(default=core.models.now_ms, editable=False)),
                ("updated_at", models.DateTimeField(default=core.models.now_ms, editable=False)),
                ("revision", models.BigIntegerField(default=0)),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("quotation", "Quotation"),
                            ("invoice", "Invoice"),
                            ("production_ticket", "Production Ticket"),
                        ],
                        max_length=30,
                    ),
                ),
                ("number", models.CharField(max_length=40, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("pending", "Pending"),
                            ("accepted", "Accepted"),
                            ("paid", "Paid"),
                            ("final", "Final"),
                        ],
                        default="draft",
                        max_length=20,
                    ),
                ),
                ("company_name", models.CharField(blank=True, default="", max_length=200)),
                ("company_address", models.TextField(blank=True, default="")),
                ("bill_to", models.CharField(blank=True, default="", max_length=200)),
                ("project_name", models.CharField(blank=True, default="", max_length=200)),
                ("contact_person", models.CharField(blank=True, default="", max_length=200)),
                ("production_date", models.DateField(blank=True, null=True)),
                ("notes", models.TextField(blank=True, default="")),
                ("total_amount", models.BigIntegerField(default=0)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["kind", "status"], name="doc_kind_status_idx"),
                    models.Index(fields=["kind", "updated_at"], name="doc_kind_updated_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=Q(deleted_at__isnull=True, kind__in=["quotation", "invoice"]) & ~Q(bill_to=""),
                        fields=("kind", "bill_to"),
                        name="uniq_live_bill_to_per_kind",
                    ),
                    models.UniqueConstraint(
                        condition=Q(deleted_at__isnull=True, kind="production_ticket") & ~Q(project_name=""),
                        fields=("kind", "project_name"),
                        name="uniq_live_project_per_kind",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="DocumentItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("product_name", models.CharField(blank=True, default="", max_length=200)),
                ("total", models.BigIntegerField(default=0)),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="documents.document",
                    ),
                ),
            ],
            options={
                "ordering": ["order"],
                "indexes": [models.Index(fields=["document", "order"], name="item_doc_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="ItemDetail",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("detail", models.TextField(blank=True, default="")),
                ("unit_price", models.DecimalField(decimal_places=2, default=0, max_digits=16)),
                ("qty", models.DecimalField(decimal_places=2, default=1, max_digits=12)),
                ("amount", models.BigIntegerField(default=0)),
                (
                    "item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="details",
                        to="documents.documentitem",
                    ),
                ),
            ],
            options={
                "ordering": ["order"],
                "indexes": [models.Index(fields=["item", "order"], name="detail_item_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="DocumentRemark",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("text", models.TextField(blank=True, default="")),
                ("is_completed", models.BooleanField(default=False)),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="remarks",
                        to="documents.document",
                    ),
                ),
            ],
            options={
                "ordering": ["order"],
                "indexes": [models.Index(fields=["document", "order"], name="remark_doc_order_idx")],
            },
        ),
        migrations.CreateModel(
            name="DocumentSignature",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("order", models.PositiveIntegerField(default=0)),
                ("name", models.CharField(blank=True, default="", max_length=200)),
                ("position", models.CharField(blank=True, default="", max_length=200)),
                ("image_ref", models.TextField(blank=True, default="")),
                (
                    "document",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="signatures",
                        to="documents.document",
                    ),
                ),
            ],
            options={
                "ordering": ["order"],
                "indexes": [models.Index(fields=["document", "order"], name="signature_doc_order_idx")],
            },
        ),
    ]
