"""Per-kind document rules.

One declarative table drives numbering, naming, statuses and the validation
gate for every document kind; nothing downstream branches on the kind itself.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from django.conf import settings

from .models import DocumentKind, DocumentStatus


@dataclass(frozen=True)
class MinItems:
    """Status rule: the document must carry at least `count` items."""

    count: int = 1

    def check(self, state) -> str | None:
        if len(state.items) < self.count:
            noun = "item" if self.count == 1 else "items"
            return f"At least {self.count} {noun} required for status '{state.status}'."
        return None


@dataclass(frozen=True)
class RequiresField:
    """Status rule: an otherwise optional field becomes mandatory."""

    field: str

    def check(self, state) -> str | None:
        value = state.fields.get(self.field)
        if value is None or (isinstance(value, str) and not value.strip()):
            return f"Required for status '{state.status}'."
        return None


@dataclass(frozen=True)
class KindSpec:
    kind: str
    prefix: str
    name_field: str
    statuses: Tuple[str, ...]
    required_fields: Tuple[str, ...]
    status_rules: Dict[str, tuple] = field(default_factory=dict)
    has_signatures: bool = False
    url_segment: str = ""

    @property
    def number_prefix(self) -> str:
        overrides = getattr(settings, "DOCSYNC_NUMBER_PREFIXES", None) or {}
        return overrides.get(self.kind, self.prefix)


KIND_SPECS: Dict[str, KindSpec] = {
    DocumentKind.QUOTATION: KindSpec(
        kind=DocumentKind.QUOTATION,
        prefix="QTN",
        name_field="bill_to",
        statuses=(DocumentStatus.DRAFT, DocumentStatus.PENDING, DocumentStatus.ACCEPTED),
        required_fields=("company_name", "production_date", "bill_to"),
        status_rules={
            DocumentStatus.PENDING: (MinItems(1),),
            DocumentStatus.ACCEPTED: (MinItems(1), RequiresField("contact_person")),
        },
        has_signatures=True,
        url_segment="quotations",
    ),
    DocumentKind.INVOICE: KindSpec(
        kind=DocumentKind.INVOICE,
        prefix="INV",
        name_field="bill_to",
        statuses=(DocumentStatus.DRAFT, DocumentStatus.PENDING, DocumentStatus.PAID),
        required_fields=("company_name", "production_date", "bill_to"),
        status_rules={
            DocumentStatus.PENDING: (MinItems(1),),
            DocumentStatus.PAID: (MinItems(1),),
        },
        has_signatures=True,
        url_segment="invoices",
    ),
    DocumentKind.PRODUCTION_TICKET: KindSpec(
        kind=DocumentKind.PRODUCTION_TICKET,
        prefix="PT",
        name_field="project_name",
        statuses=(DocumentStatus.DRAFT, DocumentStatus.FINAL),
        required_fields=("project_name", "production_date"),
        status_rules={
            DocumentStatus.FINAL: (MinItems(1),),
        },
        has_signatures=False,
        url_segment="production-tickets",
    ),
}


def get_kind_spec(kind: str) -> KindSpec:
    try:
        return KIND_SPECS[kind]
    except KeyError:
        raise LookupError(f"Unknown document kind: {kind!r}") from None
