"""Diff a submitted child collection against what is stored for one parent.

A submitted row is matched to a stored row only when its id is one of the
ids currently persisted under the same parent. Anything else (no id, a
client-local placeholder, an id belonging to another document) is a new row
and gets a server-issued id.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Set, Union

from django.db import models

from .errors import ReconciliationError
from .models import DocumentItem, DocumentRemark, DocumentSignature, ItemDetail
from .numbering import new_row_id
from .snapshot import IncomingRow


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Existing:
    pk: str
    row: IncomingRow
    index: int


@dataclass(frozen=True)
class New:
    row: IncomingRow
    index: int


Classified = Union[Existing, New]


@dataclass
class ReconcileResult:
    updated: List[models.Model] = field(default_factory=list)
    created: List[models.Model] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    unchanged: List[models.Model] = field(default_factory=list)

    def merge(self, other: "ReconcileResult") -> None:
        self.updated.extend(other.updated)
        self.created.extend(other.created)
        self.deleted.extend(other.deleted)
        self.unchanged.extend(other.unchanged)

    def summary(self) -> str:
        return f"updated={len(self.updated)} created={len(self.created)} deleted={len(self.deleted)}"


def classify(rows: Sequence[IncomingRow], persisted_ids: Set[str], *, path: str = "rows") -> List[Classified]:
    seen: Set[str] = set()
    out: List[Classified] = []
    for idx, row in enumerate(rows):
        if row.ref is not None and row.ref in persisted_ids:
            if row.ref in seen:
                raise ReconciliationError(
                    "The same row was submitted twice.",
                    fields={f"{path}[{idx}].id": "Duplicate id in submission."},
                )
            seen.add(row.ref)
            out.append(Existing(pk=row.ref, row=row, index=idx))
        else:
            out.append(New(row=row, index=idx))
    return out


def round_amount(value: Decimal) -> int:
    """Round to the whole currency unit, halves away from zero."""
    return int(Decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def apply_item_amounts(items: Iterable[IncomingRow]) -> None:
    """Fill derived detail `amount` and item `total` on submitted rows in place."""
    for item in items:
        total = 0
        for detail in item.children:
            amount = round_amount(detail.values["unit_price"] * detail.values["qty"])
            detail.values["amount"] = amount
            total += amount
        item.values["total"] = total


class CollectionReconciler:
    """Reconciles one owned collection (and optionally a nested one per row)."""

    def __init__(
        self,
        model: type[models.Model],
        parent_field: str,
        path: str,
        *,
        children: Optional["CollectionReconciler"] = None,
    ):
        self.model = model
        self.parent_field = parent_field
        self.path = path
        self.children = children

    def persisted(self, parent) -> dict:
        return {str(obj.pk): obj for obj in self.model.objects.filter(**{self.parent_field: parent})}

    def reconcile(self, parent, incoming: Sequence[IncomingRow], *, path: str | None = None) -> ReconcileResult:
        path = path or self.path
        stored = self.persisted(parent)
        plan = classify(incoming, set(stored), path=path)
        result = ReconcileResult()

        # Updates first, then inserts, then deletes of whatever was left out.
        keep: Set[str] = set()
        for entry in plan:
            if not isinstance(entry, Existing):
                continue
            obj = stored[entry.pk]
            keep.add(entry.pk)
            values = dict(entry.row.values, order=entry.index)
            changed = [name for name, value in values.items() if getattr(obj, name) != value]
            if changed:
                for name in changed:
                    setattr(obj, name, values[name])
                obj.save(update_fields=changed)
                result.updated.append(obj)
            else:
                result.unchanged.append(obj)
            self._reconcile_children(obj, entry, path, result)

        for entry in plan:
            if not isinstance(entry, New):
                continue
            values = dict(entry.row.values, order=entry.index)
            values[self.parent_field] = parent
            obj = self.model.objects.create(id=new_row_id(), **values)
            result.created.append(obj)
            self._reconcile_children(obj, entry, path, result)

        stale = [pk for pk in stored if pk not in keep]
        if stale:
            self.model.objects.filter(**{self.parent_field: parent, "pk__in": stale}).delete()
            result.deleted.extend(stale)

        return result

    def _reconcile_children(self, obj, entry: Classified, path: str, result: ReconcileResult) -> None:
        if self.children is None:
            return
        child_path = f"{path}[{entry.index}].{self.children.path}"
        result.merge(self.children.reconcile(obj, entry.row.children, path=child_path))


DETAILS = CollectionReconciler(ItemDetail, "item", "details")
ITEMS = CollectionReconciler(DocumentItem, "document", "items", children=DETAILS)
REMARKS = CollectionReconciler(DocumentRemark, "document", "remarks")
SIGNATURES = CollectionReconciler(DocumentSignature, "document", "signatures")


def reconcile_items(document, items: Sequence[IncomingRow]) -> ReconcileResult:
    apply_item_amounts(items)
    result = ITEMS.reconcile(document, items)
    logger.debug("reconcile.items doc=%s %s", document.pk, result.summary())
    return result


def reconcile_remarks(document, remarks: Sequence[IncomingRow]) -> ReconcileResult:
    result = REMARKS.reconcile(document, remarks)
    logger.debug("reconcile.remarks doc=%s %s", document.pk, result.summary())
    return result


def reconcile_signatures(document, signatures: Sequence[IncomingRow]) -> ReconcileResult:
    result = SIGNATURES.reconcile(document, signatures)
    logger.debug("reconcile.signatures doc=%s %s", document.pk, result.summary())
    return result
