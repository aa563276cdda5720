from __future__ import annotations

import enum
import logging
import uuid
from typing import Any, Dict

from django.db import DatabaseError, transaction
from django.db.models import Sum

from .errors import DocumentError, DocumentNotFound, TransactionalError, ValidationError
from .kinds import KindSpec, get_kind_spec
from .locking import ensure_current
from .models import Document, DocumentItem, DocumentStatus
from .names import resolve_unique_name
from .numbering import generate
from .reconcile import reconcile_items, reconcile_remarks, reconcile_signatures
from .snapshot import WIRE_NAMES, IncomingRow, Snapshot, parse_snapshot
from .validation import merge_state, validate_state


logger = logging.getLogger(__name__)

COPY_SUFFIX = " - Copy"


class UpdateState(str, enum.Enum):
    RECEIVED = "received"
    VALIDATING = "validating"
    LOCK_CHECKING = "lock_checking"
    NAME_RESOLVING = "name_resolving"
    RECONCILING = "reconciling_children"
    WRITING_ROOT = "writing_root"
    COMMITTED = "committed"
    REJECTED = "rejected"


class _Trail:
    """Logs one update's walk through UpdateState."""

    def __init__(self, label: str):
        self.label = label
        self.state = UpdateState.RECEIVED
        logger.debug("update.%s doc=%s", self.state.value, label)

    def to(self, state: UpdateState) -> None:
        self.state = state
        logger.debug("update.%s doc=%s", state.value, self.label)

    def reject(self, exc: DocumentError) -> None:
        level = logging.WARNING if isinstance(exc, TransactionalError) else logging.INFO
        logger.log(level, "update.rejected doc=%s at=%s code=%s", self.label, self.state.value, exc.code)
        self.state = UpdateState.REJECTED


def _coerce_id(document_id) -> uuid.UUID:
    if isinstance(document_id, uuid.UUID):
        return document_id
    try:
        return uuid.UUID(str(document_id))
    except ValueError:
        raise DocumentNotFound() from None


def load_document(document_id) -> Document:
    return Document.objects.prefetch_related("items__details", "remarks", "signatures").get(pk=document_id)


def get_document(kind: str, document_id) -> Document:
    get_kind_spec(kind)
    try:
        return Document.objects.prefetch_related("items__details", "remarks", "signatures").get(
            pk=_coerce_id(document_id), kind=kind
        )
    except Document.DoesNotExist:
        raise DocumentNotFound() from None


def _lock_row(kind: str, document_id, *, include_deleted: bool = False) -> Document:
    """Read the document row with a write lock for the rest of the transaction."""
    try:
        doc = Document.all_objects.select_for_update().get(pk=_coerce_id(document_id), kind=kind)
    except Document.DoesNotExist:
        raise DocumentNotFound() from None
    if doc.is_deleted and not include_deleted:
        raise DocumentNotFound()
    return doc


def _unique_name(spec: KindSpec, candidate: str, exclude_id=None) -> str:
    """resolve_unique_name, rejecting a result the name column cannot hold."""
    resolved = resolve_unique_name(candidate, spec.kind, exclude_id=exclude_id)
    limit = Document._meta.get_field(spec.name_field).max_length
    if resolved and len(resolved) > limit:
        message = f"Name is too long to make unique within {limit} characters."
        raise ValidationError(fields={WIRE_NAMES[spec.name_field]: message})
    return resolved


def _apply_collections(doc: Document, snapshot: Snapshot, spec: KindSpec) -> None:
    if snapshot.items is not None:
        reconcile_items(doc, snapshot.items)
    if snapshot.remarks is not None:
        reconcile_remarks(doc, snapshot.remarks)
    if spec.has_signatures and snapshot.signatures is not None:
        reconcile_signatures(doc, snapshot.signatures)


def _write_root(doc: Document, fields: Dict[str, Any]) -> None:
    for name, value in fields.items():
        setattr(doc, name, value)
    doc.total_amount = int(DocumentItem.objects.filter(document=doc).aggregate(s=Sum("total"))["s"] or 0)
    doc.stamp_modified()
    doc.save()


def update_document(kind: str, document_id, payload: Any) -> Document:
    """Apply a full client snapshot to one document.

    Everything happens in one transaction holding the document row lock:
    validation, the optimistic lock check, name resolution, child
    reconciliation and the root write. Any raised DocumentError means nothing
    was applied.
    """
    spec = get_kind_spec(kind)
    trail = _Trail(str(document_id))

    try:
        with transaction.atomic():
            doc = _lock_row(kind, document_id)
            trail.label = doc.number

            trail.to(UpdateState.VALIDATING)
            snapshot = parse_snapshot(payload, spec)
            validate_state(spec, merge_state(doc, snapshot))

            trail.to(UpdateState.LOCK_CHECKING)
            ensure_current(doc.updated_at, snapshot.modified_at, label=doc.number)

            trail.to(UpdateState.NAME_RESOLVING)
            if spec.name_field in snapshot.fields:
                name = snapshot.fields[spec.name_field]
                snapshot.fields[spec.name_field] = _unique_name(spec, name, exclude_id=doc.pk)

            trail.to(UpdateState.RECONCILING)
            _apply_collections(doc, snapshot, spec)

            trail.to(UpdateState.WRITING_ROOT)
            _write_root(doc, snapshot.fields)
    except DocumentError as exc:
        trail.reject(exc)
        raise
    except DatabaseError as exc:
        logger.exception("update.db_error doc=%s at=%s", trail.label, trail.state.value)
        err = TransactionalError()
        trail.reject(err)
        raise err from exc

    trail.to(UpdateState.COMMITTED)
    logger.info("document.updated doc=%s revision=%s", doc.number, doc.revision)
    return load_document(doc.pk)


def create_document(kind: str, payload: Any) -> Document:
    spec = get_kind_spec(kind)
    snapshot = parse_snapshot(payload, spec)
    validate_state(spec, merge_state(None, snapshot))

    try:
        with transaction.atomic():
            doc = _insert(spec, snapshot)
    except DocumentError:
        raise
    except DatabaseError as exc:
        logger.exception("create.db_error kind=%s", kind)
        raise TransactionalError() from exc

    logger.info("document.created kind=%s number=%s", kind, doc.number)
    return load_document(doc.pk)


def _insert(spec: KindSpec, snapshot: Snapshot) -> Document:
    fields = dict(snapshot.fields)
    if spec.name_field in fields:
        fields[spec.name_field] = _unique_name(spec, fields[spec.name_field])

    doc = Document(kind=spec.kind, number=generate(spec.number_prefix, spec.kind), **fields)
    doc.save()

    snapshot.items = snapshot.items or []
    snapshot.remarks = snapshot.remarks or []
    if spec.has_signatures:
        snapshot.signatures = snapshot.signatures or []
    _apply_collections(doc, snapshot, spec)

    # total_amount is summed from the items created above.
    _write_root(doc, {})
    return doc


@transaction.atomic
def delete_document(kind: str, document_id) -> Document:
    doc = _lock_row(kind, document_id)
    doc.soft_delete()
    logger.info("document.deleted doc=%s", doc.number)
    return doc


@transaction.atomic
def restore_document(kind: str, document_id) -> Document:
    """Bring a soft-deleted document back; its name is re-resolved since
    another active document may have taken it meanwhile."""
    spec = get_kind_spec(kind)
    doc = _lock_row(kind, document_id, include_deleted=True)
    if not doc.is_deleted:
        return load_document(doc.pk)

    current = getattr(doc, spec.name_field)
    resolved = _unique_name(spec, current, exclude_id=doc.pk)
    if resolved != current:
        setattr(doc, spec.name_field, resolved)
        logger.info("document.restore_renamed doc=%s from=%r to=%r", doc.number, current, resolved)
    doc.restore(save=False)
    doc.save()
    return load_document(doc.pk)


def _rows_from(queryset, fields, children_attr: str | None = None, child_fields=()) -> list[IncomingRow]:
    rows = []
    for obj in queryset:
        children = []
        if children_attr:
            children = _rows_from(getattr(obj, children_attr).all(), child_fields)
        rows.append(IncomingRow(ref=None, values={f: getattr(obj, f) for f in fields}, children=children))
    return rows


def copy_document(kind: str, document_id) -> Document:
    """Duplicate a document as a new draft with a fresh number and a
    "<name> - Copy" name."""
    spec = get_kind_spec(kind)
    source = get_document(kind, document_id)

    fields = {
        name: getattr(source, name)
        for name in (
            "company_name",
            "company_address",
            "bill_to",
            "project_name",
            "contact_person",
            "production_date",
            "notes",
        )
    }
    fields["status"] = DocumentStatus.DRAFT
    name = fields.get(spec.name_field) or ""
    if name.strip():
        fields[spec.name_field] = f"{name}{COPY_SUFFIX}"

    snapshot = Snapshot(
        fields=fields,
        items=_rows_from(source.items.all(), ("product_name",), "details", ("detail", "unit_price", "qty")),
        remarks=_rows_from(source.remarks.all(), ("text", "is_completed")),
        signatures=_rows_from(source.signatures.all(), ("name", "position", "image_ref")) if spec.has_signatures else None,
    )

    try:
        with transaction.atomic():
            doc = _insert(spec, snapshot)
    except DocumentError:
        raise
    except DatabaseError as exc:
        logger.exception("copy.db_error doc=%s", source.number)
        raise TransactionalError() from exc

    logger.info("document.copied from=%s to=%s", source.number, doc.number)
    return load_document(doc.pk)
