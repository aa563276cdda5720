"""Parse a client-submitted JSON snapshot into normalized rows.

Wire keys are camelCase (``billTo``, ``unitPrice``); everything past this
module uses model attribute names. Client-submitted ``amount``/``total`` values
are never read: they are derived server-side.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from django.db import models
from django.utils.dateparse import parse_date, parse_datetime

from .errors import ReconciliationError, ValidationError
from .kinds import KindSpec
from .locking import parse_client_timestamp
from .models import Document, DocumentItem, DocumentSignature, ItemDetail


class _FieldError(Exception):
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise _FieldError("Expected text.")
    return str(value)


def _bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y", "on"}
    raise _FieldError("Expected a boolean.")


def _decimal(value: Any, max_digits: int = 16, decimal_places: int = 2) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    if isinstance(value, bool) or isinstance(value, (dict, list)):
        raise _FieldError("Expected a number.")
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation:
        raise _FieldError("Expected a number.") from None
    if not dec.is_finite():
        raise _FieldError("Expected a finite number.")

    whole_digits = max_digits - decimal_places
    too_large = _FieldError(f"Ensure there are no more than {whole_digits} digits before the decimal point.")
    if dec.adjusted() >= whole_digits:
        raise too_large
    try:
        dec = dec.quantize(Decimal(1).scaleb(-decimal_places))
    except InvalidOperation:
        raise too_large from None
    if dec.adjusted() >= whole_digits:
        raise too_large
    return dec


def _text_for(model: type[models.Model], name: str) -> Coercer:
    """`_text` limited to the column's max_length, if it has one."""
    limit = model._meta.get_field(name).max_length

    def coerce(value: Any) -> str:
        text = _text(value)
        if limit is not None and len(text) > limit:
            raise _FieldError(f"Ensure this value has at most {limit} characters.")
        return text

    return coerce


def _decimal_for(model: type[models.Model], name: str) -> Coercer:
    column = model._meta.get_field(name)
    return partial(_decimal, max_digits=column.max_digits, decimal_places=column.decimal_places)


def _date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise _FieldError("Expected a date.")
    raw = value.strip()
    try:
        parsed = parse_date(raw)
        if parsed is None:
            dt = parse_datetime(raw)
            parsed = dt.date() if dt else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise _FieldError("Expected an ISO date (YYYY-MM-DD).")
    return parsed


Coercer = Callable[[Any], Any]

# wire key -> (model attribute, coercer)
ROOT_FIELDS: Dict[str, Tuple[str, Coercer]] = {
    "status": ("status", _text_for(Document, "status")),
    "companyName": ("company_name", _text_for(Document, "company_name")),
    "companyAddress": ("company_address", _text),
    "billTo": ("bill_to", _text_for(Document, "bill_to")),
    "projectName": ("project_name", _text_for(Document, "project_name")),
    "contactPerson": ("contact_person", _text_for(Document, "contact_person")),
    "productionDate": ("production_date", _date),
    "notes": ("notes", _text),
}

WIRE_NAMES: Dict[str, str] = {attr: wire for wire, (attr, _c) in ROOT_FIELDS.items()}


@dataclass(frozen=True)
class RowShape:
    key: str
    fields: Dict[str, Tuple[str, Coercer]]
    children_key: Optional[str] = None
    children: Optional["RowShape"] = None


DETAIL_SHAPE = RowShape(
    key="details",
    fields={
        "detail": ("detail", _text),
        "unitPrice": ("unit_price", _decimal_for(ItemDetail, "unit_price")),
        "qty": ("qty", _decimal_for(ItemDetail, "qty")),
    },
)

ITEM_SHAPE = RowShape(
    key="items",
    fields={"productName": ("product_name", _text_for(DocumentItem, "product_name"))},
    children_key="details",
    children=DETAIL_SHAPE,
)

REMARK_SHAPE = RowShape(
    key="remarks",
    fields={
        "text": ("text", _text),
        "isCompleted": ("is_completed", _bool),
    },
)

SIGNATURE_SHAPE = RowShape(
    key="signatures",
    fields={
        "name": ("name", _text_for(DocumentSignature, "name")),
        "position": ("position", _text_for(DocumentSignature, "position")),
        "imageRef": ("image_ref", _text),
    },
)


@dataclass
class IncomingRow:
    """One submitted child row.

    `ref` is whatever identity the client echoed: a persisted id it received
    earlier, a client-local placeholder, or None. It is only interpreted by the
    reconciler, against the rows actually stored for this parent.
    """

    ref: Optional[str]
    values: Dict[str, Any]
    children: List["IncomingRow"] = field(default_factory=list)


@dataclass
class Snapshot:
    fields: Dict[str, Any]
    modified_at: Optional[datetime] = None
    # None means "key absent": the collection is left untouched.
    items: Optional[List[IncomingRow]] = None
    remarks: Optional[List[IncomingRow]] = None
    signatures: Optional[List[IncomingRow]] = None


def _parse_ref(raw: Any, path: str) -> Optional[str]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raise ReconciliationError(fields={f"{path}.id": "Row id must be a string."})
    return str(raw)


def _parse_rows(raw: Any, shape: RowShape, path: str, errors: Dict[str, str]) -> List[IncomingRow]:
    if not isinstance(raw, list):
        raise ReconciliationError(fields={path: "Expected a list."})

    rows: List[IncomingRow] = []
    for idx, entry in enumerate(raw):
        row_path = f"{path}[{idx}]"
        if not isinstance(entry, dict):
            raise ReconciliationError(fields={row_path: "Expected an object."})

        values: Dict[str, Any] = {}
        for wire, (attr, coerce) in shape.fields.items():
            try:
                values[attr] = coerce(entry.get(wire))
            except _FieldError as exc:
                errors[f"{row_path}.{wire}"] = exc.message

        children: List[IncomingRow] = []
        if shape.children is not None:
            raw_children = entry.get(shape.children_key)
            if raw_children is not None:
                children = _parse_rows(raw_children, shape.children, f"{row_path}.{shape.children_key}", errors)

        rows.append(IncomingRow(ref=_parse_ref(entry.get("id"), row_path), values=values, children=children))
    return rows


# Largest value a BigIntegerField column (detail amount, item and document totals) holds.
AMOUNT_LIMIT = 2**63 - 1


def _check_amounts(items: List[IncomingRow], errors: Dict[str, str]) -> None:
    """Reject items whose derived amounts would not fit their columns."""
    grand = Decimal(0)
    for i, item in enumerate(items):
        total = Decimal(0)
        for j, detail in enumerate(item.children):
            unit_price, qty = detail.values.get("unit_price"), detail.values.get("qty")
            if unit_price is None or qty is None:
                continue
            amount = unit_price * qty
            if abs(amount) >= AMOUNT_LIMIT:
                errors[f"items[{i}].details[{j}].amount"] = "Amount is too large."
            total += amount
        if abs(total) >= AMOUNT_LIMIT:
            errors[f"items[{i}].total"] = "Item total is too large."
        grand += total
    if abs(grand) >= AMOUNT_LIMIT:
        errors["items"] = "Document total is too large."


def parse_snapshot(payload: Any, spec: KindSpec) -> Snapshot:
    """Normalize a request body. Raises ValidationError / ReconciliationError."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    errors: Dict[str, str] = {}
    fields: Dict[str, Any] = {}
    for wire, (attr, coerce) in ROOT_FIELDS.items():
        if wire not in payload:
            continue
        try:
            fields[attr] = coerce(payload[wire])
        except _FieldError as exc:
            errors[wire] = exc.message

    stamp = payload.get("modifiedAt", payload.get("updatedAt"))
    snapshot = Snapshot(fields=fields, modified_at=parse_client_timestamp(stamp))

    if "items" in payload:
        snapshot.items = _parse_rows(payload["items"], ITEM_SHAPE, "items", errors)
        _check_amounts(snapshot.items, errors)
    if "remarks" in payload:
        snapshot.remarks = _parse_rows(payload["remarks"], REMARK_SHAPE, "remarks", errors)
    if "signatures" in payload:
        signatures = _parse_rows(payload["signatures"], SIGNATURE_SHAPE, "signatures", errors)
        if signatures and not spec.has_signatures:
            raise ReconciliationError(fields={"signatures": f"{spec.kind} documents do not carry signatures."})
        snapshot.signatures = signatures if spec.has_signatures else None

    if errors:
        raise ValidationError(fields=errors)
    return snapshot
