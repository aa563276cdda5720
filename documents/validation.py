"""Mandatory-field gate shared by manual saves and auto-saves."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Sequence

from .errors import ValidationError
from .kinds import KindSpec
from .models import Document
from .snapshot import WIRE_NAMES, Snapshot


ROOT_ATTRS = tuple(WIRE_NAMES.keys())


@dataclass
class DocumentState:
    """What the document will look like if the snapshot is applied."""

    status: str
    fields: Dict[str, Any]
    items: Sequence[Any]


def merge_state(document: Document | None, snapshot: Snapshot) -> DocumentState:
    fields: Dict[str, Any] = {}
    for attr in ROOT_ATTRS:
        if attr in snapshot.fields:
            fields[attr] = snapshot.fields[attr]
        elif document is not None:
            fields[attr] = getattr(document, attr)
        else:
            fields[attr] = Document._meta.get_field(attr).get_default()

    if snapshot.items is not None:
        items: Sequence[Any] = snapshot.items
    elif document is not None:
        items = list(document.items.all())
    else:
        items = []

    return DocumentState(status=fields.get("status") or "draft", fields=fields, items=items)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def validate_state(spec: KindSpec, state: DocumentState) -> None:
    errors: Dict[str, str] = {}

    if state.status not in spec.statuses:
        errors["status"] = f"Status must be one of: {', '.join(spec.statuses)}."

    for attr in spec.required_fields:
        if _is_blank(state.fields.get(attr)):
            errors[WIRE_NAMES.get(attr, attr)] = "This field is required."

    for rule in spec.status_rules.get(state.status, ()):
        message = rule.check(state)
        if message:
            key = WIRE_NAMES.get(getattr(rule, "field", ""), "items")
            errors.setdefault(key, message)

    if errors:
        raise ValidationError("Missing or invalid fields: " + ", ".join(sorted(errors)), fields=errors)
