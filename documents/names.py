from __future__ import annotations

import re

from django.db.models import Q

from .kinds import get_kind_spec
from .models import Document


def format_suffix(n: int) -> str:
    """Two digits for 2-9 ("02"), natural width afterwards ("10", "123")."""
    return f"{n:02d}"


def _suffix_of(name: str, candidate: str) -> int | None:
    if name == candidate:
        return 1
    m = re.fullmatch(re.escape(candidate) + r" ([0-9]{2,})", name)
    if not m:
        return None
    return int(m.group(1))


def resolve_unique_name(candidate: str, kind: str, exclude_id=None) -> str:
    """Return a name unique among active documents of `kind`.

    "Acme" stays "Acme" when free; otherwise it becomes "Acme NN" where NN is
    one past the highest suffix in use (the bare name counts as 1). Pass the
    record's own id as `exclude_id` when updating so an unchanged name does not
    collide with itself.

    Empty or whitespace-only names are returned as-is; uniqueness is not
    enforced on them. Read-only: the caller persists the result.
    """
    if candidate is None or not str(candidate).strip():
        return candidate

    field = get_kind_spec(kind).name_field
    qs = Document.objects.filter(kind=kind).filter(
        Q(**{field: candidate}) | Q(**{f"{field}__startswith": f"{candidate} "})
    )
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)

    suffixes = [
        n
        for n in (_suffix_of(name, candidate) for name in qs.values_list(field, flat=True))
        if n is not None
    ]
    if not suffixes:
        return candidate

    return f"{candidate} {format_suffix(max(suffixes) + 1)}"
