from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import date

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from .errors import NumberingError
from .models import IdentifierCounter


logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\{(PREFIX|YY|YYYY|MM|SEQ(?::\d+)?)\}")

DEFAULT_PATTERN = "{PREFIX}-{YYYY}-{SEQ:4}"


@dataclass
class NumberingContext:
    prefix: str
    today: date
    seq: int


def format_identifier(pattern: str | None, ctx: NumberingContext) -> str:
    def repl(m: re.Match) -> str:
        token = m.group(1)
        if token == "PREFIX":
            return ctx.prefix
        if token == "YY":
            return f"{ctx.today.year % 100:02d}"
        if token == "YYYY":
            return f"{ctx.today.year:04d}"
        if token == "MM":
            return f"{ctx.today.month:02d}"
        width = int(token.split(":", 1)[1]) if ":" in token else 0
        return f"{ctx.seq:0{width}d}" if width else str(ctx.seq)

    return _TOKEN_RE.sub(repl, pattern or DEFAULT_PATTERN)


def next_sequence(kind: str, year: int) -> int:
    """Atomically bump and return the counter for (kind, year).

    The counter row is locked for the rest of the surrounding transaction, so two
    concurrent creates serialize here instead of reading the same value.
    """
    with transaction.atomic():
        counter, _created = IdentifierCounter.objects.select_for_update().get_or_create(
            kind=kind,
            year=year,
            defaults={"last_value": 0},
        )
        counter.last_value = int(counter.last_value or 0) + 1
        counter.save(update_fields=["last_value"])
        return counter.last_value


def generate(prefix: str, kind: str, *, today: date | None = None) -> str:
    """Allocate the next human-readable identifier, e.g. ``PT-2025-0007``.

    Raises NumberingError when the counter store cannot be reached; there is no
    fallback to a guessed number.
    """
    today = today or timezone.localdate()
    try:
        seq = next_sequence(kind, today.year)
    except DatabaseError as exc:
        logger.error("numbering.counter_unavailable kind=%s year=%s err=%s", kind, today.year, exc)
        raise NumberingError() from exc

    pattern = getattr(settings, "DOCSYNC_NUMBER_PATTERN", DEFAULT_PATTERN)
    number = format_identifier(pattern, NumberingContext(prefix=prefix, today=today, seq=seq))
    logger.debug("numbering.allocated kind=%s number=%s", kind, number)
    return number


def new_row_id() -> uuid.UUID:
    """Opaque identity for a freshly inserted row."""
    return uuid.uuid4()


def _number_regex(pattern: str, prefix: str) -> re.Pattern:
    parts = []
    seen = set()
    pos = 0
    for m in _TOKEN_RE.finditer(pattern):
        parts.append(re.escape(pattern[pos:m.start()]))
        pos = m.end()
        token = m.group(1)
        if token == "PREFIX":
            parts.append(re.escape(prefix))
            continue
        name, rx = {"YYYY": ("year", r"\d{4}"), "YY": ("yy", r"\d{2}"), "MM": ("mm", r"\d{2}")}.get(
            token, ("seq", r"\d+")
        )
        parts.append(f"(?P={name})" if name in seen else f"(?P<{name}>{rx})")
        seen.add(name)
    parts.append(re.escape(pattern[pos:]))
    return re.compile("".join(parts))


def parse_number(number: str, prefix: str, pattern: str | None = None) -> tuple[int, int] | None:
    """Read (year, seq) back out of an issued number.

    Uses the configured DOCSYNC_NUMBER_PATTERN unless `pattern` is given; two
    digit years are read as 20YY. Returns None when the number does not match or
    the pattern carries no year or sequence.
    """
    pattern = pattern or getattr(settings, "DOCSYNC_NUMBER_PATTERN", DEFAULT_PATTERN)
    m = _number_regex(pattern, prefix).fullmatch(number or "")
    if not m:
        return None
    found = m.groupdict()
    if found.get("seq") is None:
        return None
    if found.get("year") is not None:
        year = int(found["year"])
    elif found.get("yy") is not None:
        year = 2000 + int(found["yy"])
    else:
        return None
    return year, int(found["seq"])
