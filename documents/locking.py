from __future__ import annotations

import enum
import logging
from datetime import datetime, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from .errors import OptimisticLockError, ValidationError


logger = logging.getLogger(__name__)


class LockDecision(enum.Enum):
    ALLOW = "allow"
    CONFLICT = "conflict"


def parse_client_timestamp(value) -> datetime | None:
    """Parse the `modifiedAt` echo sent by a client.

    Missing/blank → None (lock check skipped). Garbage → ValidationError, since
    silently skipping the check would hide a client bug.
    """
    if value is None or value == "":
        return None
    dt = None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = parse_datetime(value.strip())
        except ValueError:
            dt = None
    if dt is None:
        raise ValidationError("Invalid modifiedAt timestamp.", fields={"modifiedAt": "Invalid timestamp."})
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, timezone=dt_timezone.utc)
    return dt


def check(stored_modified_at: datetime, client_known_modified_at: datetime | None) -> LockDecision:
    """Exact-equality version check.

    No client timestamp means the caller did not opt in to protection and the
    update is allowed.
    """
    if client_known_modified_at is None:
        return LockDecision.ALLOW
    if client_known_modified_at == stored_modified_at:
        return LockDecision.ALLOW
    return LockDecision.CONFLICT


def ensure_current(stored_modified_at: datetime, client_known_modified_at: datetime | None, *, label: str = "") -> None:
    if check(stored_modified_at, client_known_modified_at) is LockDecision.CONFLICT:
        logger.info(
            "lock.conflict doc=%s stored=%s client=%s",
            label,
            stored_modified_at.isoformat(),
            client_known_modified_at.isoformat() if client_known_modified_at else None,
        )
        raise OptimisticLockError()
