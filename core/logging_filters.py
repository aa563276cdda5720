from __future__ import annotations

import logging

from core.request_context import get_request_id


class RequestIDFilter(logging.Filter):
    """Expose the current request id as `%(request_id)s` on every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        rid = getattr(record, "request_id", "") or get_request_id()
        record.request_id = rid or "-"
        return True
