from __future__ import annotations

import logging
import time
import uuid

from django.conf import settings

from .request_context import set_request_id


logger_perf = logging.getLogger("docsync.perf")


class RequestIDMiddleware:
    """Attach a request id to each request/response for traceability."""

    header_name = "X-Request-ID"

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        rid = request.META.get("HTTP_X_REQUEST_ID") or str(uuid.uuid4())
        request.request_id = rid
        set_request_id(rid)
        try:
            response = self.get_response(request)
            response[self.header_name] = rid
            return response
        finally:
            set_request_id("")


class RequestTimingMiddleware:
    """Log requests slower than settings.SLOW_REQUEST_THRESHOLD_MS.

    Auto-save clients submit whole snapshots; a document whose collections grow
    large shows up here first.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        threshold_ms = int(getattr(settings, "SLOW_REQUEST_THRESHOLD_MS", 1500) or 0)
        t0 = time.perf_counter()
        response = self.get_response(request)
        dt_ms = (time.perf_counter() - t0) * 1000.0

        if threshold_ms and dt_ms >= threshold_ms:
            logger_perf.warning(
                "SLOW %s %s %s in %.1fms",
                getattr(request, "method", "?"),
                request.path or "/",
                getattr(response, "status_code", "?"),
                dt_ms,
            )
        return response
