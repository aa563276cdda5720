from __future__ import annotations

from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.core.cache import cache
from django.db import connection
from django.http import HttpRequest, JsonResponse


def _utc_now_iso() -> str:
    return datetime.now(dt_timezone.utc).isoformat()


def _db_check() -> tuple[str, str | None]:
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
        return "ok", None
    except Exception as e:
        return "error", str(e)[:500]


def _cache_check() -> tuple[str, str | None]:
    try:
        key = "docsync:health:cache"
        cache.set(key, "1", timeout=10)
        if cache.get(key) != "1":
            return "degraded", "cache_set_get_mismatch"
        return "ok", None
    except Exception as e:
        return "error", str(e)[:500]


def health(request: HttpRequest) -> JsonResponse:
    """Liveness + dependency check for load balancers and monitors."""
    db_status, db_error = _db_check()
    cache_status, cache_error = _cache_check()

    checks = {
        "db": {"status": db_status, "error": db_error},
        "cache": {"status": cache_status, "error": cache_error},
    }
    ok = db_status == "ok"
    payload = {
        "status": "ok" if ok else "error",
        "time": _utc_now_iso(),
        "environment": getattr(settings, "ENVIRONMENT", ""),
        "release": getattr(settings, "RELEASE_SHA", "") or None,
        "checks": checks,
    }
    return JsonResponse(payload, status=200 if ok else 503)
