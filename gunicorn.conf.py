"""Gunicorn configuration for the document API.

    gunicorn config.wsgi:application -c gunicorn.conf.py

Auto-save clients give up on a request after 15s and retry; the worker
timeout stays above that so a slow save is not killed while its client is
still waiting for the answer.
"""

from __future__ import annotations

import os


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


bind = os.getenv("GUNICORN_BIND", "0.0.0.0:" + (os.getenv("PORT") or "8000"))
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# Each save holds one row lock for the length of its transaction, so sync
# workers are enough; scale with processes rather than threads.
workers = _env_int("WEB_CONCURRENCY", 2)
worker_class = os.getenv("GUNICORN_WORKER_CLASS", "sync")
threads = _env_int("GUNICORN_THREADS", 1)

timeout = _env_int("GUNICORN_TIMEOUT", 30)
graceful_timeout = _env_int("GUNICORN_GRACEFUL_TIMEOUT", 20)
keepalive = _env_int("GUNICORN_KEEPALIVE", 5)

max_requests = _env_int("GUNICORN_MAX_REQUESTS", 1000)
max_requests_jitter = _env_int("GUNICORN_MAX_REQUESTS_JITTER", 100)

preload_app = os.getenv("GUNICORN_PRELOAD_APP", "false").strip().lower() in {"1", "true", "yes", "on"}
