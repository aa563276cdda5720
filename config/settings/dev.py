from __future__ import annotations

from .base import *  # noqa
from .base import BASE_DIR, DOCSYNC_SQLITE_PATH, _getenv_bool, _getenv_int


# --------------------------------------------------------------------------------------
# Development settings
# --------------------------------------------------------------------------------------

DEBUG = True

ALLOWED_HOSTS = ["127.0.0.1", "localhost"]
CSRF_TRUSTED_ORIGINS = ["http://127.0.0.1:8000", "http://localhost:8000"]

# Local default: a single-file SQLite database unless Postgres is configured.
if not DOCSYNC_SQLITE_PATH and not _getenv_bool("DEV_USE_POSTGRES", False):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",
        }
    }

SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# Surface slow snapshot saves sooner while developing.
SLOW_REQUEST_THRESHOLD_MS = _getenv_int("DOCSYNC_SLOW_REQUEST_MS", 600)

LOGGING["loggers"]["documents"]["level"] = "DEBUG"  # noqa: F405
