from __future__ import annotations

from .base import *  # noqa


DEBUG = False

SECRET_KEY = "test-only-secret"
ALLOWED_HOSTS = ["testserver", "localhost"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "docsync-tests",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

DOCSYNC_NUMBER_PATTERN = "{PREFIX}-{YYYY}-{SEQ:4}"
DOCSYNC_NUMBER_PREFIXES = {}

SLOW_REQUEST_THRESHOLD_MS = 0
