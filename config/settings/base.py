from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


# Base directory (project root)
BASE_DIR = Path(__file__).resolve().parents[2]

# Load environment variables from .env (if present)
load_dotenv(BASE_DIR / ".env")


def _getenv(name: str, default: str | None = None) -> str:
    val = os.getenv(name)
    if val is None:
        return "" if default is None else default
    return str(val)


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        return default


DEBUG = _getenv_bool("DEBUG", False)
SECRET_KEY = _getenv("SECRET_KEY", "django-insecure-CHANGE_ME")

# Hosts / origins
ALLOWED_HOSTS = [h.strip() for h in _getenv("ALLOWED_HOSTS", "").split(",") if h.strip()]

CSRF_TRUSTED_ORIGINS = [
    o.strip() for o in _getenv("CSRF_TRUSTED_ORIGINS", "").split(",") if o.strip()
]


# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "rest_framework",

    # Project apps
    "core",
    "documents",
]


MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "core.middleware.RequestIDMiddleware",
    "core.middleware.RequestTimingMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"


# Database
# Supports either:
# - individual POSTGRES_* vars (production)
# - DOCSYNC_SQLITE_PATH for a local single-file database
DOCSYNC_SQLITE_PATH = _getenv("DOCSYNC_SQLITE_PATH", "").strip()

if DOCSYNC_SQLITE_PATH:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": DOCSYNC_SQLITE_PATH,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": _getenv("POSTGRES_DB", "docsync"),
            "USER": _getenv("POSTGRES_USER", "docsync"),
            "PASSWORD": _getenv("POSTGRES_PASSWORD", ""),
            "HOST": _getenv("POSTGRES_HOST", "localhost"),
            "PORT": _getenv("POSTGRES_PORT", "5432"),
            "CONN_MAX_AGE": _getenv_int("DB_CONN_MAX_AGE", 0),
        }
    }


# Cache
REDIS_URL = _getenv("REDIS_URL", "").strip()

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": REDIS_URL,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "docsync",
        }
    }


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = _getenv("TIME_ZONE", "UTC")
USE_I18N = True
USE_TZ = True


# Static
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Django REST Framework
# Authentication is handled upstream (gateway / session layer); this service
# only sees already-authorized requests.
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.AllowAny",
    ),
    "DEFAULT_RENDERER_CLASSES": (
        "rest_framework.renderers.JSONRenderer",
    ),
    "DEFAULT_PARSER_CLASSES": (
        "rest_framework.parsers.JSONParser",
    ),
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "documents.views.api_exception_handler",
}


# -------------------------
# Document numbering / naming
# -------------------------
# Tokens: {PREFIX} {YYYY} {YY} {MM} {SEQ:n}
DOCSYNC_NUMBER_PATTERN = _getenv("DOCSYNC_NUMBER_PATTERN", "{PREFIX}-{YYYY}-{SEQ:4}")

# Optional per-kind prefix overrides, "quotation:QTN,invoice:INV"
DOCSYNC_NUMBER_PREFIXES = {}
for _part in _getenv("DOCSYNC_NUMBER_PREFIXES", "").split(","):
    if ":" in _part:
        _kind, _prefix = _part.split(":", 1)
        if _kind.strip() and _prefix.strip():
            DOCSYNC_NUMBER_PREFIXES[_kind.strip()] = _prefix.strip()


ENVIRONMENT = os.getenv("DOCSYNC_ENV", "dev")
RELEASE_SHA = os.getenv("DOCSYNC_RELEASE_SHA", "")

SLOW_REQUEST_THRESHOLD_MS = _getenv_int("DOCSYNC_SLOW_REQUEST_MS", 1500)


# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {"format": "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"},
    },
    "filters": {
        "request_id": {
            "()": "core.logging_filters.RequestIDFilter",
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["request_id"],
            "formatter": "standard",
        },
    },
    "root": {"handlers": ["console"], "level": os.getenv("DJANGO_LOG_LEVEL", "INFO")},
    "loggers": {
        "django.request": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "documents": {"handlers": ["console"], "level": os.getenv("DOCSYNC_LOG_LEVEL", "INFO"), "propagate": False},
        "docsync.perf": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
