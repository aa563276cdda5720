from __future__ import annotations

import os

from .base import *  # noqa
from .base import ENVIRONMENT, RELEASE_SHA, _getenv, _getenv_bool, _getenv_int


DEBUG = False

# In production you MUST set ALLOWED_HOSTS (and CSRF_TRUSTED_ORIGINS) via env.

# Security
SECURE_SSL_REDIRECT = _getenv_bool("SECURE_SSL_REDIRECT", True)
SESSION_COOKIE_SECURE = _getenv_bool("SESSION_COOKIE_SECURE", True)
CSRF_COOKIE_SECURE = _getenv_bool("CSRF_COOKIE_SECURE", True)
SESSION_COOKIE_HTTPONLY = True

SECURE_HSTS_SECONDS = _getenv_int("SECURE_HSTS_SECONDS", 60 * 60 * 24 * 30)
SECURE_HSTS_INCLUDE_SUBDOMAINS = _getenv_bool("SECURE_HSTS_INCLUDE_SUBDOMAINS", True)
SECURE_HSTS_PRELOAD = _getenv_bool("SECURE_HSTS_PRELOAD", False)

SECURE_REFERRER_POLICY = _getenv("SECURE_REFERRER_POLICY", "same-origin")

# If behind a proxy/load balancer
USE_X_FORWARDED_HOST = _getenv_bool("USE_X_FORWARDED_HOST", True)
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")


# -------------------------
# Monitoring / Observability
# -------------------------
SENTRY_DSN = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", ENVIRONMENT)
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.05") or "0.05")

if SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        release=RELEASE_SHA or None,
        integrations=[DjangoIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=False,
    )
