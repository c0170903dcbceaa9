"""
Deployment settings for the admin console API.

Every secret and endpoint comes from the environment; nothing here falls back
to a local default. Required: SECRET_KEY, ALLOWED_HOSTS, DATABASE_URL and
CACHE_URL. The cache must be shared by all workers: login throttling and the
performance dashboard's request sample both live there.
"""

from .base import *  # noqa

DEBUG = False
SECRET_KEY = env("SECRET_KEY")
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=[])
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[])

# postgres://user:password@db:5432/backoffice
DATABASES = {"default": env.db("DATABASE_URL")}
# rediscache://cache:6379/1
CACHES = {"default": env.cache("CACHE_URL")}

STATIC_ROOT = BASE_DIR / "staticfiles"

# --- Transport and cookies ---------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_SSL_REDIRECT = env.bool("SECURE_SSL_REDIRECT", True)
SECURE_HSTS_SECONDS = env.int("SECURE_HSTS_SECONDS", 604800)
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True
SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_REFERRER_POLICY = "same-origin"

SESSION_COOKIE_SECURE = True
SESSION_COOKIE_SAMESITE = "Lax"
CSRF_COOKIE_SECURE = True
CSRF_COOKIE_SAMESITE = "Lax"
# The SPA is served from the same origin and reads the token from /api/auth/csrf/.
CSRF_COOKIE_HTTPONLY = True

# --- Logging -------------------------------------------------------------
for _name in ("django.request", "django.security"):
    LOGGING["loggers"][_name] = {  # type: ignore[name-defined]
        "handlers": ["console"],
        "level": "WARNING",
        "propagate": False,
    }
