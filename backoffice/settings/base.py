"""
Base Django settings for the Backoffice admin console.

Shared by `dev.py` and `prod.py`. Values are read through django-environ, with
an optional `.env` file at the project root.

API
---
- SessionAuthentication with CSRF (kept enabled). Console endpoints additionally
  require `core.permissions.IsConsoleAdmin`.
- Errors render through `core.exceptions.api_exception_handler`
  (422 validation, 404, 409 conflict, 503 store failure).
- Throttling: global (`anon`, `user`) and named scopes: exports, auth-login, bulk-ops.

Listing knobs
-------------
LISTING_DEFAULT_PAGE_SIZE / LISTING_MAX_PAGE_SIZE bound every console list;
ACTIVITY_LOG_DEFAULT_WINDOW_DAYS is the window applied to activity log lists
and exports when no date bounds are sent.

Observability
-------------
- `core.middleware.RequestIDLogMiddleware` logs one structured line per request
  and records request samples for the performance dashboard (cache-backed).
- Services log through `backoffice.*` loggers; structured `extra=` fields are
  rendered by `core.logging.ContextFilter`.
"""

from pathlib import Path

import environ

# --- Paths and environment ------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env = environ.Env(DEBUG=(bool, False))
if (BASE_DIR / ".env").is_file():
    environ.Env.read_env(str(BASE_DIR / ".env"))

# --- Core -------------------------------------------------------------------
SECRET_KEY = env("SECRET_KEY", default="dev-insecure-change-me")
DEBUG = env.bool("DEBUG", False)

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["127.0.0.1", "localhost", "testserver"])
CSRF_TRUSTED_ORIGINS = env.list(
    "CSRF_TRUSTED_ORIGINS",
    default=["http://127.0.0.1:8000", "http://localhost:8000"],
)

# --- Applications -----------------------------------------------------------
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    "rest_framework",
    "django_filters",
    "drf_spectacular",

    "geography",
    "accounts",
    "core",
    "console",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    # 413 before any body parsing
    "core.middleware.RequestSizeLimitMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    # Outermost of ours: sees the final status of every response
    "core.middleware.RequestIDLogMiddleware",
]

ROOT_URLCONF = "backoffice.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "backoffice.wsgi.application"

# --- Storage ----------------------------------------------------------------
DATABASES = {
    "default": env.db(
        "DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
    )
}

# Throttle history and the request-metrics sample.
CACHES = {
    "default": env.cache("CACHE_URL", default="locmemcache://backoffice"),
}

# --- Auth -------------------------------------------------------------------
AUTH_USER_MODEL = "accounts.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# --- Locale, static and mail ------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
MEDIA_URL = "media/"
MEDIA_ROOT = BASE_DIR / "media"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

EMAIL_BACKEND = env("EMAIL_BACKEND", default="django.core.mail.backends.smtp.EmailBackend")
DEFAULT_FROM_EMAIL = env("DEFAULT_FROM_EMAIL", default="Backoffice <no-reply@example.com>")

# --- DRF and OpenAPI --------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
        "rest_framework.filters.OrderingFilter",
        "rest_framework.filters.SearchFilter",
    ],
    # Console lists paginate through `core.listing` or set `ConsolePagination` themselves.
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": env.int("LISTING_DEFAULT_PAGE_SIZE", default=25),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "core.exceptions.api_exception_handler",
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
        "rest_framework.throttling.ScopedRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "user": env("DRF_THROTTLE_RATE_USER", default="600/min"),
        "anon": env("DRF_THROTTLE_RATE_ANON", default="60/min"),
        "exports": env("DRF_THROTTLE_RATE_EXPORTS", default="10/min"),
        "auth-login": env("DRF_THROTTLE_RATE_AUTH_LOGIN", default="10/min"),
        "bulk-ops": env("DRF_THROTTLE_RATE_BULK_OPS", default="20/min"),
    },
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Backoffice API",
    "DESCRIPTION": "Admin console API: users, geography, newsletter, invitations, translations, activity logs.",
    "VERSION": "0.1.0",
    # Advertise both the current surface (root) and the /api/v1/ mirror.
    "SERVERS": [
        {"url": "http://127.0.0.1:8000", "description": "Local Dev"},
        {"url": "/", "description": "Current"},
        {"url": "/api/v1/", "description": "v1 mirror"},
    ],
    "OPERATION_ID_DUPLICATE_MODE": "suffix",
    "SWAGGER_UI_SETTINGS": {"persistAuthorization": True},
    "ENUM_NAME_OVERRIDES": {
        "UserStatusEnum": "accounts.models.UserStatus",
        "GeoStatusEnum": "geography.models.GeoStatus",
        "InvitationStatusEnum": "console.models.InvitationStatus",
        "SubscriptionStatusEnum": "console.models.SubscriptionStatus",
        "ContentStatusEnum": "console.models.ContentStatus",
        "ActivityActionEnum": "console.models.ActivityAction",
    },
}

# --- Console knobs ----------------------------------------------------------
MAX_REQUEST_BYTES = env.int("MAX_REQUEST_BYTES", default=2_000_000)

LISTING_DEFAULT_PAGE_SIZE = env.int("LISTING_DEFAULT_PAGE_SIZE", default=25)
LISTING_MAX_PAGE_SIZE = env.int("LISTING_MAX_PAGE_SIZE", default=100)
ACTIVITY_LOG_DEFAULT_WINDOW_DAYS = env.int("ACTIVITY_LOG_DEFAULT_WINDOW_DAYS", default=30)
ACTIVITY_STATS_DEFAULT_WINDOW_DAYS = env.int("ACTIVITY_STATS_DEFAULT_WINDOW_DAYS", default=7)

INVITATION_EXPIRY_DAYS = env.int("INVITATION_EXPIRY_DAYS", default=7)
NEWSLETTER_ENABLED = env.bool("NEWSLETTER_ENABLED", default=True)
PERFORMANCE_METRICS_ENABLED = env.bool("PERFORMANCE_METRICS_ENABLED", default=True)
PERFORMANCE_METRICS_MAX = env.int("PERFORMANCE_METRICS_MAX", default=100)

# --- Cookies (tightened further in prod.py) --------------------------------
SESSION_COOKIE_SAMESITE = "Lax"
CSRF_COOKIE_SAMESITE = "Lax"
X_FRAME_OPTIONS = "DENY"

# --- Logging ----------------------------------------------------------------
# `request` lines carry their own fields; `app` lines render `extra=` via ContextFilter.
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "core.logging.RequestIDFilter"},
        "context": {"()": "core.logging.ContextFilter"},
    },
    "formatters": {
        "structured": {
            "format": "level=%(levelname)s logger=%(name)s request_id=%(request_id)s "
                      "method=%(method)s path=%(path)s status=%(status)s user_id=%(user_id)s "
                      "duration_ms=%(duration_ms)s message=%(message)s"
        },
        "app": {
            "format": "level=%(levelname)s logger=%(name)s request_id=%(request_id)s "
                      "message=%(message)s %(context)s"
        },
    },
    "handlers": {
        "request": {
            "class": "logging.StreamHandler",
            "filters": ["request_id"],
            "formatter": "structured",
        },
        "console": {
            "class": "logging.StreamHandler",
            "filters": ["request_id", "context"],
            "formatter": "app",
        },
    },
    "loggers": {
        "backoffice.request": {
            "handlers": ["request"],
            "level": "INFO",
            "propagate": False,
        },
        "backoffice": {
            "handlers": ["console"],
            "level": env("BACKOFFICE_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
