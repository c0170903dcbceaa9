"""
Local development settings for the admin console API.

- `DEBUG` on unless the environment says otherwise.
- Outgoing mail (newsletter sends, invitations, welcome emails) is printed to
  the console instead of being delivered.
- SQLite file database unless `DATABASE_URL` is set.
- Console loggers at DEBUG so listing/export and audit lines are visible.

Not for deployment: see `prod.py`.
"""

from .base import *  # noqa

DEBUG = env.bool("DEBUG", True)

EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Admin UI dev server (Vite) and the Django runserver.
CSRF_TRUSTED_ORIGINS = env.list(
    "CSRF_TRUSTED_ORIGINS",
    default=[
        "http://127.0.0.1:8000",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ],
)

# The admin UI reads csrftoken from the cookie to send X-CSRFToken.
CSRF_COOKIE_HTTPONLY = False

LOGGING["loggers"]["backoffice"]["level"] = env("BACKOFFICE_LOG_LEVEL", default="DEBUG")  # type: ignore[name-defined]
LOGGING["loggers"]["django.security.csrf"] = {  # type: ignore[name-defined]
    "handlers": ["console"],
    "level": "DEBUG",
    "propagate": False,
}
