"""
AppConfig for the `console` app.

Imports `console.schema` at startup so the drf-spectacular components are
defined before the first schema generation. A failure there is logged and, in
DEBUG, re-raised.
"""

from __future__ import annotations

import logging
from importlib import import_module

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


class ConsoleConfig(AppConfig):
    """Admin console resources: organizations, newsletter, translations, activity logs."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "console"

    def ready(self) -> None:  # pragma: no cover
        try:
            import_module("console.schema")
        except Exception:
            if settings.DEBUG:
                logger.exception("Failed to import startup module: console.schema")
                raise
            logger.warning("Optional startup module failed to import and was skipped: console.schema")
