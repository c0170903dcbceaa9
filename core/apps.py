"""AppConfig for the `core` app.

Shared infrastructure used by every other app: the listing/export service
(`core.listing`), the error taxonomy and DRF exception handler, middleware,
request-id logging, request metrics and the timestamped base model.
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Core"
