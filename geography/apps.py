from django.apps import AppConfig


class GeographyConfig(AppConfig):
    """Countries and cities referenced by users, organizations and events."""
    default_auto_field = "django.db.models.BigAutoField"
    name = "geography"
