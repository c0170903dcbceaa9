from django.apps import AppConfig


class AccountsConfig(AppConfig):
    """Console operators and members: `accounts.User` plus login/logout/me."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "accounts"
    verbose_name = "Accounts"
