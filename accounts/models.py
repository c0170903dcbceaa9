"""Custom user model for the admin console.

Extends Django's `AbstractUser` (auth, permissions and sessions unchanged) with
the profile fields the console lists, filters and exports:

- `status`: account lifecycle (`active`, `inactive`, `pending`, `suspended`).
  Independent of Django's `is_active`, which still gates login.
- `is_admin`: console administrator flag checked by `core.permissions.IsConsoleAdmin`.
- `country` / `city`: optional location; a country or city cannot be deleted
  while users reference it (enforced by `console.services.geography`).
- `email_verified_at`: null until the address is verified.
"""

from django.contrib.auth.models import AbstractUser
from django.db import models


class UserStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    PENDING = "pending", "Pending"
    SUSPENDED = "suspended", "Suspended"


class User(AbstractUser):
    status = models.CharField(max_length=16, choices=UserStatus.choices, default=UserStatus.ACTIVE, db_index=True)
    phone_number = models.CharField(max_length=32, blank=True, default="")
    country = models.ForeignKey(
        "geography.Country",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
    )
    city = models.ForeignKey(
        "geography.City",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="users",
    )
    is_admin = models.BooleanField(default=False)
    email_verified_at = models.DateTimeField(null=True, blank=True)

    @property
    def full_name(self) -> str:
        return self.get_full_name() or self.get_username()

    @property
    def is_verified(self) -> bool:
        return self.email_verified_at is not None
