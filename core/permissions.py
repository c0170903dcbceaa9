"""
Permission classes used across the API.

- `IsConsoleAdmin`: request-level guard for the admin console. Allows
  authenticated users flagged `is_admin` (console role) or `is_staff`
  (Django admin access).

Usage
-----
    permission_classes = [IsAuthenticated, IsConsoleAdmin]
"""

from rest_framework.permissions import BasePermission


class IsConsoleAdmin(BasePermission):
    message = "Administrator access required."

    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        if not (user and getattr(user, "is_authenticated", False)):
            return False
        return bool(getattr(user, "is_admin", False) or getattr(user, "is_staff", False))
