from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import Q

from accounts.models import User
from core.exceptions import ConflictError, store_guard
from console.services.activity_log import ActivityLogService, snapshot_model
from console.services.geography import toggle_status

logger = logging.getLogger("backoffice.users")

SEARCH_LIMIT = 10


def delete_user(user: User, *, actor, log: ActivityLogService) -> None:
    """Delete `user`; an administrator cannot delete their own account."""
    if actor is not None and user.pk == actor.pk:
        raise ConflictError("You cannot delete your own account.")
    snapshot = snapshot_model(user)
    snapshot["id"] = user.pk
    with store_guard("user.delete", pk=user.pk), transaction.atomic():
        user.delete()
        log.log_deleted(actor, user, snapshot)
    logger.info("User deleted", extra={"object_id": snapshot["id"], "actor_id": getattr(actor, "pk", None)})


def search_users(term: str, limit: int = SEARCH_LIMIT):
    """Quick lookup by first name, last name or email (case-insensitive substring)."""
    term = (term or "").strip()
    if not term:
        return []
    q = Q(first_name__icontains=term) | Q(last_name__icontains=term) | Q(email__icontains=term)
    with store_guard("user.search"):
        return list(User.objects.filter(q).order_by("last_name", "first_name", "id")[:limit])


def toggle_user_status(user: User, *, actor, log: ActivityLogService) -> User:
    """Flip a user between active and inactive; administrators cannot toggle themselves."""
    if actor is not None and user.pk == actor.pk:
        raise ConflictError("You cannot change the status of your own account.")
    return toggle_status(user, actor=actor, log=log)
