from __future__ import annotations

"""
Activity log writer and read-side helpers.

Writing
-------
`ActivityLogService` is bound to one request (or command run): it carries the
clock value and request metadata, so every entry written through it shares the
same `created_at`, request id, IP and user agent.

    log = ActivityLogService.for_request(request, now=now)
    log.log_created(request.user, city)

`record(actor, action, metadata)` is the generic entry point; it matches the
audit hook expected by `core.listing.stream_export`.

Payloads
--------
- created:  {"attributes": {...snapshot...}}
- updated:  {"changes": {field: [old, new]}}
- deleted:  {"attributes": {...snapshot before delete...}}
- exported: {"resource", "filters", "sort", "row_count"}

Reading
-------
`activity_stats`, `recent_activity`, `user_timeline` and `prune_older_than`
back the stats / recent / timeline / cleanup endpoints.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

from django.contrib.contenttypes.models import ContentType
from django.db.models import Count
from django.db.models.functions import TruncDate

from core.exceptions import ValidationError, store_guard
from core.logging import request_id_var
from console.models import ActivityAction, ActivityLog

logger = logging.getLogger("backoffice.activity")

CLEANUP_MIN_DAYS = 30
CLEANUP_MAX_DAYS = 365


def snapshot_model(instance) -> dict:
    """
    Concrete field values of `instance` (FKs via attname), JSON-safe.

    Datetimes/dates become ISO strings; Decimals become strings.
    """
    snap = {}
    for f in instance._meta.concrete_fields:
        if f.auto_created:
            continue
        name = f.attname
        val = getattr(instance, name, None)
        if hasattr(val, "isoformat"):
            val = val.isoformat()
        elif val is not None and not isinstance(val, (str, int, float, bool, dict, list)):
            val = str(val)
        snap[name] = val
    snap.pop("password", None)
    return snap


def diff(before: Mapping[str, Any], after: Mapping[str, Any]) -> Dict[str, List[Any]]:
    """Shallow diff: {field: [old, new]} for keys whose value changed."""
    changed = {}
    for k in sorted(set(before) | set(after)):
        if before.get(k) != after.get(k):
            changed[k] = [before.get(k), after.get(k)]
    return changed


@dataclass(frozen=True)
class RequestMeta:
    request_id: str = ""
    ip_address: Optional[str] = None
    user_agent: str = ""

    @classmethod
    def from_request(cls, request) -> "RequestMeta":
        rid = getattr(request, "request_id", None) or request.headers.get("X-Request-ID") or uuid.uuid4().hex
        return cls(
            request_id=rid[:64],
            ip_address=request.META.get("REMOTE_ADDR") or None,
            user_agent=request.META.get("HTTP_USER_AGENT", ""),
        )


def _actor_id(actor) -> Optional[int]:
    if actor is None or not getattr(actor, "is_authenticated", False):
        return None
    return actor.pk


class ActivityLogService:
    def __init__(self, *, now: datetime, meta: Optional[RequestMeta] = None):
        self.now = now
        self.meta = meta or RequestMeta(request_id=request_id_var.get() if request_id_var.get() != "-" else "")

    @classmethod
    def for_request(cls, request, *, now: datetime) -> "ActivityLogService":
        return cls(now=now, meta=RequestMeta.from_request(request))

    def record(
        self,
        actor,
        action: str,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        subject=None,
        description: str = "",
    ) -> ActivityLog:
        """Write one activity entry. Raises `StoreError` when the store fails."""
        entry = ActivityLog(
            user_id=_actor_id(actor),
            action=action,
            description=(description or self._describe(action, subject, metadata))[:255],
            properties=dict(metadata or {}),
            ip_address=self.meta.ip_address,
            user_agent=self.meta.user_agent,
            request_id=self.meta.request_id,
            created_at=self.now,
        )
        if subject is not None:
            entry.content_type = ContentType.objects.get_for_model(subject, for_concrete_model=False)
            entry.object_id = subject.pk
        with store_guard("activity_log.record", action=action):
            entry.save()
        return entry

    @staticmethod
    def _describe(action: str, subject, metadata) -> str:
        label = ActivityAction(action).label if action in ActivityAction.values else action.title()
        if subject is not None:
            return f"{label} {subject._meta.verbose_name}"
        resource = (metadata or {}).get("resource")
        return f"{label} {resource}" if resource else label

    # -----------------------------------------------------------------
    # Convenience writers
    # -----------------------------------------------------------------
    def log_created(self, actor, instance, **extra) -> ActivityLog:
        return self.record(
            actor, ActivityAction.CREATED, {"attributes": snapshot_model(instance), **extra}, subject=instance
        )

    def log_updated(self, actor, instance, before: Mapping[str, Any], **extra) -> ActivityLog:
        changes = diff(before, snapshot_model(instance))
        changes.pop("updated_at", None)
        return self.record(actor, ActivityAction.UPDATED, {"changes": changes, **extra}, subject=instance)

    def log_deleted(self, actor, instance, snapshot: Mapping[str, Any], **extra) -> ActivityLog:
        # Called after delete(): the pk is gone from the instance, keep it from the snapshot.
        entry = ActivityLog(
            user_id=_actor_id(actor),
            action=ActivityAction.DELETED,
            description=f"Deleted {instance._meta.verbose_name}",
            content_type=ContentType.objects.get_for_model(instance, for_concrete_model=False),
            object_id=snapshot.get("id"),
            properties={"attributes": dict(snapshot), **extra},
            ip_address=self.meta.ip_address,
            user_agent=self.meta.user_agent,
            request_id=self.meta.request_id,
            created_at=self.now,
        )
        with store_guard("activity_log.record", action=ActivityAction.DELETED):
            entry.save()
        return entry

    def log_status_change(self, actor, instance, old: str, new: str) -> ActivityLog:
        return self.record(
            actor,
            ActivityAction.STATUS_CHANGED,
            {"old_status": old, "new_status": new},
            subject=instance,
            description=f"Changed {instance._meta.verbose_name} status to {new}",
        )

    def log_login(self, user) -> ActivityLog:
        return self.record(
            user, ActivityAction.LOGIN, {"login_time": self.now.isoformat()}, subject=user,
            description="User logged in",
        )

    def log_logout(self, user) -> ActivityLog:
        return self.record(
            user, ActivityAction.LOGOUT, {"logout_time": self.now.isoformat()}, subject=user,
            description="User logged out",
        )

    def log_export(self, actor, resource: str, **properties) -> ActivityLog:
        return self.record(actor, ActivityAction.EXPORTED, {"resource": resource, **properties})


# ---------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------
def activity_stats(start: date, end: date) -> dict:
    """Totals, distinct actors, per-action and per-day counts for [start, end]."""
    qs = ActivityLog.objects.filter(created_at__date__gte=start, created_at__date__lte=end)
    with store_guard("activity_log.stats", start=start.isoformat(), end=end.isoformat()):
        total = qs.count()
        unique_users = qs.exclude(user__isnull=True).order_by().values("user_id").distinct().count()
        by_action = {
            row["action"]: row["count"]
            for row in qs.values("action").annotate(count=Count("id")).order_by("action")
        }
        daily = [
            {"date": row["day"].isoformat(), "count": row["count"]}
            for row in qs.annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(count=Count("id"))
            .order_by("-day")[:30]
        ]
    return {
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        "total_activities": total,
        "unique_users": unique_users,
        "actions_breakdown": by_action,
        "daily_activities": daily,
    }


def recent_activity(limit: int = 10):
    with store_guard("activity_log.recent", limit=limit):
        return list(
            ActivityLog.objects.select_related("user", "content_type").order_by("-created_at", "-id")[:limit]
        )


def user_timeline(user_id: int, limit: int = 50):
    with store_guard("activity_log.timeline", user_id=user_id):
        return list(
            ActivityLog.objects.select_related("content_type")
            .filter(user_id=user_id)
            .order_by("-created_at", "-id")[:limit]
        )


def validate_retention_days(raw) -> int:
    try:
        days = int(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid retention period.", errors={"days": ["A valid integer is required."]})
    if not CLEANUP_MIN_DAYS <= days <= CLEANUP_MAX_DAYS:
        raise ValidationError(
            "Invalid retention period.",
            errors={"days": [f"Ensure this value is between {CLEANUP_MIN_DAYS} and {CLEANUP_MAX_DAYS}."]},
        )
    return days


def prune_older_than(days: int, *, now: datetime) -> int:
    """Delete entries created more than `days` days before `now`; returns the count."""
    cutoff = now - timedelta(days=days)
    with store_guard("activity_log.prune", days=days):
        deleted, _ = ActivityLog.objects.filter(created_at__lt=cutoff).delete()
    logger.info("Activity logs pruned", extra={"days": days, "deleted": deleted})
    return deleted
