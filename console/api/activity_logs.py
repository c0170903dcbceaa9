from __future__ import annotations

"""
Activity log endpoints (read-only apart from retention cleanup).

- list/export: filter by user_id, action, subject_type and date range. With no
  `start_date`/`end_date` the last ACTIVITY_LOG_DEFAULT_WINDOW_DAYS days are shown.
- stats: totals for a window (default ACTIVITY_STATS_DEFAULT_WINDOW_DAYS days).
- recent: newest entries (`limit`, default 10, max 100).
- cleanup: delete entries older than `days` (30..365, default 90).
- users/{user_id}/timeline: one user's newest entries.
"""

from datetime import timedelta

from django import forms
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.utils import timezone
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema, extend_schema_view
from rest_framework import mixins, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from console import listings
from console.api.mixins import ListingViewSetMixin
from console.models import ActivityAction, ActivityLog
from console.schema import (
    COMMON_ERRORS,
    CSV_RESPONSE,
    DATE_RANGE_PARAMS,
    DIRECTION_PARAM,
    PAGE_PARAM,
    PER_PAGE_PARAM,
    SORT_PARAM,
    listing_response,
)
from console.serializers import ActivityLogSerializer
from console.services.activity_log import (
    activity_stats,
    prune_older_than,
    recent_activity,
    user_timeline,
    validate_retention_days,
)
from core.exceptions import ValidationError

RECENT_MAX = 100


def _limit(raw, default: int) -> int:
    try:
        value = int(raw) if raw not in (None, "") else default
    except (TypeError, ValueError):
        raise ValidationError("Invalid limit.", errors={"limit": ["A valid integer is required."]})
    return max(1, min(value, RECENT_MAX))


def _stats_window(params, today):
    errors = {}
    bounds = {}
    for key in ("start_date", "end_date"):
        raw = (params.get(key) or "").strip()
        if not raw:
            continue
        try:
            bounds[key] = forms.DateField(input_formats=["%Y-%m-%d"]).clean(raw)
        except DjangoValidationError as exc:
            errors[key] = list(exc.messages)
    if errors:
        raise ValidationError("Invalid date range.", errors=errors)
    end = bounds.get("end_date", today)
    days = int(getattr(settings, "ACTIVITY_STATS_DEFAULT_WINDOW_DAYS", 7))
    start = bounds.get("start_date", end - timedelta(days=days))
    if start > end:
        raise ValidationError("Invalid date range.", errors={"start_date": ["Must be on or before end_date."]})
    return start, end


@extend_schema_view(
    list=extend_schema(
        tags=["Activity logs"],
        description="List activity entries. Defaults to the last 30 days when no date bounds are sent.",
        parameters=[
            OpenApiParameter("user_id", int, required=False),
            OpenApiParameter("action", str, required=False, enum=list(ActivityAction.values)),
            OpenApiParameter("subject_type", str, required=False, description="Model name, e.g. `city`."),
            SORT_PARAM, DIRECTION_PARAM, PAGE_PARAM, PER_PAGE_PARAM,
        ] + DATE_RANGE_PARAMS,
        responses={200: listing_response("ActivityLog", ActivityLogSerializer), **COMMON_ERRORS},
    ),
    retrieve=extend_schema(tags=["Activity logs"], description="Retrieve an activity entry."),
    export=extend_schema(tags=["Activity logs"], description="Export activity entries as CSV.",
                         responses={200: CSV_RESPONSE}),
)
class ActivityLogViewSet(ListingViewSetMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    lookup_value_regex = r"\d+"
    queryset = ActivityLog.objects.select_related("user", "content_type")
    serializer_class = ActivityLogSerializer
    throttle_scopes = {"export": "exports", "cleanup": "bulk-ops"}

    def get_listing(self):
        return listings.activity_log_listing()

    @extend_schema(
        tags=["Activity logs"],
        parameters=DATE_RANGE_PARAMS,
        responses={200: OpenApiTypes.OBJECT, **COMMON_ERRORS},
    )
    @action(detail=False, methods=["get"], url_path="stats")
    def stats(self, request):
        start, end = _stats_window(request.query_params, timezone.localdate(self.now))
        return Response(activity_stats(start, end))

    @extend_schema(
        tags=["Activity logs"],
        parameters=[OpenApiParameter("limit", int, required=False)],
        responses={200: ActivityLogSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path="recent")
    def recent(self, request):
        entries = recent_activity(_limit(request.query_params.get("limit"), 10))
        return Response(self.get_serializer(entries, many=True).data)

    @extend_schema(
        tags=["Activity logs"],
        parameters=[OpenApiParameter("limit", int, required=False)],
        responses={200: ActivityLogSerializer(many=True)},
    )
    @action(detail=False, methods=["get"], url_path=r"users/(?P<user_id>\d+)/timeline")
    def timeline(self, request, user_id=None):
        entries = user_timeline(int(user_id), _limit(request.query_params.get("limit"), 50))
        return Response(self.get_serializer(entries, many=True).data)

    @extend_schema(
        tags=["Activity logs"],
        request=None,
        parameters=[OpenApiParameter("days", int, required=False, description="30..365, default 90.")],
        responses={200: OpenApiTypes.OBJECT, **COMMON_ERRORS},
    )
    @action(detail=False, methods=["post"], url_path="cleanup")
    def cleanup(self, request):
        raw = request.data.get("days") if hasattr(request.data, "get") else None
        if raw in (None, ""):
            raw = request.query_params.get("days", 90)
        days = validate_retention_days(raw)
        deleted = prune_older_than(days, now=self.now)
        self.activity().record(request.user, ActivityAction.CLEANUP, {"resource": "activity_logs", "days": days,
                                                                        "deleted": deleted})
        return Response({"detail": f"Deleted {deleted} activity log entries older than {days} days.",
                         "deleted": deleted, "days": days})
