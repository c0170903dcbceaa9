"""
Performance dashboard endpoints (read-only, plus a cache clear).

    performance/               combined dashboard
    performance/cache/         cache backend probe
    performance/database/      connection check + table counts
    performance/metrics/       recent request samples + summary
    performance/cache/clear/   POST; clears the default cache (also drops samples)
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from console.api.mixins import ConsoleViewSetMixin
from console.models import ActivityAction
from console.services import performance
from core import metrics as request_metrics


class PerformanceViewSet(ConsoleViewSetMixin, viewsets.ViewSet):
    throttle_scopes = {"clear_cache": "bulk-ops"}

    @extend_schema(tags=["Performance"], responses={200: OpenApiTypes.OBJECT})
    def list(self, request):
        return Response(performance.dashboard())

    @extend_schema(tags=["Performance"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["get"], url_path="cache")
    def cache(self, request):
        return Response(performance.cache_stats())

    @extend_schema(tags=["Performance"], responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["get"], url_path="database")
    def database(self, request):
        return Response(performance.database_stats())

    @extend_schema(
        tags=["Performance"],
        parameters=[OpenApiParameter("limit", int, required=False)],
        responses={200: OpenApiTypes.OBJECT},
    )
    @action(detail=False, methods=["get"], url_path="metrics")
    def metrics(self, request):
        try:
            limit = max(1, int(request.query_params.get("limit", 50)))
        except (TypeError, ValueError):
            limit = 50
        recent = request_metrics.recent_requests()
        return Response({
            "enabled": request_metrics.metrics_enabled(),
            "summary": request_metrics.summarize(recent),
            "requests": recent[:limit],
        })

    @extend_schema(tags=["Performance"], request=None, responses={200: OpenApiTypes.OBJECT})
    @action(detail=False, methods=["post"], url_path="cache/clear")
    def clear_cache(self, request):
        performance.clear_cache(actor_id=request.user.pk)
        self.activity().record(request.user, ActivityAction.CLEANUP, {"resource": "cache"})
        return Response({"detail": "Cache cleared."})
