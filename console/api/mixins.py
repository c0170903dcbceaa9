"""
Mixins and helpers shared by the console viewsets.

Contents
--------
- ConsoleViewSetMixin
    Admin-only access (`IsAuthenticated` + `IsConsoleAdmin`), one clock value per
    request (`self.now`), a request-bound `ActivityLogService` (`self.activity()`),
    and per-action throttle scopes (`throttle_scopes = {"export": "exports"}`).

- AuditedWriteMixin
    `perform_create` / `perform_update` for ModelViewSets: stamps timestamps
    explicitly and writes the `created` / `updated` activity entry in the same
    transaction as the row.

- ListingViewSetMixin
    `list` and `export` driven by a `ListingSpec` (see `console.listings`).
    Both go through `core.listing`, so the CSV holds exactly the rows the
    listing pages through.

- ConsolePagination
    Page-number pagination for the django-filter driven lists. Produces the
    same envelope as `ListingViewSetMixin.list`.
"""

from __future__ import annotations

from typing import Dict, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.http import StreamingHttpResponse
from django.utils import timezone
from rest_framework.decorators import action
from rest_framework.pagination import BasePagination
from rest_framework.permissions import IsAuthenticated
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response

from core.exceptions import store_guard
from core.listing import (
    TIE_BREAKER,
    ExportJob,
    ListingRequest,
    ListingSpec,
    Page,
    QueryDescriptor,
    clamp_page_size,
    list_page,
    paginate,
    parse_page_number,
    stream_export,
)
from core.models import TimestampedModel
from core.permissions import IsConsoleAdmin
from core.renderers import CSVRenderer
from console.services.activity_log import ActivityLogService, snapshot_model

PAGINATION_KEYS = ("page", "per_page", "page_size")


def listing_payload(page: Page, filters: dict, results) -> dict:
    return {
        "count": page.total,
        "page": page.page,
        "page_size": page.page_size,
        "num_pages": page.num_pages,
        "filters": filters,
        "results": results,
    }


def csv_response(job: ExportJob) -> StreamingHttpResponse:
    """Stream `job` as a CSV attachment."""
    response = StreamingHttpResponse(job.lines, content_type=job.content_type)
    response["Content-Disposition"] = f'attachment; filename="{job.filename}"'
    response["X-Export-Total"] = str(job.row_count)
    response["Cache-Control"] = "no-store"
    return response


def _page_size_from(params) -> int:
    return clamp_page_size(
        params.get("per_page", params.get("page_size")),
        default=getattr(settings, "LISTING_DEFAULT_PAGE_SIZE", 25),
        maximum=getattr(settings, "LISTING_MAX_PAGE_SIZE", 100),
    )


class ConsolePagination(BasePagination):
    """
    Pagination for lists that rely on DRF filter backends instead of a `ListingSpec`.

    Same rules as `core.listing.paginate`: page size clamped to [1, max], pages
    past the end are empty rather than 404, ordering always ends with `id`.
    """

    def paginate_queryset(self, queryset, request, view=None):
        params = request.query_params
        ordering = tuple(queryset.query.order_by) or tuple(queryset.model._meta.ordering)
        descriptor = QueryDescriptor(predicates=(), ordering=ordering + (TIE_BREAKER,))
        self.page = paginate(
            queryset,
            descriptor,
            page=parse_page_number(params.get("page")),
            page_size=_page_size_from(params),
        )
        self.filters = {k: v for k, v in params.items() if k not in PAGINATION_KEYS and str(v).strip() != ""}
        return list(self.page.items)

    def get_paginated_response(self, data):
        return Response(listing_payload(self.page, self.filters, data))

    def get_paginated_response_schema(self, schema):
        return {
            "type": "object",
            "required": ["count", "page", "page_size", "num_pages", "filters", "results"],
            "properties": {
                "count": {"type": "integer"},
                "page": {"type": "integer"},
                "page_size": {"type": "integer"},
                "num_pages": {"type": "integer"},
                "filters": {"type": "object"},
                "results": schema,
            },
        }


class ConsoleViewSetMixin:
    permission_classes = [IsAuthenticated, IsConsoleAdmin]
    # action name -> DRF throttle scope (rates in REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"])
    throttle_scopes: Dict[str, str] = {"export": "exports"}

    def get_throttles(self):
        scope = self.throttle_scopes.get(getattr(self, "action", None) or "")
        if scope:
            # Read by ScopedRateThrottle, which is in DEFAULT_THROTTLE_CLASSES.
            self.throttle_scope = scope
        return super().get_throttles()

    @property
    def now(self):
        if getattr(self, "_now", None) is None:
            self._now = timezone.now()
        return self._now

    def activity(self) -> ActivityLogService:
        if getattr(self, "_activity", None) is None:
            self._activity = ActivityLogService.for_request(self.request, now=self.now)
        return self._activity

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context["now"] = self.now
        return context


class AuditedWriteMixin:
    """Explicit timestamps + activity entries for ModelViewSet writes."""

    def get_create_kwargs(self) -> dict:
        return {}

    def perform_create(self, serializer):
        extra = dict(self.get_create_kwargs())
        if issubclass(serializer.Meta.model, TimestampedModel):
            extra.update(created_at=self.now, updated_at=self.now)
        with store_guard(f"{serializer.Meta.model._meta.model_name}.create"), transaction.atomic():
            instance = serializer.save(**extra)
            self.activity().log_created(self.request.user, instance)

    def perform_update(self, serializer):
        before = snapshot_model(serializer.instance)
        extra = {"updated_at": self.now} if isinstance(serializer.instance, TimestampedModel) else {}
        with store_guard(f"{serializer.Meta.model._meta.model_name}.update", pk=serializer.instance.pk), \
                transaction.atomic():
            instance = serializer.save(**extra)
            self.activity().log_updated(self.request.user, instance, before)


class ListingViewSetMixin(ConsoleViewSetMixin):
    """
    `list` + `export/` for a resource described by a `ListingSpec`.

    Subclasses set `listing` or override `get_listing()` when the spec depends
    on the request (parent object, settings read per request).
    """

    listing: Optional[ListingSpec] = None
    pagination_class = None
    filter_backends = []

    def get_listing(self) -> ListingSpec:
        if self.listing is None:
            raise ImproperlyConfigured(f"{self.__class__.__name__} must define `listing` or override `get_listing()`.")
        return self.listing

    def listing_request(self, *, for_export: bool = False) -> ListingRequest:
        return ListingRequest.from_params(
            self.get_listing(),
            self.request.query_params,
            today=timezone.localdate(self.now),
            for_export=for_export,
        )

    def list(self, request, *args, **kwargs):
        spec = self.get_listing()
        req = self.listing_request()
        page = list_page(spec, req.filters, req.sort, req.page, req.page_size)
        serializer = self.get_serializer(page.items, many=True)
        return Response(listing_payload(page, req.filters.as_dict(), serializer.data))

    @action(detail=False, methods=["get"], url_path="export", renderer_classes=[JSONRenderer, CSVRenderer])
    def export(self, request, *args, **kwargs):
        spec = self.get_listing()
        req = self.listing_request(for_export=True)
        job = stream_export(
            spec,
            req.filters,
            req.sort,
            actor=request.user,
            now=self.now,
            audit=self.activity().record,
        )
        return csv_response(job)
