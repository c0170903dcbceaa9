from __future__ import annotations

"""
Listing and export entry points shared by every admin resource.

A resource is described once by a `ListingSpec` (base queryset, recognized
filters, sort allow-list, date column, CSV columns). Views then do:

    req = ListingRequest.from_params(spec, request.query_params, today=today)
    page = list_page(spec, req.filters, req.sort, req.page, req.page_size)

or, for CSV:

    job = stream_export(spec, req.filters, req.sort, actor=request.user, now=now,
                        audit=ActivityLogService.record)

Both paths build the same `QueryDescriptor`, so an export always contains
exactly the rows the listing would page through.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

from django.conf import settings
from django.db.models import Count, Max, QuerySet

from core.exceptions import store_guard
from core.listing.export import Column, ExportJob, export_filename, iter_csv
from core.listing.filters import FilterSet, Param, normalize_filters
from core.listing.pager import Page, clamp_page_size, paginate, parse_page_number
from core.listing.query import ASC, QueryDescriptor, SortSpec, build_query, parse_sort

logger = logging.getLogger("backoffice.listing")

# audit(actor, action, metadata)
AuditHook = Callable[[Any, str, Mapping[str, Any]], Any]

EXPORT_ACTION = "exported"


@dataclass(frozen=True)
class ListingSpec:
    """Declarative description of one listable / exportable resource."""
    resource: str
    queryset: Callable[[], QuerySet]
    params: Tuple[Param, ...] = ()
    sortable: Tuple[str, ...] = ("id",)
    default_sort: SortSpec = SortSpec("id", ASC)
    date_column: Optional[str] = None
    date_column_is_datetime: bool = True
    default_window_days: Optional[int] = None
    columns: Tuple[Column, ...] = ()
    label: str = ""
    export_with_time: bool = True
    # Fixed filter values applied to exports when the caller sent none.
    export_defaults: Mapping[str, str] = field(default_factory=dict)

    @property
    def has_date_range(self) -> bool:
        return self.date_column is not None

    def normalize(self, params: Mapping[str, Any], *, today: date) -> FilterSet:
        return normalize_filters(
            params,
            self.params,
            today=today,
            date_range=self.has_date_range,
            default_window_days=self.default_window_days,
        )

    def sort_from(self, params: Mapping[str, Any]) -> SortSpec:
        return parse_sort(
            params.get("sort"),
            params.get("direction"),
            allowed=self.sortable,
            default=self.default_sort,
        )

    def descriptor(self, filters: FilterSet, sort: SortSpec) -> QueryDescriptor:
        return build_query(
            filters,
            sort,
            params=self.params,
            date_column=self.date_column,
            date_column_is_datetime=self.date_column_is_datetime,
        )


@dataclass(frozen=True)
class ListingRequest:
    filters: FilterSet
    sort: SortSpec
    page: int = 1
    page_size: int = 25

    @classmethod
    def from_params(
        cls,
        spec: ListingSpec,
        params: Mapping[str, Any],
        *,
        today: date,
        for_export: bool = False,
    ) -> "ListingRequest":
        """
        Normalize filters, sort and pagination from raw query parameters.

        All validation happens here, before any query is issued. For exports,
        `spec.export_defaults` fill in filters the caller left blank.
        """
        if for_export and spec.export_defaults:
            merged = dict(spec.export_defaults)
            merged.update({k: v for k, v in params.items() if str(v).strip() != ""})
            params = merged
        filters = spec.normalize(params, today=today)
        sort = spec.sort_from(params)
        page_size = clamp_page_size(
            params.get("per_page", params.get("page_size")),
            default=getattr(settings, "LISTING_DEFAULT_PAGE_SIZE", 25),
            maximum=getattr(settings, "LISTING_MAX_PAGE_SIZE", 100),
        )
        page = parse_page_number(params.get("page"))
        return cls(filters=filters, sort=sort, page=page, page_size=page_size)


def list_page(
    spec: ListingSpec,
    filters: FilterSet,
    sort: SortSpec,
    page_number: int,
    page_size: int,
) -> Page:
    """One page of `spec`'s collection matching `filters`, ordered by `sort` then id."""
    return paginate(spec.queryset(), spec.descriptor(filters, sort), page=page_number, page_size=page_size)


def stream_export(
    spec: ListingSpec,
    filters: FilterSet,
    sort: SortSpec,
    columns: Optional[Sequence[Column]] = None,
    *,
    actor: Any,
    now: datetime,
    audit: AuditHook,
) -> ExportJob:
    """
    Prepare a CSV export of every row matching `filters`.

    The total is counted and the audit entry written before this returns, so a
    store failure surfaces as `StoreError` before any byte is streamed. Rows are
    then read lazily with `QuerySet.iterator()`, bounded by the highest id seen
    when counting: rows written afterwards (the audit entry itself, for
    activity log exports) are not streamed.
    """
    columns = tuple(columns or spec.columns)
    qs = spec.descriptor(filters, sort).apply(spec.queryset())

    with store_guard("export_count", resource=spec.resource):
        snapshot = qs.aggregate(total=Count("pk"), last_pk=Max("pk"))
    total = snapshot["total"]
    rows = qs.none() if snapshot["last_pk"] is None else qs.filter(pk__lte=snapshot["last_pk"])

    audit(
        actor,
        EXPORT_ACTION,
        {
            "resource": spec.resource,
            "filters": filters.as_dict(),
            "sort": sort.as_dict(),
            "row_count": total,
        },
    )
    logger.info(
        "Export prepared",
        extra={"resource": spec.resource, "row_count": total, "actor_id": getattr(actor, "pk", None)},
    )

    return ExportJob(
        filename=export_filename(spec.resource, now, with_time=spec.export_with_time),
        row_count=total,
        lines=iter_csv(rows.iterator(chunk_size=2000), columns),
    )
