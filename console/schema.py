"""
drf-spectacular components shared by the console endpoints.

- Listing query parameters (search, sort, direction, page, per_page, date range).
- Error envelopes rendered by `core.exceptions.api_exception_handler`.
- The paginated list envelope returned by every console `list`.

Kept free of side effects: viewsets import these constants at module load.
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, inline_serializer
from rest_framework import serializers


def _query(name: str, description: str, type_=OpenApiTypes.STR) -> OpenApiParameter:
    return OpenApiParameter(name=name, type=type_, location=OpenApiParameter.QUERY, required=False,
                            description=description)


SEARCH_PARAM = _query("search", "Case-insensitive substring match over the resource's search columns.")
STATUS_PARAM = _query("status", "Exact status value.")
SORT_PARAM = _query("sort", "Sort field from the resource allow-list; other fields are rejected (422).")
DIRECTION_PARAM = _query("direction", "`asc` or `desc`.")
PAGE_PARAM = _query("page", "1-based page number.", OpenApiTypes.INT)
PER_PAGE_PARAM = _query("per_page", "Page size, clamped to [1, 100].", OpenApiTypes.INT)
START_DATE_PARAM = _query("start_date", "Inclusive lower bound (YYYY-MM-DD).", OpenApiTypes.DATE)
END_DATE_PARAM = _query("end_date", "Inclusive upper bound (YYYY-MM-DD).", OpenApiTypes.DATE)

LISTING_PARAMS = [SEARCH_PARAM, STATUS_PARAM, SORT_PARAM, DIRECTION_PARAM, PAGE_PARAM, PER_PAGE_PARAM]
DATE_RANGE_PARAMS = [START_DATE_PARAM, END_DATE_PARAM]

ERROR_RESPONSE = OpenApiResponse(
    response=inline_serializer(
        name="ConsoleError",
        fields={
            "detail": serializers.CharField(),
            "code": serializers.CharField(),
            "errors": serializers.DictField(
                child=serializers.ListField(child=serializers.CharField()),
                required=False,
            ),
        },
    ),
    description="Error envelope",
)

VALIDATION_ERROR_RESPONSE = OpenApiResponse(
    response=ERROR_RESPONSE.response,
    description="Validation failed (422)",
)
CONFLICT_RESPONSE = OpenApiResponse(
    response=ERROR_RESPONSE.response,
    description="Blocked by a business rule (409)",
)
STORE_ERROR_RESPONSE = OpenApiResponse(
    response=ERROR_RESPONSE.response,
    description="Data store unavailable (503)",
)

CSV_RESPONSE = OpenApiResponse(
    response=OpenApiTypes.BINARY,
    description="CSV attachment; `X-Export-Total` carries the row count.",
)

COMMON_ERRORS = {
    422: VALIDATION_ERROR_RESPONSE,
    503: STORE_ERROR_RESPONSE,
}


def listing_response(name: str, item_serializer) -> OpenApiResponse:
    """Envelope for a console list: pagination meta, echoed filters and results."""
    return OpenApiResponse(
        response=inline_serializer(
            name=f"{name}Listing",
            fields={
                "count": serializers.IntegerField(),
                "page": serializers.IntegerField(),
                "page_size": serializers.IntegerField(),
                "num_pages": serializers.IntegerField(),
                "filters": serializers.DictField(),
                "results": item_serializer(many=True),
            },
        ),
        description=f"Paginated {name} listing",
    )
