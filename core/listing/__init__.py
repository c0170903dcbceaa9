from core.listing.export import Column, ExportJob, export_filename, format_value, iter_csv
from core.listing.filters import (
    END_DATE,
    START_DATE,
    ChoiceParam,
    FilterSet,
    IdParam,
    Param,
    TextParam,
    normalize_filters,
)
from core.listing.pager import Page, clamp_page_size, paginate, parse_page_number
from core.listing.query import (
    ASC,
    DESC,
    AnyOfFilter,
    EqualsFilter,
    QueryDescriptor,
    RangeFilter,
    TIE_BREAKER,
    SortSpec,
    TextSearchFilter,
    build_query,
    parse_sort,
)
from core.listing.service import ListingRequest, ListingSpec, list_page, stream_export

__all__ = [
    "ASC",
    "DESC",
    "END_DATE",
    "START_DATE",
    "AnyOfFilter",
    "ChoiceParam",
    "Column",
    "EqualsFilter",
    "ExportJob",
    "FilterSet",
    "IdParam",
    "ListingRequest",
    "ListingSpec",
    "Page",
    "Param",
    "QueryDescriptor",
    "RangeFilter",
    "SortSpec",
    "TIE_BREAKER",
    "TextParam",
    "TextSearchFilter",
    "build_query",
    "clamp_page_size",
    "export_filename",
    "format_value",
    "iter_csv",
    "list_page",
    "normalize_filters",
    "paginate",
    "parse_page_number",
    "parse_sort",
    "stream_export",
]
