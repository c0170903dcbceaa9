from __future__ import annotations

"""
Query descriptors built from a `FilterSet` and a sort specification.

Predicates are small tagged values instead of chained queryset calls, so a
listing request can be inspected, logged and tested before touching the ORM:

- `EqualsFilter(column, value)`         -> column = value
- `RangeFilter(column, lower, upper)`   -> lower <= date(column) <= upper (inclusive, open sides allowed)
- `TextSearchFilter(columns, term)`     -> OR of case-insensitive substring matches
- `AnyOfFilter(predicates)`             -> OR of other predicates

Predicates in a `QueryDescriptor` combine with AND, so adding filters can only
narrow a result set. Ordering always ends with `id` ascending to break ties.
"""

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Sequence, Tuple, Union

from django.db.models import Q, QuerySet

from core.exceptions import ValidationError
from core.listing.filters import ChoiceParam, FilterSet, Param, TextParam

ASC = "asc"
DESC = "desc"
TIE_BREAKER = "id"


@dataclass(frozen=True)
class EqualsFilter:
    column: str
    value: Any

    def to_q(self) -> Q:
        return Q(**{self.column: self.value})


@dataclass(frozen=True)
class RangeFilter:
    column: str
    lower: Optional[date] = None
    upper: Optional[date] = None
    # Compare on the date part of a datetime column; False for DateField columns.
    on_date: bool = True

    def to_q(self) -> Q:
        prefix = f"{self.column}__date" if self.on_date else self.column
        q = Q()
        if self.lower is not None:
            q &= Q(**{f"{prefix}__gte": self.lower})
        if self.upper is not None:
            q &= Q(**{f"{prefix}__lte": self.upper})
        return q


@dataclass(frozen=True)
class TextSearchFilter:
    columns: Tuple[str, ...]
    term: str

    def to_q(self) -> Q:
        q = Q()
        for column in self.columns:
            q |= Q(**{f"{column}__icontains": self.term})
        return q


@dataclass(frozen=True)
class AnyOfFilter:
    predicates: Tuple["Predicate", ...]

    def to_q(self) -> Q:
        q = Q()
        for predicate in self.predicates:
            q |= predicate.to_q()
        return q


Predicate = Union[EqualsFilter, RangeFilter, TextSearchFilter, AnyOfFilter]


@dataclass(frozen=True)
class SortSpec:
    field: str
    direction: str = ASC

    @property
    def descending(self) -> bool:
        return self.direction == DESC

    def as_dict(self) -> dict:
        return {"sort": self.field, "direction": self.direction}


@dataclass(frozen=True)
class QueryDescriptor:
    """AND-composed predicates plus a deterministic ordering."""
    predicates: Tuple[Predicate, ...]
    ordering: Tuple[str, ...]

    def to_q(self) -> Q:
        q = Q()
        for predicate in self.predicates:
            q &= predicate.to_q()
        return q

    def apply(self, queryset: QuerySet) -> QuerySet:
        return queryset.filter(self.to_q()).order_by(*self.ordering)


def parse_sort(
    raw_field: Optional[str],
    raw_direction: Optional[str],
    *,
    allowed: Sequence[str],
    default: SortSpec,
) -> SortSpec:
    """
    Validate a requested sort against the resource allow-list.

    A missing field falls back to `default` (keeping an explicit direction if
    one was sent). Unknown fields or directions raise `ValidationError`.
    """
    field_name = (raw_field or "").strip()
    direction = (raw_direction or "").strip().lower()
    errors = {}
    if field_name and field_name not in allowed:
        errors["sort"] = [f"Cannot sort by '{field_name}'. Allowed: {', '.join(allowed)}."]
    if direction and direction not in (ASC, DESC):
        errors["direction"] = ["Direction must be 'asc' or 'desc'."]
    if errors:
        raise ValidationError("Invalid sort parameters.", errors=errors)

    if not field_name:
        return SortSpec(default.field, direction or default.direction)
    return SortSpec(field_name, direction or ASC)


def predicate_for(param: Param, value: Any) -> Predicate:
    """Translate one normalized parameter value into its predicate."""
    if isinstance(param, ChoiceParam) and value in param.predicates:
        return param.predicates[value]
    if isinstance(param, TextParam) and param.search_columns:
        return TextSearchFilter(tuple(param.search_columns), value)
    return EqualsFilter(param.lookup, value)


def build_query(
    filters: FilterSet,
    sort: SortSpec,
    *,
    params: Sequence[Param],
    date_column: Optional[str] = None,
    date_column_is_datetime: bool = True,
) -> QueryDescriptor:
    """Compose the descriptor for `filters` ordered by `sort` then `id`."""
    predicates = []
    for param in params:
        value = filters.get(param.name)
        if value is None:
            continue
        predicates.append(predicate_for(param, value))

    if date_column and (filters.start_date is not None or filters.end_date is not None):
        predicates.append(
            RangeFilter(date_column, filters.start_date, filters.end_date, on_date=date_column_is_datetime)
        )

    primary = f"-{sort.field}" if sort.descending else sort.field
    ordering = (primary,) if sort.field == TIE_BREAKER else (primary, TIE_BREAKER)
    return QueryDescriptor(predicates=tuple(predicates), ordering=ordering)
