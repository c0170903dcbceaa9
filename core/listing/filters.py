from __future__ import annotations

"""
Filter normalization for listing and export endpoints.

A resource declares the query parameters it recognizes as `Param` objects
(`IdParam`, `ChoiceParam`, `TextParam`). `normalize_filters()` turns the raw
query-string values into a typed, immutable `FilterSet`:

- Blank or missing values leave the filter unset (no constraint).
- Values are coerced with Django form fields, so error messages match the rest
  of the framework. Any failure raises `core.exceptions.ValidationError` with
  per-field messages; nothing is partially applied.
- Date bounds (`start_date` / `end_date`) are parsed when the resource has a
  date field. When **both** are absent and the resource declares a default
  window, `[today - window, today]` is substituted. A single supplied bound
  leaves the other side open.

The function is pure: "today" is always passed in by the caller.
"""

from dataclasses import dataclass, field
from datetime import date, timedelta
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Sequence, Tuple

from django import forms
from django.core.exceptions import ValidationError as DjangoValidationError

from core.exceptions import ValidationError

if TYPE_CHECKING:  # pragma: no cover
    from core.listing.query import Predicate

START_DATE = "start_date"
END_DATE = "end_date"


@dataclass(frozen=True)
class Param:
    """
    One recognized filter parameter.

    `name` is the query-string key; `column` is the ORM lookup the value is
    matched against (defaults to `name`).
    """
    name: str
    column: Optional[str] = None

    @property
    def lookup(self) -> str:
        return self.column or self.name

    def coerce(self, raw: str) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class IdParam(Param):
    """Positive integer foreign-key id."""

    def coerce(self, raw: str) -> int:
        return forms.IntegerField(min_value=1).clean(raw)


@dataclass(frozen=True)
class ChoiceParam(Param):
    """
    Enumerated value. `choices` is the allowed set.

    `predicates` optionally maps a choice to a prebuilt predicate for values
    that are not a plain column equality (e.g. "needs_review").
    """
    choices: Tuple[str, ...] = ()
    predicates: Mapping[str, "Predicate"] = field(default_factory=dict)

    def coerce(self, raw: str) -> str:
        value = raw.strip()
        if value not in self.choices:
            raise DjangoValidationError(
                f"Select a valid choice. {value} is not one of: {', '.join(self.choices)}."
            )
        return value


@dataclass(frozen=True)
class TextParam(Param):
    """
    Free text. When `search_columns` is set the value becomes a
    case-insensitive OR search across those columns; otherwise it is an
    exact match on `lookup`.
    """
    search_columns: Tuple[str, ...] = ()
    max_length: int = 200

    def coerce(self, raw: str) -> str:
        return forms.CharField(max_length=self.max_length, strip=True).clean(raw)


@dataclass(frozen=True)
class FilterSet:
    """Normalized, immutable set of filters for a single request."""
    values: Mapping[str, Any] = field(default_factory=dict)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def is_empty(self) -> bool:
        return not self.values and self.start_date is None and self.end_date is None

    def as_dict(self) -> Dict[str, Any]:
        """JSON-safe view for responses and audit metadata."""
        out: Dict[str, Any] = dict(self.values)
        if self.start_date is not None:
            out[START_DATE] = self.start_date.isoformat()
        if self.end_date is not None:
            out[END_DATE] = self.end_date.isoformat()
        return out


def _raw(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _parse_date(raw: Optional[str]) -> Optional[date]:
    if raw is None:
        return None
    return forms.DateField(input_formats=["%Y-%m-%d"]).clean(raw)


def normalize_filters(
    params: Mapping[str, Any],
    declared: Sequence[Param],
    *,
    today: date,
    date_range: bool = False,
    default_window_days: Optional[int] = None,
) -> FilterSet:
    """
    Coerce raw query values into a `FilterSet`.

    Args:
        params: raw key/values (e.g. `request.query_params`).
        declared: recognized parameters; unknown keys are ignored.
        today: reference date used for the default window.
        date_range: whether `start_date` / `end_date` are recognized.
        default_window_days: window applied only when both bounds are absent.

    Raises:
        ValidationError: with `{param: [messages]}` for every bad value.
    """
    errors: Dict[str, List[str]] = {}
    values: Dict[str, Any] = {}

    for param in declared:
        raw = _raw(params, param.name)
        if raw is None:
            continue
        try:
            values[param.name] = param.coerce(raw)
        except DjangoValidationError as exc:
            errors[param.name] = list(exc.messages)

    start: Optional[date] = None
    end: Optional[date] = None
    if date_range:
        for key in (START_DATE, END_DATE):
            try:
                parsed = _parse_date(_raw(params, key))
            except DjangoValidationError as exc:
                errors[key] = list(exc.messages)
                continue
            if key == START_DATE:
                start = parsed
            else:
                end = parsed

        if START_DATE not in errors and END_DATE not in errors:
            if start is None and end is None and default_window_days:
                start = today - timedelta(days=default_window_days)
                end = today
            elif start is not None and end is not None and end < start:
                errors[END_DATE] = ["End date must be on or after start date."]

    if errors:
        raise ValidationError("Invalid filter parameters.", errors=errors)
    return FilterSet(values=values, start_date=start, end_date=end)
