from __future__ import annotations

"""
Page-number pagination over a `QueryDescriptor`.

- Page size is clamped into `[1, max_page_size]`; zero or negative sizes become 1.
- Page numbers are 1-indexed and clamped to >= 1. Pages past the end are empty
  (the total is still reported).
- Each call issues one COUNT and one bounded fetch. There is no snapshot between
  the two or across pages; rows written concurrently may shift page contents.
"""

from dataclasses import dataclass, field
from math import ceil
from typing import Any, List, Optional

from django import forms
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import QuerySet

from core.exceptions import ValidationError, store_guard
from core.listing.query import QueryDescriptor


@dataclass(frozen=True)
class Page:
    items: List[Any] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 1

    @property
    def num_pages(self) -> int:
        return max(1, ceil(self.total / self.page_size)) if self.page_size else 1

    @property
    def has_next(self) -> bool:
        return self.page < self.num_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def _parse_int(raw: Optional[str], name: str) -> Optional[int]:
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return forms.IntegerField().clean(str(raw).strip())
    except DjangoValidationError as exc:
        raise ValidationError("Invalid pagination parameters.", errors={name: list(exc.messages)})


def clamp_page_size(raw: Optional[str], *, default: int, maximum: int) -> int:
    """Parse `per_page`; blank -> default, then clamp into [1, maximum]."""
    value = _parse_int(raw, "per_page")
    if value is None:
        value = default
    return max(1, min(value, maximum))


def parse_page_number(raw: Optional[str]) -> int:
    """Parse `page`; blank -> 1, values below 1 clamp to 1."""
    value = _parse_int(raw, "page")
    return max(1, value or 1)


def paginate(queryset: QuerySet, descriptor: QueryDescriptor, *, page: int, page_size: int) -> Page:
    """Apply `descriptor` to `queryset` and return the requested slice."""
    page = max(1, page)
    page_size = max(1, page_size)
    qs = descriptor.apply(queryset)
    offset = (page - 1) * page_size
    with store_guard("paginate", model=qs.model.__name__, page=page, page_size=page_size):
        total = qs.count()
        items = list(qs[offset:offset + page_size]) if offset < total else []
    return Page(items=items, total=total, page=page, page_size=page_size)
