from __future__ import annotations

"""
Core data models shared across the project.

This module provides:
- `TimestampedModel`: abstract base carrying `created_at` / `updated_at`.

Timestamps
----------
- Timestamps are **not** maintained by `auto_now` hooks. Every write path calls
  `stamp(now)` with an explicit clock value before saving, so services and tests
  control the time that lands in the database.
- `created_at` is assigned once (first stamp); `updated_at` follows every stamp.
"""

from datetime import datetime

from django.core.exceptions import ValidationError
from django.db import models


class TimestampedModel(models.Model):
    """
    Abstract base for console records with explicit audit timestamps.

    Fields:
        created_at: set on first `stamp()`; indexed for date-range listings.
        updated_at: refreshed by each `stamp()`.

    Invariants:
        - Both fields must be set before saving (see `clean()`).
        - Default ordering is newest-first by `created_at`.
    """

    created_at = models.DateTimeField(db_index=True)
    updated_at = models.DateTimeField()

    class Meta:
        abstract = True
        ordering = ("-created_at",)

    def stamp(self, now: datetime) -> "TimestampedModel":
        """Assign timestamps for a write happening at `now` and return self."""
        if self.created_at is None:
            self.created_at = now
        self.updated_at = now
        return self

    def clean(self):
        super().clean()
        if self.created_at is None or self.updated_at is None:
            raise ValidationError("Timestamps must be stamped before saving.")

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} id={getattr(self, 'id', None)}>"
