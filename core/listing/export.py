from __future__ import annotations

"""
CSV rendering for listing exports.

CSV
---
- Header row is always emitted first, even when no rows match.
- Quoting follows RFC 4180 via the stdlib `csv` writer (QUOTE_MINIMAL): fields
  containing a comma, quote or line break are wrapped in quotes and internal
  quotes are doubled. Rows end with CRLF.
- Values are normalized by `format_value()`:
    * None -> ""
    * datetimes -> "YYYY-MM-DD HH:MM:SS" (in the active timezone), dates -> ISO
    * booleans -> "Yes" / "No"
    * dicts / lists -> compact JSON

Streaming
---------
`iter_csv()` yields one encoded line at a time through a write-through buffer
(`Echo`), so a `StreamingHttpResponse` holds at most one row in memory.
"""

import csv
import json
from dataclasses import dataclass
from datetime import date, datetime
from operator import attrgetter
from typing import Any, Callable, Iterable, Iterator, Sequence, Union

from django.utils import timezone

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"

Accessor = Union[str, Callable[[Any], Any]]


@dataclass(frozen=True)
class Column:
    """One exported column: header label plus a dotted attribute path or callable."""
    header: str
    accessor: Accessor

    def value(self, record: Any) -> Any:
        if callable(self.accessor):
            return self.accessor(record)
        try:
            return attrgetter(self.accessor)(record)
        except AttributeError:
            # A null relation in the path (e.g. "city.name" with no city).
            return None


class Echo:
    """File-like object whose `write()` returns the value instead of buffering it."""

    def write(self, value: str) -> str:
        return value


def format_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (dict, list)):
        return json.dumps(value, sort_keys=True, default=str)
    return str(value)


def iter_csv(records: Iterable[Any], columns: Sequence[Column]) -> Iterator[str]:
    """Yield the header line, then one CSV line per record."""
    writer = csv.writer(Echo())
    yield writer.writerow([c.header for c in columns])
    for record in records:
        yield writer.writerow([format_value(c.value(record)) for c in columns])


def export_filename(resource: str, now: datetime, *, with_time: bool = True) -> str:
    """`<resource>_<YYYY-MM-DD>[_<HH-mm-ss>].csv`"""
    if timezone.is_aware(now):
        now = timezone.localtime(now)
    stamp = now.strftime("%Y-%m-%d_%H-%M-%S" if with_time else "%Y-%m-%d")
    return f"{resource}_{stamp}.csv"


@dataclass
class ExportJob:
    """A ready-to-stream export: filename, matching row count, and lazy lines."""
    filename: str
    row_count: int
    lines: Iterator[str]
    content_type: str = CSV_CONTENT_TYPE
