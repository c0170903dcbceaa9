"""Unit tests for the shared listing/export core (`core.listing`).

Covered
-------
- Filter normalization: blanks ignored, bad values reported per field, default
  date window only when both bounds are absent.
- Sort allow-list and the `id` tie-breaker.
- Page-size clamping and empty pages past the end.
- CSV export: header line, value formatting, audit entry written before streaming.
"""

import csv
import io
from datetime import date, datetime, timedelta, timezone as dt_timezone

from django.test import TestCase

from core.exceptions import ValidationError
from core.listing import (
    ASC,
    DESC,
    ChoiceParam,
    Column,
    IdParam,
    ListingRequest,
    ListingSpec,
    SortSpec,
    TextParam,
    clamp_page_size,
    format_value,
    list_page,
    normalize_filters,
    parse_page_number,
    parse_sort,
    stream_export,
)
from geography.models import Country, GeoStatus

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=dt_timezone.utc)
TODAY = date(2024, 3, 15)

COUNTRY_SPEC = ListingSpec(
    resource="countries",
    queryset=lambda: Country.objects.all(),
    params=(
        TextParam("search", search_columns=("name", "code")),
        ChoiceParam("status", choices=tuple(GeoStatus.values)),
    ),
    sortable=("id", "name", "code", "created_at"),
    default_sort=SortSpec("id", ASC),
    date_column="created_at",
    columns=(Column("ID", "id"), Column("Name", "name"), Column("Status", "status")),
)

WINDOWED_SPEC = ListingSpec(
    resource="countries",
    queryset=lambda: Country.objects.all(),
    date_column="created_at",
    default_window_days=30,
)


def make_country(pk, name, status=GeoStatus.ACTIVE, created_at=NOW):
    return Country.objects.create(
        id=pk, name=name, code=f"C{pk:02d}", status=status, created_at=created_at, updated_at=created_at
    )


class AuditSink:
    """Collects audit hook calls made by `stream_export`."""

    def __init__(self):
        self.calls = []

    def __call__(self, actor, action, metadata):
        self.calls.append((actor, action, dict(metadata)))


class NormalizeFiltersTests(TestCase):

    def test_blank_values_leave_filter_unset(self):
        fs = normalize_filters({"status": "  ", "search": ""}, COUNTRY_SPEC.params, today=TODAY)
        self.assertTrue(fs.is_empty())

    def test_unknown_keys_are_ignored(self):
        fs = normalize_filters({"color": "red"}, COUNTRY_SPEC.params, today=TODAY)
        self.assertEqual(fs.as_dict(), {})

    def test_bad_values_reported_per_field(self):
        with self.assertRaises(ValidationError) as ctx:
            normalize_filters(
                {"status": "archived", "country_id": "abc"},
                COUNTRY_SPEC.params + (IdParam("country_id"),),
                today=TODAY,
            )
        self.assertEqual(ctx.exception.status_code, 422)
        self.assertEqual(set(ctx.exception.errors), {"status", "country_id"})

    def test_default_window_applies_when_both_bounds_absent(self):
        fs = WINDOWED_SPEC.normalize({}, today=TODAY)
        self.assertEqual(fs.start_date, TODAY - timedelta(days=30))
        self.assertEqual(fs.end_date, TODAY)

    def test_single_bound_leaves_other_side_open(self):
        fs = WINDOWED_SPEC.normalize({"start_date": "2024-01-01"}, today=TODAY)
        self.assertEqual(fs.start_date, date(2024, 1, 1))
        self.assertIsNone(fs.end_date)

    def test_inverted_range_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            WINDOWED_SPEC.normalize({"start_date": "2024-03-10", "end_date": "2024-03-01"}, today=TODAY)
        self.assertIn("end_date", ctx.exception.errors)

    def test_malformed_date_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            WINDOWED_SPEC.normalize({"end_date": "15/03/2024"}, today=TODAY)
        self.assertIn("end_date", ctx.exception.errors)

    def test_as_dict_is_json_safe(self):
        fs = COUNTRY_SPEC.normalize({"status": "active", "start_date": "2024-03-01"}, today=TODAY)
        self.assertEqual(fs.as_dict(), {"status": "active", "start_date": "2024-03-01"})


class SortAndPagingTests(TestCase):

    def test_missing_sort_uses_default_keeping_direction(self):
        sort = parse_sort(None, "desc", allowed=("id", "name"), default=SortSpec("name", ASC))
        self.assertEqual(sort, SortSpec("name", DESC))

    def test_unknown_sort_field_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_sort("password", None, allowed=("id", "name"), default=SortSpec("id"))
        self.assertIn("sort", ctx.exception.errors)

    def test_bad_direction_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            parse_sort("name", "sideways", allowed=("id", "name"), default=SortSpec("id"))
        self.assertIn("direction", ctx.exception.errors)

    def test_ordering_ends_with_id(self):
        descriptor = COUNTRY_SPEC.descriptor(COUNTRY_SPEC.normalize({}, today=TODAY), SortSpec("name", DESC))
        self.assertEqual(descriptor.ordering, ("-name", "id"))
        descriptor = COUNTRY_SPEC.descriptor(COUNTRY_SPEC.normalize({}, today=TODAY), SortSpec("id", DESC))
        self.assertEqual(descriptor.ordering, ("-id",))

    def test_page_size_clamped(self):
        self.assertEqual(clamp_page_size(None, default=25, maximum=100), 25)
        self.assertEqual(clamp_page_size("500", default=25, maximum=100), 100)
        self.assertEqual(clamp_page_size("0", default=25, maximum=100), 1)
        self.assertEqual(clamp_page_size("-3", default=25, maximum=100), 1)

    def test_non_numeric_paging_rejected(self):
        with self.assertRaises(ValidationError):
            clamp_page_size("ten", default=25, maximum=100)
        with self.assertRaises(ValidationError):
            parse_page_number("first")

    def test_page_number_clamped_to_one(self):
        self.assertEqual(parse_page_number(None), 1)
        self.assertEqual(parse_page_number("0"), 1)


class ListPageTests(TestCase):

    def setUp(self):
        make_country(1, "B")
        make_country(2, "A")
        make_country(3, "C", status=GeoStatus.INACTIVE)

    def _page(self, params):
        req = ListingRequest.from_params(COUNTRY_SPEC, params, today=TODAY)
        return list_page(COUNTRY_SPEC, req.filters, req.sort, req.page, req.page_size)

    def test_filter_sort_and_page(self):
        page = self._page({"status": "active", "sort": "name", "direction": "asc", "per_page": "2"})
        self.assertEqual([c.id for c in page.items], [2, 1])
        self.assertEqual(page.total, 2)
        self.assertEqual(page.num_pages, 1)

    def test_empty_filters_follow_default_sort(self):
        page = self._page({})
        reference = sorted(Country.objects.all(), key=lambda c: c.id)
        self.assertEqual(page.items, reference)
        self.assertEqual(page.total, 3)

    def test_search_is_case_insensitive(self):
        page = self._page({"search": "c03"})
        self.assertEqual([c.id for c in page.items], [3])

    def test_page_past_end_is_empty_with_total(self):
        page = self._page({"page": "5", "per_page": "2"})
        self.assertEqual(page.items, [])
        self.assertEqual(page.total, 3)

    def test_equal_sort_keys_paginate_without_overlap(self):
        Country.objects.update(name="Same")
        first = self._page({"sort": "name", "per_page": "2", "page": "1"})
        second = self._page({"sort": "name", "per_page": "2", "page": "2"})
        ids = [c.id for c in first.items] + [c.id for c in second.items]
        self.assertEqual(ids, [1, 2, 3])

    def test_date_range_uses_calendar_days(self):
        make_country(4, "Old", created_at=NOW - timedelta(days=40))
        page = self._page({"start_date": "2024-03-15", "end_date": "2024-03-15"})
        self.assertEqual(page.total, 3)

    def _dated_rows(self):
        make_country(4, "Old", created_at=NOW - timedelta(days=40))
        make_country(5, "Midnight", created_at=datetime(2024, 3, 1, 0, 0, tzinfo=dt_timezone.utc))
        make_country(6, "Late", created_at=datetime(2024, 3, 15, 23, 59, 59, tzinfo=dt_timezone.utc))

    def test_start_date_only_is_open_ended(self):
        self._dated_rows()
        page = self._page({"start_date": "2024-03-01"})
        self.assertEqual([c.id for c in page.items], [1, 2, 3, 5, 6])

    def test_end_date_only_is_open_ended(self):
        self._dated_rows()
        page = self._page({"end_date": "2024-03-01"})
        self.assertEqual([c.id for c in page.items], [4, 5])

    def test_both_bound_days_are_included(self):
        self._dated_rows()
        page = self._page({"start_date": "2024-03-01", "end_date": "2024-03-15"})
        self.assertEqual([c.id for c in page.items], [1, 2, 3, 5, 6])
        page = self._page({"start_date": "2024-03-02", "end_date": "2024-03-14"})
        self.assertEqual(page.items, [])


class StreamExportTests(TestCase):

    def setUp(self):
        make_country(1, "B")
        make_country(2, "A, with comma")
        make_country(3, "C", status=GeoStatus.INACTIVE)

    def _export(self, params):
        req = ListingRequest.from_params(COUNTRY_SPEC, params, today=TODAY, for_export=True)
        sink = AuditSink()
        job = stream_export(COUNTRY_SPEC, req.filters, req.sort, actor=None, now=NOW, audit=sink)
        return job, sink

    def test_rows_match_filters_and_audit_written_before_streaming(self):
        job, sink = self._export({"status": "active", "sort": "name"})
        # Audit entry exists before a single line has been consumed.
        self.assertEqual(len(sink.calls), 1)
        _, action, meta = sink.calls[0]
        self.assertEqual(action, "exported")
        self.assertEqual(meta["row_count"], 2)
        self.assertEqual(meta["filters"], {"status": "active"})
        self.assertEqual(meta["sort"], {"sort": "name", "direction": "asc"})

        rows = list(csv.reader(io.StringIO("".join(job.lines))))
        self.assertEqual(rows[0], ["ID", "Name", "Status"])
        self.assertEqual(rows[1:], [["2", "A, with comma", "active"], ["1", "B", "active"]])
        self.assertEqual(job.row_count, 2)

    def test_zero_rows_yields_header_only(self):
        job, sink = self._export({"search": "nothing-matches"})
        self.assertEqual(list(csv.reader(io.StringIO("".join(job.lines)))), [["ID", "Name", "Status"]])
        self.assertEqual(sink.calls[0][2]["row_count"], 0)

    def test_quotes_and_line_breaks_survive_csv_reader(self):
        awkward = 'Say "hi"\nthen, leave'
        Country.objects.filter(pk=1).update(name=awkward)
        job, _ = self._export({"sort": "id"})
        rows = list(csv.reader(io.StringIO("".join(job.lines))))
        self.assertEqual(len(rows), 4)
        self.assertEqual(rows[1], ["1", awkward, "active"])

    def test_rows_written_during_audit_are_not_streamed(self):
        def audit_that_inserts(actor, action, metadata):
            make_country(9, "Written by audit")

        req = ListingRequest.from_params(COUNTRY_SPEC, {}, today=TODAY, for_export=True)
        job = stream_export(COUNTRY_SPEC, req.filters, req.sort, actor=None, now=NOW, audit=audit_that_inserts)
        rows = list(csv.reader(io.StringIO("".join(job.lines))))[1:]
        self.assertEqual([r[0] for r in rows], ["1", "2", "3"])
        self.assertEqual(job.row_count, 3)
        self.assertTrue(Country.objects.filter(pk=9).exists())

    def test_invalid_sort_raises_before_audit(self):
        with self.assertRaises(ValidationError):
            self._export({"sort": "secret"})

    def test_filename_includes_timestamp(self):
        job, _ = self._export({})
        self.assertTrue(job.filename.startswith("countries_2024-03-15"))
        self.assertTrue(job.filename.endswith(".csv"))


class FormatValueTests(TestCase):

    def test_formats(self):
        self.assertEqual(format_value(None), "")
        self.assertEqual(format_value(True), "Yes")
        self.assertEqual(format_value(False), "No")
        self.assertEqual(format_value(date(2024, 1, 2)), "2024-01-02")
        self.assertEqual(format_value({"b": 1, "a": 2}), '{"a": 2, "b": 1}')
        self.assertEqual(format_value(42), "42")
