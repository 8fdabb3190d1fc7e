"""Unit tests for dashboard and sales report helpers."""

from datetime import date, datetime, timedelta, timezone

import pytest

from storefront.exceptions import ValidationError
from storefront.services.dashboard import daily_series, day_end, day_start, money, parse_sales_days
from storefront.services.sales_report import ReportFilters

NPT = timezone(timedelta(hours=5, minutes=45))


class TestDailySeries:
    def test_fills_gaps_with_zero(self):
        rows = [
            (datetime(2025, 5, 1, 9, tzinfo=timezone.utc), 100),
            (datetime(2025, 5, 1, 18, tzinfo=timezone.utc), 50.25),
            (datetime(2025, 5, 3, 1, tzinfo=timezone.utc), None),
        ]

        series = daily_series(rows, date(2025, 5, 1), date(2025, 5, 4))

        assert series == [
            {"date": "2025-05-01", "revenue": 150.25, "orders": 2},
            {"date": "2025-05-02", "revenue": 0.0, "orders": 0},
            {"date": "2025-05-03", "revenue": 0.0, "orders": 1},
            {"date": "2025-05-04", "revenue": 0.0, "orders": 0},
        ]

    def test_buckets_by_utc_day(self):
        # 02:00 in Kathmandu is still the previous day in UTC
        rows = [(datetime(2025, 5, 2, 2, tzinfo=NPT), 10)]

        series = daily_series(rows, date(2025, 5, 1), date(2025, 5, 2))

        assert [s["orders"] for s in series] == [1, 0]

    def test_rows_outside_range_are_ignored(self):
        rows = [(datetime(2025, 4, 30, tzinfo=timezone.utc), 10)]

        assert daily_series(rows, date(2025, 5, 1), date(2025, 5, 1))[0]["orders"] == 0


def test_day_bounds():
    assert day_start(date(2025, 5, 1)) == datetime(2025, 5, 1, tzinfo=timezone.utc)
    assert day_end(date(2025, 5, 1)).date() == date(2025, 5, 1)
    assert day_end(date(2025, 5, 1)).hour == 23


def test_money():
    assert money(None) == 0.0
    assert money("12.3456") == 12.35


@pytest.mark.parametrize("raw,expected", [(7, 7), ("30", 30), (14, 7), (None, 7), ("abc", 7)])
def test_parse_sales_days(raw, expected):
    assert parse_sales_days(raw) == expected


class TestReportFilters:
    def test_parse(self):
        filters = ReportFilters.parse("2025-01-01", "2025-01-31T00:00:00", "4")

        assert filters.from_date == date(2025, 1, 1)
        assert filters.to_date == date(2025, 1, 31)
        assert filters.category_id == 4
        assert filters.start == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert len(filters.date_conditions()) == 2

    def test_empty_and_all(self):
        filters = ReportFilters.parse(None, "", "all")

        assert filters.as_dict() == {"fromDate": None, "toDate": None, "categoryId": None}
        assert filters.date_conditions() == []

    def test_invalid_date(self):
        with pytest.raises(ValidationError, match="Invalid fromDate. Use YYYY-MM-DD"):
            ReportFilters.parse("01/02/2025")

    def test_invalid_category(self):
        with pytest.raises(ValidationError, match="Invalid categoryId"):
            ReportFilters.parse(category_id="shoes")
