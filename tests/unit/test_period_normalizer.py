"""Tests for Period and the period normalizer."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone

import pytest

from pnlsync.core.exceptions import NormalizationError
from pnlsync.models.period import Period
from pnlsync.services.period_normalizer import (
    api_period,
    normalize_period,
    parse_period,
    storage_period,
)


def _frozen(year: int, month: int, day: int = 15):
    return lambda: datetime(year, month, day, 12, 0)


class TestPeriod:
    def test_leap_february(self):
        assert Period.from_year_month(2024, 2).storage_period == "2024-02-29"

    def test_common_february(self):
        assert Period.from_year_month(2023, 2).storage_period == "2023-02-28"

    def test_first_day(self):
        assert Period.from_year_month(2024, 12).first_day == date(2024, 12, 1)

    def test_api_period_is_zero_padded(self):
        assert Period.from_year_month(2024, 3).api_period == "2024-03"

    def test_both_forms_denote_the_same_month(self):
        for year in (1900, 2000, 2023, 2024, 2100):
            for month in range(1, 13):
                period = Period.from_year_month(year, month)
                assert period.storage_period.startswith(period.api_period + "-")
                last = date.fromisoformat(period.storage_period)
                assert last.day == calendar.monthrange(year, month)[1]

    def test_rejects_month_13(self):
        with pytest.raises(ValueError):
            Period.from_year_month(2024, 13)


class TestParsePeriod:
    @pytest.mark.parametrize("raw", ["2024-02", "2024-02-01", "2024-02-29", " 2024-02-10 ",
                                     "2024-02-10T08:00:00", "2024-02-29T23:30:00-05:00"])
    def test_string_forms(self, raw):
        assert parse_period(raw) == Period.from_year_month(2024, 2)

    def test_offset_does_not_shift_month(self):
        assert parse_period("2024-01-31T23:30:00+03:00").api_period == "2024-01"
        assert parse_period("2024-01-31T23:30:00Z").api_period == "2024-01"

    def test_date_and_datetime_objects(self):
        assert parse_period(date(2025, 12, 1)).storage_period == "2025-12-31"
        assert parse_period(datetime(2025, 6, 30, 23, 59, tzinfo=timezone.utc)).api_period == "2025-06"

    @pytest.mark.parametrize("raw", ["", "garbage", "2024-13", "2024-00-10", "31/01/2024"])
    def test_malformed_input(self, raw):
        with pytest.raises(NormalizationError):
            parse_period(raw)

    def test_distant_periods_are_accepted(self):
        assert parse_period("1999-12").storage_period == "1999-12-31"
        assert parse_period("2099-04-02").storage_period == "2099-04-30"


class TestNormalizePeriod:
    def test_month_takes_precedence_over_date(self):
        period = normalize_period("2024-02", "2023-07-14", now=_frozen(2025, 1))
        assert period.api_period == "2024-02"

    def test_date_used_when_month_absent(self):
        assert storage_period(None, "2023-07-14", now=_frozen(2025, 1)) == "2023-07-31"

    def test_blank_month_counts_as_absent(self):
        assert storage_period("  ", "2023-07-14", now=_frozen(2025, 1)) == "2023-07-31"

    def test_falls_back_to_now(self):
        assert storage_period(now=_frozen(2024, 2)) == "2024-02-29"
        assert api_period(now=_frozen(2024, 2)) == "2024-02"

    def test_malformed_month_is_not_silently_replaced(self):
        with pytest.raises(NormalizationError):
            normalize_period("not-a-month", "2024-01-01", now=_frozen(2025, 1))
