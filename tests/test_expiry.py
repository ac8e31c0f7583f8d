"""Tests for month/year expiry arithmetic."""

from datetime import date, datetime

import pytest

from medshelf import expiry
from medshelf.errors import InvalidFormat
from medshelf.expiry import (
    MonthYear,
    classify,
    days_until_expiry,
    format_month_year,
    is_expired,
    is_expiring_soon,
    parse,
    parse_strict,
    to_first_of_month,
)

REF = date(2024, 6, 15)


class _FrozenDatetime(datetime):
    @classmethod
    def now(cls, tz=None):
        return datetime(2024, 6, 15, 9, 30)


@pytest.fixture
def frozen_today(monkeypatch):
    """Pin the module's notion of 'now' to 2024-06-15 09:30."""
    monkeypatch.setattr(expiry, "datetime", _FrozenDatetime)


class TestMonthYear:
    def test_str_is_zero_padded(self):
        assert str(MonthYear(year=2024, month=6)) == "06/2024"

    def test_ordering_by_year_then_month(self):
        assert MonthYear(2024, 12) < MonthYear(2025, 1)
        assert MonthYear(2025, 2) > MonthYear(2025, 1)
        assert MonthYear(2024, 6) == MonthYear(2024, 6)

    def test_to_first_of_month(self):
        assert to_first_of_month(MonthYear(2024, 6)) == date(2024, 6, 1)
        assert MonthYear(2023, 2).first_day() == date(2023, 2, 1)

    @pytest.mark.parametrize("year,month", [(2024, 0), (2024, 13), (0, 5), (-3, 5)])
    def test_to_first_of_month_rejects_out_of_range(self, year, month):
        with pytest.raises(InvalidFormat):
            to_first_of_month(MonthYear(year, month))


class TestParse:
    def test_parse_valid(self):
        assert parse("06/2024") == MonthYear(2024, 6)
        assert parse(" 11/2030 ") == MonthYear(2030, 11)

    @pytest.mark.parametrize(
        "text", ["", None, "6/2024", "13/2024", "00/2024", "06/24", "2024-06", "ab/cdef", "06/0000"]
    )
    def test_parse_malformed_returns_none(self, text):
        assert parse(text) is None

    def test_parse_strict_raises(self):
        with pytest.raises(InvalidFormat, match="MM/YYYY"):
            parse_strict("June 2024")

    def test_invalid_format_is_value_error(self):
        with pytest.raises(ValueError):
            parse_strict("99/2024")

    def test_round_trip_is_identical(self):
        for year in (1999, 2024, 2031):
            for month in range(1, 13):
                text = f"{month:02d}/{year}"
                assert str(parse(text)) == text

    def test_format_month_year_from_date(self):
        assert format_month_year(date(2024, 3, 9)) == "03/2024"
        assert format_month_year(MonthYear(2025, 10)) == "10/2025"


class TestIsExpired:
    def test_current_month_is_expired(self):
        assert is_expired("06/2024", REF) is True

    def test_past_months_are_expired(self):
        assert is_expired("05/2024", REF) is True
        assert is_expired("12/2023", REF) is True

    def test_future_month_is_not_expired(self):
        assert is_expired("07/2024", REF) is False
        assert is_expired("01/2025", REF) is False

    def test_month_boundary(self):
        assert is_expired("07/2024", datetime(2024, 6, 30, 23, 59)) is False
        assert is_expired("07/2024", datetime(2024, 7, 1)) is True

    def test_unparseable_is_not_expired(self):
        assert is_expired("", REF) is False
        assert is_expired("soon", REF) is False
        assert is_expired(None, REF) is False

    def test_defaults_to_today(self, frozen_today):
        assert is_expired("06/2024") is True
        assert is_expired("07/2024") is False


class TestDaysUntilExpiry:
    def test_future(self):
        assert days_until_expiry("07/2024", REF) == 16

    def test_current_month_is_negative(self):
        assert days_until_expiry("06/2024", REF) == -14

    def test_rounds_up_partial_days(self):
        assert days_until_expiry("07/2024", datetime(2024, 6, 15, 12, 0)) == 16

    def test_unparseable_is_none(self):
        assert days_until_expiry("", REF) is None
        assert days_until_expiry("07-2024", REF) is None

    def test_defaults_to_now(self, frozen_today):
        # 2024-06-15 09:30 -> 2024-07-01 00:00 is 15.6 days
        assert days_until_expiry("07/2024") == 16


class TestClassify:
    def test_days_30_is_critical(self):
        status = classify("07/2024", date(2024, 6, 1))
        assert status.days == 30
        assert status.status == "critical"
        assert status.description == "Expires in 30 days"

    def test_days_31_is_warning(self):
        status = classify("08/2024", date(2024, 7, 1))
        assert status.days == 31
        assert status.status == "warning"
        assert status.description == "Expires in 1 months"

    def test_days_90_is_warning(self):
        status = classify("09/2024", date(2024, 6, 3))
        assert status.days == 90
        assert status.status == "warning"

    def test_days_91_is_good(self):
        status = classify("09/2024", date(2024, 6, 2))
        assert status.days == 91
        assert status.status == "good"
        assert status.description == "Expires in 3 months"

    def test_negative_days_is_expired(self):
        status = classify("05/2024", REF)
        assert status.status == "expired"
        assert status.description == "Expired"
        assert status.days == -45

    def test_current_month_is_expired(self):
        assert classify("06/2024", REF).status == "expired"

    def test_missing_or_malformed_is_unknown(self):
        for text in ("", None, "sometime"):
            status = classify(text, REF)
            assert status.status == "unknown"
            assert status.description == "No expiry date"
            assert status.days is None


class TestIsExpiringSoon:
    def test_within_default_threshold(self):
        assert is_expiring_soon("07/2024", reference=REF) is True
        assert is_expiring_soon("08/2024", reference=REF) is True

    def test_beyond_threshold(self):
        # 2024-06-15 + 60 days = 2024-08-14
        assert is_expiring_soon("09/2024", reference=REF) is False

    def test_custom_threshold(self):
        assert is_expiring_soon("09/2024", 90, REF) is True

    def test_expired_is_not_expiring_soon(self):
        assert is_expiring_soon("06/2024", 60, REF) is False
        assert is_expiring_soon("01/2020", 60, REF) is False

    def test_unparseable(self):
        assert is_expiring_soon("", 60, REF) is False


class TestExpiringSoonUsesRealDate:
    """is_expiring_soon measures its window from the reference day itself,
    while is_expired and classify truncate the reference to its month start.

    This inconsistency is kept on purpose; these tests pin both behaviours so
    any unification is a visible, deliberate change.
    """

    def test_window_starts_at_reference_day(self):
        # From 2024-06-15, 20 days reaches 2024-07-05: July counts.
        # Measured from 2024-06-01 it would only reach 2024-06-21.
        assert is_expiring_soon("07/2024", 20, REF) is True

    def test_window_short_of_month_start(self):
        # 2024-06-15 + 15 days = 2024-06-30, before the July month start.
        assert is_expiring_soon("07/2024", 15, REF) is False

    def test_expired_check_still_uses_month_start(self):
        assert is_expired("06/2024", REF) is True
        assert days_until_expiry("06/2024", REF) < 0
