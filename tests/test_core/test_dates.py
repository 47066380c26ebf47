"""Tests for src/core/dates.py — normalization and the epoch sentinel."""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

from src.core.dates import (
    EPOCH_SENTINEL,
    ceil_days,
    days_between,
    format_day,
    format_instant,
    is_sentinel,
    normalize,
    to_instant,
)


class TestNormalize:
    def test_aware_datetime_converted_to_utc(self) -> None:
        plus_two = timezone(timedelta(hours=2))
        result = normalize(datetime(2024, 1, 1, 12, 0, tzinfo=plus_two))
        assert result == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

    def test_naive_datetime_is_utc(self) -> None:
        result = normalize(datetime(2024, 1, 1, 12, 0))
        assert result.tzinfo is UTC
        assert result.hour == 12

    def test_microseconds_dropped(self) -> None:
        result = normalize(datetime(2024, 1, 1, 0, 0, 0, 999999, tzinfo=UTC))
        assert result.microsecond == 0

    def test_date_value(self) -> None:
        assert normalize(date(2024, 2, 29)) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_iso_string(self) -> None:
        assert normalize("2024-03-01T08:30:00Z") == datetime(2024, 3, 1, 8, 30, tzinfo=UTC)

    def test_host_string_format(self) -> None:
        assert normalize("2024-03-01 08:30:00") == datetime(2024, 3, 1, 8, 30, tzinfo=UTC)

    def test_unix_timestamp(self) -> None:
        assert normalize(1704067200) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_numeric_string_timestamp(self) -> None:
        assert normalize("1704067200") == datetime(2024, 1, 1, tzinfo=UTC)

    def test_missing_and_garbage_map_to_sentinel(self) -> None:
        for value in (None, "", "   ", "not a date", object(), True):
            assert normalize(value) == EPOCH_SENTINEL

    def test_to_instant_returns_none_for_unknown(self) -> None:
        assert to_instant("garbage") is None
        assert to_instant(None) is None


class TestHelpers:
    def test_is_sentinel(self) -> None:
        assert is_sentinel(normalize(None))
        assert not is_sentinel(normalize("2024-01-01"))

    def test_format_instant_is_canonical(self) -> None:
        assert format_instant(datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)) == "2024-01-02 03:04:05"

    def test_format_day(self) -> None:
        assert format_day(datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)) == "2024-01-02"

    def test_days_between_is_signed(self) -> None:
        a = datetime(2024, 1, 1, tzinfo=UTC)
        b = datetime(2024, 1, 3, 12, tzinfo=UTC)
        assert days_between(a, b) == 2.5
        assert days_between(b, a) == -2.5

    def test_ceil_days_rounds_up(self) -> None:
        assert ceil_days(timedelta(seconds=1)) == 1
        assert ceil_days(timedelta(days=1)) == 1
        assert ceil_days(timedelta(days=1, seconds=1)) == 2
        assert ceil_days(timedelta(0)) == 0
