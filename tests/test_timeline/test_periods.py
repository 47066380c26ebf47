"""Tests for billing period arithmetic."""

from __future__ import annotations

from datetime import UTC, datetime

from src.timeline.periods import (
    describe_period,
    expected_next,
    expected_previous,
    period_days,
    period_seconds,
)


class TestPeriodDays:
    def test_units(self) -> None:
        assert period_days("day", 1) == 1
        assert period_days("week", 1) == 7
        assert period_days("month", 1) == 30
        assert period_days("year", 1) == 365

    def test_interval_multiplies(self) -> None:
        assert period_days("week", 2) == 14
        assert period_days("month", 3) == 90

    def test_case_insensitive(self) -> None:
        assert period_days(" Month ", 1) == 30

    def test_unknown_cadence(self) -> None:
        assert period_days("fortnight", 1) is None
        assert period_days("", 1) is None
        assert period_days(None, 1) is None
        assert period_days("month", 0) is None

    def test_seconds(self) -> None:
        assert period_seconds("day", 2) == 172800
        assert period_seconds("decade", 1) is None


class TestExpectedDates:
    def test_expected_next(self) -> None:
        anchor = datetime(2024, 1, 1, tzinfo=UTC)
        assert expected_next(anchor, "month", 1) == datetime(2024, 1, 31, tzinfo=UTC)

    def test_expected_previous(self) -> None:
        anchor = datetime(2024, 1, 31, tzinfo=UTC)
        assert expected_previous(anchor, "month", 1) == datetime(2024, 1, 1, tzinfo=UTC)

    def test_unknown_unit_yields_none(self) -> None:
        anchor = datetime(2024, 1, 1, tzinfo=UTC)
        assert expected_next(anchor, "lunar", 1) is None


class TestDescribe:
    def test_labels(self) -> None:
        assert describe_period("month", 1) == "1 month"
        assert describe_period("week", 2) == "2 weeks"
