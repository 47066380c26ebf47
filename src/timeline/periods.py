"""Billing period arithmetic on a fixed-day approximation.

Months are 30 days and years 365.  The detectors look for gross multi-period
gaps, not calendar-exact renewal dates, so every cadence check in the engine
shares this one model.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from src.core.dates import SECONDS_PER_DAY

PERIOD_DAYS: dict[str, int] = {
    "day": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}


def _unit(unit: str | None) -> str:
    return (unit or "").strip().lower()


def period_days(unit: str | None, interval: int | None) -> int | None:
    """Length of ``interval`` × ``unit`` in days, or None if unknown."""
    base = PERIOD_DAYS.get(_unit(unit))
    if base is None or interval is None or interval <= 0:
        return None
    return base * interval


def period_seconds(unit: str | None, interval: int | None) -> int | None:
    days = period_days(unit, interval)
    return None if days is None else days * SECONDS_PER_DAY


def expected_next(anchor: datetime, unit: str | None, interval: int | None) -> datetime | None:
    """Instant one billing period after ``anchor``."""
    days = period_days(unit, interval)
    if days is None:
        return None
    return anchor + timedelta(days=days)


def expected_previous(anchor: datetime, unit: str | None, interval: int | None) -> datetime | None:
    """Instant one billing period before ``anchor``."""
    days = period_days(unit, interval)
    if days is None:
        return None
    return anchor - timedelta(days=days)


def describe_period(unit: str | None, interval: int | None) -> str:
    """Human label such as ``"1 month"`` or ``"2 weeks"``."""
    name = _unit(unit) or "unknown"
    count = interval or 0
    return f"{count} {name}" if count == 1 else f"{count} {name}s"
