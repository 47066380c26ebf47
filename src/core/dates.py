"""Date normalization — every comparison in the engine goes through here.

Host records carry dates as datetime objects, ISO-ish strings, unix
timestamps or nothing at all.  ``normalize`` folds all of them into a UTC,
second-precision ``datetime``; anything it cannot read becomes
``EPOCH_SENTINEL`` so sorting stays total.  Callers that need to tell
"unknown" apart use ``to_instant`` (returns ``None``) or ``is_sentinel``.
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime, timedelta

EPOCH_SENTINEL = datetime(1970, 1, 1, tzinfo=UTC)

SECONDS_PER_DAY = 86400

CANONICAL_FORMAT = "%Y-%m-%d %H:%M:%S"

_NUMERIC_RE = re.compile(r"^-?\d+(\.\d+)?$")

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%d %B %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%b %d, %Y",
)


def _parse_string(text: str) -> datetime | None:
    if _NUMERIC_RE.match(text):
        return _from_timestamp(float(text))
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _from_timestamp(value: float) -> datetime | None:
    try:
        return datetime.fromtimestamp(value, UTC)
    except (OverflowError, OSError, ValueError):
        return None


def to_instant(value: object) -> datetime | None:
    """Normalize ``value`` or return ``None`` when it is absent/unreadable."""
    if value is None or isinstance(value, bool):
        return None

    parsed: datetime | None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, (int, float)):
        parsed = _from_timestamp(float(value))
    elif isinstance(value, str):
        text = value.strip()
        parsed = _parse_string(text) if text else None
    else:
        return None

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    else:
        parsed = parsed.astimezone(UTC)
    return parsed.replace(microsecond=0)


def normalize(value: object) -> datetime:
    """Normalize ``value``; unknown input maps to ``EPOCH_SENTINEL``."""
    instant = to_instant(value)
    return EPOCH_SENTINEL if instant is None else instant


def is_sentinel(instant: datetime) -> bool:
    return instant == EPOCH_SENTINEL


def format_instant(instant: datetime) -> str:
    """Canonical ``YYYY-MM-DD HH:MM:SS`` form used for display and comparison."""
    return instant.astimezone(UTC).strftime(CANONICAL_FORMAT)


def format_day(instant: datetime) -> str:
    return instant.astimezone(UTC).strftime("%Y-%m-%d")


def utc_now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


def days_between(start: datetime, end: datetime) -> float:
    """Signed number of days from ``start`` to ``end``."""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def ceil_days(delta: timedelta) -> int:
    """Whole days in ``delta``, rounded up (a second late is one day late)."""
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)
