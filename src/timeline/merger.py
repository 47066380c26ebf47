"""Timeline merger — deterministic chronological ordering and summary counts."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable

from src.core.dates import is_sentinel
from src.core.types import TimelineEvent, TimelineSummary


def sort_key(event: TimelineEvent) -> tuple[bool, object]:
    """Sentinel timestamps first, then ascending time."""
    return (not is_sentinel(event.timestamp), event.timestamp)


def merge(events: Iterable[TimelineEvent]) -> list[TimelineEvent]:
    """Return events in chronological order.

    ``sorted`` is stable, so events sharing a timestamp keep collection
    order. Events themselves are never modified.
    """
    return sorted(events, key=sort_key)


def summarize(events: list[TimelineEvent]) -> TimelineSummary:
    """Count a merged timeline by kind, category and status."""
    if not events:
        return TimelineSummary()

    return TimelineSummary(
        total_events=len(events),
        event_types=dict(Counter(e.kind for e in events)),
        categories=dict(Counter(e.category.value for e in events)),
        status_counts=dict(Counter(e.status.value for e in events)),
        date_range_start=events[0].timestamp_str,
        date_range_end=events[-1].timestamp_str,
    )
