"""Timeline construction — collection, merging, period math and patterns."""

from src.timeline.collector import EventCollector
from src.timeline.merger import merge, summarize
from src.timeline.notes import note_status, note_title
from src.timeline.patterns import analyze_patterns
from src.timeline.periods import expected_next, expected_previous, period_days, period_seconds

__all__ = [
    "EventCollector",
    "analyze_patterns",
    "expected_next",
    "expected_previous",
    "merge",
    "note_status",
    "note_title",
    "period_days",
    "period_seconds",
    "summarize",
]
