"""Tests for timeline pattern analysis."""

from __future__ import annotations

from src.core.dates import normalize
from src.core.types import EventCategory, EventSource, EventStatus, TimelineEvent
from src.sources.base import Subscription
from src.timeline.patterns import (
    analyze_error_pattern,
    analyze_patterns,
    analyze_payment_pattern,
    analyze_renewal_pattern,
    detect_timeline_gaps,
)

# ── Helpers ─────────────────────────────────────────────────────


def _renewal(ts: str, status: str = "completed") -> TimelineEvent:
    return TimelineEvent(
        timestamp=normalize(ts),
        category=EventCategory.ORDER,
        kind="order_created",
        title="Renewal order created",
        source=EventSource.ORDER_DATA,
        metadata={"order_type": "renewal", "order_status": status},
    )


def _payment(ts: str) -> TimelineEvent:
    return TimelineEvent(
        timestamp=normalize(ts),
        category=EventCategory.PAYMENT,
        kind="payment_completed",
        title="Payment completed",
        status=EventStatus.SUCCESS,
        source=EventSource.ORDER_DATA,
    )


def _note(title: str, status: EventStatus = EventStatus.INFO) -> TimelineEvent:
    return TimelineEvent(
        timestamp=normalize("2024-01-01"),
        category=EventCategory.ORDER,
        kind="order_note",
        title=title,
        status=status,
        source=EventSource.ORDER_NOTES,
    )


def _monthly() -> Subscription:
    return Subscription(id=42, billing_period="month", billing_interval=1)


class TestRenewalPattern:
    def test_consistent_monthly(self) -> None:
        events = [_renewal("2024-01-01"), _renewal("2024-01-31"), _renewal("2024-03-01")]
        pattern = analyze_renewal_pattern(events, _monthly(), grace_days=3.0)
        assert pattern.renewal_count == 3
        assert pattern.expected_interval == "1 month"
        assert pattern.median_gap_days == 30.0
        assert pattern.pattern_consistent is True

    def test_inconsistent_when_gap_exceeds_grace(self) -> None:
        events = [_renewal("2024-01-01"), _renewal("2024-03-15")]
        pattern = analyze_renewal_pattern(events, _monthly(), grace_days=3.0)
        assert pattern.pattern_consistent is False

    def test_unknown_cadence_is_not_judged(self) -> None:
        sub = Subscription(id=42, billing_period="")
        events = [_renewal("2024-01-01"), _renewal("2024-06-01")]
        assert analyze_renewal_pattern(events, sub, 3.0).pattern_consistent is True

    def test_sentinel_renewals_ignored(self) -> None:
        events = [_renewal("garbage"), _renewal("2024-01-01")]
        pattern = analyze_renewal_pattern(events, _monthly(), 3.0)
        assert pattern.renewal_count == 1
        assert pattern.median_gap_days is None


class TestPaymentPattern:
    def test_counts(self) -> None:
        events = [_payment("2024-01-01"), _renewal("2024-02-01", status="failed")]
        pattern = analyze_payment_pattern(events)
        assert pattern.successful_payments == 1
        assert pattern.failed_payments == 1
        assert pattern.pattern_consistent is False


class TestErrorPattern:
    def test_no_errors(self) -> None:
        pattern = analyze_error_pattern([_note("ok")])
        assert pattern.error_count == 0
        assert pattern.error_frequency == "low"

    def test_high_frequency(self) -> None:
        events = [_note("Card declined", EventStatus.ERROR), _note("ok"), _note("ok")]
        pattern = analyze_error_pattern(events)
        assert pattern.error_count == 1
        assert pattern.error_frequency == "high"

    def test_medium_frequency(self) -> None:
        events = [_note("Card declined", EventStatus.ERROR)] + [_note("ok")] * 8
        assert analyze_error_pattern(events).error_frequency == "medium"

    def test_low_frequency(self) -> None:
        events = [_note("Card declined", EventStatus.ERROR)] + [_note("ok")] * 19
        assert analyze_error_pattern(events).error_frequency == "low"

    def test_common_errors_top_three(self) -> None:
        errors = (
            [_note("a", EventStatus.ERROR)] * 3
            + [_note("b", EventStatus.ERROR)] * 2
            + [_note("c", EventStatus.ERROR)]
            + [_note("d", EventStatus.ERROR)]
        )
        assert analyze_error_pattern(errors).common_errors[:2] == ["a", "b"]
        assert len(analyze_error_pattern(errors).common_errors) == 3


class TestTimelineGaps:
    def test_gap_over_two_periods(self) -> None:
        events = [_payment("2024-01-01"), _payment("2024-01-31"), _payment("2024-05-01")]
        gaps = detect_timeline_gaps(events, _monthly())
        assert len(gaps) == 1
        assert gaps[0].start == "2024-01-31 00:00:00"
        assert gaps[0].gap_days == 91.0
        assert gaps[0].expected_days == 30

    def test_no_gaps_without_cadence(self) -> None:
        events = [_payment("2024-01-01"), _payment("2025-01-01")]
        assert detect_timeline_gaps(events, Subscription(id=1)) == []


class TestAnalyzePatterns:
    def test_combined(self) -> None:
        events = [_payment("2024-01-01"), _payment("2024-06-01")]
        analysis = analyze_patterns(events, _monthly())
        assert analysis.gaps_detected is True
        assert analysis.payment_pattern.successful_payments == 2
