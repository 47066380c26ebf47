"""Heuristic pattern analysis over a merged timeline."""

from __future__ import annotations

import statistics
from collections import Counter
from datetime import datetime

from src.core.dates import days_between, format_instant, is_sentinel
from src.core.types import (
    ErrorPattern,
    EventStatus,
    PatternAnalysis,
    PaymentPattern,
    RenewalPattern,
    TimelineEvent,
    TimelineGap,
)
from src.sources.base import RelatedOrderType, Subscription
from src.timeline.periods import describe_period, period_days

FAILED_ORDER_STATUSES = frozenset({"failed", "cancelled"})

# Share of error events on the timeline at which the frequency label rises.
ERROR_FREQUENCY_THRESHOLDS: tuple[tuple[float, str], ...] = (
    (0.25, "high"),
    (0.10, "medium"),
)

COMMON_ERROR_LIMIT = 3


def _dated(events: list[TimelineEvent], kind: str) -> list[TimelineEvent]:
    return [e for e in events if e.kind == kind and not is_sentinel(e.timestamp)]


def _gaps(instants: list[datetime]) -> list[float]:
    return [days_between(a, b) for a, b in zip(instants, instants[1:])]


def analyze_renewal_pattern(
    events: list[TimelineEvent],
    subscription: Subscription,
    grace_days: float,
) -> RenewalPattern:
    renewals = [
        e for e in _dated(events, "order_created")
        if e.metadata.get("order_type") == RelatedOrderType.RENEWAL
    ]
    gaps = _gaps([e.timestamp for e in renewals])
    expected = period_days(subscription.billing_period, subscription.billing_interval)

    consistent = True
    if expected is not None:
        consistent = all(abs(gap - expected) <= grace_days for gap in gaps)

    return RenewalPattern(
        expected_interval=describe_period(
            subscription.billing_period, subscription.billing_interval,
        ),
        renewal_count=len(renewals),
        median_gap_days=round(statistics.median(gaps), 2) if gaps else None,
        pattern_consistent=consistent,
    )


def analyze_payment_pattern(events: list[TimelineEvent]) -> PaymentPattern:
    successful = sum(1 for e in events if e.kind == "payment_completed")
    failed = sum(
        1 for e in events
        if e.kind == "order_created"
        and str(e.metadata.get("order_status", "")).lower() in FAILED_ORDER_STATUSES
    )
    return PaymentPattern(
        successful_payments=successful,
        failed_payments=failed,
        pattern_consistent=failed == 0,
    )


def analyze_error_pattern(events: list[TimelineEvent]) -> ErrorPattern:
    errors = [e for e in events if e.status == EventStatus.ERROR]
    if not errors:
        return ErrorPattern()

    share = len(errors) / len(events)
    frequency = "low"
    for threshold, label in ERROR_FREQUENCY_THRESHOLDS:
        if share >= threshold:
            frequency = label
            break

    common = Counter(e.title for e in errors).most_common(COMMON_ERROR_LIMIT)
    return ErrorPattern(
        error_count=len(errors),
        common_errors=[title for title, _ in common],
        error_frequency=frequency,
    )


def detect_timeline_gaps(
    events: list[TimelineEvent],
    subscription: Subscription,
) -> list[TimelineGap]:
    """Stretches between payments longer than two billing periods."""
    expected = period_days(subscription.billing_period, subscription.billing_interval)
    if expected is None:
        return []

    payments = sorted(e.timestamp for e in _dated(events, "payment_completed"))
    gaps: list[TimelineGap] = []
    for start, end in zip(payments, payments[1:]):
        gap_days = days_between(start, end)
        if gap_days > 2 * expected:
            gaps.append(TimelineGap(
                start=format_instant(start),
                end=format_instant(end),
                gap_days=round(gap_days, 2),
                expected_days=expected,
            ))
    return gaps


def analyze_patterns(
    events: list[TimelineEvent],
    subscription: Subscription,
    grace_days: float = 3.0,
) -> PatternAnalysis:
    """Read renewal, payment and error patterns off a merged timeline."""
    return PatternAnalysis(
        renewal_pattern=analyze_renewal_pattern(events, subscription, grace_days),
        payment_pattern=analyze_payment_pattern(events),
        error_pattern=analyze_error_pattern(events),
        gaps=detect_timeline_gaps(events, subscription),
    )
