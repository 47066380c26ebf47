"""Billing-cycle detectors over completed order history."""

from __future__ import annotations

from collections import Counter
from datetime import datetime

import structlog

from src.core.config import DiagnosticsConfig
from src.core.dates import days_between, format_day, format_instant
from src.core.types import Discrepancy, DiscrepancyCategory, Severity, YearOverYear
from src.detectors.exceptions import CadenceError
from src.sources.base import RelatedOrderType, Subscription
from src.sources.related import RelatedOrder
from src.timeline.periods import expected_next, period_days

logger = structlog.stdlib.get_logger()


def cadence_days(subscription: Subscription) -> int:
    """Billing period in days, or raise ``CadenceError``."""
    days = period_days(subscription.billing_period, subscription.billing_interval)
    if days is None:
        raise CadenceError(subscription.billing_period, subscription.billing_interval)
    return days


def completed_order_dates(
    orders: list[RelatedOrder],
    config: DiagnosticsConfig,
) -> list[datetime]:
    """Creation instants of completed orders, oldest first."""
    statuses = {s.lower() for s in config.completed_order_statuses}
    return sorted(
        r.order.created_at
        for r in orders
        if r.order.status.lower() in statuses and r.order.created_at is not None
    )


def detect_skipped_cycles(
    subscription: Subscription,
    orders: list[RelatedOrder],
    config: DiagnosticsConfig,
    now: datetime,
) -> list[Discrepancy]:
    """Find billing periods with no payment evidence.

    Walks consecutive completed orders and flags a gap when the next payment
    lands more than ``skipped_cycle_grace_days`` after one period from the
    previous one. A tail check flags the most recent payment when more than
    a full period has passed beyond its expected successor.
    """
    try:
        days = cadence_days(subscription)
    except CadenceError as exc:
        logger.info("cadence_unknown", subscription_id=subscription.id, error=str(exc))
        return []

    start = subscription.date("start")
    if start is None:
        return []

    unit = subscription.billing_period
    interval = subscription.billing_interval
    dates = completed_order_dates(orders, config)
    findings: list[Discrepancy] = []

    if not dates:
        expected_first = expected_next(start, unit, interval)
        if expected_first is not None and now > expected_first:
            findings.append(Discrepancy(
                type="no_payments",
                category=DiscrepancyCategory.BILLING_CYCLE,
                severity=Severity.WARNING,
                description=f"No payments received since start date {format_day(start)}",
                recommendation="Check if payments are being processed correctly.",
                details={
                    "start_date": format_day(start),
                    "expected_first_payment": format_instant(expected_first),
                    "billing_period": unit,
                    "billing_interval": interval,
                },
                correctable=False,
                source="skipped_cycles",
            ))
        return findings

    pairs = list(zip(dates, dates[1:]))[: config.max_cycle_comparisons]
    for previous, actual in pairs:
        expected = expected_next(previous, unit, interval)
        if expected is None:
            continue
        late_by = days_between(expected, actual)
        if late_by <= config.skipped_cycle_grace_days:
            continue
        findings.append(Discrepancy(
            type="skipped_cycle",
            category=DiscrepancyCategory.BILLING_CYCLE,
            severity=Severity.WARNING,
            description=(
                f"Payment cycle skipped: expected payment around {format_day(expected)},"
                f" next payment was {format_day(actual)}"
            ),
            recommendation=(
                "Review what happened during this period and consider if payment"
                " should be collected."
            ),
            details={
                "last_payment_date": format_day(previous),
                "expected_next_date": format_day(expected),
                "actual_next_date": format_day(actual),
                "days_skipped": round(late_by, 2),
                "billing_period": unit,
                "billing_interval": interval,
            },
            correctable=True,
            suggested_next_date=format_day(expected),
            source="skipped_cycles",
        ))

    last = dates[-1]
    expected_after_last = expected_next(last, unit, interval)
    if expected_after_last is not None and now > expected_after_last:
        overdue_by = days_between(expected_after_last, now)
        if overdue_by > days:
            findings.append(Discrepancy(
                type="overdue_payment",
                category=DiscrepancyCategory.BILLING_CYCLE,
                severity=Severity.WARNING,
                description=(
                    f"Payment overdue: expected payment around"
                    f" {format_day(expected_after_last)}, now {format_day(now)}"
                ),
                recommendation="Check payment processing and customer status.",
                details={
                    "last_payment_date": format_day(last),
                    "expected_next_date": format_day(expected_after_last),
                    "days_overdue": round(overdue_by, 2),
                    "billing_period": unit,
                    "billing_interval": interval,
                },
                correctable=True,
                suggested_next_date=format_day(expected_after_last),
                source="skipped_cycles",
            ))

    return findings


def detect_manual_completions(
    orders: list[RelatedOrder],
    config: DiagnosticsConfig,
) -> list[Discrepancy]:
    """Flag orders paid outside the gateway or completed without a transaction."""
    manual_methods = set(config.manual_payment_methods)
    completed = {s.lower() for s in config.completed_order_statuses}
    findings: list[Discrepancy] = []

    for related in orders:
        order = related.order
        created = order.created_at
        order_date = format_instant(created) if created else None

        if order.payment_method in manual_methods:
            findings.append(Discrepancy(
                type="manual_payment",
                category=DiscrepancyCategory.PAYMENT_METHOD,
                severity=Severity.INFO,
                description=f"Manual payment completion detected for order #{order.id}",
                recommendation="Verify manual payment was properly recorded.",
                details={
                    "order_id": order.id,
                    "payment_method": order.payment_method,
                    "order_date": order_date,
                    "order_status": order.status,
                    "transaction_id": order.transaction_id,
                },
                source="manual_completions",
            ))
        elif order.status.lower() in completed and not order.transaction_id:
            findings.append(Discrepancy(
                type="manual_completion",
                category=DiscrepancyCategory.PAYMENT_METHOD,
                severity=Severity.WARNING,
                description=f"Order #{order.id} marked complete without transaction ID",
                recommendation="Verify payment was actually received and properly recorded.",
                details={
                    "order_id": order.id,
                    "payment_method": order.payment_method,
                    "order_date": order_date,
                    "transaction_id": order.transaction_id,
                },
                source="manual_completions",
            ))

    return findings


def year_over_year(orders: list[RelatedOrder]) -> YearOverYear:
    """Count renewals per calendar year and flag empty years in between."""
    counts: Counter[int] = Counter(
        r.order.created_at.year
        for r in orders
        if r.relation == RelatedOrderType.RENEWAL and r.order.created_at is not None
    )
    summary = dict(sorted(counts.items()))

    missing: list[Discrepancy] = []
    if len(summary) > 1:
        first, last = min(summary), max(summary)
        for year in range(first, last + 1):
            if year in summary:
                continue
            missing.append(Discrepancy(
                type="missing_year",
                category=DiscrepancyCategory.BILLING_CYCLE,
                severity=Severity.WARNING,
                description=f"No renewals found for year {year}",
                recommendation="Investigate why no renewals occurred during this period.",
                details={"year": year, "analysis_period": f"{first} - {last}"},
                source="year_over_year",
            ))

    return YearOverYear(missing_years=missing, yearly_summary=summary)
