"""Payment timing and payment-method checks."""

from __future__ import annotations

from datetime import datetime

from src.core.config import DiagnosticsConfig
from src.core.dates import SECONDS_PER_DAY, ceil_days, format_instant
from src.core.types import Discrepancy, DiscrepancyCategory, Severity
from src.sources.base import Subscription
from src.timeline.periods import expected_previous, period_seconds

RETRY_COUNT_META = "_payment_retry_count"


def check_payment_timing(
    subscription: Subscription,
    config: DiagnosticsConfig,
    now: datetime,
) -> list[Discrepancy]:
    """Overdue and due-soon next payments, and irregular payment spacing."""
    findings: list[Discrepancy] = []
    next_payment = subscription.date("next_payment")
    last_payment = subscription.date("last_payment")

    if next_payment is not None:
        if next_payment < now:
            days_overdue = ceil_days(now - next_payment)
            findings.append(Discrepancy(
                type="payment_overdue",
                category=DiscrepancyCategory.PAYMENT_TIMING,
                severity=Severity.CRITICAL,
                description=f"Payment is {days_overdue} days overdue",
                recommendation="Check payment method and retry payment or contact customer.",
                details={
                    "expected_date": format_instant(next_payment),
                    "days_overdue": days_overdue,
                    "subscription_status": subscription.status,
                },
                source="payment_timing",
            ))
        else:
            days_until = ceil_days(next_payment - now)
            if days_until <= config.due_soon_days:
                findings.append(Discrepancy(
                    type="payment_due_soon",
                    category=DiscrepancyCategory.PAYMENT_TIMING,
                    severity=Severity.WARNING,
                    description=f"Payment due in {days_until} days",
                    recommendation=(
                        "Monitor payment processing and ensure payment method is valid."
                    ),
                    details={
                        "due_date": format_instant(next_payment),
                        "days_until_due": days_until,
                    },
                    source="payment_timing",
                ))

    unit, interval = subscription.billing_period, subscription.billing_interval
    expected = period_seconds(unit, interval)
    expected_last = (
        expected_previous(next_payment, unit, interval) if next_payment is not None else None
    )
    if last_payment is not None and next_payment is not None and expected_last is not None:
        difference = abs((last_payment - expected_last).total_seconds())
        if difference > SECONDS_PER_DAY:
            findings.append(Discrepancy(
                type="irregular_payment_interval",
                category=DiscrepancyCategory.PAYMENT_TIMING,
                severity=Severity.MEDIUM,
                description="Payment interval differs from expected schedule",
                recommendation="Review subscription schedule and payment processing.",
                details={
                    "expected_interval": expected,
                    "actual_interval": int((next_payment - last_payment).total_seconds()),
                    "expected_last_payment": format_instant(expected_last),
                    "difference_days": round(difference / SECONDS_PER_DAY),
                },
                source="payment_timing",
            ))

    return findings


def retry_count(subscription: Subscription) -> int:
    """Stored retry counter, 0 when absent or not a number."""
    try:
        return int(subscription.get_meta(RETRY_COUNT_META, 0))
    except (TypeError, ValueError):
        return 0


def check_payment_method_issues(
    subscription: Subscription,
    config: DiagnosticsConfig,
) -> list[Discrepancy]:
    findings: list[Discrepancy] = []
    method = subscription.payment_method

    if method in config.manual_payment_methods or subscription.requires_manual_renewal:
        findings.append(Discrepancy(
            type="manual_renewal_required",
            category=DiscrepancyCategory.PAYMENT_METHOD,
            severity=Severity.INFO,
            description="Subscription requires manual renewal",
            recommendation="Monitor subscription and process payments manually.",
            details={
                "payment_method": method,
                "requires_manual_renewal": subscription.requires_manual_renewal,
            },
            source="payment_method",
        ))

    retries = retry_count(subscription)
    if retries > config.max_payment_retries:
        findings.append(Discrepancy(
            type="high_payment_retry_count",
            category=DiscrepancyCategory.PAYMENT_METHOD,
            severity=Severity.HIGH,
            description=f"High payment retry count: {retries} attempts",
            recommendation="Contact customer to resolve payment method issues.",
            details={"retry_count": retries},
            source="payment_method",
        ))

    return findings
