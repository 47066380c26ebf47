"""Status-consistency checks — pure predicates over one subscription."""

from __future__ import annotations

from datetime import datetime

from src.core.config import DiagnosticsConfig
from src.core.dates import ceil_days, days_between, format_instant
from src.core.types import Discrepancy, DiscrepancyCategory, Severity
from src.sources.base import Subscription

# Statuses a healthy subscription should not sit in.
UNEXPECTED_STATUSES: dict[str, Severity] = {
    "on-hold": Severity.HIGH,
    "pending": Severity.MEDIUM,
}


def detect_status_mismatches(subscription: Subscription, now: datetime) -> list[Discrepancy]:
    """Contradictions between the status and the lifecycle dates.

    Both checks are independent and may fire together.
    """
    findings: list[Discrepancy] = []
    status = subscription.status.lower()

    next_payment = subscription.date("next_payment")
    if status == "expired" and next_payment is not None and next_payment > now:
        findings.append(Discrepancy(
            type="status_mismatch",
            category=DiscrepancyCategory.STATUS_ISSUE,
            severity=Severity.ERROR,
            description="Subscription shows Expired but has a valid future next payment date",
            recommendation="Review subscription status and payment schedule for consistency.",
            details={
                "current_status": subscription.status,
                "next_payment_date": format_instant(next_payment),
                "days_until_next": ceil_days(next_payment - now),
            },
            source="status_mismatches",
        ))

    end = subscription.date("end")
    if status == "active" and end is not None and end < now:
        findings.append(Discrepancy(
            type="status_mismatch",
            category=DiscrepancyCategory.STATUS_ISSUE,
            severity=Severity.ERROR,
            description="Subscription shows Active but has passed its end date",
            recommendation="Consider updating subscription status to reflect actual state.",
            details={
                "current_status": subscription.status,
                "end_date": format_instant(end),
                "days_past_end": ceil_days(now - end),
            },
            source="status_mismatches",
        ))

    return findings


def check_status_transitions(
    subscription: Subscription,
    config: DiagnosticsConfig,
    now: datetime,
) -> list[Discrepancy]:
    """Flag holding statuses, and holding statuses that have not moved."""
    status = subscription.status.lower()
    severity = UNEXPECTED_STATUSES.get(status)
    if severity is None:
        return []

    findings = [Discrepancy(
        type="unexpected_status",
        category=DiscrepancyCategory.STATUS_ISSUE,
        severity=severity,
        description=f"Subscription in unexpected status: {subscription.status}",
        recommendation="Review subscription status and take appropriate action.",
        details={"current_status": subscription.status, "subscription_id": subscription.id},
        source="status_transitions",
    )]

    modified = subscription.date("date_modified")
    if modified is not None:
        days_stuck = days_between(modified, now)
        if days_stuck > config.stuck_status_days:
            findings.append(Discrepancy(
                type="stuck_status",
                category=DiscrepancyCategory.STATUS_ISSUE,
                severity=Severity.HIGH,
                description=(
                    f"Subscription stuck in {subscription.status} status"
                    f" for {round(days_stuck)} days"
                ),
                recommendation="Investigate why subscription is stuck and take corrective action.",
                details={
                    "status": subscription.status,
                    "days_stuck": round(days_stuck),
                    "last_modified": format_instant(modified),
                },
                source="status_transitions",
            ))

    return findings
