"""Scheduled-job audits for one subscription.

Every check here tolerates an unavailable job store: a ``SourceError`` from
the query is logged and the check contributes nothing.
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from src.core.config import DiagnosticsConfig
from src.core.dates import format_instant, to_instant
from src.core.types import (
    Discrepancy,
    DiscrepancyCategory,
    EventStatus,
    Severity,
    TimelineEvent,
)
from src.sources.base import (
    EXPIRATION_HOOK,
    PAYMENT_HOOK,
    BillingSource,
    JobQuery,
    JobStatus,
    ScheduledJob,
    Subscription,
)
from src.sources.exceptions import SourceError

logger = structlog.stdlib.get_logger()

AUDIT_QUERY_LIMIT = 10


def is_renewal_hook(hook: str) -> bool:
    """Payment hooks and anything named for renewals both count."""
    return hook == PAYMENT_HOOK or "renewal" in hook.lower()


def _query(
    source: BillingSource,
    subscription_id: int,
    check: str,
    fetch: Callable[[], list[ScheduledJob]],
) -> list[ScheduledJob] | None:
    try:
        return fetch()
    except SourceError as exc:
        logger.warning(
            "scheduler_unavailable",
            check=check,
            subscription_id=subscription_id,
            error=str(exc),
        )
        return None


def audit_scheduler(source: BillingSource, subscription_id: int) -> list[Discrepancy]:
    """Missing pending payment job, plus one finding per failed job.

    The two queries are independent; an unavailable store only drops the
    findings of the query that failed.
    """
    pending = _query(
        source,
        subscription_id,
        "audit_scheduler",
        lambda: source.query_scheduled_jobs(JobQuery(
            subscription_id=subscription_id,
            hook=PAYMENT_HOOK,
            status=JobStatus.PENDING,
            limit=AUDIT_QUERY_LIMIT,
        )),
    )
    failed = _query(
        source,
        subscription_id,
        "audit_scheduler",
        lambda: source.query_scheduled_jobs(JobQuery(
            subscription_id=subscription_id,
            hook=[PAYMENT_HOOK, EXPIRATION_HOOK],
            status=JobStatus.FAILED,
            limit=AUDIT_QUERY_LIMIT,
        )),
    )

    findings: list[Discrepancy] = []
    if pending is not None and not pending:
        findings.append(Discrepancy(
            type="missing_action",
            category=DiscrepancyCategory.SCHEDULER_ISSUE,
            severity=Severity.WARNING,
            description="No scheduled subscription payment actions found",
            recommendation="Check if subscription payments are properly scheduled.",
            details={"action_type": PAYMENT_HOOK, "subscription_id": subscription_id},
            source="scheduler_audit",
        ))

    for job in failed or []:
        scheduled = to_instant(job.scheduled_at)
        last_attempt = to_instant(job.last_attempt_at)
        findings.append(Discrepancy(
            type="failed_action",
            category=DiscrepancyCategory.SCHEDULER_ISSUE,
            severity=Severity.ERROR,
            description=f"Failed scheduled job: {job.hook}",
            recommendation="Review failed action and consider manual intervention.",
            details={
                "action_id": job.id,
                "action_hook": job.hook,
                "scheduled_date": format_instant(scheduled) if scheduled else None,
                "last_attempt": format_instant(last_attempt) if last_attempt else "Never",
                "retry_count": job.retry_count,
            },
            source="scheduler_audit",
        ))

    return findings


def check_missing_renewal_action(
    source: BillingSource,
    subscription: Subscription,
    config: DiagnosticsConfig,
) -> list[Discrepancy]:
    """Next payment is known but no renewal job covers it."""
    next_payment = subscription.date("next_payment")
    if next_payment is None:
        return []

    def fetch() -> list[ScheduledJob]:
        jobs: list[ScheduledJob] = []
        for status in (JobStatus.PENDING, JobStatus.COMPLETE):
            jobs.extend(source.query_scheduled_jobs(JobQuery(
                subscription_id=subscription.id,
                status=status,
                limit=config.max_related_orders,
            )))
        return jobs

    jobs = _query(source, subscription.id, "missing_renewal_action", fetch)
    if jobs is None:
        return []

    for job in jobs:
        scheduled = to_instant(job.scheduled_at)
        if is_renewal_hook(job.hook) and scheduled is not None and scheduled >= next_payment:
            return []

    return [Discrepancy(
        type="missing_renewal_action",
        category=DiscrepancyCategory.SCHEDULER_ISSUE,
        severity=Severity.CRITICAL,
        description="No renewal action scheduled for next payment",
        recommendation=(
            "Manually schedule renewal action or check the job scheduler configuration."
        ),
        details={
            "expected_renewal_date": format_instant(next_payment),
            "subscription_id": subscription.id,
        },
        source="scheduler_checks",
    )]


def check_failed_action_count(
    source: BillingSource,
    subscription_id: int,
    config: DiagnosticsConfig,
) -> list[Discrepancy]:
    """Roll every failed job for the subscription into one finding."""
    failed = _query(
        source,
        subscription_id,
        "failed_action_count",
        lambda: source.query_scheduled_jobs(JobQuery(
            subscription_id=subscription_id,
            status=JobStatus.FAILED,
            limit=config.max_related_orders,
        )),
    )
    if not failed:
        return []

    return [Discrepancy(
        type="failed_actions",
        category=DiscrepancyCategory.SCHEDULER_ISSUE,
        severity=Severity.HIGH,
        description=f"{len(failed)} failed actions detected",
        recommendation="Review failed scheduled jobs and resolve underlying issues.",
        details={"failed_count": len(failed), "subscription_id": subscription_id},
        source="scheduler_checks",
    )]


def failed_actions_from_timeline(events: list[TimelineEvent]) -> list[Discrepancy]:
    """One critical finding per scheduled-job event that ended in error."""
    return [
        Discrepancy(
            type="failed_action",
            category=DiscrepancyCategory.SCHEDULER_ISSUE,
            severity=Severity.CRITICAL,
            description=(
                f'Scheduled action "{event.metadata.get("hook", "")}"'
                f" failed at {event.timestamp_str}"
            ),
            recommendation="Review failed action and consider manual intervention.",
            details={
                "action_id": event.metadata.get("action_id"),
                "hook": event.metadata.get("hook"),
                "timestamp": event.timestamp_str,
            },
            source="timeline",
        )
        for event in events
        if event.kind == "scheduled_action" and event.status == EventStatus.ERROR
    ]
