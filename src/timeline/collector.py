"""EventCollector — turns every collaborator source into TimelineEvents."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

import structlog

from src.core.config import DiagnosticsConfig
from src.core.dates import format_instant, normalize, to_instant
from src.core.types import EventCategory, EventSource, EventStatus, TimelineEvent
from src.sources.base import (
    EXPIRATION_HOOK,
    PAYMENT_HOOK,
    PREPAID_TERM_HOOK,
    TRIAL_END_HOOK,
    BillingSource,
    JobQuery,
    JobStatus,
    Note,
    ScheduledJob,
    Subscription,
)
from src.sources.jobs import describe_args
from src.sources.related import RelatedOrder, fetch_related_orders
from src.timeline.notes import note_status, note_title

logger = structlog.stdlib.get_logger()

T = TypeVar("T")

# Lifecycle dates in emission order, with their timeline titles.
SUBSCRIPTION_DATES: tuple[tuple[str, str], ...] = (
    ("date_created", "Subscription created"),
    ("start", "Subscription started"),
    ("trial_end", "Trial period ended"),
    ("last_payment", "Last payment processed"),
    ("next_payment", "Next payment scheduled"),
    ("cancelled", "Subscription cancelled"),
    ("end", "Subscription ended"),
)

JOB_STATUS_MAP: dict[str, EventStatus] = {
    JobStatus.COMPLETE: EventStatus.SUCCESS,
    JobStatus.PENDING: EventStatus.INFO,
    "": EventStatus.INFO,
    JobStatus.IN_PROGRESS: EventStatus.WARNING,
    JobStatus.FAILED: EventStatus.ERROR,
    JobStatus.CANCELED: EventStatus.WARNING,
}

HOOK_TITLES: dict[str, str] = {
    PAYMENT_HOOK: "Scheduled subscription payment",
    EXPIRATION_HOOK: "Scheduled subscription expiration",
    TRIAL_END_HOOK: "Scheduled trial end",
    PREPAID_TERM_HOOK: "End of prepaid term",
}


def job_event_status(status: str | None) -> EventStatus:
    return JOB_STATUS_MAP.get((status or "").strip().lower(), EventStatus.INFO)


class EventCollector:
    """Gathers raw events from each collaborator into the common shape.

    Sources are collected in a fixed order (subscription dates, orders,
    scheduled jobs, notes) and each one is isolated: a failing collaborator
    contributes no events instead of aborting the collection.

    Usage::

        collector = EventCollector(source, config)
        events = collector.collect(subscription)
    """

    def __init__(self, source: BillingSource, config: DiagnosticsConfig) -> None:
        self._source = source
        self._config = config

    def collect(
        self,
        subscription: Subscription,
        orders: Callable[[], list[RelatedOrder]] | None = None,
    ) -> list[TimelineEvent]:
        """Collect events from every source, unsorted, in emission order.

        ``orders`` loads the related orders; by default they are fetched
        from the source with the configured cap.
        """
        sub_id = subscription.id
        fetch = orders or (
            lambda: fetch_related_orders(self._source, sub_id, self._config.max_related_orders)
        )
        related = self._guarded("related_orders", sub_id, fetch)

        events: list[TimelineEvent] = []
        events.extend(self.subscription_date_events(subscription))
        events.extend(self.order_events(related))
        events.extend(
            self._guarded("scheduled_jobs", sub_id, lambda: self.scheduled_job_events(sub_id))
        )
        events.extend(self.note_events(subscription, related))

        logger.debug("timeline_collected", subscription_id=sub_id, events=len(events))
        return events

    def _guarded(self, name: str, subscription_id: int, fn: Callable[[], list[T]]) -> list[T]:
        try:
            return fn()
        except Exception as exc:
            logger.warning(
                "collector_source_failed",
                source=name,
                subscription_id=subscription_id,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return []

    # ── Subscription dates ──────────────────────────────────────

    def subscription_date_events(self, subscription: Subscription) -> list[TimelineEvent]:
        events: list[TimelineEvent] = []
        for date_type, title in SUBSCRIPTION_DATES:
            raw = getattr(subscription, date_type)
            if raw is None or raw == "":
                continue
            events.append(TimelineEvent(
                timestamp=normalize(raw),
                category=EventCategory.SUBSCRIPTION,
                kind="subscription_date",
                title=title,
                description=title,
                status=EventStatus.INFO,
                source=EventSource.SUBSCRIPTION_DATES,
                metadata={
                    "date_type": date_type,
                    "subscription_id": subscription.id,
                },
            ))
        return events

    # ── Orders ──────────────────────────────────────────────────

    def order_events(self, orders: list[RelatedOrder]) -> list[TimelineEvent]:
        events: list[TimelineEvent] = []
        for related in orders:
            order = related.order
            label = related.relation.value.capitalize()
            events.append(TimelineEvent(
                timestamp=normalize(order.date_created),
                category=EventCategory.ORDER,
                kind="order_created",
                title=f"{label} order #{order.id} created",
                description=(
                    f"{label} order #{order.id} created with total {order.formatted_total}"
                ),
                status=EventStatus.INFO,
                source=EventSource.ORDER_DATA,
                metadata={
                    "order_id": order.id,
                    "order_type": related.relation.value,
                    "order_status": order.status,
                    "order_total": order.total,
                },
            ))

            if order.paid_at is not None:
                events.append(TimelineEvent(
                    timestamp=order.paid_at,
                    category=EventCategory.PAYMENT,
                    kind="payment_completed",
                    title=f"Payment completed for order #{order.id}",
                    description=(
                        f"Payment of {order.formatted_total} completed for order #{order.id}"
                    ),
                    status=EventStatus.SUCCESS,
                    source=EventSource.ORDER_DATA,
                    metadata={
                        "order_id": order.id,
                        "order_type": related.relation.value,
                        "payment_amount": order.total,
                        "payment_method": order.payment_method,
                    },
                ))
        return events

    # ── Scheduled jobs ──────────────────────────────────────────

    def scheduled_job_events(self, subscription_id: int) -> list[TimelineEvent]:
        jobs = self._source.query_scheduled_jobs(
            JobQuery(subscription_id=subscription_id, limit=self._config.max_related_orders)
        )
        return [self._job_event(job) for job in jobs]

    @staticmethod
    def _job_event(job: ScheduledJob) -> TimelineEvent:
        title = HOOK_TITLES.get(job.hook, job.hook)
        scheduled = to_instant(job.scheduled_at)
        last_attempt = to_instant(job.last_attempt_at)
        return TimelineEvent(
            timestamp=normalize(job.scheduled_at),
            category=EventCategory.SYSTEM,
            kind="scheduled_action",
            title=f"{title} ({job.status})",
            description=(
                f"Action: {job.hook} | Status: {job.status} | Args: {describe_args(job)}"
            ),
            status=job_event_status(job.status),
            source=EventSource.SCHEDULER,
            metadata={
                "action_id": job.id,
                "hook": job.hook,
                "action_status": job.status,
                "scheduled_date": format_instant(scheduled) if scheduled else None,
                "last_attempt": format_instant(last_attempt) if last_attempt else None,
                "retry_count": job.retry_count,
                "args": job.args,
            },
        )

    # ── Notes ───────────────────────────────────────────────────

    def note_events(
        self,
        subscription: Subscription,
        orders: list[RelatedOrder],
    ) -> list[TimelineEvent]:
        events: list[TimelineEvent] = []
        for note in self._notes(subscription.id):
            events.append(TimelineEvent(
                timestamp=normalize(note.created_at),
                category=EventCategory.SUBSCRIPTION,
                kind="note",
                title=note_title(note.content),
                description=note.content,
                status=note_status(note.content),
                source=EventSource.SUBSCRIPTION_NOTES,
                metadata={
                    "note_id": note.id,
                    "author_type": note.author_type,
                    "customer_note": note.customer_note,
                },
            ))

        for related in orders:
            order_id = related.order.id
            for note in self._notes(order_id):
                events.append(TimelineEvent(
                    timestamp=normalize(note.created_at),
                    category=EventCategory.ORDER,
                    kind="order_note",
                    title=f"Order #{order_id} note",
                    description=note.content,
                    status=note_status(note.content),
                    source=EventSource.ORDER_NOTES,
                    metadata={
                        "order_id": order_id,
                        "order_type": related.relation.value,
                        "note_id": note.id,
                        "customer_note": note.customer_note,
                    },
                ))
        return events

    def _notes(self, entity_id: int) -> list[Note]:
        return self._guarded(
            "notes",
            entity_id,
            lambda: self._source.get_notes(entity_id, limit=None, newest_first=False),
        )
