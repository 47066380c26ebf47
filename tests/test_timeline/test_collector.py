"""Tests for EventCollector — per-source event shapes and failure isolation."""

from __future__ import annotations

from unittest.mock import patch

from src.core.config import DiagnosticsConfig
from src.core.dates import EPOCH_SENTINEL
from src.core.types import EventCategory, EventSource, EventStatus
from src.sources.base import (
    PAYMENT_HOOK,
    Note,
    Order,
    OrderRef,
    RelatedOrderType,
    ScheduledJob,
    Subscription,
)
from src.sources.snapshot import SnapshotSource
from src.sources.related import fetch_related_orders
from src.timeline.collector import EventCollector, job_event_status

# ── Helpers ─────────────────────────────────────────────────────


def _subscription(**overrides: object) -> Subscription:
    fields: dict[str, object] = {
        "id": 42,
        "status": "active",
        "date_created": "2024-01-01 09:00:00",
        "start": "2024-01-01 09:00:00",
        "next_payment": "2024-03-01 09:00:00",
        "billing_period": "month",
    }
    fields.update(overrides)
    return Subscription(**fields)


def _source(subscription: Subscription | None = None) -> SnapshotSource:
    sub = subscription or _subscription()
    return SnapshotSource(
        subscriptions=[sub],
        orders=[
            Order(
                id=100, status="completed", total="10.00", currency="USD",
                date_created="2024-01-01 09:00:00", date_paid="2024-01-01 09:05:00",
                payment_method="stripe",
            ),
            Order(id=101, status="failed", total="10.00", date_created="2024-02-01"),
        ],
        related_orders={sub.id: [
            OrderRef(id=100, relation=RelatedOrderType.PARENT),
            OrderRef(id=101, relation=RelatedOrderType.RENEWAL),
        ]},
        notes={
            sub.id: [Note(id=1, content="Status changed to Active", created_at="2024-01-01")],
            101: [Note(id=2, content="Payment failed. Card declined.", created_at="2024-02-01")],
        },
        scheduled_jobs=[
            ScheduledJob(
                id=7, hook=PAYMENT_HOOK, status="pending",
                scheduled_at="2024-03-01 09:00:00", args=[42],
            ),
        ],
    )


def _collect(source: SnapshotSource, sub: Subscription | None = None) -> list:
    return EventCollector(source, DiagnosticsConfig()).collect(sub or _subscription())


class TestCollect:
    def test_emission_order_by_kind(self) -> None:
        kinds = [e.kind for e in _collect(_source())]
        assert kinds == [
            "subscription_date",
            "subscription_date",
            "subscription_date",
            "order_created",
            "payment_completed",
            "order_created",
            "scheduled_action",
            "note",
            "order_note",
        ]

    def test_subscription_dates_skip_missing(self) -> None:
        events = _collect(_source())
        date_types = [e.metadata["date_type"] for e in events if e.kind == "subscription_date"]
        assert date_types == ["date_created", "start", "next_payment"]

    def test_unreadable_date_becomes_sentinel(self) -> None:
        sub = _subscription(trial_end="not a date")
        events = _collect(_source(sub), sub)
        trial = [e for e in events if e.metadata.get("date_type") == "trial_end"]
        assert len(trial) == 1
        assert trial[0].timestamp == EPOCH_SENTINEL

    def test_order_events(self) -> None:
        events = _collect(_source())
        created = [e for e in events if e.kind == "order_created"]
        assert created[0].title == "Parent order #100 created"
        assert created[0].metadata["order_type"] == "parent"
        assert created[1].metadata["order_status"] == "failed"

        payment = next(e for e in events if e.kind == "payment_completed")
        assert payment.category == EventCategory.PAYMENT
        assert payment.status == EventStatus.SUCCESS
        assert payment.metadata["payment_method"] == "stripe"
        assert "10.00 USD" in payment.description

    def test_scheduled_job_event(self) -> None:
        event = next(e for e in _collect(_source()) if e.kind == "scheduled_action")
        assert event.title == "Scheduled subscription payment (pending)"
        assert event.description == f"Action: {PAYMENT_HOOK} | Status: pending | Args: [42]"
        assert event.source == EventSource.SCHEDULER
        assert event.metadata["scheduled_date"] == "2024-03-01 09:00:00"
        assert event.metadata["last_attempt"] is None

    def test_note_events(self) -> None:
        events = _collect(_source())
        note = next(e for e in events if e.kind == "note")
        assert note.source == EventSource.SUBSCRIPTION_NOTES
        assert note.status == EventStatus.INFO

        order_note = next(e for e in events if e.kind == "order_note")
        assert order_note.title == "Order #101 note"
        assert order_note.status == EventStatus.ERROR
        assert order_note.metadata["order_type"] == "renewal"


class TestOrdersLoader:
    def test_supplied_orders_skip_the_store(self) -> None:
        source = _source()
        supplied = fetch_related_orders(source, 42, limit=24)[:1]
        collector = EventCollector(source, DiagnosticsConfig())
        with patch.object(source, "get_related_orders", side_effect=AssertionError) as related:
            events = collector.collect(_subscription(), lambda: supplied)
        related.assert_not_called()
        assert [e.metadata.get("order_id") for e in events if e.kind == "order_created"] == [100]

    def test_failing_loader_drops_order_events(self) -> None:
        def broken() -> list:
            raise RuntimeError("down")

        events = EventCollector(_source(), DiagnosticsConfig()).collect(_subscription(), broken)
        assert "order_created" not in {e.kind for e in events}


class TestFailureIsolation:
    def test_scheduler_failure_drops_only_jobs(self) -> None:
        source = _source()
        with patch.object(source, "query_scheduled_jobs", side_effect=RuntimeError("down")):
            events = _collect(source)
        kinds = {e.kind for e in events}
        assert "scheduled_action" not in kinds
        assert {"subscription_date", "order_created", "note", "order_note"} <= kinds

    def test_related_orders_failure_drops_order_events(self) -> None:
        source = _source()
        with patch.object(source, "get_related_orders", side_effect=RuntimeError("down")):
            events = _collect(source)
        kinds = {e.kind for e in events}
        assert "order_created" not in kinds
        assert "order_note" not in kinds
        assert "scheduled_action" in kinds

    def test_notes_failure_drops_notes(self) -> None:
        source = _source()
        with patch.object(source, "get_notes", side_effect=RuntimeError("down")):
            events = _collect(source)
        assert not [e for e in events if e.kind in ("note", "order_note")]
        assert [e for e in events if e.kind == "order_created"]


class TestJobStatus:
    def test_mapping(self) -> None:
        assert job_event_status("complete") == EventStatus.SUCCESS
        assert job_event_status("failed") == EventStatus.ERROR
        assert job_event_status("in-progress") == EventStatus.WARNING
        assert job_event_status("canceled") == EventStatus.WARNING
        assert job_event_status("") == EventStatus.INFO
        assert job_event_status("mystery") == EventStatus.INFO
