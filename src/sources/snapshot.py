"""In-memory ``BillingSource`` backed by a snapshot document.

Usage::

    source = SnapshotSource.from_file("snapshots/sub-42.yaml")
    engine = DiagnosticsEngine(source)

The document is YAML (JSON parses too)::

    environment: staging
    duplicate_site: false
    scheduler_available: true
    subscriptions:
      - id: 42
        status: active
        billing_period: month
        related_orders: [{id: 100, relation: parent}]
        notes: [{id: 1, content: "Payment completed", created_at: "2024-01-01"}]
    orders:
      - id: 100
        status: completed
        date_created: "2024-01-01 10:00:00"
        notes: []
    scheduled_jobs:
      - {id: 7, hook: woocommerce_scheduled_subscription_payment, args: [42]}
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from src.core.dates import normalize
from src.sources.base import (
    BillingSource,
    JobQuery,
    Note,
    Order,
    OrderRef,
    RelatedOrderType,
    ScheduledJob,
    Subscription,
)
from src.sources.exceptions import SnapshotFormatError, SourceUnavailableError
from src.sources.jobs import job_references

logger = structlog.stdlib.get_logger()


class SnapshotSource(BillingSource):
    """Serves host records from memory; the test double and CLI backend."""

    def __init__(
        self,
        subscriptions: list[Subscription] | None = None,
        orders: list[Order] | None = None,
        related_orders: dict[int, list[OrderRef]] | None = None,
        notes: dict[int, list[Note]] | None = None,
        scheduled_jobs: list[ScheduledJob] | None = None,
        duplicate_site: bool = False,
        environment: str = "production",
        scheduler_available: bool = True,
    ) -> None:
        self._subscriptions = {s.id: s for s in subscriptions or []}
        self._orders = {o.id: o for o in orders or []}
        self._related = related_orders or {}
        self._notes = notes or {}
        self._jobs = list(scheduled_jobs or [])
        self._duplicate_site = duplicate_site
        self._environment = environment
        self._scheduler_available = scheduler_available

    # ── Construction ────────────────────────────────────────────

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SnapshotSource:
        """Build a source from a parsed snapshot document."""
        if not isinstance(data, dict):
            raise SnapshotFormatError("Snapshot document must be a mapping")

        subscriptions: list[Subscription] = []
        orders: list[Order] = []
        related: dict[int, list[OrderRef]] = {}
        notes: dict[int, list[Note]] = {}

        try:
            for raw in data.get("subscriptions") or []:
                raw = dict(raw)
                refs = raw.pop("related_orders", None) or []
                sub_notes = raw.pop("notes", None) or []
                sub = Subscription(**raw)
                subscriptions.append(sub)
                related[sub.id] = [OrderRef(**ref) for ref in refs]
                notes.setdefault(sub.id, []).extend(Note(**n) for n in sub_notes)

            for raw in data.get("orders") or []:
                raw = dict(raw)
                order_notes = raw.pop("notes", None) or []
                order = Order(**raw)
                orders.append(order)
                notes.setdefault(order.id, []).extend(Note(**n) for n in order_notes)

            jobs = [ScheduledJob(**j) for j in data.get("scheduled_jobs") or []]
        except (TypeError, ValueError, ValidationError) as exc:
            raise SnapshotFormatError(f"Invalid snapshot record: {exc}") from exc

        return cls(
            subscriptions=subscriptions,
            orders=orders,
            related_orders=related,
            notes=notes,
            scheduled_jobs=jobs,
            duplicate_site=bool(data.get("duplicate_site", False)),
            environment=str(data.get("environment", "production")),
            scheduler_available=bool(data.get("scheduler_available", True)),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> SnapshotSource:
        """Load a YAML or JSON snapshot document from disk."""
        snapshot_path = Path(path)
        try:
            with open(snapshot_path) as f:
                data = yaml.safe_load(f)
        except OSError as exc:
            raise SnapshotFormatError(f"Cannot read snapshot {snapshot_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise SnapshotFormatError(f"Cannot parse snapshot {snapshot_path}: {exc}") from exc

        source = cls.from_dict(data or {})
        logger.debug(
            "snapshot_loaded",
            path=str(snapshot_path),
            subscriptions=len(source._subscriptions),
            orders=len(source._orders),
            jobs=len(source._jobs),
        )
        return source

    # ── BillingSource ───────────────────────────────────────────

    def get_subscription(self, subscription_id: int) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def get_related_orders(
        self,
        subscription_id: int,
        relation: RelatedOrderType = RelatedOrderType.ALL,
    ) -> list[OrderRef]:
        refs = self._related.get(subscription_id, [])
        if relation == RelatedOrderType.ALL:
            return list(refs)
        return [ref for ref in refs if ref.relation == relation]

    def get_order(self, order_id: int) -> Order | None:
        return self._orders.get(order_id)

    def get_notes(
        self,
        entity_id: int,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[Note]:
        notes = sorted(self._notes.get(entity_id, []), key=lambda n: normalize(n.created_at))
        if newest_first:
            notes.reverse()
        if limit is not None:
            notes = notes[:limit]
        return notes

    def query_scheduled_jobs(self, query: JobQuery) -> list[ScheduledJob]:
        if not self._scheduler_available:
            raise SourceUnavailableError("Scheduled-job store is not available")

        hooks = query.hooks()
        matched = [
            job
            for job in self._jobs
            if job_references(job, query.subscription_id)
            and (not hooks or job.hook in hooks)
            and (query.status is None or job.status == query.status)
        ]
        matched.sort(key=lambda j: normalize(j.scheduled_at), reverse=True)
        recent = matched[: query.limit]
        recent.reverse()
        return recent

    def is_duplicate_site(self) -> bool:
        return self._duplicate_site

    def environment_type(self) -> str:
        return self._environment
