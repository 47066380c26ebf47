"""Host collaborator contract and the record shapes it returns.

The engine never talks to a billing platform directly.  A host implements
``BillingSource`` and hands back the typed records below; raw date fields
are kept exactly as the host stored them and read through accessors that
return ``None`` instead of failing.
"""

from __future__ import annotations

import abc
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from src.core.dates import to_instant

# Anything the date normalizer understands.
RawDate = datetime | date | int | float | str | None


class RelatedOrderType(StrEnum):
    """How an order relates to its subscription."""

    PARENT = "parent"
    RENEWAL = "renewal"
    SWITCH = "switch"
    RESUBSCRIBE = "resubscribe"
    ALL = "all"


# Traversal order used when walking every relation.
ORDER_RELATIONS: tuple[RelatedOrderType, ...] = (
    RelatedOrderType.PARENT,
    RelatedOrderType.RENEWAL,
    RelatedOrderType.SWITCH,
    RelatedOrderType.RESUBSCRIBE,
)


class JobStatus(StrEnum):
    """Scheduled-job lifecycle states."""

    COMPLETE = "complete"
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    FAILED = "failed"
    CANCELED = "canceled"


PAYMENT_HOOK = "woocommerce_scheduled_subscription_payment"
EXPIRATION_HOOK = "woocommerce_scheduled_subscription_expiration"
TRIAL_END_HOOK = "woocommerce_scheduled_subscription_trial_end"
PREPAID_TERM_HOOK = "woocommerce_scheduled_subscription_end_of_prepaid_term"


class Subscription(BaseModel):
    """Point-in-time snapshot of a subscription."""

    id: int
    status: str = ""
    date_created: RawDate = None
    start: RawDate = None
    trial_end: RawDate = None
    last_payment: RawDate = None
    next_payment: RawDate = None
    end: RawDate = None
    cancelled: RawDate = None
    date_modified: RawDate = None
    billing_period: str = ""
    billing_interval: int = 1
    payment_method: str = ""
    requires_manual_renewal: bool = False
    meta: dict[str, Any] = Field(default_factory=dict)

    def date(self, kind: str) -> datetime | None:
        """Return the named lifecycle date, or None when absent/unreadable."""
        return to_instant(getattr(self, kind, None))

    def get_meta(self, key: str, default: Any = None) -> Any:
        value = self.meta.get(key)
        if value is None or value == "":
            return default
        return value


class OrderRef(BaseModel):
    """Pointer to a related order."""

    id: int
    relation: RelatedOrderType = RelatedOrderType.RENEWAL


class Order(BaseModel):
    """Point-in-time snapshot of an order."""

    id: int
    status: str = ""
    total: str = "0"
    currency: str = ""
    date_created: RawDate = None
    date_paid: RawDate = None
    payment_method: str = ""
    transaction_id: str = ""
    meta: dict[str, Any] = Field(default_factory=dict)

    @property
    def created_at(self) -> datetime | None:
        return to_instant(self.date_created)

    @property
    def paid_at(self) -> datetime | None:
        return to_instant(self.date_paid)

    @property
    def formatted_total(self) -> str:
        return f"{self.total} {self.currency}".strip()


class Note(BaseModel):
    """Free-text audit note attached to a subscription or order."""

    id: int
    content: str = ""
    created_at: RawDate = None
    author_type: str = "system"
    customer_note: bool = False

    @property
    def created(self) -> datetime | None:
        return to_instant(self.created_at)


class ScheduledJob(BaseModel):
    """Deferred unit of work tracked by the host's job store."""

    id: int
    hook: str
    status: str = JobStatus.PENDING
    scheduled_at: RawDate = None
    last_attempt_at: RawDate = None
    retry_count: int = 0
    args: list[Any] | str = Field(default_factory=list)


class JobQuery(BaseModel):
    """Filter for ``BillingSource.query_scheduled_jobs``."""

    subscription_id: int
    hook: str | list[str] | None = None
    status: str | None = None
    limit: int = 24

    def hooks(self) -> list[str]:
        if self.hook is None:
            return []
        return [self.hook] if isinstance(self.hook, str) else list(self.hook)


class BillingSource(abc.ABC):
    """Read-only collaborator contract implemented by the host system.

    Every method may raise ``SourceError`` (or anything else); the engine
    treats such failures as "this source contributes nothing" except for
    ``get_subscription``, whose ``None`` result ends the run.
    """

    @abc.abstractmethod
    def get_subscription(self, subscription_id: int) -> Subscription | None:
        """Return the subscription or None when it does not exist."""

    @abc.abstractmethod
    def get_related_orders(
        self,
        subscription_id: int,
        relation: RelatedOrderType = RelatedOrderType.ALL,
    ) -> list[OrderRef]:
        """Return related orders, oldest first."""

    @abc.abstractmethod
    def get_order(self, order_id: int) -> Order | None:
        """Return an order or None when it does not exist."""

    @abc.abstractmethod
    def get_notes(
        self,
        entity_id: int,
        limit: int | None = None,
        newest_first: bool = False,
    ) -> list[Note]:
        """Return notes attached to a subscription or order."""

    @abc.abstractmethod
    def query_scheduled_jobs(self, query: JobQuery) -> list[ScheduledJob]:
        """Return the most recent ``query.limit`` matching jobs, oldest first."""

    def is_duplicate_site(self) -> bool:
        """Whether the host flags itself as a cloned/duplicate site."""
        return False

    def environment_type(self) -> str:
        """Deployment environment, e.g. production/staging/development."""
        return "production"
