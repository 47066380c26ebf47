"""Host data sources — collaborator contract, records, snapshot backend."""

from src.sources.base import (
    BillingSource,
    JobQuery,
    JobStatus,
    Note,
    Order,
    OrderRef,
    RelatedOrderType,
    ScheduledJob,
    Subscription,
)
from src.sources.exceptions import (
    SnapshotFormatError,
    SourceError,
    SourceUnavailableError,
    SubscriptionNotFoundError,
)
from src.sources.jobs import describe_args, job_references
from src.sources.related import RelatedOrder, fetch_related_orders
from src.sources.snapshot import SnapshotSource

__all__ = [
    "BillingSource",
    "JobQuery",
    "JobStatus",
    "Note",
    "Order",
    "OrderRef",
    "RelatedOrder",
    "RelatedOrderType",
    "ScheduledJob",
    "SnapshotFormatError",
    "SnapshotSource",
    "SourceError",
    "SourceUnavailableError",
    "Subscription",
    "SubscriptionNotFoundError",
    "describe_args",
    "fetch_related_orders",
    "job_references",
]
