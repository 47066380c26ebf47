"""Exception hierarchy for host data sources."""

from __future__ import annotations


class SourceError(Exception):
    """Base exception for all data source errors."""


class SubscriptionNotFoundError(SourceError):
    """The subscription id does not resolve to a record."""

    def __init__(self, subscription_id: int) -> None:
        super().__init__(f"Subscription #{subscription_id} not found.")
        self.subscription_id = subscription_id


class SourceUnavailableError(SourceError):
    """A collaborator store (scheduler, notes) is absent or failing."""


class SnapshotFormatError(SourceError):
    """A snapshot document could not be parsed into host records."""
