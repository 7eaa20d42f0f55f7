"""
Subscriber component ports.

Protocol interfaces for subscriber persistence and time.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.components.subscribers.models import (
    Preconditions,
    Subscriber,
    SubscriberUpdate,
)


class SubscriberStorePort(Protocol):
    """
    Subscriber store interface.

    Key-value persistence keyed by subscriber id with a secondary,
    eventually-consistent lookup by email.

    All methods raise StoreError when the backing call fails or times out.
    """

    def put(self, subscriber: Subscriber) -> None:
        """Unconditionally write the full record."""
        ...

    def get(self, subscriber_id: str) -> Subscriber | None:
        """Get subscriber by ID."""
        ...

    def find_by_email(self, email: str) -> list[Subscriber]:
        """
        Find subscribers with the given email.

        Uses the email index; when the index cannot be queried, falls back
        to a full predicate scan.
        """
        ...

    def conditional_update(
        self,
        subscriber_id: str,
        update: SubscriberUpdate,
        expected: Preconditions,
    ) -> Subscriber:
        """
        Apply `update` atomically if `expected` holds.

        Args:
            subscriber_id: Record to update
            update: Fields to set and remove
            expected: Preconditions checked in the same write

        Returns:
            The record as stored after the write

        Raises:
            PreconditionFailedError: Preconditions did not hold
            StoreError: The write failed
        """
        ...


class ClockPort(Protocol):
    def now(self) -> datetime:
        """Return current UTC time."""
        ...
