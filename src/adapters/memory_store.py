"""
In-memory subscriber store (SubscriberStorePort implementation).

Used for local development and testing. Records are kept as persisted
items (flat dicts) so the item round-trip matches the DynamoDB adapter.

Key behaviors:
- Email index maintained separately from the primary map
- Index can be made unavailable (forces the scan fallback)
- Index can lag writes until `sync_index()` is called
- Operations can be made to fail to simulate storage outages
- Conditional updates are atomic under a lock
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from src.components.subscribers.component import apply_update, preconditions_hold
from src.components.subscribers.models import (
    IndexUnavailableError,
    PreconditionFailedError,
    Preconditions,
    StoreError,
    Subscriber,
    SubscriberUpdate,
)

logger = logging.getLogger(__name__)


@dataclass
class InMemorySubscriberStore:
    """
    Dev subscriber store.

    Implements SubscriberStorePort protocol.
    """

    items: dict[str, dict[str, Any]] = field(default_factory=dict)
    email_index: dict[str, list[str]] = field(default_factory=dict)

    # Simulation switches
    index_available: bool = True
    index_lagging: bool = False
    failing_operations: set[str] = field(default_factory=set)

    # Writes not yet visible through the index
    _pending_index: list[tuple[str, str]] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def put(self, subscriber: Subscriber) -> None:
        self._check("put")
        with self._lock:
            self.items[subscriber.id] = subscriber.to_item()
            self._index(subscriber.email, subscriber.id)

    def get(self, subscriber_id: str) -> Subscriber | None:
        self._check("get")
        item = self.items.get(subscriber_id)
        return Subscriber.from_item(item) if item else None

    def find_by_email(self, email: str) -> list[Subscriber]:
        try:
            return self._query_index(email)
        except IndexUnavailableError as e:
            logger.warning("Email index query failed, falling back to scan: %s", e)
            return self._scan_by_email(email)

    def conditional_update(
        self,
        subscriber_id: str,
        update: SubscriberUpdate,
        expected: Preconditions,
    ) -> Subscriber:
        self._check("conditional_update")
        with self._lock:
            item = self.items.get(subscriber_id)
            current = Subscriber.from_item(item) if item else None
            if not preconditions_hold(current, expected):
                raise PreconditionFailedError(subscriber_id)
            if current is None:
                raise PreconditionFailedError(subscriber_id)
            updated = apply_update(current, update)
            self.items[subscriber_id] = updated.to_item()
            return updated

    # --- Index ---

    def _index(self, email: str, subscriber_id: str) -> None:
        if self.index_lagging:
            self._pending_index.append((email, subscriber_id))
            return
        ids = self.email_index.setdefault(email, [])
        if subscriber_id not in ids:
            ids.append(subscriber_id)

    def sync_index(self) -> None:
        """Apply index writes held back while lagging."""
        with self._lock:
            pending, self._pending_index = self._pending_index, []
            for email, subscriber_id in pending:
                ids = self.email_index.setdefault(email, [])
                if subscriber_id not in ids:
                    ids.append(subscriber_id)

    def _query_index(self, email: str) -> list[Subscriber]:
        if not self.index_available or "query_email_index" in self.failing_operations:
            raise IndexUnavailableError("email index is not available")
        return [
            Subscriber.from_item(self.items[sid])
            for sid in self.email_index.get(email, [])
            if sid in self.items
        ]

    def _scan_by_email(self, email: str) -> list[Subscriber]:
        self._check("scan")
        return [
            Subscriber.from_item(item)
            for item in self.items.values()
            if item.get("email") == email
        ]

    # --- Simulation ---

    def _check(self, operation: str) -> None:
        if operation in self.failing_operations:
            raise StoreError(operation, "simulated failure")

    # --- Test Helper Methods ---

    def all(self) -> list[Subscriber]:
        return [Subscriber.from_item(item) for item in self.items.values()]

    @property
    def count(self) -> int:
        return len(self.items)

    def clear(self) -> None:
        with self._lock:
            self.items.clear()
            self.email_index.clear()
            self._pending_index.clear()
