"""
In-memory validation queue (ValidationQueuePort implementation).

Used for local development and testing. Messages are kept as raw JSON
bodies, the same shape an SQS consumer receives.

Key behaviors:
- Publish can be made to fail to simulate queue outages
- `receive()` hands out pending messages without removing them until
  `ack()`, so unacknowledged messages are redelivered (at-least-once)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Collection
from dataclasses import dataclass, field
from uuid import uuid4

from src.components.subscription.models import QueuePublishError, ValidationMessage

logger = logging.getLogger(__name__)


@dataclass
class QueuedMessage:
    """A message held by the in-memory queue."""

    message_id: str
    body: str
    receive_count: int = 0


@dataclass
class InMemoryValidationQueue:
    """
    Dev validation queue.

    Implements ValidationQueuePort protocol.
    """

    messages: list[QueuedMessage] = field(default_factory=list)
    fail_publish: bool = False
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def publish(self, message: ValidationMessage) -> None:
        if self.fail_publish:
            raise QueuePublishError(message.subscriber_id, "simulated failure")
        self.publish_body(message.to_body())

    def publish_body(self, body: str) -> str:
        """Enqueue a raw body (also used to inject malformed messages)."""
        message_id = str(uuid4())
        with self._lock:
            self.messages.append(QueuedMessage(message_id=message_id, body=body))
        logger.debug("Queued message %s", message_id)
        return message_id

    def receive(
        self,
        max_messages: int = 10,
        skip_ids: Collection[str] = (),
    ) -> list[QueuedMessage]:
        """Return up to `max_messages` pending messages; they stay queued until acked."""
        with self._lock:
            pending = [m for m in self.messages if m.message_id not in skip_ids]
            batch = pending[:max_messages]
            for queued in batch:
                queued.receive_count += 1
            return list(batch)

    def ack(self, message_id: str) -> None:
        with self._lock:
            self.messages = [m for m in self.messages if m.message_id != message_id]

    # --- Test Helper Methods ---

    @property
    def pending_count(self) -> int:
        return len(self.messages)

    def clear(self) -> None:
        with self._lock:
            self.messages.clear()
