"""
Subscription component ports.
"""

from __future__ import annotations

from typing import Protocol

from src.components.subscription.models import ValidationMessage


class ValidationQueuePort(Protocol):
    """
    Validation queue interface.

    An at-least-once, unordered queue feeding the token issuer.
    """

    def publish(self, message: ValidationMessage) -> None:
        """
        Publish a token issuance event.

        Raises:
            QueuePublishError: The message was not accepted by the queue
        """
        ...
