"""
Subscription component models.

Inputs, outputs and the queue message published for token issuance.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from src.components.subscribers.models import ErrorDetail, NewsletterError

VALIDATE_EMAIL_ACTION = "validate_email"


@dataclass(frozen=True)
class ValidationMessage:
    """
    "New subscription" event consumed by the token issuer.

    Wire format: {"action": "validate_email", "email": ..., "subscriber_id": ...}
    """

    email: str
    subscriber_id: str
    action: str = VALIDATE_EMAIL_ACTION

    def to_body(self) -> str:
        return json.dumps(
            {
                "action": self.action,
                "email": self.email,
                "subscriber_id": self.subscriber_id,
            }
        )


# --- Input/Output ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for new subscription."""

    email: str


@dataclass(frozen=True)
class SubscribeOutput:
    """Output from subscription attempt."""

    success: bool
    subscriber_id: str | None = None
    errors: list[ErrorDetail] = field(default_factory=list)
    already_subscribed: bool = False  # Idempotent success, nothing written
    queued: bool = False  # Token issuance event published


# --- Error Types ---


class QueuePublishError(NewsletterError):
    """Publishing to the validation queue failed."""

    def __init__(self, subscriber_id: str, reason: str) -> None:
        self.subscriber_id = subscriber_id
        self.reason = reason
        super().__init__(f"Failed to queue validation for {subscriber_id}: {reason}")
