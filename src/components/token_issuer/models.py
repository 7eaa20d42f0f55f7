"""
Token issuer component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from src.components.subscribers.models import NewsletterError
from src.components.subscription.models import ValidationMessage


class IssueOutcome(Enum):
    """Result of processing one issuance message."""

    ISSUED = "issued"
    SKIPPED_VALIDATED = "skipped_validated"  # Redelivery after confirmation
    SKIPPED_INACTIVE = "skipped_inactive"  # Unsubscribed before issuance
    NOT_FOUND = "not_found"  # Dropped
    MALFORMED = "malformed"  # Dropped
    STORAGE_FAILURE = "storage_failure"  # Queue runtime may redeliver

    @property
    def retriable(self) -> bool:
        return self is IssueOutcome.STORAGE_FAILURE


@dataclass(frozen=True)
class IssueTokenInput:
    """Input for token issuance."""

    message: ValidationMessage


@dataclass(frozen=True)
class IssueTokenOutput:
    """Output from token issuance."""

    outcome: IssueOutcome
    subscriber_id: str | None = None
    confirmation_url: str | None = None
    expires_at: datetime | None = None
    delivered: bool = False  # Mailer accepted the confirmation email
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.outcome in (
            IssueOutcome.ISSUED,
            IssueOutcome.SKIPPED_VALIDATED,
            IssueOutcome.SKIPPED_INACTIVE,
        )


# --- Error Types ---


class MalformedMessageError(NewsletterError):
    """Queue message could not be parsed into a ValidationMessage."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Malformed validation message: {reason}")
