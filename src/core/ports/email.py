"""
Email Adapter Interface.

Protocol-based interface for sending transactional emails. The confirmation
mailer renders subscriber confirmation emails on top of it.

Implementation strategies:
1. DevEmailAdapter: Logs emails instead of sending (dev/test)
2. A real provider adapter (SES, SMTP) plugs in behind the same interface

Sending real email is outside this service; only the dev adapter ships.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev adapter or dry-run


@dataclass
class EmailResult:
    """Result of an email send attempt."""

    status: EmailStatus
    message_id: str | None = None  # Provider's message ID
    error: str | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @property
    def accepted(self) -> bool:
        """Whether the email left this process (or was intentionally logged)."""
        return self.status in (EmailStatus.SENT, EmailStatus.SKIPPED)

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        """Create a successful send result."""
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(cls, recipient: str, reason: str = "Dev mode") -> EmailResult:
        """Create a skipped result (dev adapter)."""
        return cls(
            status=EmailStatus.SKIPPED,
            recipient=recipient,
            error=reason,
        )

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        """Create a failed result."""
        return cls(
            status=EmailStatus.FAILED,
            recipient=recipient,
            error=error,
        )


class EmailPort(Protocol):
    """
    Email sending interface.

    Implementations:
    - DevEmailAdapter: Logs to console (dev/test)
    """

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """
        Send a transactional email.

        Args:
            recipient: Email address of recipient
            subject: Email subject line
            body_html: HTML body content
            body_text: Plain text body (optional, fallback)

        Returns:
            EmailResult with send outcome

        Notes:
            - Must not raise exceptions; return failed status instead
        """
        ...


# --- Constants ---

DEFAULT_CONFIRMATION_SUBJECT = "Confirm your subscription to {site_name}"

DEFAULT_CONFIRMATION_TEXT = (
    "Thanks for subscribing to {site_name}.\n\n"
    "Confirm your email address within {ttl_hours} hours by opening this link:\n"
    "{confirmation_url}\n\n"
    "If you did not subscribe, ignore this email."
)

DEFAULT_CONFIRMATION_HTML = (
    "<p>Thanks for subscribing to {site_name}.</p>"
    '<p><a href="{confirmation_url}">Confirm your email address</a> '
    "within {ttl_hours} hours.</p>"
    "<p>If you did not subscribe, ignore this email.</p>"
)
