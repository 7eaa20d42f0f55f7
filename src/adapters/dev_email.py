"""
Dev Email Adapter (EmailPort implementation).

Logs emails to console instead of sending. Used for local development and
testing; this service never delivers real email.

Key behaviors:
- Logs email details (body preview includes the confirmation link)
- Returns SKIPPED status (not SENT)
- Stores emails in memory for test assertions
- Can be switched to failing mode to exercise delivery-failure paths
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import EmailResult, EmailStatus

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """
    Dev email adapter that logs instead of sending.

    Implements EmailPort protocol.
    """

    # In-memory storage for test assertions
    sent_emails: list[SentEmail] = field(default_factory=list)

    # Configuration
    log_level: int = logging.INFO
    log_body: bool = True  # Whether to log body content
    body_preview_length: int = 300  # Max chars of body to log
    fail_sends: bool = False

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """
        Log an email instead of sending.

        Args:
            recipient: Email address of recipient
            subject: Email subject line
            body_html: HTML body content
            body_text: Plain text body (optional)

        Returns:
            EmailResult with SKIPPED status, or FAILED in failing mode
        """
        if self.fail_sends:
            logger.warning("EMAIL (dev): simulated failure sending to %s", recipient)
            return EmailResult.failed(recipient, "Simulated delivery failure")

        message_id = f"dev-{uuid4().hex[:12]}"

        self.sent_emails.append(
            SentEmail(
                id=message_id,
                recipient=recipient,
                subject=subject,
                body_html=body_html,
                body_text=body_text or "",
                logged_at=datetime.now(UTC),
            )
        )

        self._log_email(
            recipient=recipient,
            subject=subject,
            body=body_text or body_html,
            message_id=message_id,
        )

        return EmailResult(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error="Dev mode - email logged, not sent",
        )

    def _log_email(
        self,
        recipient: str,
        subject: str,
        body: str,
        message_id: str,
    ) -> None:
        """Log email details to console."""
        parts = [
            f"EMAIL (dev): To={recipient}",
            f"Subject={subject}",
        ]

        if self.log_body and body:
            preview = body[: self.body_preview_length]
            if len(body) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")

        parts.append(f"MessageID={message_id}")
        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        """Get all emails logged to a specific recipient."""
        return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        """Clear all stored emails (for test isolation)."""
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        """Get the number of logged emails."""
        return len(self.sent_emails)


# --- Factory Function ---


def create_dev_email_adapter(
    log_level: int = logging.INFO,
    log_body: bool = True,
    body_preview_length: int = 300,
) -> DevEmailAdapter:
    """
    Create a dev email adapter.

    Args:
        log_level: Logging level for email logs
        log_body: Whether to log body content
        body_preview_length: Max chars of body to preview

    Returns:
        Configured DevEmailAdapter
    """
    return DevEmailAdapter(
        log_level=log_level,
        log_body=log_body,
        body_preview_length=body_preview_length,
    )
