"""
Confirmation mailer (ConfirmationMailerPort implementation).

Renders the subscriber confirmation email and hands it to an EmailPort.
"""

from __future__ import annotations

import html
import logging

from src.core.ports.email import (
    DEFAULT_CONFIRMATION_HTML,
    DEFAULT_CONFIRMATION_SUBJECT,
    DEFAULT_CONFIRMATION_TEXT,
    EmailPort,
)

logger = logging.getLogger(__name__)


class ConfirmationMailer:
    """Sends confirmation links through an email adapter."""

    def __init__(self, email: EmailPort, token_ttl_hours: int = 24) -> None:
        self._email = email
        self._token_ttl_hours = token_ttl_hours

    def send_confirmation_email(
        self,
        recipient_email: str,
        confirmation_url: str,
        site_name: str,
    ) -> bool:
        values = {
            "site_name": site_name,
            "confirmation_url": confirmation_url,
            "ttl_hours": self._token_ttl_hours,
        }
        result = self._email.send_email(
            recipient=recipient_email,
            subject=DEFAULT_CONFIRMATION_SUBJECT.format(**values),
            body_html=DEFAULT_CONFIRMATION_HTML.format(
                site_name=html.escape(site_name),
                confirmation_url=html.escape(confirmation_url),
                ttl_hours=self._token_ttl_hours,
            ),
            body_text=DEFAULT_CONFIRMATION_TEXT.format(**values),
        )
        if not result.accepted:
            logger.warning(
                "Confirmation email to %s failed: %s", recipient_email, result.error
            )
        return result.accepted
