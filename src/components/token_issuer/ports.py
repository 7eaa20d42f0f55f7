"""
Token issuer component ports.
"""

from __future__ import annotations

from typing import Protocol


class ConfirmationMailerPort(Protocol):
    """
    Confirmation email sender interface.

    Delivery is fire-and-forget from the issuer's point of view: a failed
    send is reported, never retried.
    """

    def send_confirmation_email(
        self,
        recipient_email: str,
        confirmation_url: str,
        site_name: str,
    ) -> bool:
        """
        Send the confirmation email carrying the link.

        Args:
            recipient_email: Email to send to
            confirmation_url: Full URL embedding subscriber id and token
            site_name: Site name for email template

        Returns:
            True if email was accepted for delivery
        """
        ...
