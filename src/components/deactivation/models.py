"""
Deactivation component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.components.subscribers.models import ErrorDetail


@dataclass(frozen=True)
class UnsubscribeInput:
    """Input for unsubscribing."""

    email: str


@dataclass(frozen=True)
class UnsubscribeOutput:
    """Output from unsubscribe attempt."""

    success: bool
    subscriber_id: str | None = None
    errors: list[ErrorDetail] = field(default_factory=list)
    already_inactive: bool = False  # Idempotent success
    duplicates_skipped: int = 0  # Other records sharing the email, left active
