"""
Confirmation component models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.components.subscribers.models import ErrorDetail


@dataclass(frozen=True)
class ConfirmInput:
    """Input for confirming an email address."""

    subscriber_id: str | None
    token: str | None


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from confirmation attempt."""

    success: bool
    subscriber_id: str | None = None
    errors: list[ErrorDetail] = field(default_factory=list)

    @property
    def error_code(self) -> str | None:
        return self.errors[0].code if self.errors else None
