"""
Subscriber component.

Functional core shared by the newsletter services: email syntax checks,
subscriber construction, token generation, and the single-record updates
that drive the subscriber state machine.

Invariants:
- Token fields are written and removed together.
- A validated subscriber never receives a token again
  (token writes carry a `validated = false` precondition).
- Id, email and created_at are never part of an update.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from src.components.subscribers.models import (
    EMAIL_TOO_LONG,
    EMPTY_EMAIL,
    FIELD_ACTIVE,
    FIELD_TOKEN_EXPIRATION,
    FIELD_UPDATED_AT,
    FIELD_VALIDATED,
    FIELD_VALIDATION_TOKEN,
    INVALID_FORMAT,
    ErrorDetail,
    Preconditions,
    Subscriber,
    SubscriberState,
    SubscriberUpdate,
    ValidateEmailOutput,
    parse_timestamp,
)

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MAX_EMAIL_LENGTH = 254

# 16 bytes = 128 bits of entropy
MIN_TOKEN_BYTES = 16


def validate_email(email: str | None) -> ValidateEmailOutput:
    """
    Check basic email address syntax.

    The address is trimmed but otherwise kept as given; lookups by email
    are exact-match.

    Args:
        email: Email address to validate

    Returns:
        ValidateEmailOutput with validation results
    """
    trimmed = email.strip() if email else ""

    if not trimmed:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ErrorDetail(EMPTY_EMAIL, "Email address is required", "email")],
        )

    if len(trimmed) > MAX_EMAIL_LENGTH:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ErrorDetail(EMAIL_TOO_LONG, "Email address is too long", "email")],
        )

    if not EMAIL_REGEX.match(trimmed):
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ErrorDetail(INVALID_FORMAT, "Invalid email format", "email")],
        )

    return ValidateEmailOutput(is_valid=True, email=trimmed)


def generate_subscriber_id() -> str:
    return str(uuid4())


def new_subscriber(email: str, now: datetime | None = None) -> Subscriber:
    """
    Create a new subscriber: active, unvalidated, no token yet.

    Args:
        email: Validated email address
        now: Creation time (for testing)

    Returns:
        New Subscriber instance
    """
    if now is None:
        now = datetime.now(UTC)

    return Subscriber(
        id=generate_subscriber_id(),
        email=email,
        active=True,
        validated=False,
        created_at=now,
        updated_at=now,
    )


def generate_token(length: int = 32) -> str:
    """
    Generate a cryptographically secure URL-safe token.

    Args:
        length: Number of random bytes (will be base64-encoded)

    Returns:
        URL-safe token string
    """
    if length < MIN_TOKEN_BYTES:
        raise ValueError(f"Token length must be at least {MIN_TOKEN_BYTES} bytes")
    return secrets.token_urlsafe(length)


def token_expiry(issued_at: datetime, ttl_hours: int = 24) -> datetime:
    return issued_at + timedelta(hours=ttl_hours)


def is_token_expired(subscriber: Subscriber, now: datetime | None = None) -> bool:
    """
    Check whether the subscriber's outstanding token has expired.

    A token is valid strictly before its expiration instant. A subscriber
    without an expiration is treated as expired.
    """
    if now is None:
        now = datetime.now(UTC)

    if subscriber.token_expiration is None:
        return True
    return now >= subscriber.token_expiration


def tokens_match(stored: str | None, supplied: str | None) -> bool:
    """Constant-time token comparison; absent tokens never match."""
    if not stored or not supplied:
        return False
    return secrets.compare_digest(stored.encode(), supplied.encode())


def subscriber_state(subscriber: Subscriber) -> SubscriberState:
    if not subscriber.active:
        return SubscriberState.INACTIVE
    if subscriber.validated:
        return SubscriberState.VALIDATED
    if subscriber.has_token:
        return SubscriberState.PENDING
    return SubscriberState.AWAITING_TOKEN


# --- State machine writes ---


def issue_token_update(
    token: str,
    expiration: datetime,
    now: datetime,
) -> tuple[SubscriberUpdate, Preconditions]:
    """
    Attach a token, overwriting any earlier one.

    Guarded so a redelivered issuance never tokenizes a validated or
    deactivated record and never creates a partial record.
    """
    update = SubscriberUpdate(
        set_fields={
            FIELD_VALIDATION_TOKEN: token,
            FIELD_TOKEN_EXPIRATION: expiration,
            FIELD_UPDATED_AT: now,
        },
    )
    return update, Preconditions(
        must_exist=True,
        equals={FIELD_VALIDATED: False, FIELD_ACTIVE: True},
    )


def validation_update(
    token: str,
    now: datetime,
) -> tuple[SubscriberUpdate, Preconditions]:
    """
    Promote to validated and consume the token.

    The token equality precondition makes concurrent confirmations with the
    same token settle on a single winner.
    """
    update = SubscriberUpdate(
        set_fields={FIELD_VALIDATED: True, FIELD_UPDATED_AT: now},
        remove_fields=(FIELD_VALIDATION_TOKEN, FIELD_TOKEN_EXPIRATION),
    )
    return update, Preconditions(must_exist=True, equals={FIELD_VALIDATION_TOKEN: token})


def deactivation_update(now: datetime) -> tuple[SubscriberUpdate, Preconditions]:
    update = SubscriberUpdate(set_fields={FIELD_ACTIVE: False, FIELD_UPDATED_AT: now})
    return update, Preconditions(must_exist=True)


# --- Helpers for store adapters ---


def _field_value(subscriber: Subscriber, name: str) -> Any:
    return getattr(subscriber, name, None)


def preconditions_hold(subscriber: Subscriber | None, expected: Preconditions) -> bool:
    """Evaluate preconditions against the current record (None = absent)."""
    if subscriber is None:
        return not expected.must_exist and not expected.equals
    return all(
        _field_value(subscriber, name) == value for name, value in expected.equals.items()
    )


def apply_update(subscriber: Subscriber, update: SubscriberUpdate) -> Subscriber:
    """Return a copy of `subscriber` with `update` applied."""
    changes: dict[str, Any] = {}
    for name, value in update.set_fields.items():
        if name in (FIELD_TOKEN_EXPIRATION, FIELD_UPDATED_AT) and isinstance(value, str):
            value = parse_timestamp(value)
        changes[name] = value
    for name in update.remove_fields:
        changes[name] = None
    return replace(subscriber, **changes)
