"""
Subscriber component models.

The subscriber entity, its persisted item shape, single-record update
descriptions and the error types shared by every newsletter component.

State machine (derived from flags, not stored):
    AWAITING_TOKEN -> PENDING -> VALIDATED
    any state -> INACTIVE (via deactivation)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

# --- Field names (persisted as a flat key-value map) ---

FIELD_ID = "id"
FIELD_EMAIL = "email"
FIELD_ACTIVE = "active"
FIELD_VALIDATED = "validated"
FIELD_VALIDATION_TOKEN = "validation_token"
FIELD_TOKEN_EXPIRATION = "token_expiration"
FIELD_CREATED_AT = "created_at"
FIELD_UPDATED_AT = "updated_at"

# Fields a conditional update may never touch
IMMUTABLE_FIELDS = frozenset({FIELD_ID, FIELD_EMAIL, FIELD_CREATED_AT})

# --- Error codes carried on component outputs ---

INVALID_INPUT = "INVALID_INPUT"
EMPTY_EMAIL = "EMPTY_EMAIL"
EMAIL_TOO_LONG = "EMAIL_TOO_LONG"
INVALID_FORMAT = "INVALID_FORMAT"
NOT_FOUND = "NOT_FOUND"
INVALID_TOKEN = "INVALID_TOKEN"
TOKEN_EXPIRED = "TOKEN_EXPIRED"
STORAGE_FAILURE = "STORAGE_FAILURE"

# Codes that are user-correctable input problems
INPUT_ERROR_CODES = frozenset({INVALID_INPUT, EMPTY_EMAIL, EMAIL_TOO_LONG, INVALID_FORMAT})


class SubscriberState(Enum):
    """Lifecycle state derived from the stored flags."""

    AWAITING_TOKEN = "awaiting_token"  # Created, issuance not processed yet
    PENDING = "pending"  # Token attached, not validated
    VALIDATED = "validated"  # Email confirmed
    INACTIVE = "inactive"  # Deactivated (terminal)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as RFC 3339 in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def serialize_value(value: Any) -> Any:
    """Convert a domain value to its persisted representation."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    return value


# --- Entity ---


@dataclass
class Subscriber:
    """
    Mailing-list subscriber.

    `validation_token` and `token_expiration` are paired: both present while
    a confirmation is outstanding, both absent otherwise.
    """

    id: str
    email: str
    active: bool = True
    validated: bool = False
    validation_token: str | None = None
    token_expiration: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @property
    def has_token(self) -> bool:
        return self.validation_token is not None

    def to_item(self) -> dict[str, Any]:
        """Flat item for persistence. Absent optional fields are omitted."""
        item: dict[str, Any] = {
            FIELD_ID: self.id,
            FIELD_EMAIL: self.email,
            FIELD_ACTIVE: self.active,
            FIELD_VALIDATED: self.validated,
            FIELD_CREATED_AT: format_timestamp(self.created_at),
            FIELD_UPDATED_AT: format_timestamp(self.updated_at),
        }
        if self.validation_token is not None:
            item[FIELD_VALIDATION_TOKEN] = self.validation_token
        if self.token_expiration is not None:
            item[FIELD_TOKEN_EXPIRATION] = format_timestamp(self.token_expiration)
        return item

    @classmethod
    def from_item(cls, item: dict[str, Any]) -> Subscriber:
        """
        Build a subscriber from a persisted item.

        Raises:
            ValueError: If a required field is missing or malformed
        """
        try:
            expiration = item.get(FIELD_TOKEN_EXPIRATION)
            return cls(
                id=str(item[FIELD_ID]),
                email=str(item[FIELD_EMAIL]),
                active=bool(item[FIELD_ACTIVE]),
                validated=bool(item[FIELD_VALIDATED]),
                validation_token=item.get(FIELD_VALIDATION_TOKEN),
                token_expiration=parse_timestamp(expiration) if expiration else None,
                created_at=parse_timestamp(item[FIELD_CREATED_AT]),
                updated_at=parse_timestamp(item[FIELD_UPDATED_AT]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Malformed subscriber item: {e}") from e


# --- Single-record writes ---


@dataclass(frozen=True)
class SubscriberUpdate:
    """Fields to set and fields to remove in one atomic write."""

    set_fields: dict[str, Any] = field(default_factory=dict)
    remove_fields: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        touched = set(self.set_fields) | set(self.remove_fields)
        forbidden = touched & IMMUTABLE_FIELDS
        if forbidden:
            raise ValueError(f"Cannot modify immutable fields: {sorted(forbidden)}")
        overlap = set(self.set_fields) & set(self.remove_fields)
        if overlap:
            raise ValueError(f"Fields both set and removed: {sorted(overlap)}")


@dataclass(frozen=True)
class Preconditions:
    """Expectations checked atomically with a conditional update."""

    must_exist: bool = True
    equals: dict[str, Any] = field(default_factory=dict)


# --- Shared output detail ---


@dataclass(frozen=True)
class ErrorDetail:
    """Error detail attached to a component output."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidateEmailOutput:
    """Output from email syntax validation."""

    is_valid: bool
    email: str | None = None  # Trimmed address
    errors: list[ErrorDetail] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class NewsletterConfig:
    """Newsletter service configuration passed to each component."""

    token_ttl_hours: int = 24
    token_bytes: int = 32
    frontend_url: str = "https://yourfrontend.com"
    confirmation_path: str = "/validate"
    site_name: str = "Newsletter"


# --- Error Types ---


class NewsletterError(Exception):
    """Base newsletter error."""

    pass


class StoreError(NewsletterError):
    """A subscriber store call failed or timed out."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store {operation} failed: {reason}")


class IndexUnavailableError(StoreError):
    """The email index could not be queried."""

    def __init__(self, reason: str) -> None:
        super().__init__("query_email_index", reason)


class PreconditionFailedError(NewsletterError):
    """A conditional update's preconditions did not hold."""

    def __init__(self, subscriber_id: str) -> None:
        self.subscriber_id = subscriber_id
        super().__init__(f"Preconditions failed for subscriber {subscriber_id}")
