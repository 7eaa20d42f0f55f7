"""
Subscriber component.

Subscriber entity, state machine writes and the store port shared by the
subscription, token issuer, confirmation and deactivation components.
"""

from src.components.subscribers.component import (
    EMAIL_REGEX,
    MIN_TOKEN_BYTES,
    apply_update,
    deactivation_update,
    generate_subscriber_id,
    generate_token,
    is_token_expired,
    issue_token_update,
    new_subscriber,
    preconditions_hold,
    subscriber_state,
    token_expiry,
    tokens_match,
    validate_email,
    validation_update,
)
from src.components.subscribers.models import (
    INPUT_ERROR_CODES,
    INVALID_INPUT,
    INVALID_TOKEN,
    NOT_FOUND,
    STORAGE_FAILURE,
    TOKEN_EXPIRED,
    ErrorDetail,
    IndexUnavailableError,
    NewsletterConfig,
    NewsletterError,
    PreconditionFailedError,
    Preconditions,
    StoreError,
    Subscriber,
    SubscriberState,
    SubscriberUpdate,
    ValidateEmailOutput,
)
from src.components.subscribers.ports import ClockPort, SubscriberStorePort

__all__ = [
    # Pure functions
    "validate_email",
    "generate_subscriber_id",
    "new_subscriber",
    "generate_token",
    "token_expiry",
    "is_token_expired",
    "tokens_match",
    "subscriber_state",
    "issue_token_update",
    "validation_update",
    "deactivation_update",
    "preconditions_hold",
    "apply_update",
    # Constants
    "EMAIL_REGEX",
    "MIN_TOKEN_BYTES",
    "INPUT_ERROR_CODES",
    "INVALID_INPUT",
    "INVALID_TOKEN",
    "NOT_FOUND",
    "STORAGE_FAILURE",
    "TOKEN_EXPIRED",
    # Models
    "Subscriber",
    "SubscriberState",
    "SubscriberUpdate",
    "Preconditions",
    "ErrorDetail",
    "ValidateEmailOutput",
    "NewsletterConfig",
    # Errors
    "NewsletterError",
    "StoreError",
    "IndexUnavailableError",
    "PreconditionFailedError",
    # Ports
    "SubscriberStorePort",
    "ClockPort",
]
