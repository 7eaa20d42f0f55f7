"""
Confirmation component.

Validates a presented (id, token) pair and promotes the subscriber to
validated.

State machine:
- pending + matching, unexpired token -> validated (token cleared)
- unknown id -> NOT_FOUND
- matching but expired token -> TOKEN_EXPIRED (stays pending, no reissue)
- wrong token, or no token on record -> INVALID_TOKEN

The promotion is one conditional write guarded by `validation_token =
<supplied token>`: of several concurrent confirmations with the same token,
exactly one succeeds and the others see INVALID_TOKEN. Tokens are single
use, so replaying a consumed token is INVALID_TOKEN as well.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from src.components.confirmation.models import ConfirmInput, ConfirmOutput
from src.components.subscribers.component import (
    is_token_expired,
    tokens_match,
    validation_update,
)
from src.components.subscribers.models import (
    INVALID_INPUT,
    INVALID_TOKEN,
    NOT_FOUND,
    STORAGE_FAILURE,
    TOKEN_EXPIRED,
    ErrorDetail,
    PreconditionFailedError,
    StoreError,
)
from src.components.subscribers.ports import SubscriberStorePort

logger = logging.getLogger(__name__)


def _failure(code: str, message: str, field: str | None = None) -> ConfirmOutput:
    return ConfirmOutput(success=False, errors=[ErrorDetail(code, message, field)])


def run_confirm(
    inp: ConfirmInput,
    store: SubscriberStorePort,
    *,
    now: datetime | None = None,
) -> ConfirmOutput:
    """
    Handle confirmation request (Atomic Handler).
    """
    subscriber_id = (inp.subscriber_id or "").strip()
    token = (inp.token or "").strip()
    if not subscriber_id or not token:
        return _failure(INVALID_INPUT, "Missing id or token")

    try:
        subscriber = store.get(subscriber_id)
    except StoreError as e:
        logger.error("Error getting subscriber %s: %s", subscriber_id, e)
        return _failure(STORAGE_FAILURE, "Failed to retrieve subscriber information")

    if subscriber is None:
        return _failure(NOT_FOUND, "Subscriber not found")

    if not tokens_match(subscriber.validation_token, token):
        return _failure(INVALID_TOKEN, "Invalid validation token")

    if now is None:
        now = datetime.now(UTC)

    if is_token_expired(subscriber, now):
        return _failure(TOKEN_EXPIRED, "Validation token has expired")

    update, expected = validation_update(token, now)
    try:
        store.conditional_update(subscriber_id, update, expected)
    except PreconditionFailedError:
        # Token consumed or replaced between the read and the write
        logger.info("Token for subscriber %s no longer current", subscriber_id)
        return _failure(INVALID_TOKEN, "Invalid validation token")
    except StoreError as e:
        logger.error("Error updating validation status for %s: %s", subscriber_id, e)
        return _failure(STORAGE_FAILURE, "Failed to validate email")

    return ConfirmOutput(success=True, subscriber_id=subscriber_id)


def run(
    inp: ConfirmInput,
    *,
    store: SubscriberStorePort,
    now: datetime | None = None,
) -> ConfirmOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Subscriber id and presented token
        store: Subscriber store port (Required)
        now: Current time (for testing)

    Returns:
        Confirmation result
    """
    return run_confirm(inp, store, now=now)
