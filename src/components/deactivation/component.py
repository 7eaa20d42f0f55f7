"""
Deactivation component.

Looks a subscriber up by email and flips it to inactive.

Only the first match is deactivated. Duplicate records created by the
subscription dedup race stay as they are; the count is reported on the
output and logged.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from src.components.deactivation.models import UnsubscribeInput, UnsubscribeOutput
from src.components.subscribers.component import deactivation_update, validate_email
from src.components.subscribers.models import (
    NOT_FOUND,
    STORAGE_FAILURE,
    ErrorDetail,
    PreconditionFailedError,
    StoreError,
)
from src.components.subscribers.ports import SubscriberStorePort

logger = logging.getLogger(__name__)


def run_unsubscribe(
    inp: UnsubscribeInput,
    store: SubscriberStorePort,
    *,
    now: datetime | None = None,
) -> UnsubscribeOutput:
    """
    Handle unsubscribe request (Atomic Handler).
    """
    validation = validate_email(inp.email)
    if not validation.is_valid or validation.email is None:
        return UnsubscribeOutput(success=False, errors=validation.errors)

    try:
        matches = store.find_by_email(validation.email)
    except StoreError as e:
        logger.error("Error querying subscribers by email: %s", e)
        return UnsubscribeOutput(
            success=False,
            errors=[ErrorDetail(STORAGE_FAILURE, "Error processing unsubscribe request", None)],
        )

    if not matches:
        return UnsubscribeOutput(
            success=False,
            errors=[ErrorDetail(NOT_FOUND, "Email not found in subscribers", "email")],
        )

    subscriber = matches[0]
    duplicates = len(matches) - 1
    if duplicates:
        logger.warning(
            "%d duplicate subscriber record(s) share the address of %s; only it is deactivated",
            duplicates,
            subscriber.id,
        )

    if now is None:
        now = datetime.now(UTC)

    update, expected = deactivation_update(now)
    try:
        store.conditional_update(subscriber.id, update, expected)
    except PreconditionFailedError:
        return UnsubscribeOutput(
            success=False,
            errors=[ErrorDetail(NOT_FOUND, "Subscriber not found", "email")],
        )
    except StoreError as e:
        logger.error("Error updating subscriber %s: %s", subscriber.id, e)
        return UnsubscribeOutput(
            success=False,
            errors=[ErrorDetail(STORAGE_FAILURE, "Failed to unsubscribe", None)],
        )

    return UnsubscribeOutput(
        success=True,
        subscriber_id=subscriber.id,
        already_inactive=not subscriber.active,
        duplicates_skipped=duplicates,
    )


def run(
    inp: UnsubscribeInput,
    *,
    store: SubscriberStorePort,
    now: datetime | None = None,
) -> UnsubscribeOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Email to deactivate
        store: Subscriber store port (Required)
        now: Current time (for testing)

    Returns:
        Deactivation result
    """
    return run_unsubscribe(inp, store, now=now)
