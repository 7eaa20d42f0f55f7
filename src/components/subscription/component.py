"""
Subscription component.

Accepts new subscribers, deduplicates by email, persists the record and
publishes a token issuance event.

Key behaviors:
- Duplicate submissions are idempotent successes (nothing written)
- New subscribers start active, unvalidated, without a token
- Queue publish is best-effort: a failure is logged, the record stays
  un-tokenized until issuance is re-triggered

Deduplication goes through the eventually-consistent email index with no
uniqueness constraint, so two concurrent requests for the same address can
both create a record. That race is accepted here.
"""

from __future__ import annotations

import logging
from datetime import datetime

from src.components.subscribers.component import new_subscriber, validate_email
from src.components.subscribers.models import (
    STORAGE_FAILURE,
    ErrorDetail,
    StoreError,
)
from src.components.subscribers.ports import SubscriberStorePort
from src.components.subscription.models import (
    QueuePublishError,
    SubscribeInput,
    SubscribeOutput,
    ValidationMessage,
)
from src.components.subscription.ports import ValidationQueuePort

logger = logging.getLogger(__name__)


def publish_validation(
    queue: ValidationQueuePort,
    email: str,
    subscriber_id: str,
) -> bool:
    """
    Publish a token issuance event, swallowing publish failures.

    Returns:
        True if the queue accepted the message
    """
    try:
        queue.publish(ValidationMessage(email=email, subscriber_id=subscriber_id))
    except QueuePublishError as e:
        logger.warning("Validation message not queued for %s: %s", subscriber_id, e.reason)
        return False
    logger.info("Sent validation message to queue for %s", subscriber_id)
    return True


def run_subscribe(
    inp: SubscribeInput,
    store: SubscriberStorePort,
    queue: ValidationQueuePort,
    *,
    now: datetime | None = None,
) -> SubscribeOutput:
    """
    Handle subscription request (Atomic Handler).
    """
    validation = validate_email(inp.email)
    if not validation.is_valid or validation.email is None:
        return SubscribeOutput(success=False, errors=validation.errors)

    email = validation.email

    # Check existing subscriber
    try:
        existing = store.find_by_email(email)
    except StoreError as e:
        logger.error("Error checking for existing email: %s", e)
        return SubscribeOutput(
            success=False,
            errors=[ErrorDetail(STORAGE_FAILURE, "Failed to subscribe", None)],
        )

    if existing:
        return SubscribeOutput(
            success=True,
            subscriber_id=existing[0].id,
            already_subscribed=True,
        )

    # Create new subscriber
    subscriber = new_subscriber(email, now)
    try:
        store.put(subscriber)
    except StoreError as e:
        logger.error("Error adding subscriber: %s", e)
        return SubscribeOutput(
            success=False,
            errors=[ErrorDetail(STORAGE_FAILURE, "Failed to subscribe", None)],
        )

    queued = publish_validation(queue, email, subscriber.id)

    return SubscribeOutput(
        success=True,
        subscriber_id=subscriber.id,
        queued=queued,
    )


def run(
    inp: SubscribeInput,
    *,
    store: SubscriberStorePort,
    queue: ValidationQueuePort,
    now: datetime | None = None,
) -> SubscribeOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Subscription request
        store: Subscriber store port (Required)
        queue: Validation queue port (Required)
        now: Current time (for testing)

    Returns:
        Subscription result
    """
    return run_subscribe(inp, store, queue, now=now)
