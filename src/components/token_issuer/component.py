"""
Token issuer component.

Consumes "new subscription" events and attaches a fresh confirmation token
to the subscriber, then hands the confirmation link to the mailer.

Key behaviors:
- Cryptographic tokens (secrets.token_urlsafe)
- Expiry exactly `token_ttl_hours` after issuance (24h default)
- Reissuance overwrites any earlier token, so redelivery is safe
- Validated and deactivated subscribers are never re-tokenized
- Malformed messages and unknown subscribers are logged and dropped
- Mail delivery failures are logged, not retried
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from urllib.parse import urlencode

from src.components.subscribers.component import (
    generate_token,
    issue_token_update,
    token_expiry,
)
from src.components.subscribers.models import (
    NewsletterConfig,
    PreconditionFailedError,
    StoreError,
)
from src.components.subscribers.ports import SubscriberStorePort
from src.components.subscription.models import VALIDATE_EMAIL_ACTION, ValidationMessage
from src.components.token_issuer.models import (
    IssueOutcome,
    IssueTokenInput,
    IssueTokenOutput,
    MalformedMessageError,
)
from src.components.token_issuer.ports import ConfirmationMailerPort

logger = logging.getLogger(__name__)


def parse_validation_message(body: str) -> ValidationMessage:
    """
    Parse a queue message body.

    Raises:
        MalformedMessageError: Body is not JSON, has the wrong action, or
            lacks a non-empty email/subscriber_id
    """
    try:
        data = json.loads(body)
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"invalid JSON ({e})") from e

    if not isinstance(data, dict):
        raise MalformedMessageError("body is not a JSON object")

    action = data.get("action")
    if action != VALIDATE_EMAIL_ACTION:
        raise MalformedMessageError(f"unexpected action {action!r}")

    email = data.get("email")
    subscriber_id = data.get("subscriber_id")
    if not isinstance(email, str) or not email:
        raise MalformedMessageError("missing email")
    if not isinstance(subscriber_id, str) or not subscriber_id:
        raise MalformedMessageError("missing subscriber_id")

    return ValidationMessage(email=email, subscriber_id=subscriber_id, action=action)


def build_confirmation_url(
    base_url: str,
    subscriber_id: str,
    token: str,
    path: str = "/validate",
) -> str:
    """
    Build the confirmation URL for email.

    Args:
        base_url: Frontend base URL
        subscriber_id: Subscriber ID
        token: Confirmation token
        path: URL path for the confirmation page

    Returns:
        Full confirmation URL
    """
    base = base_url.rstrip("/")
    query = urlencode({"id": subscriber_id, "token": token})
    return f"{base}{path}?{query}"


def _classify_precondition_failure(
    store: SubscriberStorePort,
    subscriber_id: str,
) -> IssueOutcome:
    try:
        current = store.get(subscriber_id)
    except StoreError as e:
        logger.error("Error re-reading subscriber %s: %s", subscriber_id, e)
        return IssueOutcome.STORAGE_FAILURE
    if current is None:
        return IssueOutcome.NOT_FOUND
    if current.validated:
        return IssueOutcome.SKIPPED_VALIDATED
    return IssueOutcome.SKIPPED_INACTIVE


def run_issue_token(
    inp: IssueTokenInput,
    store: SubscriberStorePort,
    *,
    mailer: ConfirmationMailerPort | None = None,
    config: NewsletterConfig | None = None,
    now: datetime | None = None,
) -> IssueTokenOutput:
    """
    Issue a confirmation token for one subscriber (Atomic Handler).
    """
    cfg = config or NewsletterConfig()
    if now is None:
        now = datetime.now(UTC)

    subscriber_id = inp.message.subscriber_id
    token = generate_token(cfg.token_bytes)
    expiration = token_expiry(now, cfg.token_ttl_hours)
    update, expected = issue_token_update(token, expiration, now)

    try:
        subscriber = store.conditional_update(subscriber_id, update, expected)
    except PreconditionFailedError:
        outcome = _classify_precondition_failure(store, subscriber_id)
        if outcome is IssueOutcome.NOT_FOUND:
            logger.warning("Dropping validation message: subscriber %s not found", subscriber_id)
        elif outcome is IssueOutcome.SKIPPED_VALIDATED:
            logger.info("Subscriber %s already validated, no token issued", subscriber_id)
        elif outcome is IssueOutcome.SKIPPED_INACTIVE:
            logger.info("Subscriber %s is inactive, no token issued", subscriber_id)
        return IssueTokenOutput(outcome=outcome, subscriber_id=subscriber_id)
    except StoreError as e:
        logger.error("Error storing validation token for %s: %s", subscriber_id, e)
        return IssueTokenOutput(
            outcome=IssueOutcome.STORAGE_FAILURE,
            subscriber_id=subscriber_id,
            error=str(e),
        )

    if subscriber.email != inp.message.email:
        logger.warning(
            "Message email does not match subscriber %s; using stored address",
            subscriber_id,
        )

    url = build_confirmation_url(
        cfg.frontend_url,
        subscriber_id,
        token,
        cfg.confirmation_path,
    )

    delivered = False
    if mailer:
        delivered = mailer.send_confirmation_email(subscriber.email, url, cfg.site_name)
        if not delivered:
            logger.warning("Confirmation email for %s was not delivered", subscriber_id)

    return IssueTokenOutput(
        outcome=IssueOutcome.ISSUED,
        subscriber_id=subscriber_id,
        confirmation_url=url,
        expires_at=expiration,
        delivered=delivered,
    )


def run_process_message(
    body: str,
    store: SubscriberStorePort,
    *,
    mailer: ConfirmationMailerPort | None = None,
    config: NewsletterConfig | None = None,
    now: datetime | None = None,
) -> IssueTokenOutput:
    """
    Parse a raw queue body and issue a token for it.

    Malformed bodies are logged and reported as MALFORMED (dropped).
    """
    try:
        message = parse_validation_message(body)
    except MalformedMessageError as e:
        logger.warning("Error parsing validation message: %s", e.reason)
        return IssueTokenOutput(outcome=IssueOutcome.MALFORMED, error=e.reason)

    logger.info("Processing validation for subscriber %s", message.subscriber_id)
    return run_issue_token(
        IssueTokenInput(message=message),
        store,
        mailer=mailer,
        config=config,
        now=now,
    )


def run(
    inp: IssueTokenInput | str,
    *,
    store: SubscriberStorePort,
    mailer: ConfirmationMailerPort | None = None,
    config: NewsletterConfig | None = None,
    now: datetime | None = None,
) -> IssueTokenOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Parsed input, or a raw queue message body
        store: Subscriber store port (Required)
        mailer: Confirmation mailer port (Optional)
        config: Configuration (Optional)
        now: Current time (for testing)

    Returns:
        Issuance result
    """
    if isinstance(inp, IssueTokenInput):
        return run_issue_token(inp, store, mailer=mailer, config=config, now=now)
    elif isinstance(inp, str):
        return run_process_message(inp, store, mailer=mailer, config=config, now=now)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
