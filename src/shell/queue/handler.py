"""
Validation queue consumer.

Drives the token issuer from queue deliveries, either as an SQS-triggered
Lambda (`lambda_handler`) or by draining the in-memory dev queue
(`drain_queue`).

Key behaviors:
- Each record is processed independently; one failure never blocks the batch
- Only storage failures are reported back for redelivery
- Malformed, unknown and already-validated messages are consumed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from src.adapters.memory_queue import InMemoryValidationQueue
from src.components.subscribers.models import NewsletterConfig
from src.components.subscribers.ports import SubscriberStorePort
from src.components.token_issuer import IssueOutcome, IssueTokenOutput, run_process_message
from src.components.token_issuer.ports import ConfirmationMailerPort

logger = logging.getLogger(__name__)


@dataclass
class DrainSummary:
    """Counts of outcomes from one drain run."""

    processed: int = 0
    retained: int = 0
    outcomes: dict[IssueOutcome, int] = field(default_factory=dict)

    def record(self, result: IssueTokenOutput) -> None:
        self.processed += 1
        self.outcomes[result.outcome] = self.outcomes.get(result.outcome, 0) + 1


def handle_sqs_event(
    event: dict[str, Any],
    context: Any = None,
    *,
    store: SubscriberStorePort,
    mailer: ConfirmationMailerPort | None = None,
    config: NewsletterConfig | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """
    Process an SQS event batch.

    Returns a partial batch response listing the message ids that should
    be redelivered.
    """
    records = event.get("Records") or []
    logger.info("Received %d validation message(s)", len(records))

    failures = []
    for record in records:
        message_id = record.get("messageId", "")
        body = record.get("body", "")
        result = run_process_message(
            body,
            store,
            mailer=mailer,
            config=config,
            now=now or datetime.now(UTC),
        )
        if result.outcome.retriable:
            logger.error("Message %s failed and will be retried", message_id)
            failures.append({"itemIdentifier": message_id})
        else:
            logger.info("Message %s finished: %s", message_id, result.outcome.value)

    return {"batchItemFailures": failures}


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """AWS Lambda entry point wired from rules.yaml and the environment."""
    from src.api.deps import get_mailer, get_newsletter_config, get_store

    logging.basicConfig(level=logging.INFO)
    return handle_sqs_event(
        event,
        context,
        store=get_store(),
        mailer=get_mailer(),
        config=get_newsletter_config(),
    )


def drain_queue(
    queue: InMemoryValidationQueue,
    store: SubscriberStorePort,
    *,
    mailer: ConfirmationMailerPort | None = None,
    config: NewsletterConfig | None = None,
    now: datetime | None = None,
    batch_size: int = 10,
    max_batches: int = 100,
) -> DrainSummary:
    """
    Process pending in-memory queue messages.

    Messages with a non-retriable outcome are acknowledged. Storage
    failures stay queued and are not received again in the same run, so
    only a later drain retries them.
    """
    summary = DrainSummary()
    failed: set[str] = set()
    for _ in range(max_batches):
        batch = queue.receive(batch_size, skip_ids=failed)
        if not batch:
            break

        for queued in batch:
            result = run_process_message(
                queued.body,
                store,
                mailer=mailer,
                config=config,
                now=now or datetime.now(UTC),
            )
            summary.record(result)
            if result.outcome.retriable:
                failed.add(queued.message_id)
            else:
                queue.ack(queued.message_id)

    if failed:
        logger.warning("%d message(s) could not be processed; leaving queued", len(failed))

    summary.retained = queue.pending_count
    return summary
