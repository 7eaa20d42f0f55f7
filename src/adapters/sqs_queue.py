"""
SQS validation queue (ValidationQueuePort implementation).

Publishes token issuance events to a standard (at-least-once, unordered)
SQS queue. The client is created once per process.
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.components.subscription.models import QueuePublishError, ValidationMessage

logger = logging.getLogger(__name__)


class SQSValidationQueue:
    """
    Validation queue backed by Amazon SQS.

    Implements ValidationQueuePort protocol.
    """

    def __init__(self, client: Any, queue_url: str) -> None:
        self._client = client
        self._queue_url = queue_url

    @property
    def queue_url(self) -> str:
        return self._queue_url

    def publish(self, message: ValidationMessage) -> None:
        try:
            response = self._client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=message.to_body(),
            )
        except (ClientError, BotoCoreError) as e:
            raise QueuePublishError(message.subscriber_id, str(e)) from e

        logger.debug("SQS accepted message %s", response.get("MessageId"))


# --- Factory Function ---


def create_sqs_queue(
    queue_url: str,
    region: str = "us-east-1",
    connect_timeout: float = 2.0,
    read_timeout: float = 5.0,
    max_attempts: int = 1,
) -> SQSValidationQueue:
    """
    Create an SQS validation queue with bounded timeouts.

    Args:
        queue_url: Target queue URL
        region: AWS region
        connect_timeout: Seconds to wait for a connection
        read_timeout: Seconds to wait for a response
        max_attempts: Total attempts per call (1 = no client-side retry)

    Returns:
        Configured SQSValidationQueue
    """
    config = Config(
        region_name=region,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "standard"},
    )
    return SQSValidationQueue(boto3.client("sqs", config=config), queue_url)
