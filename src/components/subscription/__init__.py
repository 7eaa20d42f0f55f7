"""
Subscription component.

Creates pending subscribers and queues token issuance.
"""

from src.components.subscription.component import (
    publish_validation,
    run,
    run_subscribe,
)
from src.components.subscription.models import (
    VALIDATE_EMAIL_ACTION,
    QueuePublishError,
    SubscribeInput,
    SubscribeOutput,
    ValidationMessage,
)
from src.components.subscription.ports import ValidationQueuePort

__all__ = [
    # Component
    "run",
    "run_subscribe",
    "publish_validation",
    # Models
    "VALIDATE_EMAIL_ACTION",
    "ValidationMessage",
    "SubscribeInput",
    "SubscribeOutput",
    # Errors
    "QueuePublishError",
    # Ports
    "ValidationQueuePort",
]
