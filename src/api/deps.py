import os
from collections.abc import Callable
from functools import lru_cache, partial
from pathlib import Path
from typing import Any

from src.adapters.clock import SystemClock
from src.adapters.dev_email import DevEmailAdapter
from src.adapters.dynamodb_store import create_dynamodb_store
from src.adapters.mailer import ConfirmationMailer
from src.adapters.memory_queue import InMemoryValidationQueue
from src.adapters.memory_store import InMemorySubscriberStore
from src.adapters.sqs_queue import create_sqs_queue
from src.components.subscribers.models import NewsletterConfig
from src.components.subscribers.ports import ClockPort, SubscriberStorePort
from src.components.subscription.ports import ValidationQueuePort
from src.components.token_issuer.ports import ConfirmationMailerPort
from src.rules.loader import load_rules
from src.rules.models import Rules
from src.shell.queue.handler import DrainSummary, drain_queue


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(
            os.environ.get("NEWSLETTER_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        # Environment overrides for rules.yaml
        self.store_backend = os.environ.get("STORE_BACKEND")
        self.queue_backend = os.environ.get("QUEUE_BACKEND")
        self.table_name = os.environ.get("SUBSCRIBERS_TABLE")
        self.queue_url = os.environ.get("VALIDATION_QUEUE_URL")
        self.region = os.environ.get("AWS_REGION")
        self.frontend_url = os.environ.get("FRONTEND_URL")


@lru_cache
def get_settings() -> Settings:
    return Settings()


def apply_settings(rules: Rules, settings: Settings) -> Rules:
    """Overlay environment settings onto loaded rules (re-validated)."""
    data: dict[str, Any] = rules.model_dump()
    overrides = {
        ("storage", "backend"): settings.store_backend,
        ("storage", "table_name"): settings.table_name,
        ("storage", "region"): settings.region,
        ("queue", "backend"): settings.queue_backend,
        ("queue", "queue_url"): settings.queue_url,
        ("newsletter", "frontend_url"): settings.frontend_url,
    }
    for (section, key), value in overrides.items():
        if value:
            data[section][key] = value
    return Rules.model_validate(data)


# --- Rules ---
@lru_cache
def get_rules() -> Rules:
    settings = get_settings()
    return apply_settings(load_rules(settings.rules_path), settings)


def get_newsletter_config() -> NewsletterConfig:
    """Component configuration built from rules."""
    return NewsletterConfig(**get_rules().newsletter.model_dump())


# --- Process-wide clients (created once, shared by all requests) ---
@lru_cache
def get_store() -> SubscriberStorePort:
    rules = get_rules()
    if rules.storage.backend == "dynamodb":
        return create_dynamodb_store(
            table_name=rules.storage.table_name,
            email_index_name=rules.storage.email_index_name,
            region=rules.storage.region,
            connect_timeout=rules.timeouts.connect_seconds,
            read_timeout=rules.timeouts.read_seconds,
            max_attempts=rules.timeouts.max_attempts,
        )
    return InMemorySubscriberStore()


@lru_cache
def get_queue() -> ValidationQueuePort:
    rules = get_rules()
    if rules.queue.backend == "sqs":
        return create_sqs_queue(
            queue_url=rules.queue.queue_url,
            region=rules.storage.region,
            connect_timeout=rules.timeouts.connect_seconds,
            read_timeout=rules.timeouts.read_seconds,
            max_attempts=rules.timeouts.max_attempts,
        )
    return InMemoryValidationQueue()


@lru_cache
def get_email_adapter() -> DevEmailAdapter:
    return DevEmailAdapter()


@lru_cache
def get_mailer() -> ConfirmationMailerPort:
    return ConfirmationMailer(
        get_email_adapter(),
        token_ttl_hours=get_rules().newsletter.token_ttl_hours,
    )


@lru_cache
def get_clock() -> ClockPort:
    return SystemClock()


def get_queue_drainer() -> Callable[[], DrainSummary] | None:
    """
    In-process consumer for the in-memory queue.

    None when a managed queue (SQS) delivers messages to the Lambda handler.
    """
    queue = get_queue()
    if not isinstance(queue, InMemoryValidationQueue):
        return None
    return partial(
        drain_queue,
        queue,
        get_store(),
        mailer=get_mailer(),
        config=get_newsletter_config(),
    )
