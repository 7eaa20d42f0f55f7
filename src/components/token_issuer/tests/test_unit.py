"""
Token issuer component unit tests.

Covers message parsing, token attachment, reissue on redelivery, the
validated guard, dropped messages and mail delivery reporting.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta
from urllib.parse import parse_qs, urlparse

import pytest

from src.adapters.memory_store import InMemorySubscriberStore
from src.components.subscribers import NewsletterConfig, Subscriber, new_subscriber
from src.components.subscription import ValidationMessage
from src.components.token_issuer import (
    IssueOutcome,
    IssueTokenInput,
    MalformedMessageError,
    build_confirmation_url,
    parse_validation_message,
    run,
)

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


class MockMailer:
    """Records confirmation emails instead of sending them."""

    def __init__(self, accept: bool = True) -> None:
        self.accept = accept
        self.sent: list[dict[str, str]] = []

    def send_confirmation_email(
        self,
        recipient_email: str,
        confirmation_url: str,
        site_name: str,
    ) -> bool:
        self.sent.append({
            "recipient": recipient_email,
            "url": confirmation_url,
            "site_name": site_name,
        })
        return self.accept


@pytest.fixture
def store() -> InMemorySubscriberStore:
    return InMemorySubscriberStore()


@pytest.fixture
def mailer() -> MockMailer:
    return MockMailer()


@pytest.fixture
def config() -> NewsletterConfig:
    return NewsletterConfig(frontend_url="https://news.example.com", site_name="Test Site")


@pytest.fixture
def subscriber(store: InMemorySubscriberStore) -> Subscriber:
    s = new_subscriber("user@example.com", NOW)
    store.put(s)
    return s


def message_for(s: Subscriber) -> IssueTokenInput:
    return IssueTokenInput(message=ValidationMessage(email=s.email, subscriber_id=s.id))


# --- Parsing ---


class TestParseMessage:
    def test_valid_message(self) -> None:
        body = json.dumps({"action": "validate_email", "email": "a@b.co", "subscriber_id": "s1"})
        message = parse_validation_message(body)
        assert message.email == "a@b.co"
        assert message.subscriber_id == "s1"

    @pytest.mark.parametrize(
        "body",
        [
            "not json",
            "[1, 2]",
            json.dumps({"action": "other", "email": "a@b.co", "subscriber_id": "s1"}),
            json.dumps({"action": "validate_email", "subscriber_id": "s1"}),
            json.dumps({"action": "validate_email", "email": "a@b.co", "subscriber_id": ""}),
        ],
    )
    def test_malformed_rejected(self, body: str) -> None:
        with pytest.raises(MalformedMessageError):
            parse_validation_message(body)


class TestConfirmationUrl:
    def test_url_carries_id_and_token(self) -> None:
        url = build_confirmation_url("https://news.example.com/", "sub-1", "tok_-abc")
        parsed = urlparse(url)
        assert parsed.netloc == "news.example.com"
        assert parsed.path == "/validate"
        assert parse_qs(parsed.query) == {"id": ["sub-1"], "token": ["tok_-abc"]}


# --- Issuance ---


class TestIssueToken:
    def test_token_attached(self, store, subscriber, mailer, config) -> None:
        result = run(message_for(subscriber), store=store, mailer=mailer, config=config, now=NOW)

        assert result.outcome is IssueOutcome.ISSUED
        assert result.success is True
        stored = store.get(subscriber.id)
        assert stored.validation_token is not None
        assert stored.token_expiration == NOW + timedelta(hours=24)
        assert stored.updated_at == NOW
        assert stored.created_at == subscriber.created_at
        assert result.expires_at == stored.token_expiration

    def test_link_sent_to_stored_address(self, store, subscriber, mailer, config) -> None:
        result = run(message_for(subscriber), store=store, mailer=mailer, config=config, now=NOW)

        assert result.delivered is True
        assert len(mailer.sent) == 1
        assert mailer.sent[0]["recipient"] == "user@example.com"
        assert mailer.sent[0]["site_name"] == "Test Site"
        query = parse_qs(urlparse(mailer.sent[0]["url"]).query)
        assert query["id"] == [subscriber.id]
        assert query["token"] == [store.get(subscriber.id).validation_token]

    def test_message_email_mismatch_uses_stored(self, store, subscriber, mailer) -> None:
        inp = IssueTokenInput(
            message=ValidationMessage(email="other@example.com", subscriber_id=subscriber.id)
        )
        run(inp, store=store, mailer=mailer, now=NOW)
        assert mailer.sent[0]["recipient"] == "user@example.com"

    def test_redelivery_reissues(self, store, subscriber, mailer) -> None:
        """Each delivery overwrites the token; the earlier link stops working."""
        run(message_for(subscriber), store=store, mailer=mailer, now=NOW)
        first = store.get(subscriber.id).validation_token

        later = NOW + timedelta(hours=2)
        run(message_for(subscriber), store=store, mailer=mailer, now=later)
        stored = store.get(subscriber.id)

        assert stored.validation_token != first
        assert stored.token_expiration == later + timedelta(hours=24)
        assert len(mailer.sent) == 2

    def test_custom_ttl(self, store, subscriber) -> None:
        config = NewsletterConfig(token_ttl_hours=2)
        run(message_for(subscriber), store=store, config=config, now=NOW)
        assert store.get(subscriber.id).token_expiration == NOW + timedelta(hours=2)

    def test_without_mailer_not_delivered(self, store, subscriber) -> None:
        result = run(message_for(subscriber), store=store, now=NOW)
        assert result.outcome is IssueOutcome.ISSUED
        assert result.delivered is False

    def test_mail_failure_reported_not_retried(self, store, subscriber) -> None:
        result = run(message_for(subscriber), store=store, mailer=MockMailer(accept=False), now=NOW)
        assert result.outcome is IssueOutcome.ISSUED
        assert result.delivered is False
        assert result.outcome.retriable is False


class TestGuards:
    def test_validated_subscriber_not_retokenized(self, store, mailer) -> None:
        validated = Subscriber(
            id="sub-v", email="v@example.com", validated=True, created_at=NOW, updated_at=NOW
        )
        store.put(validated)

        result = run(message_for(validated), store=store, mailer=mailer, now=NOW)

        assert result.outcome is IssueOutcome.SKIPPED_VALIDATED
        assert result.success is True
        assert store.get("sub-v").validation_token is None
        assert mailer.sent == []

    def test_unsubscribed_before_issuance_not_mailed(self, store, mailer) -> None:
        inactive = Subscriber(
            id="sub-i", email="i@example.com", active=False, created_at=NOW, updated_at=NOW
        )
        store.put(inactive)

        result = run(message_for(inactive), store=store, mailer=mailer, now=NOW)

        assert result.outcome is IssueOutcome.SKIPPED_INACTIVE
        assert result.outcome.retriable is False
        assert store.get("sub-i").validation_token is None
        assert mailer.sent == []

    def test_unknown_subscriber_dropped(self, store, mailer) -> None:
        """No partial record is created for a deleted or unknown id."""
        inp = IssueTokenInput(message=ValidationMessage(email="a@b.co", subscriber_id="missing"))

        result = run(inp, store=store, mailer=mailer, now=NOW)

        assert result.outcome is IssueOutcome.NOT_FOUND
        assert result.outcome.retriable is False
        assert store.count == 0
        assert mailer.sent == []

    def test_malformed_body_dropped(self, store, mailer) -> None:
        result = run("{broken", store=store, mailer=mailer, now=NOW)
        assert result.outcome is IssueOutcome.MALFORMED
        assert result.outcome.retriable is False

    def test_raw_body_processed(self, store, subscriber, mailer) -> None:
        body = ValidationMessage(email=subscriber.email, subscriber_id=subscriber.id).to_body()
        result = run(body, store=store, mailer=mailer, now=NOW)
        assert result.outcome is IssueOutcome.ISSUED


class TestStorageFailures:
    def test_update_failure_is_retriable(self, store, subscriber, mailer) -> None:
        store.failing_operations = {"conditional_update"}

        result = run(message_for(subscriber), store=store, mailer=mailer, now=NOW)

        assert result.outcome is IssueOutcome.STORAGE_FAILURE
        assert result.outcome.retriable is True
        assert mailer.sent == []

    def test_unknown_input_type_rejected(self, store) -> None:
        with pytest.raises(ValueError):
            run(42, store=store)  # type: ignore[arg-type]
