"""
Confirmation component unit tests.

Covers the pending -> validated promotion, expiry, wrong and replayed
tokens, and storage failures.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.memory_store import InMemorySubscriberStore
from src.components.confirmation import ConfirmInput, run
from src.components.subscribers import Subscriber

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)
TOKEN = "tok-abc-123"


@pytest.fixture
def store() -> InMemorySubscriberStore:
    s = InMemorySubscriberStore()
    s.put(
        Subscriber(
            id="sub-1",
            email="user@example.com",
            validation_token=TOKEN,
            token_expiration=NOW + timedelta(hours=24),
            created_at=NOW,
            updated_at=NOW,
        )
    )
    return s


def confirm(store, subscriber_id="sub-1", token=TOKEN, at=NOW + timedelta(hours=1)):
    return run(ConfirmInput(subscriber_id=subscriber_id, token=token), store=store, now=at)


class TestConfirmSuccess:
    def test_pending_becomes_validated(self, store) -> None:
        result = confirm(store)

        assert result.success is True
        assert result.subscriber_id == "sub-1"
        stored = store.get("sub-1")
        assert stored.validated is True
        assert stored.validation_token is None
        assert stored.token_expiration is None
        assert stored.updated_at == NOW + timedelta(hours=1)
        assert stored.created_at == NOW

    def test_inputs_trimmed(self, store) -> None:
        assert confirm(store, subscriber_id=" sub-1 ", token=f" {TOKEN}\n").success is True


class TestConfirmFailures:
    @pytest.mark.parametrize("subscriber_id,token", [("", TOKEN), ("sub-1", ""), (None, None)])
    def test_missing_input(self, store, subscriber_id, token) -> None:
        result = confirm(store, subscriber_id=subscriber_id, token=token)
        assert result.error_code == "INVALID_INPUT"
        assert result.errors[0].message == "Missing id or token"

    def test_unknown_id(self, store) -> None:
        result = confirm(store, subscriber_id="nope")
        assert result.error_code == "NOT_FOUND"
        assert result.errors[0].message == "Subscriber not found"

    def test_wrong_token(self, store) -> None:
        result = confirm(store, token="wrong")
        assert result.error_code == "INVALID_TOKEN"
        assert store.get("sub-1").validated is False

    def test_expired_token(self, store) -> None:
        result = confirm(store, at=NOW + timedelta(hours=25))

        assert result.error_code == "TOKEN_EXPIRED"
        assert result.errors[0].message == "Validation token has expired"
        stored = store.get("sub-1")
        assert stored.validated is False
        assert stored.validation_token == TOKEN

    def test_expired_boundary(self, store) -> None:
        assert confirm(store, at=NOW + timedelta(hours=24)).error_code == "TOKEN_EXPIRED"

    def test_wrong_and_expired_is_invalid(self, store) -> None:
        result = confirm(store, token="wrong", at=NOW + timedelta(hours=30))
        assert result.error_code == "INVALID_TOKEN"

    def test_replay_after_success(self, store) -> None:
        """Tokens are single use."""
        assert confirm(store).success is True
        result = confirm(store)
        assert result.error_code == "INVALID_TOKEN"

    def test_awaiting_token_subscriber(self, store) -> None:
        store.put(Subscriber(id="sub-2", email="new@example.com", created_at=NOW, updated_at=NOW))
        assert confirm(store, subscriber_id="sub-2").error_code == "INVALID_TOKEN"


class TestConfirmStorage:
    def test_read_failure(self, store) -> None:
        store.failing_operations = {"get"}
        result = confirm(store)
        assert result.error_code == "STORAGE_FAILURE"
        assert result.errors[0].message == "Failed to retrieve subscriber information"

    def test_write_failure(self, store) -> None:
        store.failing_operations = {"conditional_update"}
        result = confirm(store)
        assert result.error_code == "STORAGE_FAILURE"
        assert result.errors[0].message == "Failed to validate email"
        assert store.get("sub-1").validated is False

    def test_token_replaced_between_read_and_write(self, store) -> None:
        """A concurrent reissue makes the conditional write lose."""
        original_update = store.conditional_update

        def reissue_then_update(subscriber_id, update, expected):
            store.items[subscriber_id]["validation_token"] = "reissued"
            return original_update(subscriber_id, update, expected)

        store.conditional_update = reissue_then_update  # type: ignore[method-assign]

        result = confirm(store)
        assert result.error_code == "INVALID_TOKEN"
        assert store.get("sub-1").validated is False
