"""
Unit tests for the DynamoDB store and SQS queue adapters.

The boto3 table and client are replaced with MagicMocks; tests assert on
the request shapes and on error translation.
"""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.adapters.dynamodb_store import (
    DynamoDBSubscriberStore,
    build_update_expression,
    create_dynamodb_store,
)
from src.adapters.sqs_queue import SQSValidationQueue, create_sqs_queue
from src.components.subscribers import (
    IndexUnavailableError,
    PreconditionFailedError,
    Preconditions,
    StoreError,
    Subscriber,
    SubscriberUpdate,
    issue_token_update,
    validation_update,
)
from src.components.subscription import QueuePublishError, ValidationMessage

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=UTC)


def client_error(code: str, operation: str = "UpdateItem") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


def item(sid: str = "sub-1", email: str = "user@example.com", **extra) -> dict:
    base = {
        "id": sid,
        "email": email,
        "active": True,
        "validated": False,
        "created_at": "2025-03-01T12:00:00+00:00",
        "updated_at": "2025-03-01T12:00:00+00:00",
    }
    base.update(extra)
    return base


@pytest.fixture
def table() -> MagicMock:
    return MagicMock()


@pytest.fixture
def store(table) -> DynamoDBSubscriberStore:
    return DynamoDBSubscriberStore(table, "email-index")


# --- Expression building ---


class TestBuildUpdateExpression:
    def test_issue_token(self) -> None:
        expiration = NOW + timedelta(hours=24)
        update, expected = issue_token_update("tok", expiration, NOW)

        kwargs = build_update_expression(update, expected)

        assert kwargs["UpdateExpression"] == "SET #s0 = :s0, #s1 = :s1, #s2 = :s2"
        assert kwargs["ExpressionAttributeNames"]["#s0"] == "validation_token"
        assert kwargs["ExpressionAttributeValues"][":s1"] == "2025-03-02T12:00:00+00:00"
        assert kwargs["ConditionExpression"] == "attribute_exists(#pk) AND #c0 = :c0"
        assert kwargs["ExpressionAttributeNames"]["#c0"] == "validated"
        assert kwargs["ExpressionAttributeValues"][":c0"] is False

    def test_validation_removes_token_fields(self) -> None:
        update, expected = validation_update("tok", NOW)

        kwargs = build_update_expression(update, expected)

        assert "REMOVE #r0, #r1" in kwargs["UpdateExpression"]
        names = kwargs["ExpressionAttributeNames"]
        assert {names["#r0"], names["#r1"]} == {"validation_token", "token_expiration"}

    def test_empty_update_rejected(self) -> None:
        with pytest.raises(ValueError):
            build_update_expression(SubscriberUpdate(), Preconditions())


# --- Store ---


class TestDynamoDBStore:
    def test_put_writes_item(self, store, table) -> None:
        store.put(Subscriber(id="sub-1", email="user@example.com", created_at=NOW, updated_at=NOW))
        table.put_item.assert_called_once_with(Item=item())

    def test_get(self, store, table) -> None:
        table.get_item.return_value = {"Item": item()}
        assert store.get("sub-1").email == "user@example.com"
        table.get_item.assert_called_once_with(Key={"id": "sub-1"})

    def test_get_missing(self, store, table) -> None:
        table.get_item.return_value = {}
        assert store.get("sub-1") is None

    def test_get_failure(self, store, table) -> None:
        table.get_item.side_effect = EndpointConnectionError(endpoint_url="http://x")
        with pytest.raises(StoreError):
            store.get("sub-1")

    def test_malformed_item_is_store_error(self, store, table) -> None:
        table.get_item.return_value = {"Item": {"id": "sub-1"}}
        with pytest.raises(StoreError):
            store.get("sub-1")

    def test_find_by_email_paginates(self, store, table) -> None:
        table.query.side_effect = [
            {"Items": [item("a")], "LastEvaluatedKey": {"id": "a"}},
            {"Items": [item("b")]},
        ]

        result = store.find_by_email("user@example.com")

        assert [s.id for s in result] == ["a", "b"]
        assert table.query.call_args_list[0].kwargs["IndexName"] == "email-index"
        assert table.query.call_args_list[1].kwargs["ExclusiveStartKey"] == {"id": "a"}

    def test_find_by_email_scan_fallback(self, store, table) -> None:
        table.query.side_effect = client_error("ResourceNotFoundException", "Query")
        table.scan.return_value = {"Items": [item()]}

        result = store.find_by_email("user@example.com")

        assert [s.id for s in result] == ["sub-1"]
        table.scan.assert_called_once()

    def test_scan_failure(self, store, table) -> None:
        table.query.side_effect = client_error("ResourceNotFoundException", "Query")
        table.scan.side_effect = client_error("ProvisionedThroughputExceededException", "Scan")
        with pytest.raises(StoreError) as exc_info:
            store.find_by_email("user@example.com")
        assert not isinstance(exc_info.value, IndexUnavailableError)

    def test_conditional_update(self, store, table) -> None:
        table.update_item.return_value = {"Attributes": item(validation_token="tok")}
        update, expected = issue_token_update("tok", NOW, NOW)

        result = store.conditional_update("sub-1", update, expected)

        assert result.validation_token == "tok"
        kwargs = table.update_item.call_args.kwargs
        assert kwargs["Key"] == {"id": "sub-1"}
        assert kwargs["ReturnValues"] == "ALL_NEW"
        assert "ConditionExpression" in kwargs

    def test_condition_failure(self, store, table) -> None:
        table.update_item.side_effect = client_error("ConditionalCheckFailedException")
        update, expected = issue_token_update("tok", NOW, NOW)
        with pytest.raises(PreconditionFailedError):
            store.conditional_update("sub-1", update, expected)

    def test_other_update_failure(self, store, table) -> None:
        table.update_item.side_effect = client_error("InternalServerError")
        update, expected = issue_token_update("tok", NOW, NOW)
        with pytest.raises(StoreError):
            store.conditional_update("sub-1", update, expected)

    def test_factory_uses_table(self) -> None:
        with patch("src.adapters.dynamodb_store.boto3") as boto3_mock:
            store = create_dynamodb_store("subs", region="eu-west-1")
        boto3_mock.resource.assert_called_once()
        boto3_mock.resource.return_value.Table.assert_called_once_with("subs")
        assert isinstance(store, DynamoDBSubscriberStore)


# --- Queue ---


class TestSQSQueue:
    def test_publish(self) -> None:
        client = MagicMock()
        client.send_message.return_value = {"MessageId": "m-1"}
        queue = SQSValidationQueue(client, "https://sqs.example/queue")

        queue.publish(ValidationMessage(email="a@b.co", subscriber_id="s1"))

        kwargs = client.send_message.call_args.kwargs
        assert kwargs["QueueUrl"] == "https://sqs.example/queue"
        assert json.loads(kwargs["MessageBody"]) == {
            "action": "validate_email",
            "email": "a@b.co",
            "subscriber_id": "s1",
        }

    def test_publish_failure(self) -> None:
        client = MagicMock()
        client.send_message.side_effect = client_error("AWS.SimpleQueueService.NonExistentQueue")
        queue = SQSValidationQueue(client, "https://sqs.example/queue")

        with pytest.raises(QueuePublishError) as exc_info:
            queue.publish(ValidationMessage(email="a@b.co", subscriber_id="s1"))
        assert exc_info.value.subscriber_id == "s1"

    def test_factory(self) -> None:
        with patch("src.adapters.sqs_queue.boto3") as boto3_mock:
            queue = create_sqs_queue("https://sqs.example/queue")
        boto3_mock.client.assert_called_once()
        assert queue.queue_url == "https://sqs.example/queue"
