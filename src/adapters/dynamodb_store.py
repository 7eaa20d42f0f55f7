"""
DynamoDB subscriber store (SubscriberStorePort implementation).

Subscribers live in one table keyed by `id` with a global secondary index
on `email`. GSI reads are eventually consistent; when the index cannot be
queried (still backfilling, throttled, missing) lookups fall back to a
filtered scan of the whole table.

Key behaviors:
- Bounded connect/read timeouts and retry attempts via botocore Config
- Every botocore failure surfaces as StoreError
- Conditional updates map to UpdateItem + ConditionExpression;
  ConditionalCheckFailedException surfaces as PreconditionFailedError
"""

from __future__ import annotations

import logging
from typing import Any

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.components.subscribers.models import (
    FIELD_EMAIL,
    FIELD_ID,
    IndexUnavailableError,
    PreconditionFailedError,
    Preconditions,
    StoreError,
    Subscriber,
    SubscriberUpdate,
    serialize_value,
)

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def build_update_expression(
    update: SubscriberUpdate,
    expected: Preconditions,
) -> dict[str, Any]:
    """
    Build UpdateItem keyword arguments for an update and its preconditions.

    Attribute names are always aliased, so reserved words are safe.
    """
    names: dict[str, str] = {}
    values: dict[str, Any] = {}

    set_parts = []
    for i, (name, value) in enumerate(update.set_fields.items()):
        names[f"#s{i}"] = name
        values[f":s{i}"] = serialize_value(value)
        set_parts.append(f"#s{i} = :s{i}")

    remove_parts = []
    for i, name in enumerate(update.remove_fields):
        names[f"#r{i}"] = name
        remove_parts.append(f"#r{i}")

    clauses = []
    if set_parts:
        clauses.append("SET " + ", ".join(set_parts))
    if remove_parts:
        clauses.append("REMOVE " + ", ".join(remove_parts))
    if not clauses:
        raise ValueError("Update has no fields to set or remove")

    conditions = []
    if expected.must_exist:
        names["#pk"] = FIELD_ID
        conditions.append("attribute_exists(#pk)")
    for i, (name, value) in enumerate(expected.equals.items()):
        names[f"#c{i}"] = name
        values[f":c{i}"] = serialize_value(value)
        conditions.append(f"#c{i} = :c{i}")

    kwargs: dict[str, Any] = {
        "UpdateExpression": " ".join(clauses),
        "ExpressionAttributeNames": names,
    }
    if values:
        kwargs["ExpressionAttributeValues"] = values
    if conditions:
        kwargs["ConditionExpression"] = " AND ".join(conditions)
    return kwargs


class DynamoDBSubscriberStore:
    """
    Subscriber store backed by a DynamoDB table.

    Implements SubscriberStorePort protocol. The table resource is created
    once per process and shared across requests.
    """

    def __init__(self, table: Any, email_index_name: str = "email-index") -> None:
        self._table = table
        self._email_index_name = email_index_name

    def put(self, subscriber: Subscriber) -> None:
        try:
            self._table.put_item(Item=subscriber.to_item())
        except (ClientError, BotoCoreError) as e:
            raise StoreError("put", str(e)) from e

    def get(self, subscriber_id: str) -> Subscriber | None:
        try:
            response = self._table.get_item(Key={FIELD_ID: subscriber_id})
        except (ClientError, BotoCoreError) as e:
            raise StoreError("get", str(e)) from e

        item = response.get("Item")
        if not item:
            return None
        return self._to_subscriber(item)

    def find_by_email(self, email: str) -> list[Subscriber]:
        try:
            items = self._query_index(email)
        except IndexUnavailableError as e:
            logger.warning("Email index query failed, falling back to scan: %s", e)
            items = self._scan_by_email(email)
        return [self._to_subscriber(item) for item in items]

    def conditional_update(
        self,
        subscriber_id: str,
        update: SubscriberUpdate,
        expected: Preconditions,
    ) -> Subscriber:
        kwargs = build_update_expression(update, expected)
        try:
            response = self._table.update_item(
                Key={FIELD_ID: subscriber_id},
                ReturnValues="ALL_NEW",
                **kwargs,
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == CONDITIONAL_CHECK_FAILED:
                raise PreconditionFailedError(subscriber_id) from e
            raise StoreError("conditional_update", str(e)) from e
        except BotoCoreError as e:
            raise StoreError("conditional_update", str(e)) from e

        return self._to_subscriber(response["Attributes"])

    # --- Reads ---

    def _query_index(self, email: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {
            "IndexName": self._email_index_name,
            "KeyConditionExpression": Key(FIELD_EMAIL).eq(email),
        }
        try:
            while True:
                response = self._table.query(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise IndexUnavailableError(str(e)) from e

    def _scan_by_email(self, email: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {"FilterExpression": Attr(FIELD_EMAIL).eq(email)}
        try:
            while True:
                response = self._table.scan(**kwargs)
                items.extend(response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise StoreError("scan", str(e)) from e

    @staticmethod
    def _to_subscriber(item: dict[str, Any]) -> Subscriber:
        try:
            return Subscriber.from_item(item)
        except ValueError as e:
            raise StoreError("decode", str(e)) from e


# --- Factory Function ---


def create_dynamodb_store(
    table_name: str,
    email_index_name: str = "email-index",
    region: str = "us-east-1",
    connect_timeout: float = 2.0,
    read_timeout: float = 5.0,
    max_attempts: int = 1,
) -> DynamoDBSubscriberStore:
    """
    Create a DynamoDB subscriber store with bounded timeouts.

    Args:
        table_name: Subscribers table
        email_index_name: Email GSI name
        region: AWS region
        connect_timeout: Seconds to wait for a connection
        read_timeout: Seconds to wait for a response
        max_attempts: Total attempts per call (1 = no client-side retry)

    Returns:
        Configured DynamoDBSubscriberStore
    """
    config = Config(
        region_name=region,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"max_attempts": max_attempts, "mode": "standard"},
    )
    dynamodb = boto3.resource("dynamodb", config=config)
    return DynamoDBSubscriberStore(dynamodb.Table(table_name), email_index_name)
