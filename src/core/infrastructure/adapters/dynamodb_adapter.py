"""Thin DynamoDB adapter wrapping boto3 table operations."""

import os
from typing import Any, Protocol, cast

import boto3
from boto3.dynamodb.types import TypeSerializer

from core.utils.constants import (
    ENV_AWS_ENDPOINT_URL,
    ENV_AWS_REGION,
    ENV_IMAGE_METADATA_TABLE_NAME,
)


class DynamoDBTable(Protocol):
    """Minimal DynamoDB Table protocol."""

    def put_item(self, *, Item: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def get_item(self, *, Key: dict[str, Any], **kwargs: Any) -> dict[str, Any]: ...
    def update_item(self, **kwargs: Any) -> dict[str, Any]: ...
    def delete_item(self, *, Key: dict[str, Any]) -> dict[str, Any]: ...
    def query(self, **kwargs: Any) -> dict[str, Any]: ...
    def load(self) -> None: ...

    @property
    def name(self) -> str: ...


class DynamoDBAdapterProtocol(Protocol):
    """Repository-facing DynamoDB adapter protocol."""

    def put_item(
        self, *, item: dict[str, Any], condition_expression: str | None = None
    ) -> dict[str, Any]: ...
    def get_item(self, *, key: dict[str, Any], consistent_read: bool = False) -> dict[str, Any]: ...
    def update_item(self, **kwargs: Any) -> dict[str, Any]: ...
    def delete_item(self, *, key: dict[str, Any]) -> dict[str, Any]: ...
    def query(self, **kwargs: Any) -> dict[str, Any]: ...
    def transact_write(self, *, actions: list[dict[str, Any]]) -> dict[str, Any]: ...
    def describe(self) -> None: ...


class DynamoDBAdapter:
    """Low-level DynamoDB operations (mechanical, no error handling).

    This adapter:
    - Wraps boto3 DynamoDB resource
    - Does NOT handle errors (lets them bubble up)
    - Domain implementations catch and translate errors
    """

    def __init__(self, table_env_var: str = ENV_IMAGE_METADATA_TABLE_NAME) -> None:
        """Initialize the DynamoDB table named by `table_env_var`."""
        table_name = os.getenv(table_env_var)
        if not table_name:
            raise RuntimeError(f"{table_env_var} environment variable is not set")

        dynamodb = boto3.resource(
            "dynamodb",
            endpoint_url=os.getenv(ENV_AWS_ENDPOINT_URL),
            region_name=os.getenv(ENV_AWS_REGION),
        )

        self.table: DynamoDBTable = cast(
            DynamoDBTable,
            dynamodb.Table(table_name),
        )
        self._client = dynamodb.meta.client
        self._serializer = TypeSerializer()

    def put_item(
        self,
        *,
        item: dict[str, Any],
        condition_expression: str | None = None,
    ) -> dict[str, Any]:
        """Insert item into DynamoDB.

        Raises boto3 exceptions - caught by domain implementation.
        """
        kwargs: dict[str, Any] = {"Item": item}

        if condition_expression:
            kwargs["ConditionExpression"] = condition_expression

        return self.table.put_item(**kwargs)

    def get_item(self, *, key: dict[str, Any], consistent_read: bool = False) -> dict[str, Any]:
        """Retrieve item by key.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.get_item(Key=key, ConsistentRead=consistent_read)

    def update_item(self, **kwargs: Any) -> dict[str, Any]:
        """Apply an update expression.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.update_item(**kwargs)

    def delete_item(self, *, key: dict[str, Any]) -> dict[str, Any]:
        """Delete item by key.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.delete_item(Key=key)

    def query(self, **kwargs: Any) -> dict[str, Any]:
        """Execute DynamoDB query.

        Raises boto3 exceptions - caught by domain implementation.
        """
        return self.table.query(**kwargs)

    def transact_write(self, *, actions: list[dict[str, Any]]) -> dict[str, Any]:
        """Apply several writes to this table atomically.

        Each action is a single-key dict such as
        `{"Put": {"Item": {...}, "ConditionExpression": "..."}}` or
        `{"Delete": {"Key": {...}}}` holding plain Python values.

        Raises boto3 exceptions - caught by domain implementation.
        """
        transact_items: list[dict[str, Any]] = []
        for action in actions:
            for operation, params in action.items():
                request = {**params, "TableName": self.table.name}
                for field in ("Item", "Key"):
                    if field in request:
                        request[field] = {
                            name: self._serializer.serialize(value)
                            for name, value in request[field].items()
                        }
                transact_items.append({operation: request})

        return self._client.transact_write_items(TransactItems=transact_items)

    def describe(self) -> None:
        """Load table description (reachability probe).

        Raises boto3 exceptions - caught by domain implementation.
        """
        self.table.load()
