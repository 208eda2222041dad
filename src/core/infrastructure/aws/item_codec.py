"""Conversion between JSON-mode model dumps and DynamoDB items.

boto3's resource layer rejects Python floats and returns every number as
`Decimal`; these helpers keep that detail out of the repositories.
"""

from decimal import Decimal
from typing import Any


def to_dynamodb_item(value: Any) -> Any:
    """Floats become Decimals and None values are dropped."""
    if isinstance(value, dict):
        return {k: to_dynamodb_item(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [to_dynamodb_item(v) for v in value]
    if isinstance(value, float):
        return Decimal(str(value))
    return value


def from_dynamodb_item(value: Any) -> Any:
    """Decimals become int when integral, float otherwise."""
    if isinstance(value, dict):
        return {k: from_dynamodb_item(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_item(v) for v in value]
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value
