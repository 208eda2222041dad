"""Request validation utilities."""

import base64
import binascii
import json
from typing import Any, TypeVar

from aws_lambda_powertools import Logger
from pydantic import BaseModel, ValidationError

from core.utils.constants import MAX_REQUEST_FILE_SIZE, format_file_size
from core.utils.response import ResponseBuilder

logger = Logger(UTC=True)

ModelT = TypeVar("ModelT", bound=BaseModel)


def sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Sanitize Pydantic validation errors for API responses.

    Removes sensitive/internal fields like:
    - url
    - ctx
    - input
    - internal exception details
    """
    sanitized: list[dict[str, str]] = []

    for err in errors:
        field = ".".join(str(x) for x in err.get("loc", [])) or "body"
        raw_msg = err.get("msg", "Invalid value")

        # Remove noisy prefixes
        msg = raw_msg.replace("Value error,", "").strip()

        # Friendly rewrites for common cases
        msg_lower = msg.lower()
        if "base64" in msg_lower:
            msg = "File must be a valid Base64-encoded string"
        elif "field required" in msg_lower:
            msg = "This field is required"
        elif msg_lower.startswith("input should be a valid"):
            msg = "Invalid value type"

        sanitized.append({"field": field, "message": msg})

    return sanitized


def parse_json_body(event: dict[str, Any]) -> dict[str, Any]:
    """Decode the JSON object carried in an API Gateway proxy event.

    Raises:
        ValueError: If the body is not a JSON object
    """
    try:
        body = json.loads(event.get("body") or "{}")
    except json.JSONDecodeError as exc:
        raise ValueError("Invalid JSON body") from exc

    if not isinstance(body, dict):
        raise ValueError("Invalid JSON body: expected an object")

    return body


def validate_request(
    model: type[ModelT],
    data: dict[str, Any],
    *,
    request_id: str | None = None,
    cors_origin: str | None = None,
) -> tuple[bool, ModelT | dict[str, Any]]:
    """Validate request data against a Pydantic model.

    Args:
        model: Pydantic model class
        data: Input data to validate
        request_id: Optional request ID for tracing
        cors_origin: Optional CORS origin

    Returns:
        (True, validated_model) on success
        (False, error_response) on validation failure
    """
    try:
        validated = model(**data)
        return True, validated

    except ValidationError as exc:
        sanitized_errors = sanitize_validation_errors(exc.errors())
        return (
            False,
            ResponseBuilder.validation_error(
                message="Invalid request payload",
                details=sanitized_errors,
                request_id=request_id,
                cors_origin=cors_origin,
            ),
        )


def decode_base64_payload(value: str, *, max_size: int = MAX_REQUEST_FILE_SIZE) -> bytes:
    """Decode a base64 payload, enforcing the request size guard.

    Raises:
        ValueError: If the payload is empty, malformed or too large
    """
    if not value or not value.strip():
        raise ValueError("file must not be empty")

    try:
        data = base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        logger.error("File validation error: invalid base64")
        raise ValueError("Invalid base64 encoded file") from exc

    if not data:
        raise ValueError("Decoded file is empty")

    if len(data) > max_size:
        logger.error("File size validation error: request exceeds limit")
        raise ValueError(f"File size exceeds {format_file_size(max_size)} request limit")

    return data
