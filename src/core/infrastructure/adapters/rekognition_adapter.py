"""Thin adapter for Amazon Rekognition face detection."""

import os
from typing import Any, Protocol

import boto3

from core.utils.constants import ENV_AWS_ENDPOINT_URL, ENV_AWS_REGION


class RekognitionAdapterProtocol(Protocol):
    """Repository-facing Rekognition adapter protocol."""

    def detect_faces(self, *, image_bytes: bytes) -> dict[str, Any]: ...


class RekognitionAdapter:
    """Low-level Rekognition operations (mechanical, no error handling)."""

    def __init__(self) -> None:
        self._client = boto3.client(
            "rekognition",
            endpoint_url=os.getenv(ENV_AWS_ENDPOINT_URL),
            region_name=os.getenv(ENV_AWS_REGION),
        )

    def detect_faces(self, *, image_bytes: bytes) -> dict[str, Any]:
        """Run DetectFaces on raw bytes.
        Raises boto3 exceptions - caught by domain implementation.
        """
        response: dict[str, Any] = self._client.detect_faces(
            Image={"Bytes": image_bytes},
            Attributes=["DEFAULT"],
        )
        return response
