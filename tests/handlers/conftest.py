import base64
import json
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest

from core.pipeline.factory import build_ingestion_pipeline
from core.pipeline.rate_limiter import InMemorySlidingWindowRateLimiter


def _authorized(event: dict[str, Any], principal: str | None) -> dict[str, Any]:
    if principal is not None:
        event["requestContext"] = {"authorizer": {"principalId": principal}}
    return event


@pytest.fixture
def upload_event() -> Callable[..., dict[str, Any]]:
    """
    Builder for single-shot upload events.

    Usage:
        event = upload_event(image_bytes, filename="me.png", mime_type="image/png")
    """

    def _build(
        data: bytes,
        *,
        filename: str = "portrait.png",
        mime_type: str = "image/png",
        principal: str | None = "user_1",
    ) -> dict[str, Any]:
        event = {
            "httpMethod": "POST",
            "path": "/images",
            "body": json.dumps(
                {
                    "file": base64.b64encode(data).decode(),
                    "filename": filename,
                    "mimeType": mime_type,
                }
            ),
        }
        return _authorized(event, principal)

    return _build


@pytest.fixture
def chunk_event() -> Callable[..., dict[str, Any]]:
    """Builder for chunked upload events."""

    def _build(
        chunk: bytes,
        *,
        chunk_index: int,
        total_chunks: int,
        session_id: str | None = None,
        filename: str = "portrait.png",
        mime_type: str = "image/png",
        principal: str | None = "user_1",
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "filename": filename,
            "mimeType": mime_type,
            "totalChunks": total_chunks,
            "chunkIndex": chunk_index,
            "chunkData": base64.b64encode(chunk).decode(),
        }
        if session_id is not None:
            body["sessionId"] = session_id

        event = {"httpMethod": "POST", "path": "/images/chunks", "body": json.dumps(body)}
        return _authorized(event, principal)

    return _build


@pytest.fixture
def list_images_event() -> dict[str, Any]:
    return _authorized(
        {
            "httpMethod": "GET",
            "path": "/images",
            "queryStringParameters": {"page": "1", "limit": "20"},
        },
        "user_1",
    )


@pytest.fixture
def delete_image_event() -> Callable[[str], dict[str, Any]]:
    def _build(image_id: str) -> dict[str, Any]:
        return _authorized(
            {
                "httpMethod": "DELETE",
                "path": f"/images/{image_id}",
                "pathParameters": {"image_id": image_id},
            },
            "user_1",
        )

    return _build


@pytest.fixture
def face_detection(monkeypatch, face_detector) -> SimpleNamespace:
    """
    Route the upload pipelines through a scripted face detector.

    Usage:
        face_detection.detector = face_detector_factory([])
    """
    state = SimpleNamespace(detector=face_detector)

    def _build(**kwargs: Any):
        return build_ingestion_pipeline(detector=state.detector, **kwargs)

    for module in ("handlers.upload_image.service", "handlers.chunked_upload.service"):
        monkeypatch.setattr(f"{module}.build_ingestion_pipeline", _build)

    return state


@pytest.fixture(autouse=True)
def fresh_container_state(monkeypatch) -> None:
    """Each test starts with empty rate limiters."""
    monkeypatch.setattr(
        "handlers.upload_image.handler.rate_limiter", InMemorySlidingWindowRateLimiter()
    )
    monkeypatch.setattr(
        "handlers.chunked_upload.handler.rate_limiter", InMemorySlidingWindowRateLimiter()
    )
