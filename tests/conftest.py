"""
Pytest configuration and fixtures for photo-intake tests.
Provides AWS mocking, DynamoDB and S3 fixtures with proper cleanup, plus
synthetic image builders and a scriptable face detector.
"""

import os

os.environ.setdefault("AWS_REGION", "us-east-1")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")
os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_SECURITY_TOKEN", "testing")
os.environ.setdefault("AWS_SESSION_TOKEN", "testing")
os.environ.setdefault("IMAGE_S3_BUCKET_NAME", "photo-intake-test-bucket")
os.environ.setdefault("IMAGE_METADATA_TABLE_NAME", "photo-intake-images")
os.environ.setdefault("UPLOAD_SESSION_TABLE_NAME", "photo-intake-upload-sessions")
os.environ.setdefault("POWERTOOLS_TRACE_DISABLED", "1")
os.environ.setdefault("POWERTOOLS_METRICS_NAMESPACE", "PhotoIntakeTest")
os.environ.setdefault("POWERTOOLS_SERVICE_NAME", "photo-intake-test")

from collections.abc import Callable
from io import BytesIO
from threading import Lock
from types import SimpleNamespace
from typing import Any

import boto3
import numpy as np
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws
from PIL import Image, ImageFilter

from core.models.errors import (
    DuplicateImageError,
    DynamoDBError,
    ImageDeletionFailedError,
    ImageUploadFailedError,
    ProcessingError,
    UploadSessionError,
)
from core.models.image import ImageRecord
from core.models.upload_session import UploadSession, UploadStatus
from core.models.validation import FaceBox, ValidationMetadata
from core.pipeline.factory import build_ingestion_pipeline
from core.repositories.face_detector import FaceDetector
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository
from core.repositories.upload_session_repository import UploadSessionRepository
from core.utils.settings import PipelineSettings


@pytest.fixture(scope="function")
def aws_mock():
    with mock_aws():
        yield


@pytest.fixture(scope="function")
def dynamodb_resource(aws_mock):
    return boto3.resource("dynamodb", region_name=os.getenv("AWS_REGION"))


def _create_metadata_table(dynamodb_resource):
    """Helper to create the image metadata table with its GSIs."""
    return dynamodb_resource.create_table(
        TableName=os.getenv("IMAGE_METADATA_TABLE_NAME"),
        BillingMode="PAY_PER_REQUEST",
        KeySchema=[{"AttributeName": "image_id", "KeyType": "HASH"}],
        AttributeDefinitions=[
            {"AttributeName": "image_id", "AttributeType": "S"},
            {"AttributeName": "file_hash", "AttributeType": "S"},
            {"AttributeName": "status", "AttributeType": "S"},
            {"AttributeName": "created_at", "AttributeType": "S"},
        ],
        GlobalSecondaryIndexes=[
            {
                "IndexName": "file-hash-index",
                "KeySchema": [{"AttributeName": "file_hash", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "KEYS_ONLY"},
            },
            {
                "IndexName": "status-created-index",
                "KeySchema": [
                    {"AttributeName": "status", "KeyType": "HASH"},
                    {"AttributeName": "created_at", "KeyType": "RANGE"},
                ],
                "Projection": {"ProjectionType": "ALL"},
            },
        ],
    )


def _create_session_table(dynamodb_resource):
    """Helper to create the upload session table."""
    return dynamodb_resource.create_table(
        TableName=os.getenv("UPLOAD_SESSION_TABLE_NAME"),
        BillingMode="PAY_PER_REQUEST",
        KeySchema=[{"AttributeName": "session_id", "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": "session_id", "AttributeType": "S"}],
    )


def _load_or_create(dynamodb_resource, table_name, create):
    try:
        table = dynamodb_resource.Table(table_name)
        table.load()
    except ClientError:
        table = create(dynamodb_resource)
        table.wait_until_exists()
    return table


@pytest.fixture(scope="function")
def dynamodb_table(dynamodb_resource):
    """
    Image metadata table for testing.

    moto discards the table when the mock context exits.
    """
    return _load_or_create(
        dynamodb_resource, os.getenv("IMAGE_METADATA_TABLE_NAME"), _create_metadata_table
    )


@pytest.fixture(scope="function")
def session_table(dynamodb_resource):
    """Upload session table for testing."""
    return _load_or_create(
        dynamodb_resource, os.getenv("UPLOAD_SESSION_TABLE_NAME"), _create_session_table
    )


@pytest.fixture
def dynamodb_get_item(dynamodb_table) -> Callable[[str], dict[str, Any] | None]:
    """
    Helper to get a single image record from DynamoDB.

    Usage:
        item = dynamodb_get_item("img_123")
    """

    def _get(image_id: str) -> dict[str, Any] | None:
        response: dict[str, Any] = dynamodb_table.get_item(Key={"image_id": image_id})
        return response.get("Item")

    return _get


@pytest.fixture(scope="function")
def s3_client(aws_mock):
    """S3 client for bucket operations."""
    return boto3.client("s3", region_name=os.getenv("AWS_REGION"))


@pytest.fixture(scope="function")
def s3_bucket(s3_client):
    """Create the image bucket for testing."""
    bucket_name = os.getenv("IMAGE_S3_BUCKET_NAME")

    try:
        s3_client.head_bucket(Bucket=bucket_name)
    except ClientError:
        s3_client.create_bucket(Bucket=bucket_name)

    return s3_client


@pytest.fixture
def s3_put_object(s3_bucket) -> Callable[[str, bytes, str], dict[str, Any]]:
    """
    Helper to upload an object to S3.

    Usage:
        response = s3_put_object("images/123-photo.jpg", image_bytes, "image/jpeg")
    """

    def _put(key: str, body: bytes, content_type: str = "application/octet-stream"):
        return s3_bucket.put_object(
            Bucket=os.getenv("IMAGE_S3_BUCKET_NAME"),
            Key=key,
            Body=body,
            ContentType=content_type,
        )

    return _put


@pytest.fixture
def s3_get_object(s3_bucket) -> Callable[[str], bytes]:
    """
    Helper to get an object from S3.

    Usage:
        content = s3_get_object("images/123-photo.jpg")
    """

    def _get(key: str) -> bytes:
        response: dict[str, Any] = s3_bucket.get_object(
            Bucket=os.getenv("IMAGE_S3_BUCKET_NAME"),
            Key=key,
        )
        data: bytes = response["Body"].read()
        return data

    return _get


@pytest.fixture
def s3_object_keys(s3_bucket) -> Callable[[], list[str]]:
    """Helper listing every key in the image bucket."""

    def _keys() -> list[str]:
        response = s3_bucket.list_objects_v2(Bucket=os.getenv("IMAGE_S3_BUCKET_NAME"))
        return [obj["Key"] for obj in response.get("Contents", [])]

    return _keys


# ---------------------------------------------------------------------------
# Synthetic images
# ---------------------------------------------------------------------------


def make_image(
    width: int,
    height: int,
    *,
    fmt: str = "PNG",
    seed: int = 7,
    blur_radius: float | None = None,
    exif: bytes | None = None,
) -> bytes:
    """Encode a random-noise RGB image; noise is sharp enough to pass blur checks."""
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)
    image = Image.fromarray(pixels)

    if blur_radius:
        image = image.filter(ImageFilter.GaussianBlur(radius=blur_radius))

    output = BytesIO()
    if exif:
        image.save(output, format=fmt, exif=exif)
    else:
        image.save(output, format=fmt)
    return output.getvalue()


def make_flat_image(width: int, height: int, *, fmt: str = "PNG") -> bytes:
    """Single-colour image; its blur score is zero."""
    output = BytesIO()
    Image.new("RGB", (width, height), color=(120, 120, 120)).save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def image_factory() -> Callable[..., bytes]:
    return make_image


@pytest.fixture
def flat_image_factory() -> Callable[..., bytes]:
    return make_flat_image


@pytest.fixture
def portrait_png() -> bytes:
    return make_image(1200, 800)


class FakeFaceDetector(FaceDetector):
    """Returns scripted faces; optionally fails like an unavailable service."""

    def __init__(self, boxes: list[FaceBox] | None = None, *, fail: bool = False) -> None:
        self.boxes = boxes if boxes is not None else [FaceBox(width=0.5, height=0.5)]
        self.fail = fail
        self.calls = 0

    def detect_faces(self, *, image_bytes: bytes) -> list[FaceBox]:
        self.calls += 1
        if self.fail:
            raise ProcessingError(message="Face detection unavailable: throttled")
        return list(self.boxes)


@pytest.fixture
def face_detector() -> FakeFaceDetector:
    return FakeFaceDetector()


@pytest.fixture
def face_detector_factory() -> type[FakeFaceDetector]:
    return FakeFaceDetector


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def make_record(
    image_id: str = "img_" + "a" * 32,
    *,
    file_hash: str = "f" * 64,
    created_at: str = "2026-01-01T00:00:00+00:00",
    owner_id: str | None = "user_1",
) -> ImageRecord:
    stored = f"1767225600000-0a1b2c3d-{image_id}.jpg"
    return ImageRecord(
        image_id=image_id,
        filename=stored,
        original_name="portrait.jpg",
        mime_type="image/jpeg",
        file_size=2048,
        width=1200,
        height=800,
        s3_key=f"images/{stored}",
        file_hash=file_hash,
        owner_id=owner_id,
        quality=ValidationMetadata(
            width=1200, height=800, size=2048, format="jpeg", blur_score=512.25, face_count=1
        ),
        created_at=created_at,
    )


@pytest.fixture
def record_factory() -> Callable[..., ImageRecord]:
    return make_record


# ---------------------------------------------------------------------------
# In-memory repositories
# ---------------------------------------------------------------------------


class InMemoryStorage(ImageStorageRepository):
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_upload = False
        self.fail_delete = False
        self.reachable = True

    def upload_image(self, *, key: str, file_data: bytes, mime_type: str) -> str:
        if self.fail_upload:
            raise ImageUploadFailedError(message="Unable to upload image at this time")
        self.objects[key] = (file_data, mime_type)
        return key

    def generate_download_url(self, *, key: str, expires_in: int) -> str:
        return f"https://photos.example.test/{key}?expires={expires_in}"

    def remove_image(self, *, key: str) -> None:
        if self.fail_delete:
            raise ImageDeletionFailedError(message="Unable to delete image at this time")
        self.objects.pop(key, None)

    def is_reachable(self) -> bool:
        return self.reachable


class InMemoryMetadata(ImageMetadataRepository):
    def __init__(self) -> None:
        self.records: dict[str, ImageRecord] = {}
        self.list_limits: list[int | None] = []
        self.fail_create = False
        self.fail_duplicate_check = False
        self.reachable = True
        self._lock = Lock()

    def create_metadata(self, *, record: ImageRecord) -> None:
        """Conditional write: both the id and the content hash must be new."""
        if self.fail_create:
            raise DynamoDBError(message="Unable to save image metadata at this time")
        with self._lock:
            if record.image_id in self.records:
                raise DuplicateImageError(message="This image already exists")
            if any(r.file_hash == record.file_hash for r in self.records.values()):
                raise DuplicateImageError(
                    message="Duplicate image detected", details={"file_hash": record.file_hash}
                )
            self.records[record.image_id] = record

    def fetch_metadata(self, *, image_id: str) -> ImageRecord | None:
        return self.records.get(image_id)

    def remove_metadata(self, *, image_id: str) -> None:
        self.records.pop(image_id, None)

    def list_images(self, *, status: str, limit: int | None = None) -> list[ImageRecord]:
        self.list_limits.append(limit)
        matching = [r for r in self.records.values() if r.status == status]
        ordered = sorted(matching, key=lambda r: r.created_at, reverse=True)
        return ordered if limit is None else ordered[:limit]

    def count_images(self, *, status: str) -> int:
        return sum(1 for r in self.records.values() if r.status == status)

    def check_duplicate_image(self, *, file_hash: str) -> bool:
        if self.fail_duplicate_check:
            raise DynamoDBError(message="Unable to verify duplicate image")
        return any(r.file_hash == file_hash for r in self.records.values())

    def is_reachable(self) -> bool:
        return self.reachable


class InMemorySessions(UploadSessionRepository):
    """Session table double with the same conditional-write semantics."""

    def __init__(self) -> None:
        self.sessions: dict[str, UploadSession] = {}
        self.received: dict[str, set[int]] = {}
        self._lock = Lock()

    def create_session(self, *, session: UploadSession) -> None:
        with self._lock:
            if session.session_id in self.sessions:
                raise UploadSessionError(message="Upload session already exists")
            self.sessions[session.session_id] = session

    def fetch_session(self, *, session_id: str) -> UploadSession | None:
        with self._lock:
            return self.sessions.get(session_id)

    def record_chunk(self, *, session_id: str, chunk_index: int) -> int:
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None or not session.status.accepts_chunks:
                raise UploadSessionError(
                    message="Upload session is already closed",
                    error_code="UPLOAD_SESSION_CLOSED",
                )
            received = self.received.setdefault(session_id, set())
            received.add(chunk_index)
            self.sessions[session_id] = session.model_copy(
                update={"uploaded_chunks": len(received), "status": UploadStatus.UPLOADING}
            )
            return len(received)

    def claim_completion(self, *, session_id: str) -> bool:
        return self._move(
            session_id,
            allowed=(UploadStatus.PENDING, UploadStatus.UPLOADING),
            status=UploadStatus.ASSEMBLING,
        )

    def mark_completed(self, *, session_id: str, storage_key: str, image_id: str) -> bool:
        return self._move(
            session_id,
            allowed=(UploadStatus.ASSEMBLING,),
            status=UploadStatus.COMPLETED,
            storage_key=storage_key,
            image_id=image_id,
        )

    def mark_failed(self, *, session_id: str, reason: str) -> bool:
        return self._move(
            session_id,
            allowed=(UploadStatus.PENDING, UploadStatus.UPLOADING, UploadStatus.ASSEMBLING),
            status=UploadStatus.FAILED,
            failure_reason=reason,
        )

    def _move(self, session_id: str, *, allowed: tuple[UploadStatus, ...], **update: Any) -> bool:
        with self._lock:
            session = self.sessions.get(session_id)
            if session is None or session.status not in allowed:
                return False
            self.sessions[session_id] = session.model_copy(update=update)
            return True


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def metadata() -> InMemoryMetadata:
    return InMemoryMetadata()


@pytest.fixture
def sessions() -> InMemorySessions:
    return InMemorySessions()


@pytest.fixture
def pipeline_factory(storage, metadata, face_detector):
    """
    Build an ingestion pipeline over the in-memory repositories.

    Usage:
        pipeline = pipeline_factory(detector=FakeFaceDetector(fail=True))
    """

    def _build(*, detector=None, settings: PipelineSettings | None = None):
        return build_ingestion_pipeline(
            settings=settings or PipelineSettings(),
            storage=storage,
            metadata=metadata,
            detector=detector or face_detector,
        )

    return _build


@pytest.fixture
def lambda_context() -> SimpleNamespace:
    return SimpleNamespace(
        aws_request_id="test-request-id",
        function_name="test-function",
        memory_limit_in_mb=256,
        invoked_function_arn="arn:aws:lambda:us-east-1:000000000000:function:test",
        log_group_name="/aws/lambda/test-function",
        log_stream_name="2024/01/01/[$LATEST]test",
    )
