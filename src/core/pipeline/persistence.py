"""Persistence gateway: blob write, then metadata write.

Blob and metadata stores share no transaction. Two orphan windows exist:
a blob whose metadata write failed and could not be cleaned up, and a blob
whose metadata was deleted before the blob delete failed. Both are logged at
ERROR with the storage key for an external reconciliation sweep.
"""

import uuid

from aws_lambda_powertools import Logger

from core.models.errors import (
    DuplicateImageError,
    ImageDeletionFailedError,
    MetadataOperationFailedError,
    NotFoundError,
)
from core.models.image import ImageRecord, ImageSummary
from core.models.validation import ValidationResult
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository
from core.utils.constants import (
    ERROR_CODE_IMAGE_NOT_FOUND,
    ERROR_CODE_METADATA_CREATE_FAILED,
    IMAGE_STATUS_VALIDATED,
)
from core.utils.filenames import build_storage_key, build_stored_filename
from core.utils.time import epoch_millis, utc_now

logger = Logger(UTC=True)


class PersistenceGateway:
    """Writes accepted images and removes deleted ones."""

    def __init__(
        self,
        *,
        storage: ImageStorageRepository,
        metadata: ImageMetadataRepository,
    ) -> None:
        self.storage = storage
        self.metadata = metadata

    @staticmethod
    def generate_image_id() -> str:
        """Generate a unique image identifier."""
        return f"img_{uuid.uuid4().hex}"

    def persist(
        self,
        *,
        data: bytes,
        mime_type: str,
        original_name: str,
        result: ValidationResult,
        owner_id: str | None = None,
        stored_name: str | None = None,
    ) -> ImageRecord:
        """Store an accepted image and its record.

        `stored_name` seeds the stored filename when it should differ from
        `original_name`, e.g. after a HEIC upload was re-encoded as JPEG.

        Raises:
            ValueError: If `result` is not a passing verdict
            ImageUploadFailedError: If the blob write fails
            DuplicateImageError: If another record claimed the same content hash
            MetadataOperationFailedError: If the metadata write fails
        """
        if not result.is_valid:
            raise ValueError("Only validated images can be persisted")

        now = utc_now()
        stored_filename = build_stored_filename(
            stored_name or original_name, timestamp_ms=epoch_millis(now)
        )
        key = build_storage_key(stored_filename)
        image_id = self.generate_image_id()

        self.storage.upload_image(key=key, file_data=data, mime_type=mime_type)

        record = ImageRecord(
            image_id=image_id,
            filename=stored_filename,
            original_name=original_name,
            mime_type=mime_type,
            file_size=len(data),
            width=result.metadata.width,
            height=result.metadata.height,
            s3_key=key,
            file_hash=result.metadata.content_hash or "",
            status=IMAGE_STATUS_VALIDATED,
            owner_id=owner_id,
            quality=result.metadata,
            created_at=now.isoformat(),
        )

        try:
            self.metadata.create_metadata(record=record)
        except DuplicateImageError:
            logger.warning(
                "Content hash claimed concurrently; discarding blob",
                extra={"s3_key": key, "file_hash": record.file_hash},
            )
            self._discard_blob(key=key, image_id=image_id)
            raise
        except Exception as exc:
            logger.exception("Failed to persist image metadata", extra={"s3_key": key})
            self._discard_blob(key=key, image_id=image_id)

            raise MetadataOperationFailedError(
                message="Unable to save image metadata",
                error_code=ERROR_CODE_METADATA_CREATE_FAILED,
                details={"image_id": image_id},
            ) from exc

        logger.info(
            "Image persisted",
            extra={"image_id": image_id, "s3_key": key, "size": len(data)},
        )
        return record

    def _discard_blob(self, *, key: str, image_id: str) -> None:
        try:
            self.storage.remove_image(key=key)
        except Exception:
            logger.error(
                "Orphaned blob: metadata write failed and cleanup failed",
                extra={"s3_key": key, "image_id": image_id},
            )

    def delete(self, *, image_id: str) -> None:
        """Remove the record and then the blob for `image_id`.

        Raises:
            NotFoundError: If no image has this id
            DynamoDBError: If the record lookup or delete fails
        """
        record = self.metadata.fetch_metadata(image_id=image_id)
        if record is None:
            raise NotFoundError(
                message="Image not found",
                error_code=ERROR_CODE_IMAGE_NOT_FOUND,
                details={"image_id": image_id},
            )

        self.metadata.remove_metadata(image_id=image_id)

        try:
            self.storage.remove_image(key=record.s3_key)
        except ImageDeletionFailedError:
            logger.error(
                "Orphaned blob: metadata deleted but blob delete failed",
                extra={"s3_key": record.s3_key, "image_id": image_id},
            )
            return

        logger.info("Image deleted", extra={"image_id": image_id, "s3_key": record.s3_key})

    def summarize(self, record: ImageRecord, *, expires_in: int) -> ImageSummary:
        """Client view of `record` with a freshly signed download URL."""
        url = self.storage.generate_download_url(key=record.s3_key, expires_in=expires_in)
        return ImageSummary.from_record(record, download_url=url)
