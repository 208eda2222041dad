"""S3-backed implementation of ImageStorageRepository."""

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from core.infrastructure.adapters.s3_adapter import S3Adapter, S3AdapterProtocol
from core.models.errors import (
    ImageDeletionFailedError,
    ImageUploadFailedError,
    S3Error,
)
from core.repositories.storage_repository import ImageStorageRepository
from core.utils.constants import ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED
from core.utils.time import utc_now_iso

logger = Logger(UTC=True)


class S3ImageStorage(ImageStorageRepository):
    """Image storage implementation backed by Amazon S3."""

    def __init__(self, adapter: S3AdapterProtocol | None = None) -> None:
        """Create storage using the provided S3 adapter."""
        self._s3: S3AdapterProtocol = adapter or S3Adapter()

    def upload_image(self, *, key: str, file_data: bytes, mime_type: str) -> str:
        """Upload image bytes to S3 and return the object key."""
        logger.debug(
            "Uploading image",
            extra={"key": key, "size": len(file_data), "mime_type": mime_type},
        )

        try:
            self._s3.put_object(
                key=key,
                body=file_data,
                content_type=mime_type,
                metadata={"uploaded_at": utc_now_iso()},
            )
            logger.info("Image uploaded successfully", extra={"key": key})
            return key

        except ClientError as exc:
            logger.error("S3 upload failed", extra={"key": key})
            raise ImageUploadFailedError(
                message="Unable to upload image at this time",
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error uploading image")
            raise ImageUploadFailedError(
                message="Unable to upload image at this time",
                details={"key": key},
            ) from exc

    def generate_download_url(self, *, key: str, expires_in: int) -> str:
        """Generate a pre-signed S3 URL for reading an image object."""
        logger.debug(
            "Generating pre-signed S3 URL",
            extra={"key": key, "expires_in": expires_in},
        )

        try:
            url: str = self._s3.generate_presigned_url(
                method="get_object",
                params={"Key": key},
                expires_in=expires_in,
            )
            return url

        except ClientError as exc:
            logger.error("Failed to generate pre-signed URL", extra={"key": key})
            raise S3Error(
                message="Unable to generate image access URL",
                error_code=ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED,
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error generating pre-signed URL")
            raise S3Error(
                message="Unable to generate image access URL",
                error_code=ERROR_CODE_IMAGE_PRESIGNED_URL_FAILED,
                details={"key": key},
            ) from exc

    def remove_image(self, *, key: str) -> None:
        """Delete an image object from S3."""
        logger.debug("Deleting image", extra={"key": key})

        try:
            self._s3.delete_object(key=key)
            logger.info("Image deleted successfully", extra={"key": key})

        except ClientError as exc:
            logger.error("S3 deletion failed", extra={"key": key})
            raise ImageDeletionFailedError(
                message="Unable to delete image at this time",
                details={"key": key},
            ) from exc

        except Exception as exc:
            logger.exception("Unexpected error deleting image")
            raise ImageDeletionFailedError(
                message="Unable to delete image at this time",
                details={"key": key},
            ) from exc

    def is_reachable(self) -> bool:
        """Probe the bucket with HeadBucket."""
        try:
            self._s3.head_bucket()
            return True
        except Exception:
            logger.warning("S3 health probe failed", exc_info=True)
            return False
