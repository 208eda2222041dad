"""Business logic for single-shot image uploads.

This module applies the caller's rate limit and runs the upload through the
ingestion pipeline (normalize, validate, dedup, persist).
"""

from aws_lambda_powertools import Logger

from core.models.errors import RateLimitExceededError
from core.models.image import ImageRecord, ImageSummary
from core.pipeline.factory import build_ingestion_pipeline
from core.pipeline.ingestion import ImageIngestionPipeline, IngestionOutcome
from core.pipeline.rate_limiter import RateLimiter
from core.utils.settings import PipelineSettings, get_settings

logger = Logger(UTC=True)


class UploadService:
    """Application service responsible for single-shot uploads.

    This service orchestrates:
    - Per-caller rate limiting
    - The ingestion pipeline
    - Signing a download URL for accepted images
    """

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        pipeline: ImageIngestionPipeline | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        """Initialize the upload service with its collaborators."""
        self.settings = settings or get_settings()
        self.pipeline = pipeline or build_ingestion_pipeline(settings=self.settings)
        self.rate_limiter = rate_limiter

    def upload_image(
        self,
        *,
        owner_id: str,
        filename: str,
        mime_type: str,
        file_data: bytes,
    ) -> IngestionOutcome:
        """Ingest one uploaded image.

        Returns:
            Accepted, rejected (with violations) or duplicate outcome

        Raises:
            RateLimitExceededError: If the caller exceeded the upload rate
            UnsupportedEncodingError: If a HEIC/HEIF payload cannot be decoded
            S3Error / MetadataOperationFailedError: If persistence fails
        """
        if not self.rate_limiter.allow(owner_id):
            logger.warning("Upload rate limit exceeded", extra={"owner_id": owner_id})
            raise RateLimitExceededError(details={"owner_id": owner_id})

        logger.debug(
            "Starting image upload",
            extra={"owner_id": owner_id, "original_name": filename, "size": len(file_data)},
        )

        return self.pipeline.ingest(
            data=file_data,
            filename=filename,
            mime_type=mime_type,
            owner_id=owner_id,
        )

    def summarize(self, record: ImageRecord) -> ImageSummary:
        return self.pipeline.gateway.summarize(
            record, expires_in=self.settings.download_url_ttl_seconds
        )
