"""
Business logic for image listing and pagination.
"""

from aws_lambda_powertools import Logger

from core.filters.page_pagination import PagePagination
from core.infrastructure.aws.dynamodb_metadata import DynamoDBMetadata
from core.infrastructure.aws.s3_image_storage import S3ImageStorage
from core.models.errors import PaginationError
from core.models.image import ImageSummary, ListImagesResponse
from core.repositories.metadata_repository import ImageMetadataRepository
from core.repositories.storage_repository import ImageStorageRepository
from core.utils.constants import ERROR_CODE_INVALID_PAGINATION
from core.utils.settings import PipelineSettings, get_settings

logger = Logger(UTC=True)


class ListService:
    """Application service responsible for listing images.

    This service coordinates:
    - Counting records by status and reading the newest ones up to the
      end of the requested page
    - Page-based pagination
    - Signing a fresh download URL for every returned item
    """

    def __init__(
        self,
        *,
        metadata: ImageMetadataRepository | None = None,
        storage: ImageStorageRepository | None = None,
        settings: PipelineSettings | None = None,
    ) -> None:
        self.metadata = metadata or DynamoDBMetadata()
        self.storage = storage or S3ImageStorage()
        self.settings = settings or get_settings()

    def list_images(self, *, status: str, page: int, limit: int) -> ListImagesResponse:
        """List one page of images with `status`.

        Raises:
            PaginationError: If page/limit are out of range
            DynamoDBError: If the query fails
            S3Error: If a download URL cannot be signed
        """
        is_valid, message = PagePagination.validate(page, limit)
        if not is_valid:
            raise PaginationError(
                message=message,
                error_code=ERROR_CODE_INVALID_PAGINATION,
                details={"page": page, "limit": limit},
            )

        # Only the prefix up to the end of the requested page is read.
        total = self.metadata.count_images(status=status)
        records = self.metadata.list_images(status=status, limit=page * limit)
        page_records, pagination = PagePagination.paginate(
            records, page=page, limit=limit, total=total
        )

        images = [
            ImageSummary.from_record(
                record,
                download_url=self.storage.generate_download_url(
                    key=record.s3_key,
                    expires_in=self.settings.download_url_ttl_seconds,
                ),
            )
            for record in page_records
        ]

        logger.info(
            "Images listed successfully",
            extra={"status": status, "page": page, "count": len(images), "total": pagination.total},
        )

        return ListImagesResponse(images=images, pagination=pagination)
