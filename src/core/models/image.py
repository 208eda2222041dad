"""Shared image models."""

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr

from core.models.pagination import PaginationInfo
from core.models.validation import ValidationMetadata
from core.utils.constants import IMAGE_STATUS_VALIDATED


class ImageRecord(BaseModel):
    """Durable record of an accepted upload."""

    image_id: StrictStr = Field(..., description="Unique image identifier")
    filename: StrictStr = Field(..., description="Collision-resistant stored filename")
    original_name: StrictStr = Field(..., description="Original filename (display only)")
    mime_type: StrictStr = Field(..., description="MIME type of the stored bytes")
    file_size: StrictInt = Field(..., description="Stored size in bytes")
    width: StrictInt = Field(..., description="Pixel width")
    height: StrictInt = Field(..., description="Pixel height")
    s3_key: StrictStr = Field(..., description="S3 object key where the image is stored")
    file_hash: StrictStr = Field(..., description="SHA-256 of the stored bytes")
    status: StrictStr = Field(IMAGE_STATUS_VALIDATED, description="Lifecycle status")
    owner_id: StrictStr | None = Field(None, description="Authorized uploader")
    quality: ValidationMetadata = Field(..., description="Validation metadata bag")

    created_at: StrictStr = Field(..., description="ISO-8601 creation timestamp (UTC)")
    updated_at: StrictStr | None = Field(None, description="ISO-8601 last update timestamp (UTC)")


class ImageSummary(BaseModel):
    """Image representation returned to the presentation layer."""

    model_config = ConfigDict(populate_by_name=True)

    id: StrictStr
    filename: StrictStr
    original_name: StrictStr = Field(..., alias="originalName")
    size: StrictInt
    width: StrictInt
    height: StrictInt
    status: StrictStr
    download_url: StrictStr = Field(..., alias="downloadUrl")
    created_at: StrictStr = Field(..., alias="createdAt")

    @classmethod
    def from_record(cls, record: ImageRecord, *, download_url: str) -> "ImageSummary":
        return cls(
            id=record.image_id,
            filename=record.filename,
            original_name=record.original_name,
            size=record.file_size,
            width=record.width,
            height=record.height,
            status=record.status,
            download_url=download_url,
            created_at=record.created_at,
        )


class ListImagesResponse(BaseModel):
    """Paginated response for listing images."""

    images: list[ImageSummary] = Field(..., description="Page of images")
    pagination: PaginationInfo = Field(..., description="Pagination metadata")
