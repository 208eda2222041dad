"""Pydantic models for delete image requests."""

from pydantic import BaseModel, ConfigDict, Field

IMAGE_ID_PATTERN = r"^img_[0-9a-f]{32}$"


class DeleteImageRequest(BaseModel):
    """Validation model for delete image request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    image_id: str = Field(
        ...,
        min_length=1,
        pattern=IMAGE_ID_PATTERN,
        description="Image ID to delete",
    )
