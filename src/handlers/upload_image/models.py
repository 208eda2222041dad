"""Pydantic models for single-shot image upload requests."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.utils.constants import MAX_FILENAME_LENGTH
from core.utils.mime import declared_type_error
from core.utils.validators import decode_base64_payload


class ImageUploadRequest(BaseModel):
    """Validation model for a single-shot upload."""

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    file: bytes = Field(..., description="Base64 encoded image file")
    filename: str = Field(
        ..., min_length=1, max_length=MAX_FILENAME_LENGTH, description="Original filename"
    )
    mime_type: str = Field(..., alias="mimeType", description="Declared MIME type")

    @field_validator("file", mode="before")
    @classmethod
    def decode_file(cls, value: object) -> bytes:
        if not isinstance(value, str):
            raise ValueError("File must be a valid Base64-encoded string")
        return decode_base64_payload(value)

    @model_validator(mode="after")
    def check_declared_type(self) -> "ImageUploadRequest":
        error = declared_type_error(self.filename, self.mime_type)
        if error:
            raise ValueError(error)
        self.mime_type = self.mime_type.lower()
        return self
