"""Pydantic models for chunked upload requests."""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.utils.constants import MAX_FILENAME_LENGTH, MAX_TOTAL_CHUNKS
from core.utils.mime import declared_type_error
from core.utils.validators import decode_base64_payload

SESSION_ID_PATTERN = r"^[A-Za-z0-9_-]{8,128}$"


class ChunkUploadRequest(BaseModel):
    """Validation model for one chunk of a chunked upload.

    `sessionId` may be omitted on the first chunk; the server then generates
    one and returns it with the progress response.
    """

    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    session_id: str | None = Field(
        None,
        alias="sessionId",
        pattern=SESSION_ID_PATTERN,
        description="Upload session identifier",
    )
    filename: str = Field(..., min_length=1, max_length=MAX_FILENAME_LENGTH)
    mime_type: str = Field(..., alias="mimeType")
    total_chunks: int = Field(..., alias="totalChunks", ge=1, le=MAX_TOTAL_CHUNKS)
    chunk_index: int = Field(..., alias="chunkIndex", ge=0)
    chunk_data: bytes = Field(..., alias="chunkData", description="Base64 encoded chunk")

    @field_validator("chunk_data", mode="before")
    @classmethod
    def decode_chunk(cls, value: object) -> bytes:
        if not isinstance(value, str):
            raise ValueError("Chunk must be a valid Base64-encoded string")
        return decode_base64_payload(value)

    @model_validator(mode="after")
    def check_chunk(self) -> "ChunkUploadRequest":
        if self.chunk_index >= self.total_chunks:
            raise ValueError("chunkIndex must be less than totalChunks")

        error = declared_type_error(self.filename, self.mime_type)
        if error:
            raise ValueError(error)
        self.mime_type = self.mime_type.lower()
        return self
