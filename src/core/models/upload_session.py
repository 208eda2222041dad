"""Upload session models for chunked uploads."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from core.utils.time import utc_now


class UploadStatus(str, Enum):
    """Lifecycle of an upload session.

    PENDING -> UPLOADING -> ASSEMBLING -> COMPLETED | FAILED. ASSEMBLING is
    held by exactly one request while it ingests the reassembled file.
    Terminal states never change.
    """

    PENDING = "PENDING"
    UPLOADING = "UPLOADING"
    ASSEMBLING = "ASSEMBLING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def accepts_chunks(self) -> bool:
        return self in (UploadStatus.PENDING, UploadStatus.UPLOADING)


class UploadSession(BaseModel):
    """One logical file transfer in progress."""

    session_id: str = Field(..., min_length=1)
    owner_id: str | None = None
    filename: str = Field(..., min_length=1, description="Original, untrusted filename")
    mime_type: str
    total_chunks: int = Field(..., ge=1)
    uploaded_chunks: int = Field(0, ge=0)
    status: UploadStatus = UploadStatus.PENDING
    created_at: datetime
    updated_at: datetime | None = None
    expires_at: datetime
    storage_key: str | None = None
    image_id: str | None = None
    failure_reason: str | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at


class ChunkProgress(BaseModel):
    """Progress of a non-terminal chunk write."""

    uploaded: int = Field(..., ge=0)
    total: int = Field(..., ge=1)
    percentage: int = Field(..., ge=0, le=100)

    @classmethod
    def from_counts(cls, uploaded: int, total: int) -> "ChunkProgress":
        # Half-up rounding, matching round(100 * uploaded / total) for clients.
        percentage = (200 * uploaded + total) // (2 * total)
        return cls(uploaded=uploaded, total=total, percentage=percentage)
