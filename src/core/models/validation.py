"""Validation pipeline result models."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ImageHeader(BaseModel):
    """Header-level facts about an encoded image.

    Embedded EXIF, ICC and XMP payloads are carried as named fields; the
    normalizer strips whichever of them are present before anything is
    hashed or persisted.
    """

    model_config = ConfigDict(frozen=True)

    width: int = Field(..., ge=0)
    height: int = Field(..., ge=0)
    format: str = Field(..., description="Lower-case container format, e.g. 'jpeg'")
    exif: bytes | None = None
    icc_profile: bytes | None = None
    xmp: bytes | None = None

    @property
    def embedded_fields(self) -> tuple[str, ...]:
        """Names of the metadata payloads present in the image."""
        return tuple(
            name
            for name in ("exif", "icc_profile", "xmp")
            if getattr(self, name) is not None
        )

    @property
    def has_embedded_metadata(self) -> bool:
        return bool(self.embedded_fields)


class FaceBox(BaseModel):
    """Detected face bounding box, relative to image dimensions."""

    model_config = ConfigDict(frozen=True)

    width: float = Field(..., ge=0.0, le=1.0)
    height: float = Field(..., ge=0.0, le=1.0)
    confidence: float | None = None

    @property
    def area(self) -> float:
        return self.width * self.height


class FaceDetectionResult(BaseModel):
    """Outcome of a face-detection pass."""

    model_config = ConfigDict(frozen=True)

    face_count: int = Field(0, ge=0)
    dominant_face_area: float = Field(
        0.0,
        ge=0.0,
        le=1.0,
        description="Largest bounding-box area as a fraction of the image area",
    )
    error: str | None = Field(
        None, description="Set when detection was unavailable and degraded to zero faces"
    )


class ValidationMetadata(BaseModel):
    """Closed, versioned metadata bag produced by the validation pass."""

    schema_version: Literal[1] = 1

    width: int = 0
    height: int = 0
    size: int = 0
    format: str = "unknown"
    blur_score: float | None = None
    face_count: int | None = None
    face_area: float | None = None
    face_detection_error: str | None = None
    content_hash: str | None = None


class ValidationResult(BaseModel):
    """Pass/fail verdict with ordered, human-readable violations."""

    is_valid: bool
    errors: list[str] = Field(default_factory=list)
    metadata: ValidationMetadata = Field(default_factory=ValidationMetadata)

    @model_validator(mode="after")
    def verdict_matches_errors(self) -> "ValidationResult":
        """A result passes iff it carries no violations."""
        if self.is_valid == bool(self.errors):
            raise ValueError("is_valid must be True exactly when errors is empty")
        return self

    @classmethod
    def from_violations(
        cls, errors: list[str], metadata: ValidationMetadata
    ) -> "ValidationResult":
        return cls(is_valid=not errors, errors=list(errors), metadata=metadata)
