"""Environment-provided pipeline configuration.

Every value is optional. Missing, unparsable or out-of-range variables fall
back, one field at a time, to the defaults in `core.utils.constants`.
"""

from collections.abc import Callable
from functools import lru_cache
import os
from typing import TypeVar

from aws_lambda_powertools import Logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.utils.constants import (
    DEFAULT_BLUR_THRESHOLD,
    DEFAULT_DOWNLOAD_URL_TTL_SECONDS,
    DEFAULT_HEIC_JPEG_QUALITY,
    DEFAULT_MAX_FILE_SIZE,
    DEFAULT_MAX_IMAGE_HEIGHT,
    DEFAULT_MAX_IMAGE_WIDTH,
    DEFAULT_MIN_FACE_AREA_RATIO,
    DEFAULT_MIN_IMAGE_HEIGHT,
    DEFAULT_MIN_IMAGE_WIDTH,
    DEFAULT_UPLOAD_RATE_LIMIT,
    DEFAULT_UPLOAD_RATE_WINDOW_SECONDS,
    DEFAULT_UPLOAD_SESSION_TTL_HOURS,
    ENV_BLUR_THRESHOLD,
    ENV_DOWNLOAD_URL_TTL_SECONDS,
    ENV_HEIC_JPEG_QUALITY,
    ENV_MAX_FILE_SIZE,
    ENV_MAX_IMAGE_HEIGHT,
    ENV_MAX_IMAGE_WIDTH,
    ENV_MIN_FACE_AREA_RATIO,
    ENV_MIN_IMAGE_HEIGHT,
    ENV_MIN_IMAGE_WIDTH,
    ENV_UPLOAD_RATE_LIMIT,
    ENV_UPLOAD_RATE_WINDOW_SECONDS,
    ENV_UPLOAD_SESSION_TTL_HOURS,
)

logger = Logger(UTC=True)

NumberT = TypeVar("NumberT", int, float)


class PipelineSettings(BaseModel):
    """Validation thresholds and operational limits."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    min_width: int = Field(DEFAULT_MIN_IMAGE_WIDTH, ge=1)
    min_height: int = Field(DEFAULT_MIN_IMAGE_HEIGHT, ge=1)
    max_width: int = Field(DEFAULT_MAX_IMAGE_WIDTH, ge=1)
    max_height: int = Field(DEFAULT_MAX_IMAGE_HEIGHT, ge=1)
    max_file_size: int = Field(DEFAULT_MAX_FILE_SIZE, ge=1)
    blur_threshold: float = Field(DEFAULT_BLUR_THRESHOLD, ge=0)
    min_face_area_ratio: float = Field(DEFAULT_MIN_FACE_AREA_RATIO, ge=0, le=1)
    heic_jpeg_quality: int = Field(DEFAULT_HEIC_JPEG_QUALITY, ge=1, le=100)
    download_url_ttl_seconds: int = Field(DEFAULT_DOWNLOAD_URL_TTL_SECONDS, ge=1)
    upload_session_ttl_hours: int = Field(DEFAULT_UPLOAD_SESSION_TTL_HOURS, ge=1)
    upload_rate_limit: int = Field(DEFAULT_UPLOAD_RATE_LIMIT, ge=1)
    upload_rate_window_seconds: int = Field(DEFAULT_UPLOAD_RATE_WINDOW_SECONDS, ge=1)

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        """Build settings from the process environment."""
        values = dict(
            min_width=_read_env(ENV_MIN_IMAGE_WIDTH, int, DEFAULT_MIN_IMAGE_WIDTH),
            min_height=_read_env(ENV_MIN_IMAGE_HEIGHT, int, DEFAULT_MIN_IMAGE_HEIGHT),
            max_width=_read_env(ENV_MAX_IMAGE_WIDTH, int, DEFAULT_MAX_IMAGE_WIDTH),
            max_height=_read_env(ENV_MAX_IMAGE_HEIGHT, int, DEFAULT_MAX_IMAGE_HEIGHT),
            max_file_size=_read_env(ENV_MAX_FILE_SIZE, int, DEFAULT_MAX_FILE_SIZE),
            blur_threshold=_read_env(ENV_BLUR_THRESHOLD, float, DEFAULT_BLUR_THRESHOLD),
            min_face_area_ratio=_read_env(
                ENV_MIN_FACE_AREA_RATIO, float, DEFAULT_MIN_FACE_AREA_RATIO
            ),
            heic_jpeg_quality=_read_env(
                ENV_HEIC_JPEG_QUALITY, int, DEFAULT_HEIC_JPEG_QUALITY
            ),
            download_url_ttl_seconds=_read_env(
                ENV_DOWNLOAD_URL_TTL_SECONDS, int, DEFAULT_DOWNLOAD_URL_TTL_SECONDS
            ),
            upload_session_ttl_hours=_read_env(
                ENV_UPLOAD_SESSION_TTL_HOURS, int, DEFAULT_UPLOAD_SESSION_TTL_HOURS
            ),
            upload_rate_limit=_read_env(
                ENV_UPLOAD_RATE_LIMIT, int, DEFAULT_UPLOAD_RATE_LIMIT
            ),
            upload_rate_window_seconds=_read_env(
                ENV_UPLOAD_RATE_WINDOW_SECONDS, int, DEFAULT_UPLOAD_RATE_WINDOW_SECONDS
            ),
        )

        accepted: dict[str, int | float] = {}
        for field, value in values.items():
            try:
                cls.model_validate({field: value})
            except ValidationError as exc:
                logger.warning(
                    "Ignoring out-of-range configuration value",
                    extra={
                        "setting": field,
                        "value": value,
                        "error": exc.errors()[0]["msg"],
                    },
                )
                continue
            accepted[field] = value

        return cls(**accepted)


def _read_env(name: str, parse: Callable[[str], NumberT], default: NumberT) -> NumberT:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default

    try:
        value = parse(raw.strip())
    except ValueError:
        logger.warning(
            "Ignoring unparsable configuration value",
            extra={"variable": name, "value": raw, "default": default},
        )
        return default

    if value <= 0:
        logger.warning(
            "Ignoring non-positive configuration value",
            extra={"variable": name, "value": raw, "default": default},
        )
        return default

    return value


@lru_cache(maxsize=1)
def get_settings() -> PipelineSettings:
    """Settings for the lifetime of the container."""
    return PipelineSettings.from_env()
