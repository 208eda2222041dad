"""
Pydantic models for list images requests.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.utils.constants import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    IMAGE_STATUS_VALIDATED,
    MAX_LIMIT,
    MIN_LIMIT,
)


class ListImagesRequest(BaseModel):
    """
    Validation model for list images API.

    Query parameters arrive as strings; pydantic coerces page/limit.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    page: int = Field(default=DEFAULT_PAGE, ge=1, description="Page number (1-based)")
    limit: int = Field(
        default=DEFAULT_LIMIT,
        ge=MIN_LIMIT,
        le=MAX_LIMIT,
        description="Results per page (1-100)",
    )
    status: str = Field(
        default=IMAGE_STATUS_VALIDATED,
        min_length=1,
        max_length=32,
        description="Lifecycle status filter",
    )

    @field_validator("status")
    @classmethod
    def normalize_status(cls, value: str) -> str:
        return value.upper()
