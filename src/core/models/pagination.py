"""Pagination model."""

import math

from pydantic import BaseModel, Field, StrictInt


class PaginationInfo(BaseModel):
    """Page-based pagination metadata for list responses."""

    page: StrictInt = Field(..., description="Current page number (1-based)")
    limit: StrictInt = Field(..., description="Maximum number of items per page")
    total: StrictInt = Field(..., description="Total number of items matching the query")
    pages: StrictInt = Field(..., description="Total number of pages")

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "PaginationInfo":
        """Derive the page count from totals; `pages` is rounded up."""
        pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(page=page, limit=limit, total=total, pages=pages)
