"""
Page-based pagination utilities.
"""

from collections.abc import Sequence
from typing import TypeVar

from core.models.pagination import PaginationInfo
from core.utils.constants import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    MAX_LIMIT,
    MIN_LIMIT,
)

ItemT = TypeVar("ItemT")


class PagePagination:
    """
    Page-based pagination helper.

    Typical usage:
    1. Validate page and limit parameters
    2. Slice the full, already-ordered result list
    3. Return the page along with `{page, limit, total, pages}` metadata
    """

    @staticmethod
    def paginate(
        items: Sequence[ItemT],
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
        total: int | None = None,
    ) -> tuple[list[ItemT], PaginationInfo]:
        """
        Return the items of `page` (1-based) and pagination metadata.

        `items` may be a newest-first prefix of the full result as long as it
        reaches the end of the page; `total` then supplies the full count.
        Pages past the end are empty but still report the true totals.

        Example:
            items = [1, 2, 3, 4, 5]
            page = 2
            limit = 2

            → ([3, 4], PaginationInfo(page=2, limit=2, total=5, pages=3))
        """
        start = (page - 1) * limit
        page_items = list(items[start : start + limit])
        if total is None:
            total = len(items)
        return page_items, PaginationInfo.build(page=page, limit=limit, total=total)

    @staticmethod
    def validate(page: int, limit: int) -> tuple[bool, str]:
        """
        Validate pagination parameters.

        Validation rules:
        - limit must be within [MIN_LIMIT, MAX_LIMIT]
        - page must be 1 or greater
        """
        if limit < MIN_LIMIT:
            return False, f"Limit must be at least {MIN_LIMIT}"

        if limit > MAX_LIMIT:
            return False, f"Limit must not exceed {MAX_LIMIT}"

        if page < 1:
            return False, "Page must be a positive integer"

        return True, ""
