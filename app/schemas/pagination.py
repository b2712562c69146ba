"""
Offset pagination shared by the history listings.
"""

from pydantic import BaseModel, Field

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50


class PageParams(BaseModel):
    """Normalized page request. Build with ``PageParams.from_query``."""

    page: int = Field(ge=1)
    limit: int = Field(ge=1, le=MAX_PAGE_SIZE)

    @classmethod
    def from_query(cls, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> "PageParams":
        """Clamp raw query values instead of rejecting them."""
        return cls(page=max(page, 1), limit=min(max(limit, 1), MAX_PAGE_SIZE))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Pagination(BaseModel):
    """Pagination metadata returned alongside a page of items."""

    current_page: int
    total_pages: int
    total_items: int
    per_page: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, params: PageParams, total_items: int) -> "Pagination":
        total_pages = (total_items + params.limit - 1) // params.limit
        return cls(
            current_page=params.page,
            total_pages=total_pages,
            total_items=total_items,
            per_page=params.limit,
            has_next=params.page < total_pages,
            has_prev=params.page > 1,
        )
