import math
from typing import Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

T = TypeVar("T")


class PaginationResult(BaseModel, Generic[T]):
    """Page-numbered result wrapper for list endpoints."""

    items: list[T] = Field(..., description="List of items in current page")
    total: int = Field(..., description="Total number of items across all pages", ge=0)
    page: int = Field(..., description="Current page number (1-based)", ge=1)
    limit: int = Field(..., description="Maximum items per page", ge=1)

    @computed_field(description="Total number of pages")  # type: ignore[prop-decorator]
    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit)
