# models/common_models.py - envelopes shared by every collection endpoint
import math
from typing import Any, List

from pydantic import BaseModel, Field, computed_field

class LinkDto(BaseModel):
    href: str
    rel: str
    method: str

class CollectionResponse(BaseModel):
    """Envelope for collections without page numbers (cursor pages, small lists)."""
    items: List[Any] = Field(default_factory=list)
    links: List[LinkDto] = Field(default_factory=list)

class PaginationResult(BaseModel):
    """Offset-paginated envelope. Derived flags are serialized alongside the raw counts."""
    items: List[Any] = Field(default_factory=list)
    page: int
    page_size: int
    total_count: int
    links: List[LinkDto] = Field(default_factory=list)

    @computed_field
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.page_size)

    @computed_field
    @property
    def has_previous_page(self) -> bool:
        return self.page > 1

    @computed_field
    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages
