# models/tag_models.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from core.shaping import ShapedModel
from models.common_models import LinkDto
from models.db_models import Tag

class TagDto(ShapedModel):
    id: str
    name: str
    description: Optional[str] = None
    created_at_utc: datetime
    updated_at_utc: Optional[datetime] = None
    links: List[LinkDto] = Field(default_factory=list)

    @classmethod
    def from_tag(cls, tag: Tag) -> "TagDto":
        return cls(
            id=tag.id,
            name=tag.name,
            description=tag.description,
            created_at_utc=tag.created_at_utc,
            updated_at_utc=tag.updated_at_utc
        )

class CreateTagRequest(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)

class UpdateTagRequest(BaseModel):
    name: str = Field(min_length=3, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)
