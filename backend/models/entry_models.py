# models/entry_models.py
import datetime as dt
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from core.shaping import ShapedModel
from models.common_models import LinkDto
from models.db_models import Entry

EntrySource = Literal["manual", "automation", "file_import"]

MAX_BATCH_SIZE = 20

class EntryDto(ShapedModel):
    id: str
    habit_id: str
    value: int
    notes: Optional[str] = None
    source: EntrySource
    external_id: Optional[str] = None
    is_archived: bool
    date: dt.date
    created_at_utc: datetime
    updated_at_utc: Optional[datetime] = None
    links: List[LinkDto] = Field(default_factory=list)

    @classmethod
    def from_entry(cls, entry: Entry) -> "EntryDto":
        return cls(
            id=entry.id,
            habit_id=entry.habit_id,
            value=entry.value,
            notes=entry.notes,
            source=entry.source,
            external_id=entry.external_id,
            is_archived=entry.is_archived,
            date=entry.date,
            created_at_utc=entry.created_at_utc,
            updated_at_utc=entry.updated_at_utc
        )

class CreateEntryRequest(BaseModel):
    habit_id: str
    value: int = Field(ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)
    date: dt.date

    def to_entry(self, user_id: str) -> Entry:
        return Entry(
            habit_id=self.habit_id,
            user_id=user_id,
            value=self.value,
            notes=self.notes,
            source="manual",
            date=self.date
        )

class CreateEntryBatchRequest(BaseModel):
    entries: List[CreateEntryRequest] = Field(min_length=1, max_length=MAX_BATCH_SIZE)

class UpdateEntryRequest(BaseModel):
    value: int = Field(ge=0)
    notes: Optional[str] = Field(default=None, max_length=1000)

class EntryFilters(BaseModel):
    """Filters shared by the offset and cursor listings."""
    habit_id: Optional[str] = None
    from_date: Optional[dt.date] = None
    to_date: Optional[dt.date] = None
    source: Optional[EntrySource] = None
    is_archived: Optional[bool] = None
