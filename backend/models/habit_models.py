# models/habit_models.py
import datetime as dt
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from core.shaping import ShapedModel
from models.common_models import LinkDto
from models.db_models import Habit

HabitType = Literal["none", "binary", "measurable"]
HabitStatus = Literal["none", "ongoing", "completed"]
FrequencyType = Literal["none", "daily", "weekly", "monthly"]
AutomationSource = Literal["none", "github"]

# ===== NESTED VALUE OBJECTS =====

class FrequencyDto(BaseModel):
    type: FrequencyType
    times_per_period: int = Field(ge=1)

class TargetDto(BaseModel):
    value: int = Field(ge=1)
    unit: str = Field(min_length=1, max_length=100)

class MilestoneDto(BaseModel):
    target: int
    current: int

class UpdateMilestoneDto(BaseModel):
    target: int = Field(ge=1)

# ===== RESPONSES =====

class HabitDto(ShapedModel):
    id: str
    name: str
    description: Optional[str] = None
    type: HabitType
    frequency: FrequencyDto
    target: TargetDto
    status: HabitStatus
    is_archived: bool
    end_date: Optional[dt.date] = None
    milestone: Optional[MilestoneDto] = None
    automation_source: AutomationSource = "none"
    created_at_utc: datetime
    updated_at_utc: Optional[datetime] = None
    last_completed_at_utc: Optional[datetime] = None
    links: List[LinkDto] = Field(default_factory=list)

    @classmethod
    def from_habit(cls, habit: Habit, **extra) -> "HabitDto":
        milestone = None
        if habit.milestone_target is not None:
            milestone = MilestoneDto(
                target=habit.milestone_target,
                current=habit.milestone_current or 0
            )

        return cls(
            id=habit.id,
            name=habit.name,
            description=habit.description,
            type=habit.type,
            frequency=FrequencyDto(
                type=habit.frequency_type,
                times_per_period=habit.frequency_times_per_period
            ),
            target=TargetDto(value=habit.target_value, unit=habit.target_unit),
            status=habit.status,
            is_archived=habit.is_archived,
            end_date=habit.end_date,
            milestone=milestone,
            automation_source=habit.automation_source,
            created_at_utc=habit.created_at_utc,
            updated_at_utc=habit.updated_at_utc,
            last_completed_at_utc=habit.last_completed_at_utc,
            **extra
        )

class HabitWithTagsDto(HabitDto):
    """API version 2 representation: the habit plus the names of its tags."""
    tags: List[str] = Field(default_factory=list)

# ===== REQUESTS =====

class CreateHabitRequest(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    type: HabitType
    frequency: FrequencyDto
    target: TargetDto
    end_date: Optional[dt.date] = None
    milestone: Optional[UpdateMilestoneDto] = None
    automation_source: AutomationSource = "none"

    def to_habit(self, user_id: str) -> Habit:
        return Habit(
            user_id=user_id,
            name=self.name,
            description=self.description,
            type=self.type,
            frequency_type=self.frequency.type,
            frequency_times_per_period=self.frequency.times_per_period,
            target_value=self.target.value,
            target_unit=self.target.unit,
            status="ongoing",
            is_archived=False,
            end_date=self.end_date,
            milestone_target=self.milestone.target if self.milestone else None,
            milestone_current=0 if self.milestone else None,
            automation_source=self.automation_source
        )

class UpdateHabitRequest(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    type: HabitType
    frequency: FrequencyDto
    target: TargetDto
    end_date: Optional[dt.date] = None
    milestone: Optional[UpdateMilestoneDto] = None
    automation_source: AutomationSource = "none"

class PatchHabitRequest(BaseModel):
    """Partial update: only fields present in the body are applied."""
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    status: Optional[HabitStatus] = None
    is_archived: Optional[bool] = None

class UpsertHabitTagsRequest(BaseModel):
    tag_ids: List[str]
