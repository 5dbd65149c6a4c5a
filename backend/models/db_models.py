# models/db_models.py
import datetime as dt
import os
import time
import uuid
from datetime import datetime, date, UTC
from typing import Optional, List

from sqlalchemy import Column, JSON, LargeBinary, String, Text
from sqlmodel import SQLModel, Field, UniqueConstraint

def uuid7() -> uuid.UUID:
    """Time-ordered UUID (RFC 9562 version 7): 48-bit ms timestamp, then random bits."""
    timestamp_ms = time.time_ns() // 1_000_000
    value = (timestamp_ms & ((1 << 48) - 1)) << 80
    value |= int.from_bytes(os.urandom(10), "big") & ((1 << 80) - 1)
    value &= ~(0xF << 76)
    value |= 0x7 << 76  # version
    value &= ~(0x3 << 62)
    value |= 0x2 << 62  # variant
    return uuid.UUID(int=value)

def new_id(prefix: str) -> str:
    """Prefixed id whose string order follows creation order, e.g. ``e_0190…``."""
    return f"{prefix}_{uuid7()}"

def utc_now() -> datetime:
    return datetime.now(UTC)

class IdentityUser(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("iu"), primary_key=True)
    email: str = Field(index=True, unique=True)
    hashed_password: str
    role: str = Field(default="member")  # member, admin
    created_at_utc: datetime = Field(default_factory=utc_now)

class User(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("u"), primary_key=True)
    identity_id: str = Field(foreign_key="identityuser.id", unique=True)
    email: str = Field(index=True, unique=True)
    name: str
    created_at_utc: datetime = Field(default_factory=utc_now)
    updated_at_utc: Optional[datetime] = Field(default=None)

class HabitTag(SQLModel, table=True):
    habit_id: str = Field(foreign_key="habit.id", primary_key=True)
    tag_id: str = Field(foreign_key="tag.id", primary_key=True)
    created_at_utc: datetime = Field(default_factory=utc_now)

class Habit(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("h"), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    name: str = Field(index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    type: str = Field(default="binary")  # none, binary, measurable
    frequency_type: str = Field(default="daily")  # none, daily, weekly, monthly
    frequency_times_per_period: int = Field(default=1)
    target_value: int = Field(default=1)
    target_unit: str = Field(default="times")
    status: str = Field(default="ongoing")  # none, ongoing, completed
    is_archived: bool = Field(default=False)
    end_date: Optional[date] = Field(default=None)
    milestone_target: Optional[int] = Field(default=None)
    milestone_current: Optional[int] = Field(default=None)
    automation_source: str = Field(default="none")  # none, github
    created_at_utc: datetime = Field(default_factory=utc_now)
    updated_at_utc: Optional[datetime] = Field(default=None)
    last_completed_at_utc: Optional[datetime] = Field(default=None)

class Tag(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("t"), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    name: str
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at_utc: datetime = Field(default_factory=utc_now)
    updated_at_utc: Optional[datetime] = Field(default=None)

    __table_args__ = (UniqueConstraint("user_id", "name"),)

class Entry(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("e"), primary_key=True)
    habit_id: str = Field(foreign_key="habit.id", index=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    value: int
    notes: Optional[str] = Field(default=None, sa_column=Column(Text))
    source: str = Field(default="manual")  # manual, automation, file_import
    external_id: Optional[str] = Field(
        default=None,
        sa_column=Column("external_id", String(255), unique=True, nullable=True)
    )
    is_archived: bool = Field(default=False)
    date: dt.date = Field(index=True)
    created_at_utc: datetime = Field(default_factory=utc_now)
    updated_at_utc: Optional[datetime] = Field(default=None)

class EntryImportJob(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("ei"), primary_key=True)
    user_id: str = Field(foreign_key="user.id", index=True)
    status: str = Field(default="pending")  # pending, processing, completed, failed
    file_name: str
    file_content: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    total_records: int = Field(default=0)
    processed_records: int = Field(default=0)
    successful_records: int = Field(default=0)
    failed_records: int = Field(default=0)
    errors: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at_utc: datetime = Field(default_factory=utc_now)
    completed_at_utc: Optional[datetime] = Field(default=None)

class GitHubAccessToken(SQLModel, table=True):
    id: str = Field(default_factory=lambda: new_id("gh"), primary_key=True)
    user_id: str = Field(foreign_key="user.id", unique=True)
    token: str = Field(sa_column=Column(Text, nullable=False))  # Fernet ciphertext
    expires_at_utc: datetime
    created_at_utc: datetime = Field(default_factory=utc_now)
