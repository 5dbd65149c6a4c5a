# services/habit_service.py - Async habit service
from datetime import datetime, UTC
from typing import Dict, List, Optional, Sequence

from sqlalchemy import delete, or_
from sqlmodel import col, select

from core.db import get_async_session_context
from core.logger import get_logger
from core.pagination import create_page
from core.sorting import SortMapping, apply_sort
from models.common_models import PaginationResult
from models.db_models import Entry, Habit, HabitTag, Tag
from models.habit_models import CreateHabitRequest, PatchHabitRequest, UpdateHabitRequest

logger = get_logger(__name__)

async def list_habits(
    user_id: str,
    sort_mappings: Sequence[SortMapping],
    page: int,
    page_size: int,
    sort: Optional[str] = None,
    search: Optional[str] = None,
    habit_type: Optional[str] = None,
    status: Optional[str] = None
) -> PaginationResult:
    """
    Page through the user's habits. ``search`` matches name or description.
    """
    query = select(Habit).where(Habit.user_id == user_id)

    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.where(
            or_(col(Habit.name).ilike(pattern), col(Habit.description).ilike(pattern))
        )
    if habit_type is not None:
        query = query.where(Habit.type == habit_type)
    if status is not None:
        query = query.where(Habit.status == status)

    query = apply_sort(query, Habit, sort, sort_mappings)

    async with get_async_session_context() as session:
        return await create_page(session, query, page, page_size)

async def get_habit(user_id: str, habit_id: str) -> Habit:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Habit).where((Habit.id == habit_id) & (Habit.user_id == user_id))
        )
        habit = result.first()

        if not habit:
            raise ValueError(f"Habit {habit_id} not found")

        return habit

async def get_habit_tag_names(habit_id: str) -> List[str]:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Tag.name)
            .join(HabitTag, HabitTag.tag_id == Tag.id)
            .where(HabitTag.habit_id == habit_id)
            .order_by(Tag.name)
        )
        return list(result.all())

async def get_tag_names_for_habits(habit_ids: Sequence[str]) -> Dict[str, List[str]]:
    """Tag names for many habits in one query: ``{habit_id: [names]}``."""
    tag_names: Dict[str, List[str]] = {habit_id: [] for habit_id in habit_ids}
    if not habit_ids:
        return tag_names

    async with get_async_session_context() as session:
        result = await session.exec(
            select(HabitTag.habit_id, Tag.name)
            .join(Tag, HabitTag.tag_id == Tag.id)
            .where(col(HabitTag.habit_id).in_(habit_ids))
            .order_by(Tag.name)
        )
        for habit_id, name in result.all():
            tag_names[habit_id].append(name)

    return tag_names

async def create_habit(user_id: str, request: CreateHabitRequest) -> Habit:
    logger.info(f"Creating habit '{request.name}' for user_id={user_id}")

    async with get_async_session_context() as session:
        habit = request.to_habit(user_id)
        session.add(habit)
        await session.commit()
        await session.refresh(habit)

        logger.info(f"Habit '{habit.name}' created with id={habit.id}")
        return habit

async def update_habit(user_id: str, habit_id: str, request: UpdateHabitRequest) -> Habit:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Habit).where((Habit.id == habit_id) & (Habit.user_id == user_id))
        )
        habit = result.first()

        if not habit:
            raise ValueError(f"Habit {habit_id} not found")

        habit.name = request.name
        habit.description = request.description
        habit.type = request.type
        habit.end_date = request.end_date
        habit.frequency_type = request.frequency.type
        habit.frequency_times_per_period = request.frequency.times_per_period
        habit.target_value = request.target.value
        habit.target_unit = request.target.unit
        habit.automation_source = request.automation_source

        # Progress is kept when only the milestone target moves
        if request.milestone is not None:
            habit.milestone_target = request.milestone.target
            if habit.milestone_current is None:
                habit.milestone_current = 0

        habit.updated_at_utc = datetime.now(UTC)

        session.add(habit)
        await session.commit()
        await session.refresh(habit)
        return habit

async def patch_habit(user_id: str, habit_id: str, request: PatchHabitRequest) -> Habit:
    changes = request.model_dump(exclude_unset=True)

    async with get_async_session_context() as session:
        result = await session.exec(
            select(Habit).where((Habit.id == habit_id) & (Habit.user_id == user_id))
        )
        habit = result.first()

        if not habit:
            raise ValueError(f"Habit {habit_id} not found")

        for field_name, value in changes.items():
            setattr(habit, field_name, value)
        habit.updated_at_utc = datetime.now(UTC)

        session.add(habit)
        await session.commit()
        await session.refresh(habit)

        logger.info(f"Patched habit {habit_id}: {sorted(changes)}")
        return habit

async def delete_habit(user_id: str, habit_id: str) -> None:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Habit).where((Habit.id == habit_id) & (Habit.user_id == user_id))
        )
        habit = result.first()

        if not habit:
            raise ValueError(f"Habit {habit_id} not found")

        await session.execute(delete(HabitTag).where(HabitTag.habit_id == habit_id))
        await session.execute(delete(Entry).where(Entry.habit_id == habit_id))
        await session.delete(habit)
        await session.commit()

        logger.info(f"Deleted habit {habit_id}")
