# services/habit_tag_service.py - Tag assignment for habits
from typing import List

from sqlmodel import col, select

from core.db import get_async_session_context
from core.logger import get_logger
from models.db_models import Habit, HabitTag, Tag

logger = get_logger(__name__)

async def upsert_habit_tags(user_id: str, habit_id: str, tag_ids: List[str]) -> bool:
    """
    Make ``tag_ids`` the exact tag set of the habit.

    Returns False when the habit already had exactly these tags.
    """
    wanted = set(tag_ids)

    async with get_async_session_context() as session:
        habit_result = await session.exec(
            select(Habit).where((Habit.id == habit_id) & (Habit.user_id == user_id))
        )
        if not habit_result.first():
            raise ValueError(f"Habit {habit_id} not found")

        current_result = await session.exec(select(HabitTag).where(HabitTag.habit_id == habit_id))
        current = {habit_tag.tag_id: habit_tag for habit_tag in current_result.all()}

        if set(current) == wanted:
            return False

        if wanted:
            tags_result = await session.exec(
                select(Tag.id).where(col(Tag.id).in_(wanted) & (Tag.user_id == user_id))
            )
            if len(set(tags_result.all())) != len(wanted):
                raise ValueError("One or more tag IDs is invalid")

        for tag_id, habit_tag in current.items():
            if tag_id not in wanted:
                await session.delete(habit_tag)

        for tag_id in wanted - set(current):
            session.add(HabitTag(habit_id=habit_id, tag_id=tag_id))

        await session.commit()

        logger.info(f"Habit {habit_id} now tagged with {len(wanted)} tags")
        return True

async def remove_habit_tag(user_id: str, habit_id: str, tag_id: str) -> None:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(HabitTag)
            .join(Habit, HabitTag.habit_id == Habit.id)
            .where(
                (HabitTag.habit_id == habit_id) &
                (HabitTag.tag_id == tag_id) &
                (Habit.user_id == user_id)
            )
        )
        habit_tag = result.first()

        if not habit_tag:
            raise ValueError(f"Tag {tag_id} not found on habit {habit_id}")

        await session.delete(habit_tag)
        await session.commit()
