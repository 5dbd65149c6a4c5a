# services/entry_service.py - Async entry service
from datetime import datetime, UTC
from typing import List, Optional, Sequence, Tuple

from sqlmodel import col, select
from sqlmodel.sql.expression import SelectOfScalar

from core.db import get_async_session_context
from core.logger import get_logger
from core.pagination import create_cursor_page, create_page
from core.sorting import SortMapping, apply_sort
from models.common_models import PaginationResult
from models.db_models import Entry, Habit
from models.entry_models import CreateEntryRequest, EntryFilters, UpdateEntryRequest

logger = get_logger(__name__)

def build_entries_query(user_id: str, filters: EntryFilters) -> SelectOfScalar:
    """The user's entries narrowed by every filter that is set."""
    query = select(Entry).where(Entry.user_id == user_id)

    if filters.habit_id is not None:
        query = query.where(Entry.habit_id == filters.habit_id)
    if filters.from_date is not None:
        query = query.where(Entry.date >= filters.from_date)
    if filters.to_date is not None:
        query = query.where(Entry.date <= filters.to_date)
    if filters.source is not None:
        query = query.where(Entry.source == filters.source)
    if filters.is_archived is not None:
        query = query.where(Entry.is_archived == filters.is_archived)

    return query

async def list_entries(
    user_id: str,
    filters: EntryFilters,
    sort_mappings: Sequence[SortMapping],
    page: int,
    page_size: int,
    sort: Optional[str] = None
) -> PaginationResult:
    query = apply_sort(build_entries_query(user_id, filters), Entry, sort, sort_mappings)

    async with get_async_session_context() as session:
        return await create_page(session, query, page, page_size)

async def list_entries_by_cursor(
    user_id: str,
    filters: EntryFilters,
    cursor: Optional[str],
    limit: int
) -> Tuple[List[Entry], Optional[str]]:
    """Newest entries first; returns the page and the cursor of the following one."""
    query = build_entries_query(user_id, filters)

    async with get_async_session_context() as session:
        return await create_cursor_page(
            session, query, cursor, limit,
            id_column=Entry.id,
            date_column=Entry.date
        )

async def get_entry(user_id: str, entry_id: str) -> Entry:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Entry).where((Entry.id == entry_id) & (Entry.user_id == user_id))
        )
        entry = result.first()

        if not entry:
            raise ValueError(f"Entry {entry_id} not found")

        return entry

async def create_entry(user_id: str, request: CreateEntryRequest) -> Entry:
    async with get_async_session_context() as session:
        habit_result = await session.exec(
            select(Habit).where((Habit.id == request.habit_id) & (Habit.user_id == user_id))
        )
        if not habit_result.first():
            raise ValueError(f"Habit with ID: `{request.habit_id}` does not exist.")

        entry = request.to_entry(user_id)
        session.add(entry)
        await session.commit()
        await session.refresh(entry)

        logger.info(f"Entry {entry.id} created for habit {entry.habit_id}")
        return entry

async def create_entries(user_id: str, requests: Sequence[CreateEntryRequest]) -> List[Entry]:
    """All or nothing: every habit id must belong to the user."""
    habit_ids = {request.habit_id for request in requests}

    async with get_async_session_context() as session:
        habits_result = await session.exec(
            select(Habit.id).where(col(Habit.id).in_(habit_ids) & (Habit.user_id == user_id))
        )
        if len(set(habits_result.all())) != len(habit_ids):
            raise ValueError("One or more habit IDs are invalid")

        entries = [request.to_entry(user_id) for request in requests]
        session.add_all(entries)
        await session.commit()
        for entry in entries:
            await session.refresh(entry)

        logger.info(f"Created {len(entries)} entries in batch for user_id={user_id}")
        return entries

async def update_entry(user_id: str, entry_id: str, request: UpdateEntryRequest) -> Entry:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Entry).where((Entry.id == entry_id) & (Entry.user_id == user_id))
        )
        entry = result.first()

        if not entry:
            raise ValueError(f"Entry {entry_id} not found")

        entry.value = request.value
        entry.notes = request.notes
        entry.updated_at_utc = datetime.now(UTC)

        session.add(entry)
        await session.commit()
        await session.refresh(entry)
        return entry

async def set_entry_archived(user_id: str, entry_id: str, is_archived: bool) -> Entry:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Entry).where((Entry.id == entry_id) & (Entry.user_id == user_id))
        )
        entry = result.first()

        if not entry:
            raise ValueError(f"Entry {entry_id} not found")

        entry.is_archived = is_archived
        entry.updated_at_utc = datetime.now(UTC)

        session.add(entry)
        await session.commit()
        await session.refresh(entry)

        logger.info(f"Entry {entry_id} archived={is_archived}")
        return entry

async def delete_entry(user_id: str, entry_id: str) -> None:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Entry).where((Entry.id == entry_id) & (Entry.user_id == user_id))
        )
        entry = result.first()

        if not entry:
            raise ValueError(f"Entry {entry_id} not found")

        await session.delete(entry)
        await session.commit()
