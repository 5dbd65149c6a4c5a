# services/tag_service.py - Async tag service
from datetime import datetime, UTC
from typing import List, Optional, Sequence

from sqlalchemy import delete
from sqlmodel import select

from core.db import get_async_session_context
from core.logger import get_logger
from core.sorting import SortMapping, apply_sort
from models.db_models import HabitTag, Tag
from models.tag_models import CreateTagRequest, UpdateTagRequest

logger = get_logger(__name__)

async def list_tags(
    user_id: str,
    sort_mappings: Sequence[SortMapping],
    sort: Optional[str] = None
) -> List[Tag]:
    """All of the user's tags; a user keeps few enough tags that no paging is needed."""
    query = apply_sort(select(Tag).where(Tag.user_id == user_id), Tag, sort, sort_mappings)

    async with get_async_session_context() as session:
        result = await session.exec(query)
        return list(result.all())

async def get_tag(user_id: str, tag_id: str) -> Tag:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Tag).where((Tag.id == tag_id) & (Tag.user_id == user_id))
        )
        tag = result.first()

        if not tag:
            raise ValueError(f"Tag {tag_id} not found")

        return tag

async def create_tag(user_id: str, request: CreateTagRequest) -> Tag:
    async with get_async_session_context() as session:
        # Tag names are unique per user
        existing_result = await session.exec(
            select(Tag).where((Tag.user_id == user_id) & (Tag.name == request.name))
        )
        if existing_result.first():
            raise ValueError(f"Tag '{request.name}' already exists")

        tag = Tag(user_id=user_id, name=request.name, description=request.description)
        session.add(tag)
        await session.commit()
        await session.refresh(tag)

        logger.info(f"Tag '{tag.name}' created with id={tag.id} for user_id={user_id}")
        return tag

async def update_tag(user_id: str, tag_id: str, request: UpdateTagRequest) -> Tag:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Tag).where((Tag.id == tag_id) & (Tag.user_id == user_id))
        )
        tag = result.first()

        if not tag:
            raise ValueError(f"Tag {tag_id} not found")

        if request.name != tag.name:
            clash_result = await session.exec(
                select(Tag).where((Tag.user_id == user_id) & (Tag.name == request.name))
            )
            if clash_result.first():
                raise ValueError(f"Tag '{request.name}' already exists")

        tag.name = request.name
        tag.description = request.description
        tag.updated_at_utc = datetime.now(UTC)

        session.add(tag)
        await session.commit()
        await session.refresh(tag)
        return tag

async def delete_tag(user_id: str, tag_id: str) -> None:
    async with get_async_session_context() as session:
        result = await session.exec(
            select(Tag).where((Tag.id == tag_id) & (Tag.user_id == user_id))
        )
        tag = result.first()

        if not tag:
            raise ValueError(f"Tag {tag_id} not found")

        await session.execute(delete(HabitTag).where(HabitTag.tag_id == tag_id))
        await session.delete(tag)
        await session.commit()

        logger.info(f"Deleted tag {tag_id}")
