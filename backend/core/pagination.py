# core/pagination.py - Offset and cursor pagination over SQLModel queries
import base64
import json
from dataclasses import dataclass
from datetime import date
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlmodel.sql.expression import SelectOfScalar

from models.common_models import PaginationResult

# ===== OFFSET PAGINATION =====

async def count_rows(session: AsyncSession, query: SelectOfScalar) -> int:
    """Count the rows a filtered query would return, ignoring any ordering."""
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    result = await session.execute(count_query)
    return result.scalar_one()

async def create_page(
    session: AsyncSession,
    query: SelectOfScalar,
    page: int,
    page_size: int
) -> PaginationResult:
    """
    Run ``query`` as one page of ``page_size`` rows.

    The count and the fetch are separate statements; a concurrent insert can
    make ``total_count`` slightly stale, which is accepted.
    """
    total_count = await count_rows(session, query)

    result = await session.exec(
        query.offset((page - 1) * page_size).limit(page_size)
    )

    return PaginationResult(
        items=list(result.all()),
        page=page,
        page_size=page_size,
        total_count=total_count
    )

# ===== CURSOR PAGINATION =====

@dataclass(frozen=True)
class EntryCursor:
    """Opaque pointer to the first row of the next page: ``(id, date)``."""
    id: str
    date: date

    @staticmethod
    def encode(id: str, date: date) -> str:
        raw = json.dumps({"id": id, "date": date.isoformat()})
        return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, cursor: Optional[str]) -> Optional["EntryCursor"]:
        """Decode a client cursor. Anything unreadable means 'start from the first page'."""
        if not cursor:
            return None

        try:
            padded = cursor + "=" * (-len(cursor) % 4)
            payload = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
            return cls(id=str(payload["id"]), date=date.fromisoformat(payload["date"]))
        except (ValueError, TypeError, KeyError, UnicodeError):
            # binascii.Error and json.JSONDecodeError are ValueError subclasses
            return None

async def create_cursor_page(
    session: AsyncSession,
    query: SelectOfScalar,
    cursor: Optional[str],
    limit: int,
    id_column: Any,
    date_column: Any
) -> Tuple[List[Any], Optional[str]]:
    """
    Fetch ``limit`` rows ordered ``date desc, id desc`` starting at ``cursor``.

    One extra row is read ahead: when it exists it becomes the next cursor and
    is dropped from this page, so the next page starts exactly on it.
    """
    decoded = EntryCursor.decode(cursor)
    if decoded is not None:
        query = query.where(
            or_(
                date_column < decoded.date,
                and_(date_column == decoded.date, id_column <= decoded.id)
            )
        )

    query = query.order_by(date_column.desc(), id_column.desc()).limit(limit + 1)
    result = await session.exec(query)
    rows = list(result.all())

    next_cursor = None
    if len(rows) > limit:
        lookahead = rows[limit]
        next_cursor = EntryCursor.encode(
            getattr(lookahead, id_column.key),
            getattr(lookahead, date_column.key)
        )
        rows = rows[:limit]

    return rows, next_cursor
