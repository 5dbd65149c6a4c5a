# core/db.py - SQLModel engines and sessions for the DevHabit database
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncGenerator, Generator

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool, StaticPool
from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.ext.asyncio.session import AsyncSession

from core.settings import settings

# export environment variables
DATABASE_URL = settings.DATABASE_URL
ASYNC_DATABASE_URL = DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")

SQLITE_CONNECT_ARGS = {
    "check_same_thread": False,
    "timeout": 20,  # seconds to wait on a locked database
}

# ===== ENGINES =====

# Table creation at startup and test seeding
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    poolclass=StaticPool,
    connect_args=SQLITE_CONNECT_ARGS,
)

# Every request handler and background job; connections never outlive their event loop
async_engine = create_async_engine(
    ASYNC_DATABASE_URL,
    poolclass=NullPool,
    connect_args=SQLITE_CONNECT_ARGS,
)

def init_db():
    """Create any missing table."""
    import models.db_models  # noqa: F401  registers the tables on SQLModel.metadata

    SQLModel.metadata.create_all(engine)

# ===== SESSIONS =====

@contextmanager
def get_sync_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        try:
            yield session
        except Exception:
            session.rollback()
            raise

async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency; loaded objects stay readable after commit."""
    async with AsyncSession(async_engine, expire_on_commit=False) as session:
        yield session

@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """Session for services and background jobs, rolled back when the block raises."""
    async with AsyncSession(async_engine, expire_on_commit=False) as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
