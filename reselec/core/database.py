# reselec/core/database.py

"""
Database connection and session management.

- Builds the async SQLModel engine from `settings.DATABASE_URL`.
- Provides the per-request session dependency and a standalone session context for arq tasks.
- `create_db_and_tables()` creates every registered table (first start / development).
"""

import logging
from typing import Any, AsyncGenerator, Dict
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import configure_mappers, sessionmaker

from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from reselec.core.config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Keyword arguments for `create_async_engine`.
    SQLite does not use a queue pool, so the pool sizing options only apply to server databases.
    """
    options: Dict[str, Any] = {"echo": settings.DEBUG_MODE, "future": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_recycle=3600, pool_size=10, max_overflow=20, pool_pre_ping=True)
    return options


engine: AsyncEngine = create_async_engine(
    settings.DATABASE_URL.get_secret_value(),
    **engine_options(settings.DATABASE_URL.get_secret_value()),
)

AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

metadata = SQLModel.metadata


async def create_db_and_tables(bind: AsyncEngine = engine) -> None:
    """
    Creates all tables registered on `SQLModel.metadata`. Existing tables are left untouched.
    """
    # every table model must be imported before create_all
    from reselec.domains import models  # noqa: F401

    configure_mappers()
    async with bind.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database tables created (or already present).")


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped async session for FastAPI dependency injection.
    """
    async with AsyncSessionLocal() as session:
        yield session


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Standalone session for arq tasks and scripts. Commits on success, rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
