"""Async database engine, session dependency, and schema bootstrap."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from portal import models  # noqa: F401  # register tables on SQLModel.metadata
from portal.core.config import settings
from portal.core.logging import get_logger

logger = get_logger(__name__)

engine: AsyncEngine = create_async_engine(settings.database_url, pool_pre_ping=True)
async_session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def init_db(bind: AsyncEngine | None = None) -> None:
    """Create missing tables on ``bind`` (the configured engine by default)."""
    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("db.schema.ready", extra={"url": target.url.render_as_string(hide_password=True)})


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield a request-scoped async session."""
    async with async_session_maker() as session:
        yield session
