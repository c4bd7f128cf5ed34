"""SQLAlchemy 2.x async database setup.

This module defines the async engine and session factory but does not
hard-code any connection credentials.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .models import Base


engine: AsyncEngine = create_async_engine(settings.db.url, echo=settings.db.echo, future=True)

AsyncSessionMaker = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(bind: AsyncEngine | None = None, *, drop: bool = False) -> None:
    """Create all tables, optionally dropping them first."""
    async with (bind or engine).begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
