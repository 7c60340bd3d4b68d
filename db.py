from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

import models.db.report  # noqa: F401
import models.db.user  # noqa: F401
from config import DATABASE_URL
from models.db.base import Base


def create_db_engine(url: str = DATABASE_URL) -> AsyncEngine:
    if url.startswith('sqlite'):
        # a single shared connection keeps in-memory databases alive
        poolclass = StaticPool if (':memory:' in url or url.endswith('://')) else None
        return create_async_engine(url, poolclass=poolclass)

    return create_async_engine(
        url,
        query_cache_size=128,
        pool_size=10,
        max_overflow=-1,
    )


async def create_tables(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def db_read(engine: AsyncEngine):
    """
    Get a database session for reading.
    """
    async with AsyncSession(
        engine,
        expire_on_commit=False,
        close_resets_only=False,
    ) as session:
        yield session


@asynccontextmanager
async def db_write(engine: AsyncEngine):
    """
    Get a database session for writing, automatically committing on exit.
    """
    async with AsyncSession(
        engine,
        expire_on_commit=False,
        close_resets_only=False,
    ) as session:
        yield session
        await session.commit()
