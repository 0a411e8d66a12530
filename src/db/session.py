"""Database engine and session factories for the bookmark store."""
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.config import get_settings


def engine_options(database_url: str) -> dict[str, Any]:
    """
    Engine keyword arguments for a database URL.

    An in-memory SQLite database exists per connection, so it is pinned to a
    single shared connection; every other URL gets a pre-pinged pool.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:"):
        return {"echo": False, "poolclass": StaticPool}
    return {"echo": False, "pool_pre_ping": True}


def build_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, **engine_options(database_url))


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory used by both request handlers and ``SqlBookmarkStore``."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(get_settings().database_url)
async_session_factory = build_session_factory(engine)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield a session for one API request.

    Services flush; the commit happens here once the route returns, and any
    error rolls the whole request back.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
