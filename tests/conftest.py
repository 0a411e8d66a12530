"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings
from core.user_context import CurrentUser
from models.base import Base
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkResponse
from services.exceptions import BookmarkNotFoundError, PersistenceError


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite database, fresh for every test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def settings(database_url: str) -> Settings:
    """Settings for tests: dev mode on, metadata services on fake hosts."""
    return Settings(
        _env_file=None,
        DATABASE_URL=database_url,
        dev_mode=True,
        jwt_secret="test-secret-key-with-at-least-32-bytes",
        title_service_url="http://titles.test/get-title",
        summary_service_url="https://reader.test/",
    )


@pytest.fixture
async def async_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Create an async engine with the schema in place."""
    engine = create_async_engine(database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """A session for arranging and inspecting rows directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user."""
    user = User(auth_id='test-user-123', email='test@example.com')
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def other_user(db_session: AsyncSession) -> User:
    """Create a second user for isolation tests."""
    user = User(auth_id='other-user-456', email='other@example.com')
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def client(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with database session and settings overrides."""
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = lambda: settings

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


class FakeBookmarkStore:
    """
    In-memory bookmark store enforcing owner isolation.

    Set ``fail_insert``/``fail_delete``/``fail_list`` to make calls raise
    PersistenceError.
    """

    def __init__(self) -> None:
        self.rows: dict[int, BookmarkResponse] = {}
        self.inserted: list[tuple[int, BookmarkCreate]] = []
        self.deleted: list[tuple[int, int]] = []
        self.fail_insert = False
        self.fail_delete = False
        self.fail_list = False
        self._next_id = 1

    def add_row(self, owner_id: int, url: str, tags: list[str] | None = None) -> BookmarkResponse:
        """Seed a stored row directly."""
        row = BookmarkResponse(
            id=self._next_id,
            user_id=owner_id,
            url=url,
            title=url,
            summary="summary",
            favicon="/favicon.ico",
            tags=tags or [],
            created_at=datetime.now(UTC),
        )
        self.rows[row.id] = row
        self._next_id += 1
        return row

    async def insert(self, owner_id: int, data: BookmarkCreate) -> BookmarkResponse:
        if self.fail_insert:
            raise PersistenceError("Failed to insert bookmark")
        self.inserted.append((owner_id, data))
        row = self.add_row(owner_id, str(data.url), data.tags)
        row = row.model_copy(
            update={"title": data.title, "summary": data.summary, "favicon": data.favicon},
        )
        self.rows[row.id] = row
        return row

    async def list(self, owner_id: int) -> list[BookmarkResponse]:
        if self.fail_list:
            raise PersistenceError("Failed to list bookmarks")
        rows = [row for row in self.rows.values() if row.user_id == owner_id]
        return sorted(rows, key=lambda r: r.id, reverse=True)

    async def delete(self, owner_id: int, bookmark_id: int) -> None:
        if self.fail_delete:
            raise PersistenceError("Failed to delete bookmark")
        row = self.rows.get(bookmark_id)
        if row is None or row.user_id != owner_id:
            raise BookmarkNotFoundError(bookmark_id)
        self.deleted.append((owner_id, bookmark_id))
        del self.rows[bookmark_id]


@pytest.fixture
def fake_store() -> FakeBookmarkStore:
    """An in-memory owner-scoped store."""
    return FakeBookmarkStore()


@pytest.fixture
def current_user() -> CurrentUser:
    """A signed-in user for session-side tests."""
    return CurrentUser(id=1, email='test@example.com', token='test-token')
