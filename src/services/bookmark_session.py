"""Wiring of the bookmark list and ingestion pipeline for one signed-in user."""
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from functools import partial
from types import TracebackType

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings, get_settings
from core.user_context import ANONYMOUS_USER, SessionContext
from db.session import async_session_factory
from schemas.bookmark import BookmarkResponse
from services.bookmark_list import BookmarkListController, set_error
from services.bookmark_store import ApiBookmarkStore, BookmarkStore, SqlBookmarkStore
from services.exceptions import NotAuthenticatedError
from services.ingestion import IngestionOrchestrator
from services.metadata_fetchers import favicon_url, fetch_summary, fetch_title

logger = logging.getLogger(__name__)

SIGN_OUT_FAILED_MESSAGE = "Failed to sign out"


class BookmarkSession:
    """
    A user's bookmark session, from sign-in to sign-out.

    Usage:
        async with BookmarkSession(context, store, client) as session:
            await session.add_bookmark("example.com", "news")
            for bookmark in session.controller.filtered_view():
                ...
    """

    def __init__(
        self,
        context: SessionContext,
        store: BookmarkStore,
        http_client: httpx.AsyncClient,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.context = context
        self.controller = BookmarkListController(store, context.user)
        self.orchestrator = IngestionOrchestrator(
            controller=self.controller,
            store=store,
            user=context.user,
            fetch_title=partial(
                fetch_title, http_client, service_url=settings.title_service_url,
            ),
            fetch_summary=partial(
                fetch_summary,
                http_client,
                service_url=settings.summary_service_url,
                user_agent=settings.summary_user_agent,
                max_length=settings.summary_max_length,
            ),
            favicon=partial(
                favicon_url,
                template=settings.favicon_service_template,
                default=settings.default_favicon,
            ),
        )

    async def __aenter__(self) -> "BookmarkSession":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.controller.clear()

    async def start(self) -> None:
        """Load the user's bookmarks once for this session."""
        await self.controller.load()
        logger.info(
            "Session started for user %s with %d bookmarks",
            self.context.user.id,
            len(self.controller.state.items),
        )

    async def add_bookmark(self, raw_url: str, raw_tags: str = "") -> BookmarkResponse:
        return await self.orchestrator.add_bookmark(raw_url, raw_tags)

    async def delete_bookmark(self, bookmark_id: int | str) -> bool:
        return await self.controller.delete_bookmark(bookmark_id)

    def toggle_theme(self) -> bool:
        return self.context.toggle_theme()

    async def sign_out(self, sign_out: Callable[[], Awaitable[None]]) -> None:
        """
        Sign out through the identity provider and end the session.

        On failure the session stays as it was, with an error message set.
        """
        try:
            await sign_out()
        except Exception:
            logger.warning("Sign out failed for user %s", self.context.user.id, exc_info=True)
            self.controller.apply(lambda s: set_error(s, SIGN_OUT_FAILED_MESSAGE))
            raise

        self.context.user = ANONYMOUS_USER
        self.controller.set_user(ANONYMOUS_USER)
        self.orchestrator.set_user(ANONYMOUS_USER)
        self.controller.clear()


@asynccontextmanager
async def open_api_session(
    context: SessionContext,
    settings: Settings | None = None,
) -> AsyncIterator[BookmarkSession]:
    """
    Open a bookmark session backed by the bookmarks HTTP API.

    One ``httpx.AsyncClient`` (``API_URL`` base, ``FETCH_TIMEOUT``) is shared by
    the store and the metadata fetchers and closed when the session ends.

    Raises:
        NotAuthenticatedError: If the context's user has no bearer token.
    """
    settings = settings or get_settings()
    if context.user.token is None:
        raise NotAuthenticatedError
    async with httpx.AsyncClient(
        base_url=settings.api_url,
        timeout=settings.fetch_timeout,
        http2=True,
    ) as client:
        store = ApiBookmarkStore(client, context.user.token)
        async with BookmarkSession(context, store, client, settings) as session:
            yield session


@asynccontextmanager
async def open_sql_session(
    context: SessionContext,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    settings: Settings | None = None,
) -> AsyncIterator[BookmarkSession]:
    """
    Open a bookmark session that writes straight to the database.

    Uses the application's ``async_session_factory`` unless another factory is
    given; metadata fetchers share one client with ``FETCH_TIMEOUT``.
    """
    settings = settings or get_settings()
    store = SqlBookmarkStore(session_factory or async_session_factory)
    async with (
        httpx.AsyncClient(timeout=settings.fetch_timeout, http2=True) as client,
        BookmarkSession(context, store, client, settings) as session,
    ):
        yield session
