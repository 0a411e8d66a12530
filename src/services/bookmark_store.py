"""
Boundary between the bookmark session and the persistence layer.

Every operation is scoped to an owner. Backend failures surface as
``PersistenceError`` with the original error chained; deleting a row that is
missing or owned by someone else raises ``BookmarkNotFoundError``.
"""
import logging
from typing import Any, Protocol

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from schemas.bookmark import BookmarkCreate, BookmarkResponse
from services import bookmark_service
from services.exceptions import BookmarkNotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class BookmarkStore(Protocol):
    """Owner-scoped row store for bookmarks."""

    async def insert(self, owner_id: int, data: BookmarkCreate) -> BookmarkResponse:
        """Persist a new bookmark and return the stored row."""
        ...

    async def list(self, owner_id: int) -> list[BookmarkResponse]:
        """Return the owner's bookmarks, newest first."""
        ...

    async def delete(self, owner_id: int, bookmark_id: int) -> None:
        """Delete one of the owner's bookmarks."""
        ...


class SqlBookmarkStore:
    """Bookmark store backed directly by the database, one unit of work per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def insert(self, owner_id: int, data: BookmarkCreate) -> BookmarkResponse:
        try:
            async with self._session_factory() as session:
                bookmark = await bookmark_service.create_bookmark(session, owner_id, data)
                stored = BookmarkResponse.model_validate(bookmark)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to insert bookmark for user %s", owner_id, exc_info=True)
            raise PersistenceError("Failed to insert bookmark") from e
        return stored

    async def list(self, owner_id: int) -> list[BookmarkResponse]:
        try:
            async with self._session_factory() as session:
                bookmarks = await bookmark_service.get_bookmarks(session, owner_id)
                return [BookmarkResponse.model_validate(b) for b in bookmarks]
        except SQLAlchemyError as e:
            logger.error("Failed to list bookmarks for user %s", owner_id, exc_info=True)
            raise PersistenceError("Failed to list bookmarks") from e

    async def delete(self, owner_id: int, bookmark_id: int) -> None:
        try:
            async with self._session_factory() as session:
                deleted = await bookmark_service.delete_bookmark(session, owner_id, bookmark_id)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to delete bookmark %s for user %s", bookmark_id, owner_id, exc_info=True,
            )
            raise PersistenceError("Failed to delete bookmark") from e
        if not deleted:
            raise BookmarkNotFoundError(bookmark_id)


class ApiBookmarkStore:
    """
    Bookmark store that forwards to the bookmarks HTTP API.

    The server derives the owner from the bearer token, so ``owner_id`` is not
    sent; isolation is enforced server-side.
    """

    def __init__(self, client: httpx.AsyncClient, token: str) -> None:
        self._client = client
        self._token = token

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, path, headers=self._headers(), **kwargs,
            )
        except httpx.HTTPError as e:
            logger.error("Bookmark API %s %s failed", method, path, exc_info=True)
            raise PersistenceError(f"Bookmark API {method} {path} failed") from e
        return response

    async def insert(self, owner_id: int, data: BookmarkCreate) -> BookmarkResponse:
        response = await self._request("POST", "/bookmarks/", json=data.model_dump(mode="json"))
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PersistenceError("Failed to insert bookmark") from e
        try:
            return BookmarkResponse.model_validate(response.json())
        except ValueError as e:
            logger.error("Bookmark API returned a malformed bookmark", exc_info=True)
            raise PersistenceError("Failed to read inserted bookmark") from e

    async def list(self, owner_id: int) -> list[BookmarkResponse]:
        response = await self._request("GET", "/bookmarks/")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PersistenceError("Failed to list bookmarks") from e
        try:
            return [BookmarkResponse.model_validate(item) for item in response.json()["items"]]
        except (ValueError, KeyError, TypeError) as e:
            logger.error("Bookmark API returned a malformed list", exc_info=True)
            raise PersistenceError("Failed to read bookmarks") from e

    async def delete(self, owner_id: int, bookmark_id: int) -> None:
        response = await self._request("DELETE", f"/bookmarks/{bookmark_id}")
        if response.status_code == 404:
            raise BookmarkNotFoundError(bookmark_id)
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PersistenceError("Failed to delete bookmark") from e
