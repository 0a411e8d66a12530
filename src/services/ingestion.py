"""
Ingestion pipeline for new bookmarks.

Flow for ``add_bookmark``:
1. Normalize the raw URL and parse the raw tags (no side effects on failure)
2. Show a placeholder at the head of the list
3. Fetch title and summary concurrently; both always settle to a value
4. Persist the final record, then swap it in for the placeholder

Any failure after step 2 removes this call's placeholder, and only that one.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable

from core.user_context import CurrentUser
from schemas.bookmark import BookmarkCreate, BookmarkResponse, PlaceholderBookmark
from services.bookmark_list import (
    BookmarkListController,
    prepend_item,
    remove_item,
    replace_item,
    set_error,
)
from services.bookmark_store import BookmarkStore
from services.exceptions import AddBookmarkError
from services.metadata_fetchers import SUMMARY_UNAVAILABLE, favicon_url
from services.tag_parser import parse_tags
from services.url_normalizer import InvalidUrlError, normalize_url, url_hostname
from services.utils import gather_settled

logger = logging.getLogger(__name__)

ADD_FAILED_MESSAGE = "Failed to add bookmark. Please check the URL."

MetadataFetcher = Callable[[str], Awaitable[str]]


class IngestionOrchestrator:
    """Turns raw user input into a stored, enriched bookmark with optimistic display."""

    def __init__(
        self,
        controller: BookmarkListController,
        store: BookmarkStore,
        user: CurrentUser,
        fetch_title: MetadataFetcher,
        fetch_summary: MetadataFetcher,
        favicon: Callable[[str], str] = favicon_url,
    ) -> None:
        self._controller = controller
        self._store = store
        self._user = user
        self._fetch_title = fetch_title
        self._fetch_summary = fetch_summary
        self._favicon = favicon

    def set_user(self, user: CurrentUser) -> None:
        self._user = user

    async def add_bookmark(self, raw_url: str, raw_tags: str = "") -> BookmarkResponse:
        """
        Add a bookmark from raw form input.

        Args:
            raw_url: URL as typed; a missing scheme means https.
            raw_tags: Comma-separated tags.

        Returns:
            The stored bookmark, which has replaced the placeholder in the list.

        Raises:
            NotAuthenticatedError: If there is no signed-in user.
            InvalidUrlError: If the URL is empty or malformed. Nothing was shown or sent.
            AddBookmarkError: If persisting failed. The placeholder is gone and the
                error carries ``raw_url`` and ``raw_tags`` for a retry.
        """
        owner_id = self._user.require_id()
        if not raw_url or not raw_url.strip():
            raise InvalidUrlError(raw_url, "URL is required")

        try:
            url = normalize_url(raw_url)
        except InvalidUrlError:
            self._controller.apply(lambda s: set_error(s, ADD_FAILED_MESSAGE))
            raise
        tags = parse_tags(raw_tags)
        favicon = self._favicon(url)

        placeholder = PlaceholderBookmark(url=url, favicon=favicon, tags=tags)
        self._controller.apply(lambda s: set_error(prepend_item(s, placeholder), None))
        logger.debug("Placeholder %s shown for %s", placeholder.id, url)

        try:
            title, summary = await gather_settled(
                (self._fetch_title(url), url_hostname(url) or url),
                (self._fetch_summary(url), SUMMARY_UNAVAILABLE),
            )
            stored = await self._store.insert(
                owner_id,
                BookmarkCreate(
                    url=url,
                    title=title,
                    summary=summary,
                    favicon=favicon,
                    tags=tags,
                ),
            )
        except asyncio.CancelledError:
            self._controller.apply(lambda s: remove_item(s, placeholder.id))
            raise
        except Exception as e:
            logger.warning("Adding bookmark for %s failed", url, exc_info=True)
            self._controller.apply(
                lambda s: set_error(remove_item(s, placeholder.id), ADD_FAILED_MESSAGE),
            )
            raise AddBookmarkError(ADD_FAILED_MESSAGE, raw_url=raw_url, raw_tags=raw_tags) from e

        self._controller.apply(lambda s: replace_item(s, placeholder.id, stored))
        logger.info("Stored bookmark %s for user %s", stored.id, owner_id)
        return stored
