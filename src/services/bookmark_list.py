"""
In-memory bookmark list for one signed-in user.

State is an immutable ``BookmarkListState`` snapshot. Every change is a pure
``state -> state`` function applied synchronously through
``BookmarkListController.apply``; with a single event loop and no ``await``
inside a transform, overlapping async completions never lose each other's
updates. Manual ordering lives only here and is never written to the store.
"""
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field, replace

from core.user_context import CurrentUser
from schemas.bookmark import BookmarkItem
from services.bookmark_store import BookmarkStore
from services.exceptions import BookmarkNotFoundError, InvalidStateError, PersistenceError

logger = logging.getLogger(__name__)

LOAD_FAILED_MESSAGE = "Failed to load bookmarks"
DELETE_FAILED_MESSAGE = "Failed to delete bookmark"


@dataclass(frozen=True)
class BookmarkListState:
    """Snapshot of the bookmark list and its display state."""

    items: tuple[BookmarkItem, ...] = ()
    selected_tags: tuple[str, ...] = ()
    error: str | None = None
    deleting: frozenset[int] = field(default_factory=frozenset)
    loaded: bool = False

    @property
    def available_tags(self) -> tuple[str, ...]:
        """Distinct tags across all items, in first-seen order."""
        seen: dict[str, None] = {}
        for item in self.items:
            for tag in item.tags:
                seen.setdefault(tag, None)
        return tuple(seen)


ListTransform = Callable[[BookmarkListState], BookmarkListState]


def matches_tags(item: BookmarkItem, selected_tags: tuple[str, ...]) -> bool:
    """True if no filter is active or the item has any of the selected tags."""
    if not selected_tags:
        return True
    return any(tag in selected_tags for tag in item.tags)


def prepend_item(state: BookmarkListState, item: BookmarkItem) -> BookmarkListState:
    """Insert an item at the head of the list."""
    return replace(state, items=(item, *state.items))


def replace_item(
    state: BookmarkListState, item_id: int | str, new_item: BookmarkItem,
) -> BookmarkListState:
    """Swap the item with ``item_id`` for ``new_item`` in the same position."""
    return replace(
        state,
        items=tuple(new_item if item.id == item_id else item for item in state.items),
    )


def remove_item(state: BookmarkListState, item_id: int | str) -> BookmarkListState:
    """Drop the item with ``item_id``; no-op if absent."""
    return replace(state, items=tuple(item for item in state.items if item.id != item_id))


def set_error(state: BookmarkListState, error: str | None) -> BookmarkListState:
    return replace(state, error=error)


def toggle_tag(state: BookmarkListState, tag: str) -> BookmarkListState:
    """
    Add ``tag`` to the active filter if absent, remove it if present.

    Selecting a tag no bookmark carries is a no-op.
    """
    if tag in state.selected_tags:
        selected = tuple(t for t in state.selected_tags if t != tag)
    elif tag in state.available_tags:
        selected = (*state.selected_tags, tag)
    else:
        return state
    return replace(state, selected_tags=selected)


def move_item(state: BookmarkListState, from_index: int, to_index: int) -> BookmarkListState:
    """
    Move an item between two positions of the filtered view.

    The moved item lands where the target item was, and items hidden by the
    active filter keep their place in the full list.
    """
    visible = [item for item in state.items if matches_tags(item, state.selected_tags)]
    for index in (from_index, to_index):
        if not 0 <= index < len(visible):
            raise IndexError(f"List index out of range: {index}")
    if from_index == to_index:
        return state

    moved, target = visible[from_index], visible[to_index]
    if moved.is_pending or target.is_pending:
        raise InvalidStateError("Pending bookmarks cannot be reordered")

    items = [item for item in state.items if item.id != moved.id]
    target_position = next(i for i, item in enumerate(items) if item.id == target.id)
    if from_index < to_index:
        target_position += 1
    items.insert(target_position, moved)
    return replace(state, items=tuple(items))


class FilteredView:
    """
    Lazy, restartable view of a list snapshot under a tag filter.

    Each iteration walks the snapshot again; later list changes are not seen.
    """

    def __init__(self, items: tuple[BookmarkItem, ...], selected_tags: tuple[str, ...]) -> None:
        self._items = items
        self._selected_tags = selected_tags

    def __iter__(self) -> Iterator[BookmarkItem]:
        return (item for item in self._items if matches_tags(item, self._selected_tags))


class BookmarkListController:
    """Owns the bookmark list, the tag filter, and local ordering for one user."""

    def __init__(self, store: BookmarkStore, user: CurrentUser) -> None:
        self._store = store
        self._user = user
        self._state = BookmarkListState()

    @property
    def state(self) -> BookmarkListState:
        return self._state

    @property
    def available_tags(self) -> tuple[str, ...]:
        return self._state.available_tags

    @property
    def selected_tags(self) -> tuple[str, ...]:
        return self._state.selected_tags

    def apply(self, transform: ListTransform) -> BookmarkListState:
        """Replace the current snapshot with ``transform(snapshot)``."""
        self._state = transform(self._state)
        return self._state

    def set_user(self, user: CurrentUser) -> None:
        self._user = user

    async def load(self) -> BookmarkListState:
        """
        Load the user's bookmarks from the store, newest first.

        Raises:
            NotAuthenticatedError: If there is no signed-in user.
            PersistenceError: If the store fails; the error message is kept in state.
        """
        owner_id = self._user.require_id()
        try:
            bookmarks = await self._store.list(owner_id)
        except PersistenceError:
            logger.warning("Loading bookmarks for user %s failed", owner_id, exc_info=True)
            self.apply(lambda s: replace(s, error=LOAD_FAILED_MESSAGE, loaded=True))
            raise
        return self.apply(lambda s: replace(s, items=tuple(bookmarks), loaded=True))

    def toggle_tag_filter(self, tag: str) -> None:
        self.apply(lambda s: toggle_tag(s, tag))

    def clear_tag_filters(self) -> None:
        self.apply(lambda s: replace(s, selected_tags=()))

    def filtered_view(self) -> FilteredView:
        return FilteredView(self._state.items, self._state.selected_tags)

    def reorder(self, from_index: int, to_index: int) -> None:
        """Move a bookmark within the filtered view. Display only; never persisted."""
        self.apply(lambda s: move_item(s, from_index, to_index))

    def clear(self) -> None:
        self._state = BookmarkListState()

    async def delete_bookmark(self, bookmark_id: int | str) -> bool:
        """
        Delete one of the user's bookmarks.

        Returns:
            True if the store deleted the row, False if it was already gone.
            Either way the bookmark is no longer in the list. A delete of an id
            that is already in flight returns False at once without a store call.

        Raises:
            NotAuthenticatedError: If there is no signed-in user.
            InvalidStateError: If the id belongs to a pending placeholder.
            PersistenceError: If the store fails; the list is left unchanged.
        """
        owner_id = self._user.require_id()
        if not isinstance(bookmark_id, int):
            raise InvalidStateError("Pending bookmarks cannot be deleted")
        if bookmark_id in self._state.deleting:
            logger.debug("Delete of bookmark %s already in flight", bookmark_id)
            return False

        self.apply(
            lambda s: replace(s, error=None, deleting=s.deleting | {bookmark_id}),
        )
        try:
            await self._store.delete(owner_id, bookmark_id)
        except BookmarkNotFoundError:
            logger.info("Bookmark %s was already gone for user %s", bookmark_id, owner_id)
            self.apply(lambda s: remove_item(s, bookmark_id))
            return False
        except PersistenceError:
            logger.warning("Deleting bookmark %s failed", bookmark_id, exc_info=True)
            self.apply(lambda s: set_error(s, DELETE_FAILED_MESSAGE))
            raise
        finally:
            self.apply(lambda s: replace(s, deleting=s.deleting - {bookmark_id}))

        self.apply(lambda s: remove_item(s, bookmark_id))
        return True
