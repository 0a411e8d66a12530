"""Shared exceptions for service layer operations."""


class InvalidStateError(Exception):
    """
    Raised when an operation is invalid for a resource's current state.

    Used by the list controller when an operation targets a bookmark that is
    still pending (e.g., deleting or moving an optimistic placeholder).
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class NotAuthenticatedError(Exception):
    """Raised when an operation needs a signed-in user and there is none."""

    def __init__(self, message: str = "No authenticated user") -> None:
        super().__init__(message)


class PersistenceError(Exception):
    """
    Raised when the bookmark store fails to insert, list, or delete rows.

    The underlying driver or HTTP error is chained as ``__cause__`` for diagnostics.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class BookmarkNotFoundError(Exception):
    """Raised when a bookmark doesn't exist or doesn't belong to the user."""

    def __init__(self, bookmark_id: int) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(f"Bookmark not found: {bookmark_id}")


class FetchDegradedError(Exception):
    """
    Raised inside a metadata fetcher when a lookup returns unusable content.

    Never escapes a fetcher: it is converted to the fetcher's fallback value.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)


class AddBookmarkError(Exception):
    """
    Raised when a bookmark could not be added after its placeholder was shown.

    Carries the raw user input so the caller can offer it back for a retry.
    """

    def __init__(self, message: str, raw_url: str, raw_tags: str) -> None:
        self.message = message
        self.raw_url = raw_url
        self.raw_tags = raw_tags
        super().__init__(message)
