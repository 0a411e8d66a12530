"""Session context types: the current user and per-session display flags."""
from dataclasses import dataclass

from services.exceptions import NotAuthenticatedError


@dataclass(frozen=True)
class CurrentUser:
    """
    The signed-in user as seen by the bookmark session.

    An anonymous user has ``id=None``; no bookmark operation is permitted for it.
    """

    id: int | None
    email: str | None = None
    token: str | None = None  # Bearer token for the HTTP bookmark store

    @property
    def is_authenticated(self) -> bool:
        return self.id is not None

    def require_id(self) -> int:
        """Return the user id, or raise NotAuthenticatedError for anonymous users."""
        if self.id is None:
            raise NotAuthenticatedError
        return self.id


ANONYMOUS_USER = CurrentUser(id=None)


@dataclass
class SessionContext:
    """
    Explicit per-session context passed to the bookmark session.

    Lives from sign-in to sign-out, replacing ambient auth and theme globals.
    """

    user: CurrentUser
    dark_mode: bool = False

    def toggle_theme(self) -> bool:
        """Flip dark mode and return the new value."""
        self.dark_mode = not self.dark_mode
        return self.dark_mode
