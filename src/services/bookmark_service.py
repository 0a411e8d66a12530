"""Service layer for bookmark CRUD operations."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate

logger = logging.getLogger(__name__)


async def create_bookmark(
    db: AsyncSession,
    user_id: int,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user from already-resolved metadata.

    Note: Does not commit. Caller (session generator or store) handles commit.
    """
    bookmark = Bookmark(
        user_id=user_id,
        url=str(data.url),
        title=data.title,
        summary=data.summary,
        favicon=data.favicon,
        tags=data.tags,
    )
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    logger.debug("Created bookmark %s for user %s", bookmark.id, user_id)
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> Bookmark | None:
    """Get a bookmark by ID, scoped to user. Returns None if not found or wrong user."""
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def get_bookmarks(
    db: AsyncSession,
    user_id: int,
) -> list[Bookmark]:
    """Get all bookmarks for a user, newest first."""
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc()),
    )
    return list(result.scalars().all())


async def delete_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> bool:
    """
    Delete a bookmark. Returns True if deleted, False if not found or wrong user.

    Note: Does not commit. Caller (session generator or store) handles commit.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    await db.delete(bookmark)
    await db.flush()
    return True
