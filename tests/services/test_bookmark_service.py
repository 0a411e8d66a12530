"""Tests for bookmark service-layer CRUD."""
from sqlalchemy.ext.asyncio import AsyncSession

from models.user import User
from schemas.bookmark import BookmarkCreate
from services import bookmark_service


def _data(url: str = 'https://example.com/') -> BookmarkCreate:
    return BookmarkCreate(
        url=url,
        title='Example Domain',
        summary='A domain used for illustrative examples.',
        favicon='/favicon.ico',
        tags=['Reference'],
    )


async def test__create_bookmark__flushes_row_with_id(
    db_session: AsyncSession, test_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(db_session, test_user.id, _data())

    assert bookmark.id is not None
    assert bookmark.user_id == test_user.id
    assert bookmark.tags == ['reference']
    assert bookmark.created_at is not None


async def test__get_bookmark__scoped_to_user(
    db_session: AsyncSession, test_user: User, other_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(db_session, test_user.id, _data())

    assert await bookmark_service.get_bookmark(db_session, test_user.id, bookmark.id) is bookmark
    assert await bookmark_service.get_bookmark(db_session, other_user.id, bookmark.id) is None


async def test__get_bookmarks__newest_first(db_session: AsyncSession, test_user: User) -> None:
    first = await bookmark_service.create_bookmark(db_session, test_user.id, _data())
    second = await bookmark_service.create_bookmark(
        db_session, test_user.id, _data('https://example.org/'),
    )

    bookmarks = await bookmark_service.get_bookmarks(db_session, test_user.id)

    assert [b.id for b in bookmarks] == [second.id, first.id]


async def test__delete_bookmark__wrong_user_returns_false(
    db_session: AsyncSession, test_user: User, other_user: User,
) -> None:
    bookmark = await bookmark_service.create_bookmark(db_session, test_user.id, _data())

    assert await bookmark_service.delete_bookmark(db_session, other_user.id, bookmark.id) is False
    assert await bookmark_service.delete_bookmark(db_session, test_user.id, bookmark.id) is True
    assert await bookmark_service.get_bookmarks(db_session, test_user.id) == []
