"""Bookmark model for storing user bookmarks."""
from typing import TYPE_CHECKING

from sqlalchemy import JSON, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from models.user import User

MAX_TITLE_LENGTH = 500


class Bookmark(Base, TimestampMixin):
    """Bookmark model - stores a URL with its fetched title, summary, favicon, and tags."""

    __tablename__ = "bookmarks"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    url: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(String(MAX_TITLE_LENGTH), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    favicon: Mapped[str] = mapped_column(Text, nullable=False)
    # JSON keeps tag order; JSONB on PostgreSQL
    tags: Mapped[list[str]] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=False,
        default=list,
    )

    user: Mapped["User"] = relationship(back_populates="bookmarks")
