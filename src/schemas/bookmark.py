"""Pydantic schemas for bookmarks and their optimistic placeholders."""
from datetime import UTC, datetime
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, field_validator

from models.bookmark import MAX_TITLE_LENGTH
from services.tag_parser import normalize_tags

PLACEHOLDER_TITLE = "Loading..."
PLACEHOLDER_SUMMARY = "Generating summary..."


class BookmarkCreate(BaseModel):
    """Schema for inserting a fully-resolved bookmark row."""

    url: HttpUrl
    title: str = Field(min_length=1, max_length=MAX_TITLE_LENGTH)
    summary: str
    favicon: str
    tags: list[str] = []

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: list[str]) -> list[str]:
        """Normalize tags: trimmed, lowercase, empty entries dropped."""
        return normalize_tags(v)


class BookmarkResponse(BaseModel):
    """Schema for a persisted bookmark."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    user_id: int
    url: str
    title: str
    summary: str
    favicon: str
    tags: list[str]
    created_at: datetime
    is_pending: Literal[False] = False


class BookmarkListResponse(BaseModel):
    """Schema for the list of a user's bookmarks, newest first."""

    items: list[BookmarkResponse]
    total: int


class PlaceholderBookmark(BaseModel):
    """
    Client-only stand-in for a bookmark that is still being ingested.

    The temporary id is a string so it can never collide with a stored id, and
    it is never sent to the store.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: f"tmp-{uuid4().hex}")
    url: str
    title: str = PLACEHOLDER_TITLE
    summary: str = PLACEHOLDER_SUMMARY
    favicon: str
    tags: list[str] = []
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    is_pending: Literal[True] = True


BookmarkItem = BookmarkResponse | PlaceholderBookmark
