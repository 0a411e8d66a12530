"""Title lookup endpoint used by the bookmark title fetcher."""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, HttpUrl

from core.config import Settings, get_settings
from services.url_scraper import lookup_title

router = APIRouter(tags=["titles"])


class TitleResponse(BaseModel):
    """Title of a page; null when the page has none or could not be fetched."""

    title: str | None


@router.get("/get-title", response_model=TitleResponse)
async def get_title(
    url: HttpUrl = Query(description="Absolute URL of the page"),
    settings: Settings = Depends(get_settings),
) -> TitleResponse:
    """Fetch a page and return its title."""
    title = await lookup_title(str(url), timeout=settings.fetch_timeout)
    return TitleResponse(title=title)
