"""
Best-effort metadata lookups for new bookmarks.

Title and summary come from external HTTP services and are unreliable, so both
fetchers settle: every failure is logged and replaced by a fallback value, and
neither ever raises into the ingestion pipeline. The favicon is derived from
the host without any request.
"""
import logging

import httpx

from models.bookmark import MAX_TITLE_LENGTH
from services.exceptions import FetchDegradedError
from services.url_normalizer import url_hostname
from services.utils import settle

logger = logging.getLogger(__name__)

DEFAULT_TITLE_SERVICE_URL = "http://localhost:8000/get-title"
DEFAULT_SUMMARY_SERVICE_URL = "https://r.jina.ai/"
BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

SUMMARY_MAX_LENGTH = 400
MIN_SUMMARY_LENGTH = 10
SUMMARY_UNAVAILABLE = "Unable to generate summary for this URL."

FAVICON_SERVICE_TEMPLATE = "https://www.google.com/s2/favicons?domain={host}&sz=32"
DEFAULT_FAVICON = "/favicon.ico"


async def _lookup_title(client: httpx.AsyncClient, url: str, service_url: str) -> str:
    response = await client.get(service_url, params={"url": url})
    if not response.is_success:
        raise FetchDegradedError(f"Title lookup returned HTTP {response.status_code}")

    data = response.json()
    title = data.get("title") if isinstance(data, dict) else None
    if not isinstance(title, str) or not title.strip():
        raise FetchDegradedError("Title lookup returned no title")
    return title.strip()[:MAX_TITLE_LENGTH]


async def fetch_title(
    client: httpx.AsyncClient,
    url: str,
    service_url: str = DEFAULT_TITLE_SERVICE_URL,
) -> str:
    """
    Look up the human-readable title of a page.

    Args:
        client: Shared HTTP client.
        url: Normalized absolute URL of the page.
        service_url: Title lookup endpoint, called as ``GET service_url?url=<url>``.

    Returns:
        The page title, or the URL's hostname if the lookup fails in any way.
    """
    fallback = url_hostname(url) or url
    return await settle(
        _lookup_title(client, url, service_url),
        fallback,
        label=f"Title lookup for {url}",
    )


async def _request_summary(
    client: httpx.AsyncClient,
    url: str,
    service_url: str,
    user_agent: str,
    max_length: int,
) -> str:
    response = await client.get(
        f"{service_url}{url}",
        headers={"Accept": "text/plain", "User-Agent": user_agent},
    )
    if not response.is_success:
        logger.warning("Summary service returned HTTP %s for %s", response.status_code, url)
        return f"{SUMMARY_UNAVAILABLE} (Status: {response.status_code})"

    summary = response.text.strip()
    if len(summary) < MIN_SUMMARY_LENGTH:
        raise FetchDegradedError(f"Summary service returned {len(summary)} characters")
    if len(summary) > max_length:
        return summary[:max_length] + "..."
    return summary


async def fetch_summary(
    client: httpx.AsyncClient,
    url: str,
    service_url: str = DEFAULT_SUMMARY_SERVICE_URL,
    user_agent: str = BROWSER_USER_AGENT,
    max_length: int = SUMMARY_MAX_LENGTH,
) -> str:
    """
    Request a short plain-text summary of a page from the reader service.

    The target URL is appended to ``service_url``. Bodies longer than
    ``max_length`` are cut and marked with ``"..."``.

    Returns:
        The summary, a status-specific message for non-success responses, or
        ``SUMMARY_UNAVAILABLE`` for empty bodies and request failures.
    """
    return await settle(
        _request_summary(client, url, service_url, user_agent, max_length),
        SUMMARY_UNAVAILABLE,
        label=f"Summary for {url}",
    )


def favicon_url(
    url: str,
    template: str = FAVICON_SERVICE_TEMPLATE,
    default: str = DEFAULT_FAVICON,
) -> str:
    """Build the icon URL for a page from its host; no request is made."""
    host = url_hostname(url)
    if not host:
        return default
    return template.format(host=host)
