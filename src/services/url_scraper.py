"""Page fetching and title extraction behind the title lookup endpoint."""
import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from io import BytesIO
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup
from pypdf import PdfReader

from models.bookmark import MAX_TITLE_LENGTH

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; LinkSaver/1.0)'
DEFAULT_TIMEOUT = 10.0


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Unparseable addresses count as private.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
    except ValueError:
        return True
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_multicast
        or ip.is_reserved
        or ip.is_unspecified
    )


async def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname so names pointing at internal addresses are caught too.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL has no hostname or it cannot be resolved.
    """
    hostname = urlparse(url).hostname
    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    loop = asyncio.get_running_loop()
    try:
        addrinfo = await loop.getaddrinfo(
            hostname, None, family=socket.AF_UNSPEC, type=socket.SOCK_STREAM,
        )
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    # sockaddr[0] is the IP for both IPv4 and IPv6 tuples
    for _, _, _, _, sockaddr in addrinfo:
        if is_private_ip(sockaddr[0]):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {sockaddr[0]}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw content before extraction)."""

    content: str | bytes | None  # str for HTML, bytes for PDF
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None

    @property
    def is_pdf(self) -> bool:
        """Check if the content type indicates a PDF."""
        return bool(self.content_type and 'application/pdf' in self.content_type.lower())


def _failed(url: str, error: str, status_code: int | None = None) -> FetchResult:
    return FetchResult(
        content=None,
        final_url=url,
        status_code=status_code,
        content_type=None,
        error=error,
    )


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch an HTML page or PDF document.

    Best-effort: returns error info on failure rather than raising. Follows
    redirects, and both the requested and the final URL must be public.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.

    Returns:
        FetchResult with str content for HTML, bytes for PDF, or error info.
    """
    try:
        await validate_url_not_private(url)
    except (SSRFBlockedError, ValueError) as e:
        return _failed(url, str(e))

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        return _failed(url, "Request timed out")
    except httpx.RequestError as e:
        return _failed(url, f"Request failed: {e}")

    final_url = str(response.url)
    if final_url != url:
        try:
            await validate_url_not_private(final_url)
        except (SSRFBlockedError, ValueError) as e:
            return _failed(final_url, f"Redirect blocked: {e}", response.status_code)

    if not response.is_success:
        return _failed(final_url, f"HTTP {response.status_code}", response.status_code)

    content_type = response.headers.get('content-type', '')
    if 'application/pdf' in content_type.lower():
        content = response.content
    elif 'text/html' in content_type.lower():
        content = response.text
    else:
        return FetchResult(
            content=None,
            final_url=final_url,
            status_code=response.status_code,
            content_type=content_type,
            error=f"Unsupported content type: {content_type}",
        )
    return FetchResult(
        content=content,
        final_url=final_url,
        status_code=response.status_code,
        content_type=content_type,
        error=None,
    )


def extract_html_title(html: str) -> str | None:
    """
    Extract the page title from HTML.

    Priority: ``<title>``, then ``og:title``, then ``twitter:title``.
    """
    soup = BeautifulSoup(html, 'lxml')

    title_tag = soup.find('title')
    if title_tag and title_tag.string and title_tag.string.strip():
        return title_tag.string.strip()
    og_title = soup.find('meta', property='og:title')
    if og_title and og_title.get('content', '').strip():
        return og_title['content'].strip()
    twitter_title = soup.find('meta', attrs={'name': 'twitter:title'})
    if twitter_title and twitter_title.get('content', '').strip():
        return twitter_title['content'].strip()
    return None


def extract_pdf_title(pdf_bytes: bytes) -> str | None:
    """Extract the /Title entry of a PDF's document info, if any."""
    try:
        meta = PdfReader(BytesIO(pdf_bytes)).metadata
    except Exception:
        logger.debug("Could not read PDF metadata", exc_info=True)
        return None
    if meta and meta.title and meta.title.strip():
        return meta.title.strip()
    return None


async def lookup_title(url: str, timeout: float = DEFAULT_TIMEOUT) -> str | None:  # noqa: ASYNC109
    """
    Fetch a page and return its title, or None if it has none or the fetch failed.

    Titles are capped at the bookmark title column width.
    """
    result = await fetch_url(url, timeout)
    if result.error:
        logger.info("Title lookup for %s failed: %s", url, result.error)
        return None

    if result.is_pdf:
        title = extract_pdf_title(result.content)
    else:
        title = extract_html_title(result.content)
    return title[:MAX_TITLE_LENGTH] if title else None
