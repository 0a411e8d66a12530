"""
Tests for URL scraper service.

Tests cover:
- fetch_url: HTTP fetching with mocked responses (success, timeout, errors, non-HTML)
- extract_html_title: title/og:title/twitter:title priority
- extract_pdf_title: PDF metadata title
- lookup_title: fetch plus extraction, None on failure
- SSRF protection: private address detection and URL validation
"""
from collections.abc import Generator
from io import BytesIO
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from pypdf import PdfWriter

from services.url_scraper import (
    DEFAULT_TIMEOUT,
    USER_AGENT,
    FetchResult,
    SSRFBlockedError,
    extract_html_title,
    extract_pdf_title,
    fetch_url,
    is_private_ip,
    lookup_title,
    validate_url_not_private,
)


def _mock_response(
    *,
    text: str = '',
    content: bytes = b'',
    url: str = 'https://example.com/',
    status_code: int = 200,
    content_type: str = 'text/html; charset=utf-8',
) -> AsyncMock:
    response = AsyncMock()
    response.text = text
    response.content = content
    response.url = url
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.headers = {'content-type': content_type}
    return response


@pytest.fixture
def mock_client_class() -> Generator[AsyncMock]:
    """Patch httpx.AsyncClient in the scraper and skip DNS-based validation."""
    with (
        patch('services.url_scraper.validate_url_not_private', new_callable=AsyncMock),
        patch('services.url_scraper.httpx.AsyncClient') as client_class,
    ):
        mock_client = AsyncMock()
        mock_client.__aenter__.return_value = mock_client
        mock_client.__aexit__.return_value = None
        client_class.return_value = mock_client
        yield client_class


def _pdf_bytes(title: str | None) -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=72, height=72)
    if title is not None:
        writer.add_metadata({'/Title': title})
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestFetchUrl:
    """Tests for fetch_url function."""

    async def test__fetch_url__success(self, mock_client_class: AsyncMock) -> None:
        """Successful fetch returns HTML content and metadata."""
        html = '<html><head><title>Test</title></head><body>Content</body></html>'
        mock_client_class.return_value.get.return_value = _mock_response(text=html)

        result = await fetch_url('https://example.com/')

        assert result.content == html
        assert result.final_url == 'https://example.com/'
        assert result.status_code == 200
        assert result.error is None
        assert not result.is_pdf
        mock_client_class.assert_called_once_with(
            follow_redirects=True,
            timeout=DEFAULT_TIMEOUT,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        )

    async def test__fetch_url__pdf_returns_bytes(self, mock_client_class: AsyncMock) -> None:
        mock_client_class.return_value.get.return_value = _mock_response(
            content=b'%PDF-1.4', content_type='application/pdf',
        )

        result = await fetch_url('https://example.com/paper.pdf')

        assert result.content == b'%PDF-1.4'
        assert result.is_pdf

    async def test__fetch_url__timeout(self, mock_client_class: AsyncMock) -> None:
        """Timeout returns error info without raising."""
        mock_client_class.return_value.get.side_effect = httpx.TimeoutException('timed out')

        result = await fetch_url('https://example.com/')

        assert result.content is None
        assert result.error == 'Request timed out'

    async def test__fetch_url__request_error(self, mock_client_class: AsyncMock) -> None:
        mock_client_class.return_value.get.side_effect = httpx.ConnectError('refused')

        result = await fetch_url('https://example.com/')

        assert result.error.startswith('Request failed')

    async def test__fetch_url__http_error_status(self, mock_client_class: AsyncMock) -> None:
        mock_client_class.return_value.get.return_value = _mock_response(status_code=404)

        result = await fetch_url('https://example.com/')

        assert result.error == 'HTTP 404'
        assert result.status_code == 404

    async def test__fetch_url__unsupported_content_type(
        self, mock_client_class: AsyncMock,
    ) -> None:
        mock_client_class.return_value.get.return_value = _mock_response(
            content_type='image/png',
        )

        result = await fetch_url('https://example.com/logo.png')

        assert result.content is None
        assert result.error == 'Unsupported content type: image/png'

    async def test__fetch_url__private_redirect_blocked(self) -> None:
        async def validate(url: str) -> None:
            if 'internal' in url:
                raise SSRFBlockedError(f'Blocked: {url}')

        with (
            patch('services.url_scraper.validate_url_not_private', side_effect=validate),
            patch('services.url_scraper.httpx.AsyncClient') as client_class,
        ):
            mock_client = AsyncMock()
            mock_client.__aenter__.return_value = mock_client
            mock_client.get.return_value = _mock_response(url='http://internal.example/')
            client_class.return_value = mock_client

            result = await fetch_url('https://example.com/')

        assert result.content is None
        assert result.error.startswith('Redirect blocked')

    async def test__fetch_url__private_target_never_requested(self) -> None:
        with patch('services.url_scraper.httpx.AsyncClient') as client_class:
            result = await fetch_url('http://127.0.0.1:8080/admin')

        assert result.error is not None
        client_class.assert_not_called()


class TestExtractHtmlTitle:
    """Tests for extract_html_title."""

    def test__extract_html_title__title_tag(self) -> None:
        html = '<html><head><title>  Page Title  </title></head></html>'
        assert extract_html_title(html) == 'Page Title'

    def test__extract_html_title__og_title_fallback(self) -> None:
        html = '<html><head><meta property="og:title" content="OG Title"></head></html>'
        assert extract_html_title(html) == 'OG Title'

    def test__extract_html_title__twitter_title_fallback(self) -> None:
        html = '<html><head><meta name="twitter:title" content="Tweet Title"></head></html>'
        assert extract_html_title(html) == 'Tweet Title'

    def test__extract_html_title__title_tag_wins(self) -> None:
        html = (
            '<html><head><title>Real</title>'
            '<meta property="og:title" content="OG"></head></html>'
        )
        assert extract_html_title(html) == 'Real'

    def test__extract_html_title__empty_title_falls_through(self) -> None:
        html = (
            '<html><head><title>   </title>'
            '<meta property="og:title" content="OG"></head></html>'
        )
        assert extract_html_title(html) == 'OG'

    def test__extract_html_title__none(self) -> None:
        assert extract_html_title('<html><body><p>No title</p></body></html>') is None


class TestExtractPdfTitle:
    """Tests for extract_pdf_title."""

    def test__extract_pdf_title__metadata_title(self) -> None:
        assert extract_pdf_title(_pdf_bytes('A Paper')) == 'A Paper'

    def test__extract_pdf_title__no_title(self) -> None:
        assert extract_pdf_title(_pdf_bytes(None)) is None

    def test__extract_pdf_title__invalid_bytes(self) -> None:
        assert extract_pdf_title(b'not a pdf') is None


class TestLookupTitle:
    """Tests for lookup_title."""

    async def test__lookup_title__html(self) -> None:
        fetched = FetchResult(
            content='<title>Example Domain</title>',
            final_url='https://example.com/',
            status_code=200,
            content_type='text/html',
            error=None,
        )
        with patch(
            'services.url_scraper.fetch_url', new_callable=AsyncMock, return_value=fetched,
        ) as mock_fetch:
            assert await lookup_title('https://example.com/', timeout=3.0) == 'Example Domain'
        mock_fetch.assert_awaited_once_with('https://example.com/', 3.0)

    async def test__lookup_title__pdf(self) -> None:
        fetched = FetchResult(
            content=_pdf_bytes('A Paper'),
            final_url='https://example.com/paper.pdf',
            status_code=200,
            content_type='application/pdf',
            error=None,
        )
        with patch('services.url_scraper.fetch_url', new_callable=AsyncMock, return_value=fetched):
            assert await lookup_title('https://example.com/paper.pdf') == 'A Paper'

    async def test__lookup_title__fetch_error_returns_none(self) -> None:
        fetched = FetchResult(
            content=None,
            final_url='https://example.com/',
            status_code=500,
            content_type=None,
            error='HTTP 500',
        )
        with patch('services.url_scraper.fetch_url', new_callable=AsyncMock, return_value=fetched):
            assert await lookup_title('https://example.com/') is None

    async def test__lookup_title__caps_length(self) -> None:
        fetched = FetchResult(
            content=f"<title>{'t' * 700}</title>",
            final_url='https://example.com/',
            status_code=200,
            content_type='text/html',
            error=None,
        )
        with patch('services.url_scraper.fetch_url', new_callable=AsyncMock, return_value=fetched):
            title = await lookup_title('https://example.com/')
        assert len(title) == 500


class TestSSRFProtection:
    """Tests for private address detection."""

    @pytest.mark.parametrize(
        'ip',
        ['127.0.0.1', '::1', '10.0.0.1', '172.16.5.4', '192.168.1.1', '169.254.0.1', '0.0.0.0'],
    )
    def test__is_private_ip__internal_addresses(self, ip: str) -> None:
        assert is_private_ip(ip)

    @pytest.mark.parametrize('ip', ['8.8.8.8', '1.1.1.1', '2606:4700:4700::1111'])
    def test__is_private_ip__public_addresses(self, ip: str) -> None:
        assert not is_private_ip(ip)

    def test__is_private_ip__invalid_ip(self) -> None:
        assert is_private_ip('not-an-ip')

    async def test__validate_url_not_private__localhost(self) -> None:
        with pytest.raises(SSRFBlockedError):
            await validate_url_not_private('http://localhost:8080/api')

    async def test__validate_url_not_private__private_ip_direct(self) -> None:
        with pytest.raises(SSRFBlockedError):
            await validate_url_not_private('http://192.168.1.1/')

    async def test__validate_url_not_private__public_ip_direct(self) -> None:
        await validate_url_not_private('http://8.8.8.8/')

    async def test__validate_url_not_private__no_hostname(self) -> None:
        with pytest.raises(ValueError, match='no hostname'):
            await validate_url_not_private('file:///etc/passwd')
