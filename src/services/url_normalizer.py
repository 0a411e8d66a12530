"""Validation and canonicalization of user-supplied URLs."""
import re

from pydantic import HttpUrl, TypeAdapter, ValidationError

# Inputs starting with one of these are parsed as-is; anything else gets https://
_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)

_http_url_adapter = TypeAdapter(HttpUrl)


class InvalidUrlError(ValueError):
    """Raised when raw input cannot be turned into an absolute http(s) URL."""

    def __init__(self, raw_url: str, reason: str) -> None:
        self.raw_url = raw_url
        self.reason = reason
        super().__init__(f"Invalid URL {raw_url!r}: {reason}")


def normalize_url(raw_url: str) -> str:
    """
    Canonicalize raw input into an absolute URL string.

    Input without an ``http://`` or ``https://`` prefix is treated as
    ``https://<input>``. Parsing lowercases the scheme and host and adds the
    root path, so ``"Example.com"`` becomes ``"https://example.com/"``.
    Normalizing an already-normalized URL returns it unchanged.

    Raises:
        InvalidUrlError: If the input is empty or not a valid absolute URL.
    """
    candidate = (raw_url or "").strip()
    if not candidate:
        raise InvalidUrlError(raw_url, "URL is required")

    if not _SCHEME_PREFIX.match(candidate):
        candidate = f"https://{candidate}"

    try:
        url = _http_url_adapter.validate_python(candidate)
    except ValidationError as e:
        raise InvalidUrlError(raw_url, e.errors()[0]["msg"]) from e

    if not url.host:
        raise InvalidUrlError(raw_url, "URL has no host")
    return str(url)


def url_hostname(url: str) -> str | None:
    """Return the host of an absolute URL, or None if it cannot be parsed."""
    try:
        return _http_url_adapter.validate_python(url).host
    except ValidationError:
        return None
