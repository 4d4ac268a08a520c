"""URL scraping service for fetching web pages and extracting title/description metadata."""
import asyncio
import ipaddress
import logging
import socket
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Some sites reject requests that don't look like they come from a browser
USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36'
)
DEFAULT_TIMEOUT = 5.0

HTML_CONTENT_TYPES = ('text/html', 'application/xhtml+xml')


class FetchError(Exception):
    """Raised (or returned) when a page cannot be retrieved."""

    def __init__(self, url: str, reason: str, status_code: int | None = None) -> None:
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(reason)


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # If we can't parse it, block it to be safe
        return True


async def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname (without blocking the event loop) to check the actual IP
    addresses, preventing DNS rebinding to internal hosts.

    Args:
        url: The URL to validate.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the hostname does not resolve.
    """
    hostname = urlparse(url).hostname

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    loop = asyncio.get_running_loop()
    try:
        addrinfo = await loop.getaddrinfo(hostname, None, type=socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    # sockaddr is (ip, port) for IPv4 or (ip, port, flow, scope) for IPv6
    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw HTML before extraction)."""

    html: str | None
    final_url: str
    status_code: int | None
    error: FetchError | None

    @property
    def ok(self) -> bool:
        """True when HTML was retrieved."""
        return self.error is None and self.html is not None


@dataclass
class ExtractedMetadata:
    """Extracted title and description; empty strings when absent."""

    title: str
    description: str


@dataclass
class ScrapedPage:
    """Result of scraping a URL for metadata."""

    metadata: ExtractedMetadata
    final_url: str
    error: FetchError | None


def _failed(url: str, reason: str, status_code: int | None = None) -> FetchResult:
    error = FetchError(url, reason, status_code)
    logger.warning("Failed to fetch %s: %s", url, reason)
    return FetchResult(html=None, final_url=url, status_code=status_code, error=error)


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109
    """
    Fetch the HTML of a URL.

    Single-attempt, best-effort fetch that returns error info on failure rather than
    raising. Follows redirects and captures the final URL. Network errors, timeouts,
    non-2xx statuses, non-HTML responses and blocked internal addresses all produce
    a FetchResult carrying a FetchError.

    Args:
        url:
            The URL to fetch.
        timeout:
            Hard timeout in seconds for the whole fetch, DNS lookup included,
            not just each network read.

    Returns:
        FetchResult containing the HTML or the failure.
    """
    try:
        async with asyncio.timeout(timeout):
            return await _fetch(url, timeout)
    except TimeoutError:
        return _failed(url, "Request timed out")


async def _fetch(url: str, timeout: float) -> FetchResult:  # noqa: ASYNC109
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

            final_url = str(response.url)
            if final_url != url:
                try:
                    await validate_url_not_private(final_url)
                except (SSRFBlockedError, ValueError) as e:
                    return _failed(url, f"Redirect blocked: {e}", response.status_code)

            if not response.is_success:
                return _failed(url, f"HTTP {response.status_code}", response.status_code)

            content_type = response.headers.get('content-type', '').lower()
            if content_type and not any(t in content_type for t in HTML_CONTENT_TYPES):
                return _failed(
                    url, f"Unsupported content type: {content_type}", response.status_code,
                )

            return FetchResult(
                html=response.text,
                final_url=final_url,
                status_code=response.status_code,
                error=None,
            )
    except httpx.TimeoutException:
        return _failed(url, "Request timed out")
    except httpx.RequestError as e:
        return _failed(url, f"Request failed: {e}")


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str:
    tag = soup.find('meta', attrs=attrs)
    if tag is None:
        return ''
    content = tag.get('content')
    return content.strip() if isinstance(content, str) else ''


def extract_html_metadata(html: str) -> ExtractedMetadata:
    """
    Extract title and description from HTML.

    Pure function with no I/O. Tolerates malformed or partial markup; anything
    missing simply falls through to the next source.

    Title extraction priority:
    1. <title> in the document head
    2. <meta property="og:title">

    Description extraction priority:
    1. <meta name="description">
    2. <meta property="og:description">

    Args:
        html:
            Raw HTML string to parse.

    Returns:
        ExtractedMetadata with trimmed title and description ('' if not found).
    """
    soup = BeautifulSoup(html or '', 'lxml')

    title = ''
    title_tag = soup.select_one('head > title') or soup.find('title')
    if title_tag is not None:
        title = title_tag.get_text().strip()
    if not title:
        title = _meta_content(soup, property='og:title')

    description = _meta_content(soup, name='description')
    if not description:
        description = _meta_content(soup, property='og:description')

    return ExtractedMetadata(title=title, description=description)


async def scrape_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> ScrapedPage:  # noqa: ASYNC109
    """
    Fetch a URL and extract its title and description.

    Never raises for fetch failures: the returned metadata is empty and ``error``
    describes what went wrong.

    Args:
        url: The URL to scrape.
        timeout: Request timeout in seconds.

    Returns:
        ScrapedPage with extracted metadata and any error info.
    """
    result = await fetch_url(url, timeout)

    if not result.ok:
        return ScrapedPage(
            metadata=ExtractedMetadata(title='', description=''),
            final_url=result.final_url,
            error=result.error,
        )

    return ScrapedPage(
        metadata=extract_html_metadata(result.html),
        final_url=result.final_url,
        error=None,
    )
