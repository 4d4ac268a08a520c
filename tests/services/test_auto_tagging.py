"""Tests for the composed fetch -> extract -> keywords pipeline."""
from unittest.mock import AsyncMock, patch

from services.auto_tagging import generate_tags, preview_metadata
from services.url_scraper import FetchError, FetchResult

EXAMPLE_DOMAIN_HTML = """<!doctype html>
<html>
<head>
    <title>Example Domain</title>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
</head>
<body>
<div>
    <h1>Example Domain</h1>
    <p>This domain is for use in illustrative examples in documents.</p>
</div>
</body>
</html>
"""


def _ok(html: str, url: str = "https://example.com/") -> FetchResult:
    return FetchResult(html=html, final_url=url, status_code=200, error=None)


def _failed(url: str, reason: str) -> FetchResult:
    return FetchResult(
        html=None, final_url=url, status_code=None, error=FetchError(url, reason),
    )


async def test__generate_tags__example_domain() -> None:
    """A page with a title and no description is tagged from its title."""
    with patch(
        "services.url_scraper.fetch_url",
        new_callable=AsyncMock,
        return_value=_ok(EXAMPLE_DOMAIN_HTML),
    ):
        result = await generate_tags("https://example.com")

    assert result.title == "Example Domain"
    assert 1 <= len(result.tags) <= 5
    for tag in result.tags:
        assert tag == tag.lower()
        assert len(tag) > 3


async def test__generate_tags__uses_description() -> None:
    html = (
        '<html><head><title>Kubernetes</title>'
        '<meta name="description" content="Container orchestration platform"></head></html>'
    )
    with patch(
        "services.url_scraper.fetch_url", new_callable=AsyncMock, return_value=_ok(html),
    ):
        result = await generate_tags("https://kubernetes.io/")

    assert result.tags == ["kubernetes", "container", "orchestration", "platform"]


async def test__generate_tags__fetch_failure_is_uncategorized() -> None:
    """An unreachable page yields no title and the uncategorized sentinel."""
    with patch(
        "services.url_scraper.fetch_url",
        new_callable=AsyncMock,
        return_value=_failed("https://down.example.com/", "Request timed out"),
    ):
        result = await generate_tags("https://down.example.com/")

    assert result.title == ""
    assert result.tags == ["uncategorized"]


async def test__generate_tags__passes_timeout_to_fetch() -> None:
    with patch(
        "services.url_scraper.fetch_url",
        new_callable=AsyncMock,
        return_value=_ok("<title>Timing</title>"),
    ) as mock_fetch:
        await generate_tags("https://example.com/", timeout=1.25)

    mock_fetch.assert_awaited_once_with("https://example.com/", 1.25)


async def test__preview_metadata__reports_everything() -> None:
    html = (
        '<html><head><title>Example Domain</title>'
        '<meta property="og:description" content="Illustrative examples"></head></html>'
    )
    with patch(
        "services.url_scraper.fetch_url",
        new_callable=AsyncMock,
        return_value=_ok(html, url="https://www.example.com/"),
    ):
        preview = await preview_metadata("https://example.com/")

    assert preview.url == "https://example.com/"
    assert preview.final_url == "https://www.example.com/"
    assert preview.title == "Example Domain"
    assert preview.description == "Illustrative examples"
    assert preview.tags == ["example", "domain", "illustrative", "examples"]
    assert preview.error is None


async def test__preview_metadata__reports_fetch_error() -> None:
    with patch(
        "services.url_scraper.fetch_url",
        new_callable=AsyncMock,
        return_value=_failed("https://example.com/missing", "HTTP 404"),
    ):
        preview = await preview_metadata("https://example.com/missing")

    assert preview.error == "HTTP 404"
    assert preview.title == ""
    assert preview.tags == ["uncategorized"]
