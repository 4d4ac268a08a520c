"""Automatic tag generation: fetch a page, read its metadata, derive keyword tags."""
from dataclasses import dataclass

from services.keyword_extractor import extract_keywords
from services.url_scraper import DEFAULT_TIMEOUT, scrape_url


@dataclass
class TagGenerationResult:
    """Title and tag candidates derived from a URL."""

    title: str
    tags: list[str]


@dataclass
class MetadataPreview:
    """Everything auto-tagging would use for a URL, without saving anything."""

    url: str
    final_url: str
    title: str
    description: str
    tags: list[str]
    error: str | None


async def generate_tags(url: str, timeout: float = DEFAULT_TIMEOUT) -> TagGenerationResult:  # noqa: ASYNC109
    """
    Generate a title and tags for a URL.

    A page that cannot be fetched yields an empty title and ``["uncategorized"]``.

    Args:
        url: The page to tag.
        timeout: Fetch timeout in seconds.
    """
    page = await scrape_url(url, timeout)
    tags = extract_keywords(page.metadata.title, page.metadata.description)
    return TagGenerationResult(title=page.metadata.title, tags=tags)


async def preview_metadata(url: str, timeout: float = DEFAULT_TIMEOUT) -> MetadataPreview:  # noqa: ASYNC109
    """Run the tagging pipeline for a URL and report every intermediate result."""
    page = await scrape_url(url, timeout)
    tags = extract_keywords(page.metadata.title, page.metadata.description)
    return MetadataPreview(
        url=url,
        final_url=page.final_url,
        title=page.metadata.title,
        description=page.metadata.description,
        tags=tags,
        error=str(page.error) if page.error else None,
    )
