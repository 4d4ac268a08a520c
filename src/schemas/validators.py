"""
Shared validation functions for Pydantic schemas.

Tag names are normalized (trimmed, lowercased) everywhere they enter the system,
so "React", " react " and "REACT" all refer to the same tag.
"""
from core.config import get_settings


def normalize_tag_name(tag: str) -> str:
    """Trim and lowercase a tag name."""
    return tag.strip().lower()


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Args:
        tag: The tag string to validate.

    Returns:
        The normalized tag (lowercase, trimmed).

    Raises:
        ValueError: If tag is not a string, is empty, or is too long.
    """
    if not isinstance(tag, str):
        raise ValueError("Tag name must be a string")
    normalized = normalize_tag_name(tag)
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    max_length = get_settings().max_tag_name_length
    if len(normalized) > max_length:
        raise ValueError(
            f"Tag '{normalized[:20]}...' exceeds maximum length of {max_length} characters.",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Args:
        tags: List of tag strings to validate.

    Returns:
        List of normalized tags (lowercase, trimmed), with empty strings filtered out.
        Order and repeats are preserved; de-duplication happens at resolution time.

    Raises:
        ValueError: If tags is not a list or any tag is malformed.
    """
    if not isinstance(tags, list):
        raise ValueError("Tags must be a list of strings")
    normalized = []
    for tag in tags:
        if isinstance(tag, str) and not tag.strip():
            continue  # Skip empty tags silently
        normalized.append(validate_and_normalize_tag(tag))
    return normalized


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title
