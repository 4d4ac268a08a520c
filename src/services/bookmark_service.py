"""Service layer for bookmark CRUD operations."""
import asyncio
import logging
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.config import Settings, get_settings
from models.bookmark import Bookmark
from models.tag import Tag
from schemas.bookmark import BookmarkCreate, BookmarkUpdate
from services.auto_tagging import TagGenerationResult, generate_tags
from services.keyword_extractor import UNCATEGORIZED_TAG
from services.tag_service import get_or_create_tags, unique_tags

logger = logging.getLogger(__name__)


class DuplicateUrlError(Exception):
    """Raised when a bookmark with the same URL already exists for the user."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__("You have already bookmarked this URL.")


async def _check_url_exists(
    db: AsyncSession,
    user_id: int,
    url: str,
) -> Bookmark | None:
    """Return the user's bookmark for this URL, or None."""
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.user_id == user_id,
            Bookmark.url == url,
        ),
    )
    return result.scalar_one_or_none()


async def _auto_tag(url: str, settings: Settings) -> TagGenerationResult:
    """
    Run automatic tagging for a URL, never raising.

    The whole pipeline is bounded by ``auto_tag_timeout`` on top of the fetch
    timeout. Any failure is logged and reported as the uncategorized sentinel.
    """
    try:
        return await asyncio.wait_for(
            generate_tags(url, timeout=settings.scrape_timeout),
            timeout=settings.auto_tag_timeout,
        )
    except Exception as e:
        logger.warning("Auto-tagging failed for %s: %s", url, str(e) or e.__class__.__name__)
        return TagGenerationResult(title="", tags=[UNCATEGORIZED_TAG])


async def _flush_bookmark(
    db: AsyncSession,
    bookmark: Bookmark,
    changes: dict[str, Any] | None = None,
    tag_objects: list[Tag] | None = None,
) -> None:
    """
    Apply changes to a new or existing bookmark and write it inside a savepoint.

    Field changes and the tag list are set only once the savepoint is open, so
    no autoflush can write them outside it.

    Raises:
        DuplicateUrlError: If the (user, url) unique constraint rejected the row
            because another bookmark already holds the URL.
    """
    changes = changes or {}
    # Read before the savepoint: a rollback expires the bookmark's attributes
    user_id = bookmark.user_id
    url = changes.get("url", bookmark.url)
    try:
        async with db.begin_nested():
            db.add(bookmark)
            for field, value in changes.items():
                setattr(bookmark, field, value)
            if tag_objects is not None:
                bookmark.tag_objects = unique_tags(tag_objects)
            await db.flush()
    except IntegrityError as e:
        # Fallback for race condition: unique constraint on (user_id, url)
        existing = await _check_url_exists(db, user_id, url)
        if existing is not None and existing is not bookmark:
            raise DuplicateUrlError(url) from e
        raise


async def _reload(db: AsyncSession, bookmark: Bookmark) -> Bookmark:
    await db.refresh(bookmark)
    # Ensure tag_objects is loaded for the response
    await db.refresh(bookmark, attribute_names=["tag_objects"])
    return bookmark


async def create_bookmark(
    db: AsyncSession,
    user_id: int,
    data: BookmarkCreate,
    settings: Settings | None = None,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Flow:
    1. Reject the URL if the user already bookmarked it.
    2. If the caller supplied tags, use them as-is and skip auto-tagging.
    3. Otherwise fetch the page and generate tags from its metadata. Failures are
       logged and never block creation; tags fall back to ``uncategorized``.
    4. Adopt the generated title only when the caller gave none.
    5. Resolve tag names to the user's tags and save the bookmark.

    Args:
        db: Database session.
        user_id: User ID to create the bookmark for.
        data: Bookmark creation data.
        settings: Timeouts for auto-tagging. Defaults to the application settings.

    Returns:
        The created bookmark with tags loaded.

    Raises:
        DuplicateUrlError: If the user already has a bookmark for this URL.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    settings = settings or get_settings()
    url_str = str(data.url)

    if await _check_url_exists(db, user_id, url_str) is not None:
        raise DuplicateUrlError(url_str)

    tag_names = list(data.tags)
    title = data.title

    if not tag_names:
        logger.info("Auto-tagging triggered for: %s", url_str)
        generated = await _auto_tag(url_str, settings)
        tag_names = generated.tags
        if not title and generated.title:
            title = generated.title[:settings.max_title_length]

    tag_objects = await get_or_create_tags(db, user_id, tag_names)

    bookmark = Bookmark(
        user_id=user_id,
        url=url_str,
        title=title,
        description=data.description,
    )
    await _flush_bookmark(db, bookmark, tag_objects=tag_objects)
    return await _reload(db, bookmark)


async def get_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> Bookmark | None:
    """Get a bookmark by ID, scoped to user. Returns None if not found or wrong user."""
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def list_bookmarks(
    db: AsyncSession,
    user_id: int,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Bookmark], int]:
    """
    Get a page of a user's bookmarks, newest first.

    Returns:
        Tuple of (bookmarks on this page, total bookmark count for the user).
    """
    total = await db.scalar(
        select(func.count()).select_from(Bookmark).where(Bookmark.user_id == user_id),
    )
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        .offset(offset)
        .limit(limit),
    )
    return list(result.scalars().all()), total or 0


async def update_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
    data: BookmarkUpdate,
) -> Bookmark | None:
    """
    Update a bookmark. Returns None if not found or wrong user.

    When ``tags`` is provided the bookmark's tags are replaced; tags are never
    generated automatically on update.

    Raises:
        DuplicateUrlError: If the new URL is already bookmarked by the user.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return None

    update_data = data.model_dump(exclude_unset=True)
    tag_names = update_data.pop("tags", None)

    if update_data.get("url") is not None:
        new_url = str(update_data["url"])
        update_data["url"] = new_url
        if new_url != bookmark.url:
            existing = await _check_url_exists(db, user_id, new_url)
            if existing is not None:
                raise DuplicateUrlError(new_url)
    else:
        # url is required on the model; an explicit null leaves it unchanged
        update_data.pop("url", None)

    tag_objects = None
    if tag_names is not None:
        tag_objects = await get_or_create_tags(db, user_id, tag_names)

    await _flush_bookmark(db, bookmark, update_data, tag_objects)
    return await _reload(db, bookmark)


async def delete_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
) -> bool:
    """
    Delete a bookmark. Its tag associations are removed; the tags are kept.

    Returns:
        True if deleted, False if not found or wrong user.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    await db.delete(bookmark)
    await db.flush()
    return True
