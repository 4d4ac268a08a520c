"""Service layer for tag operations."""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models.tag import Tag
from schemas.validators import normalize_tag_name

logger = logging.getLogger(__name__)


class TagNotFoundError(Exception):
    """Raised when a tag is not found."""

    def __init__(self, tag_id: int) -> None:
        self.tag_id = tag_id
        super().__init__(f"Tag #{tag_id} not found")


class TagAlreadyExistsError(Exception):
    """Raised when creating or renaming a tag to a name that already exists."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(f"Tag '{tag_name}' already exists")


async def get_tag_by_name(
    db: AsyncSession,
    user_id: int,
    tag_name: str,
) -> Tag | None:
    """
    Get a tag by name for a user.

    Args:
        db: Database session.
        user_id: User ID to scope the tag.
        tag_name: Name of the tag to find (normalized before lookup).

    Returns:
        The Tag if found, None otherwise.
    """
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name == normalize_tag_name(tag_name),
        ),
    )
    return result.scalar_one_or_none()


async def _select_existing_tags(
    db: AsyncSession,
    user_id: int,
    names: list[str],
) -> dict[str, Tag]:
    result = await db.execute(
        select(Tag).where(
            Tag.user_id == user_id,
            Tag.name.in_(set(names)),
        ),
    )
    return {tag.name: tag for tag in result.scalars()}


async def _insert_tag(db: AsyncSession, user_id: int, name: str) -> Tag | None:
    """
    Insert a tag inside a savepoint.

    Returns None instead of raising when the (user, name) unique constraint
    rejects the row; the outer transaction stays usable.
    """
    tag = Tag(user_id=user_id, name=name)
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError:
        return None
    return tag


async def get_or_create_tags(
    db: AsyncSession,
    user_id: int,
    tag_names: list[str] | None,
) -> list[Tag]:
    """
    Resolve tag names to the user's Tag rows, creating missing ones.

    Names are trimmed and lowercased. Input order is preserved and names that
    normalize to the same value resolve to the same Tag object, so the result
    may contain repeats. A concurrent request creating the same tag first is
    handled by re-reading the row it created.

    Args:
        db: Database session.
        user_id: User ID to scope tags.
        tag_names: Tag names to resolve. None or empty yields an empty list.

    Returns:
        One Tag per non-blank input name, in input order.
    """
    if not tag_names:
        return []

    normalized = [normalize_tag_name(name) for name in tag_names if name and name.strip()]
    if not normalized:
        return []

    tags_by_name = await _select_existing_tags(db, user_id, normalized)

    tags = []
    for name in normalized:
        tag = tags_by_name.get(name)
        if tag is None:
            tag = await _insert_tag(db, user_id, name)
            if tag is None:
                # Race condition: another request created the tag between our
                # SELECT and INSERT. Use the row it created.
                logger.info("Tag '%s' created concurrently for user %s, re-reading", name, user_id)
                tag = await get_tag_by_name(db, user_id, name)
                if tag is None:
                    raise RuntimeError(f"Tag '{name}' violated a constraint but does not exist")
            tags_by_name[name] = tag
        tags.append(tag)

    return tags


def unique_tags(tags: list[Tag]) -> list[Tag]:
    """Drop repeated Tag objects, keeping first-seen order."""
    return list({id(tag): tag for tag in tags}.values())


async def create_tag(db: AsyncSession, user_id: int, name: str) -> Tag:
    """
    Create a tag for a user.

    Raises:
        TagAlreadyExistsError: If the user already has a tag with this name.
    """
    normalized = normalize_tag_name(name)
    if await get_tag_by_name(db, user_id, normalized) is not None:
        raise TagAlreadyExistsError(normalized)

    tag = await _insert_tag(db, user_id, normalized)
    if tag is None:
        raise TagAlreadyExistsError(normalized)
    await db.refresh(tag)
    return tag


async def list_tags(db: AsyncSession, user_id: int) -> list[Tag]:
    """Get all tags for a user, sorted by name."""
    result = await db.execute(
        select(Tag).where(Tag.user_id == user_id).order_by(Tag.name.asc()),
    )
    return list(result.scalars().all())


async def get_tag(db: AsyncSession, user_id: int, tag_id: int) -> Tag | None:
    """Get a tag by ID, scoped to user. Returns None if not found or wrong user."""
    result = await db.execute(
        select(Tag).where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    return result.scalar_one_or_none()


async def rename_tag(
    db: AsyncSession,
    user_id: int,
    tag_id: int,
    new_name: str,
) -> Tag:
    """
    Rename a tag.

    Args:
        db: Database session.
        user_id: User ID to scope the tag.
        tag_id: ID of the tag to rename.
        new_name: New name for the tag.

    Returns:
        The updated Tag object.

    Raises:
        TagNotFoundError: If the tag doesn't exist.
        TagAlreadyExistsError: If a tag with the new name already exists.
    """
    new_normalized = normalize_tag_name(new_name)

    tag = await get_tag(db, user_id, tag_id)
    if tag is None:
        raise TagNotFoundError(tag_id)

    if tag.name == new_normalized:
        return tag

    # Early check for better error message
    if await get_tag_by_name(db, user_id, new_normalized) is not None:
        raise TagAlreadyExistsError(new_normalized)

    try:
        async with db.begin_nested():
            tag.name = new_normalized
            await db.flush()
    except IntegrityError as e:
        # Another request created the tag between check and flush
        raise TagAlreadyExistsError(new_normalized) from e
    await db.refresh(tag)
    return tag


async def delete_tag(db: AsyncSession, user_id: int, tag_id: int) -> None:
    """
    Delete a tag. It is detached from its bookmarks; the bookmarks are kept.

    Raises:
        TagNotFoundError: If the tag doesn't exist.
    """
    result = await db.execute(
        select(Tag)
        .options(selectinload(Tag.bookmarks))
        .where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    tag = result.scalar_one_or_none()
    if tag is None:
        raise TagNotFoundError(tag_id)

    bookmarks = list(tag.bookmarks)
    await db.delete(tag)
    await db.flush()
    # Loaded bookmarks in this session still hold the deleted tag
    for bookmark in bookmarks:
        db.expire(bookmark, ["tag_objects"])
