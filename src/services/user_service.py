"""Service layer for users and instance-wide statistics."""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.roles import Role
from models.bookmark import Bookmark
from models.tag import Tag
from models.user import User
from schemas.user import UserUpdate

logger = logging.getLogger(__name__)


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    """Get a user by the identity provider's subject id."""
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    external_id: str,
    email: str | None = None,
    name: str | None = None,
    role: Role = Role.USER,
) -> User:
    """
    Get existing user or create new one from token claims.

    Handles race conditions where multiple concurrent requests may try to create
    the same user simultaneously: the insert runs in a savepoint and, if the
    unique constraint on external_id rejects it, the existing user is fetched.

    ``role`` only applies to newly created users.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    user = await get_user_by_external_id(db, external_id)

    if user is None:
        user = User(external_id=external_id, email=email, name=name, role=role.value)
        try:
            async with db.begin_nested():
                db.add(user)
                await db.flush()
            await db.refresh(user)
        except IntegrityError:
            # Race condition: another request created the user between our SELECT
            # and INSERT.
            user = await get_user_by_external_id(db, external_id)
            if user is None:
                raise

    # Keep profile fields in sync with the latest token
    changed = False
    if email and user.email != email:
        user.email = email
        changed = True
    if name and user.name != name:
        user.name = name
        changed = True
    if changed:
        await db.flush()
        await db.refresh(user)

    return user


async def list_users(db: AsyncSession) -> list[User]:
    """Get all users, oldest first."""
    result = await db.execute(select(User).order_by(User.id.asc()))
    return list(result.scalars().all())


async def get_admin_stats(db: AsyncSession) -> dict[str, int]:
    """Count users, bookmarks and tags across the whole instance."""
    total_users = await db.scalar(select(func.count()).select_from(User))
    total_bookmarks = await db.scalar(select(func.count()).select_from(Bookmark))
    total_tags = await db.scalar(select(func.count()).select_from(Tag))
    return {
        "total_users": total_users or 0,
        "total_bookmarks": total_bookmarks or 0,
        "total_tags": total_tags or 0,
    }


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by primary key."""
    return await db.get(User, user_id)


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> User | None:
    """
    Update a user's profile fields. Returns None if the user does not exist.

    Only fields present in the request are changed. Note that profile fields are
    also refreshed from token claims whenever the user signs in with them.
    """
    user = await get_user(db, user_id)
    if user is None:
        return None

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)

    await db.flush()
    await db.refresh(user)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> bool:
    """
    Delete a user together with all of their bookmarks and tags.

    Returns:
        True if deleted, False if the user does not exist.
    """
    user = await get_user(db, user_id)
    if user is None:
        return False

    logger.info("Deleting user %s (%s)", user_id, user.external_id)
    await db.delete(user)
    await db.flush()
    return True
