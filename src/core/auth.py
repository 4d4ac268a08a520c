"""Authentication module for bearer JWT validation and role-based route guards."""
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.roles import Role, has_role
from db.session import get_async_session
from models.user import User
from services.user_service import get_or_create_user

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

DEV_USER_EXTERNAL_ID = "dev|local-development-user"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(
    subject: str,
    settings: Settings,
    email: str | None = None,
    name: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue a signed access token for a principal.

    Args:
        subject: Stable identifier of the principal (stored as User.external_id).
        settings: Supplies the signing secret, algorithm and default lifetime.
        email: Optional email claim.
        name: Optional display name claim.
        expires_delta: Token lifetime; defaults to ``jwt_expire_minutes``.
    """
    now = datetime.now(UTC)
    lifetime = expires_delta or timedelta(minutes=settings.jwt_expire_minutes)
    payload: dict = {"sub": subject, "iat": now, "exp": now + lifetime}
    if email:
        payload["email"] = email
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Decode and validate an access token.

    Raises:
        HTTPException: 401 if the token is invalid or expired, 503 if no signing
            secret is configured.
    """
    if not settings.jwt_secret:
        logger.error("JWT_SECRET is not configured; rejecting bearer token")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not validate credentials",
        )

    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e)
        raise _unauthorized("Invalid token")


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE (an administrator)."""
    return await get_or_create_user(
        db,
        external_id=DEV_USER_EXTERNAL_ID,
        email="dev@localhost",
        name="Developer",
        role=Role.ADMIN,
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency that validates the bearer token and returns the current user.

    In DEV_MODE, bypasses auth and returns a local development user.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_access_token(credentials.credentials, settings)

    external_id = payload.get("sub")
    if not external_id:
        raise _unauthorized("Invalid token: missing sub claim")

    return await get_or_create_user(
        db,
        external_id=external_id,
        email=payload.get("email"),
        name=payload.get("name"),
    )


def require_role(role: Role) -> Callable[..., Awaitable[User]]:
    """
    Build a dependency that only admits principals holding ``role``.

    Usage:
        current_user: User = Depends(require_role(Role.ADMIN))
    """

    async def check_role(current_user: User = Depends(get_current_user)) -> User:
        if not has_role(current_user.role, role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.capitalize()} access required",
            )
        return current_user

    return check_role
