"""Administrator endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, require_role
from core.roles import Role
from models.user import User
from schemas.user import AdminStatsResponse
from services import user_service


router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/stats", response_model=AdminStatsResponse)
async def get_stats(
    _admin: User = Depends(require_role(Role.ADMIN)),
    db: AsyncSession = Depends(get_async_session),
) -> AdminStatsResponse:
    """Instance-wide user, bookmark and tag counts."""
    stats = await user_service.get_admin_stats(db)
    return AdminStatsResponse(**stats, status="healthy")
