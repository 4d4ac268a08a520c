"""Pydantic schemas for user and admin endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.roles import Role, get_role_safely


class UserResponse(BaseModel):
    """Response model for user info."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    external_id: str
    email: str | None
    name: str | None
    role: Role
    created_at: datetime

    @field_validator("role", mode="before")
    @classmethod
    def coerce_role(cls, v: str) -> Role:
        """Map stored role strings onto the Role enum."""
        return get_role_safely(v)


class UserUpdate(BaseModel):
    """Request model for updating a user's profile. All fields are optional."""

    email: str | None = Field(default=None, max_length=255)
    name: str | None = Field(default=None, max_length=255)


class AdminStatsResponse(BaseModel):
    """Instance-wide counts for administrators."""

    total_users: int
    total_bookmarks: int
    total_tags: int
    status: str
