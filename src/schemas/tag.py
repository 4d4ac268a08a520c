"""Pydantic schemas for tag endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.validators import validate_and_normalize_tag


class TagResponse(BaseModel):
    """Schema for a single tag."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime


class TagListResponse(BaseModel):
    """Schema for the tags list response."""

    tags: list[TagResponse]


class TagCreate(BaseModel):
    """Schema for creating a tag."""

    name: str

    @field_validator("name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str) -> str:
        """Normalize and validate the tag name."""
        return validate_and_normalize_tag(v)


class TagRenameRequest(BaseModel):
    """Schema for renaming a tag."""

    new_name: str

    @field_validator("new_name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str) -> str:
        """Normalize and validate the new tag name."""
        return validate_and_normalize_tag(v)
