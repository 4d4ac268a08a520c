"""Bookmark CRUD endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import HttpUrl
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkListResponse,
    BookmarkResponse,
    BookmarkUpdate,
    MetadataPreviewResponse,
)
from services import bookmark_service
from services.auto_tagging import preview_metadata
from services.bookmark_service import DuplicateUrlError

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> BookmarkResponse:
    """
    Create a new bookmark.

    If no tags are given, the page is fetched and tags (plus a title, when none was
    provided) are generated from its metadata. An unreachable page never fails the
    request; the bookmark is tagged `uncategorized` instead.

    Returns 409 if the URL is already bookmarked.
    """
    try:
        bookmark = await bookmark_service.create_bookmark(
            db, current_user.id, data, settings=settings,
        )
    except DuplicateUrlError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return BookmarkResponse.model_validate(bookmark)


@router.get("/fetch-metadata", response_model=MetadataPreviewResponse)
async def fetch_metadata(
    url: HttpUrl = Query(..., description="URL to preview"),
    _current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> MetadataPreviewResponse:
    """
    Preview the title, description and tags auto-tagging would produce for a URL.

    Nothing is saved. Fetch failures are reported in `error` rather than as an
    HTTP error.
    """
    preview = await preview_metadata(str(url), timeout=settings.scrape_timeout)
    return MetadataPreviewResponse(
        url=preview.url,
        final_url=preview.final_url,
        title=preview.title,
        description=preview.description,
        tags=preview.tags,
        error=preview.error,
    )


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=50, ge=1, le=100, description="Pagination limit"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """List bookmarks for the current user, newest first."""
    bookmarks, total = await bookmark_service.list_bookmarks(
        db, current_user.id, offset=offset, limit=limit,
    )
    items = [BookmarkResponse.model_validate(b) for b in bookmarks]
    return BookmarkListResponse(
        items=items,
        total=total,
        offset=offset,
        limit=limit,
        has_more=offset + len(items) < total,
    )


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Update a bookmark. Returns 409 if the new URL is already bookmarked."""
    try:
        bookmark = await bookmark_service.update_bookmark(
            db, current_user.id, bookmark_id, data,
        )
    except DuplicateUrlError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete a bookmark. Its tags are kept."""
    deleted = await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")
