"""
Catalog API
- /categories
- /videos (all, by category, by relative day, by date range, recent, single, related)

Errors on these routes use the {success: false, error: {code, message}} envelope.
"""

from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from config.config import DEFAULT_TIMEZONE
from src.api.responses import catalog_error, catalog_response
from src.core.exceptions import NotFoundError, ValidationError
from src.database.engine import get_session
from src.services import catalog_service
from src.services.catalog_service import DEFAULT_PAGE_SIZE, DEFAULT_RELATED_LIMIT, MAX_PAGE_SIZE


router = APIRouter(tags=["catalog"])


@router.get("/categories")
async def list_categories(session: AsyncSession = Depends(get_session)) -> Dict[str, Any]:
    categories = await catalog_service.list_categories(session)
    return catalog_response(categories)


@router.get("/videos")
async def list_videos(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
    sort: str = Query("DESC"),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """All videos, ordered by match date"""
    result = await catalog_service.list_videos(session, page, page_size, sort)
    return catalog_response(result.rows, result.metadata())


@router.get("/videos/recent")
async def recent_highlights(
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """Videos of matches from the last 3 days"""
    result = await catalog_service.recent_highlights(session, page=page, page_size=page_size)
    return catalog_response(result.rows, result.metadata())


@router.get("/videos/date")
async def videos_by_date_range(
    date_from: Optional[date] = Query(None, alias="from"),
    date_to: Optional[date] = Query(None, alias="to"),
    category: Optional[str] = Query(None),
    tz: str = Query(DEFAULT_TIMEZONE),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
    sort: str = Query("DESC"),
    session: AsyncSession = Depends(get_session),
):
    """
    Videos between two days (inclusive)

    Query:
        from=YYYY-MM-DD&to=YYYY-MM-DD[&category=...]
    """
    if date_from is None or date_to is None:
        return catalog_error(ValidationError("Missing 'from' or 'to' query params"))

    try:
        result = await catalog_service.videos_by_date_range(
            session, date_from, date_to, category, tz, page, page_size, sort
        )
    except ValidationError as e:
        return catalog_error(e)

    return catalog_response(result.rows, result.metadata())


@router.get("/videos/category/{name}")
async def videos_by_category(
    name: str,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
    sort: str = Query("DESC"),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    result = await catalog_service.videos_by_category(session, name, page, page_size, sort)
    return catalog_response(result.rows, result.metadata())


@router.get("/videos/category/{name}/date/{day_filter}")
async def videos_by_category_and_day(
    name: str,
    day_filter: str,
    tz: str = Query(DEFAULT_TIMEZONE),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, alias="pageSize", ge=1, le=MAX_PAGE_SIZE),
    sort: str = Query("DESC"),
    session: AsyncSession = Depends(get_session),
):
    """
    Videos of a category for yesterday, today or tomorrow

    Days follow the `tz` calendar (default Africa/Lagos).
    """
    try:
        result = await catalog_service.videos_by_category_and_day(
            session, name, day_filter, tz, page, page_size, sort
        )
    except ValidationError as e:
        return catalog_error(e)

    return catalog_response(result.rows, result.metadata())


@router.get("/videos/{video_id}")
async def get_video(
    video_id: int,
    session: AsyncSession = Depends(get_session),
):
    try:
        video = await catalog_service.get_video(session, video_id)
    except NotFoundError as e:
        return catalog_error(e)

    return catalog_response(video)


@router.get("/videos/{video_id}/related")
async def related_videos(
    video_id: int,
    limit: int = Query(DEFAULT_RELATED_LIMIT, ge=1, le=50),
    session: AsyncSession = Depends(get_session),
):
    """Other videos from the same category"""
    try:
        rows = await catalog_service.related_videos(session, video_id, limit)
    except NotFoundError as e:
        return catalog_error(e)

    return catalog_response(rows)
