"""
Search API
- /search: video search with autosuggest for short terms
- /filter-options: values for the search filters
"""

from datetime import date as date_type
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import success_response
from src.database.engine import get_session
from src.services import search_service
from src.services.search_service import DEFAULT_PAGE_SIZE, SearchFilters


router = APIRouter(tags=["search"])


@router.get("/search")
async def search_videos(
    q: Optional[str] = Query(None, description="Free-text term"),
    league: List[int] = Query([], description="League ids"),
    team: List[int] = Query([], description="Team ids (home or away)"),
    category: List[str] = Query([], description="Category names"),
    location: List[int] = Query([], description="Country ids"),
    match_status: Optional[str] = Query(None, description="upcoming | live | finished"),
    match_date: Optional[date_type] = Query(None, alias="date", description="Match day (YYYY-MM-DD)"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=search_service.MAX_PAGE_SIZE),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Search videos

    Terms shorter than 4 characters with no other filter return
    team/league/country suggestions instead of videos.
    """
    filters = SearchFilters.from_params(
        q=q,
        league=league,
        team=team,
        category=category,
        location=location,
        date=match_date,
        match_status=match_status,
        page=page,
        limit=limit,
    )
    data = await search_service.search(session, filters)
    return success_response(data, "Search results retrieved.")


@router.get("/filter-options")
async def get_filter_options(
    type: Optional[str] = Query(None, description="match_status | category | team | league | location"),
    q: str = Query(""),
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    data = await search_service.filter_options(session, type, q, limit, offset)
    return success_response(data, "Filter options retrieved.")
