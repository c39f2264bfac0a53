"""
Catalog Service - categories and video listings

All listings share one row shape (id, title, thumbnail, category, match_date,
league, country, video_url) and page through `page` / `page_size`.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional

from loguru import logger
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.expression import ColumnElement

from config.config import DEFAULT_TIMEZONE
from src.core.exceptions import NotFoundError, ValidationError
from src.database.gateway import execute
from src.database.models import Category, Country, League, Match, Video
from src.utils.dates import get_timezone, local_day_range, utcnow


DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
RECENT_HIGHLIGHTS_DAYS = 3
DEFAULT_RELATED_LIMIT = 6

# Relative day filter -> offset from today
DAY_FILTERS = {
    "yesterday": -1,
    "today": 0,
    "tomorrow": 1,
}


@dataclass
class VideoPage:
    """One page of video rows plus the unpaginated total"""

    rows: list[dict[str, Any]]
    total: int
    page: int
    page_size: int

    def metadata(self) -> dict[str, int]:
        return {"page": self.page, "pageSize": self.page_size, "total": self.total}


def _sort_direction(sort: Optional[str]) -> str:
    return "ASC" if (sort or "").upper() == "ASC" else "DESC"


def _video_columns() -> tuple:
    return (
        Video.id,
        Video.title,
        Match.thumbnail,
        Category.name.label("category"),
        Match.date.label("match_date"),
        League.name.label("league"),
        Country.name.label("country"),
        Match.matchview_url.label("video_url"),
    )


def _joined(stmt: Select) -> Select:
    return (
        stmt.join(Match, Video.match_id == Match.id)
        .join(Category, Video.category_id == Category.id)
        .join(League, Match.league_id == League.id)
        .join(Country, League.country_id == Country.id)
    )


async def _video_page(
    session: AsyncSession,
    predicates: list[ColumnElement[bool]],
    page: int,
    page_size: int,
    sort: Optional[str],
) -> VideoPage:
    page = max(1, page)
    page_size = min(max(1, page_size), MAX_PAGE_SIZE)
    order = Match.date.asc() if _sort_direction(sort) == "ASC" else Match.date.desc()

    count_stmt = _joined(select(func.count(Video.id)).select_from(Video)).where(*predicates)
    total = (await execute(session, count_stmt)).scalar_one()

    stmt = (
        _joined(select(*_video_columns()).select_from(Video))
        .where(*predicates)
        .order_by(order, Video.id.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    result = await execute(session, stmt)
    rows = [dict(row) for row in result.mappings()]

    return VideoPage(rows=rows, total=total, page=page, page_size=page_size)


def day_bounds(
    day_filter: str, tz: str = DEFAULT_TIMEZONE, now: Optional[datetime] = None
) -> tuple[datetime, datetime]:
    """
    UTC bounds [start, end) of a relative day in a timezone

    Args:
        day_filter: yesterday | today | tomorrow
        tz: IANA timezone name
        now: Reference time (default: current UTC time)

    Raises:
        ValidationError: Unknown filter or timezone
    """
    if day_filter not in DAY_FILTERS:
        raise ValidationError("Invalid filter. Use yesterday|today|tomorrow")

    zone = get_timezone(tz)
    local_now = (now or utcnow()).astimezone(zone)
    target_day = local_now.date() + timedelta(days=DAY_FILTERS[day_filter])
    return local_day_range(zone, target_day, target_day)


# ===========================
# CATEGORIES
# ===========================


async def list_categories(session: AsyncSession) -> list[dict[str, Any]]:
    result = await execute(session, select(Category.id, Category.name).order_by(Category.name))
    return [dict(row) for row in result.mappings()]


# ===========================
# VIDEOS
# ===========================


async def list_videos(
    session: AsyncSession,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort: Optional[str] = "DESC",
) -> VideoPage:
    return await _video_page(session, [], page, page_size, sort)


async def videos_by_category(
    session: AsyncSession,
    name: str,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort: Optional[str] = "DESC",
) -> VideoPage:
    return await _video_page(session, [Category.name == name], page, page_size, sort)


async def videos_by_category_and_day(
    session: AsyncSession,
    name: str,
    day_filter: str,
    tz: str = DEFAULT_TIMEZONE,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort: Optional[str] = "DESC",
    now: Optional[datetime] = None,
) -> VideoPage:
    """
    Videos of a category whose match falls on yesterday/today/tomorrow

    Days are calendar days in `tz` (default Africa/Lagos).
    """
    start, end = day_bounds(day_filter, tz, now)
    predicates = [Category.name == name, Match.date >= start, Match.date < end]
    return await _video_page(session, predicates, page, page_size, sort)


async def videos_by_date_range(
    session: AsyncSession,
    date_from: date,
    date_to: date,
    category: Optional[str] = None,
    tz: str = DEFAULT_TIMEZONE,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    sort: Optional[str] = "DESC",
) -> VideoPage:
    """
    Videos whose match date falls within [date_from, date_to], both inclusive

    Raises:
        ValidationError: date_from after date_to
    """
    if date_from > date_to:
        raise ValidationError("'from' must not be after 'to'")

    start, end = local_day_range(get_timezone(tz), date_from, date_to)
    predicates = [Match.date >= start, Match.date < end]
    if category:
        predicates.append(Category.name == category)

    return await _video_page(session, predicates, page, page_size, sort)


async def get_video(session: AsyncSession, video_id: int) -> dict[str, Any]:
    """
    Single video row

    Raises:
        NotFoundError: Unknown video
    """
    stmt = _joined(select(*_video_columns()).select_from(Video)).where(Video.id == video_id)
    row = (await execute(session, stmt)).mappings().one_or_none()
    if row is None:
        raise NotFoundError("Video not found")
    return dict(row)


async def recent_highlights(
    session: AsyncSession,
    days: int = RECENT_HIGHLIGHTS_DAYS,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    now: Optional[datetime] = None,
) -> VideoPage:
    """Videos of matches played within the last `days` days, newest first"""
    since = (now or utcnow()) - timedelta(days=days)
    return await _video_page(session, [Match.date >= since], page, page_size, "DESC")


async def related_videos(
    session: AsyncSession, video_id: int, limit: int = DEFAULT_RELATED_LIMIT
) -> list[dict[str, Any]]:
    """
    Other videos in the same category, newest match first

    Raises:
        NotFoundError: Unknown video
    """
    category_id = (
        await execute(session, select(Video.category_id).where(Video.id == video_id))
    ).scalar_one_or_none()
    if category_id is None:
        raise NotFoundError("Video not found")

    stmt = (
        _joined(select(*_video_columns()).select_from(Video))
        .where(Video.category_id == category_id, Video.id != video_id)
        .order_by(Match.date.desc(), Video.id.desc())
        .limit(limit)
    )
    result = await execute(session, stmt)
    rows = [dict(row) for row in result.mappings()]

    logger.debug(f"Found {len(rows)} related videos for video {video_id}")
    return rows
