"""
Search Service - video search, autosuggest and filter options

Two modes:
- Autosuggest: short free text (< 4 chars) and no other filter. Returns ranked
  team/league/country names instead of videos.
- Full search: every filter applied, natural-language full-text match on
  video/match titles plus team-name substring. An empty natural-mode result
  for a non-empty term is retried once in boolean (prefix) mode.
"""

from dataclasses import asdict, dataclass, field
from datetime import date as date_type, datetime, timedelta
from typing import Any, Iterable, Optional

from loguru import logger
from sqlalchemy import Select, and_, case, func, literal, or_, select, union_all
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlalchemy.sql.expression import ColumnElement

from config.config import DEFAULT_TIMEZONE
from src.core.enums import MatchStatus, SuggestionType, VideoCategory
from src.core.exceptions import ValidationError
from src.database.fulltext import TextMatch
from src.database.gateway import execute
from src.database.models import Category, Country, League, Match, Team, Video
from src.utils.dates import get_timezone, local_day_range, utcnow


AUTOSUGGEST_MAX_LENGTH = 4
AUTOSUGGEST_LIMIT = 10
# Candidate rows fetched before case-insensitive dedupe
AUTOSUGGEST_CANDIDATES = AUTOSUGGEST_LIMIT * 5

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# A match counts as live for this long after kick-off
LIVE_WINDOW = timedelta(hours=2)

# Priority of suggestion types after exact matches
SUGGESTION_PRIORITY = {
    SuggestionType.TEAM: 0,
    SuggestionType.LEAGUE: 1,
    SuggestionType.COUNTRY: 2,
}

MATCH_STATUS_OPTIONS = [
    {"id": MatchStatus.UPCOMING.value, "name": "Upcoming"},
    {"id": MatchStatus.FINISHED.value, "name": "Finished"},
    {"id": MatchStatus.LIVE.value, "name": "Live"},
]

# filter-options type -> model searched by name
NAMED_FILTER_MODELS = {
    "team": Team,
    "league": League,
    "location": Country,
}


@dataclass
class SearchFilters:
    """
    Normalized search parameters

    league/team/location hold ids; category holds validated category names.
    """

    q: Optional[str] = None
    league: list[int] = field(default_factory=list)
    team: list[int] = field(default_factory=list)
    category: list[str] = field(default_factory=list)
    location: list[int] = field(default_factory=list)
    date: Optional[date_type] = None
    match_status: Optional[MatchStatus] = None
    page: int = 1
    limit: int = DEFAULT_PAGE_SIZE

    @classmethod
    def from_params(
        cls,
        q: Optional[str] = None,
        league: Optional[Iterable[int]] = None,
        team: Optional[Iterable[int]] = None,
        category: Optional[Iterable[str]] = None,
        location: Optional[Iterable[int]] = None,
        date: Optional[date_type] = None,
        match_status: Optional[str] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> "SearchFilters":
        """
        Build filters from raw request values

        Unknown categories are dropped silently; an unknown match_status is a
        client error.
        """
        valid_categories = VideoCategory.values()

        status = None
        if match_status:
            try:
                status = MatchStatus(match_status)
            except ValueError:
                raise ValidationError(
                    f"Invalid match_status '{match_status}'. "
                    f"Use one of: {', '.join(s.value for s in MatchStatus)}"
                ) from None

        return cls(
            q=q,
            league=list(league or []),
            team=list(team or []),
            category=[c for c in (category or []) if c in valid_categories],
            location=list(location or []),
            date=date,
            match_status=status,
            page=max(1, page),
            limit=min(max(1, limit), MAX_PAGE_SIZE),
        )

    @property
    def term(self) -> str:
        return (self.q or "").strip()

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def has_structured_filters(self) -> bool:
        return bool(
            self.league
            or self.team
            or self.category
            or self.location
            or self.date
            or self.match_status
        )

    def is_autosuggest(self) -> bool:
        term = self.term
        return bool(term) and len(term) < AUTOSUGGEST_MAX_LENGTH and not self.has_structured_filters()

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["match_status"] = self.match_status.value if self.match_status else None
        data["offset"] = self.offset
        return data


# ===========================
# AUTOSUGGEST
# ===========================


def _suggestion_select(model: Any, suggestion_type: SuggestionType, term: str) -> Select:
    name = model.name

    return select(
        model.id.label("id"),
        name.label("name"),
        literal(suggestion_type.value).label("type"),
        case((name == term, 0), else_=1).label("exact_rank"),
        literal(SUGGESTION_PRIORITY[suggestion_type]).label("type_rank"),
        case((name.istartswith(term, autoescape=True), 0), else_=1).label("match_rank"),
    ).where(name.icontains(term, autoescape=True))


async def autosuggest(session: AsyncSession, q: str) -> list[dict[str, Any]]:
    """
    Ranked entity-name suggestions for a short term

    Order: exact case-sensitive equality first, then team, league, country;
    prefix before substring within a type; then alphabetical. Names are
    deduplicated case-insensitively keeping the best-ranked entry.

    Args:
        session: Database session
        q: Search term

    Returns:
        Up to 10 dicts with id, name and type
    """
    term = q.strip()
    if not term:
        return []

    candidates = union_all(
        _suggestion_select(Team, SuggestionType.TEAM, term),
        _suggestion_select(League, SuggestionType.LEAGUE, term),
        _suggestion_select(Country, SuggestionType.COUNTRY, term),
    ).subquery("candidates")

    stmt = (
        select(candidates.c.id, candidates.c.name, candidates.c.type)
        .order_by(
            candidates.c.exact_rank,
            candidates.c.type_rank,
            candidates.c.match_rank,
            candidates.c.name,
        )
        .limit(AUTOSUGGEST_CANDIDATES)
    )
    result = await execute(session, stmt)

    suggestions: list[dict[str, Any]] = []
    seen: set[str] = set()
    for row in result:
        key = row.name.lower()
        if key in seen:
            continue
        seen.add(key)
        suggestions.append({"id": row.id, "name": row.name, "type": row.type})
        if len(suggestions) >= AUTOSUGGEST_LIMIT:
            break

    return suggestions


# ===========================
# FULL SEARCH
# ===========================


def _match_status_predicate(status: MatchStatus, now: datetime) -> ColumnElement[bool]:
    live_since = now - LIVE_WINDOW
    if status == MatchStatus.UPCOMING:
        return Match.date > now
    if status == MatchStatus.LIVE:
        return Match.date.between(live_since, now)
    return Match.date < live_since


def build_predicates(
    filters: SearchFilters,
    home_team: Any,
    away_team: Any,
    boolean_mode: bool = False,
    now: Optional[datetime] = None,
) -> list[ColumnElement[bool]]:
    """
    Translate filters into WHERE clauses

    Every value is a bound parameter; empty filters add nothing.

    Args:
        filters: Normalized filters
        home_team: Team alias joined as the home side
        away_team: Team alias joined as the away side
        boolean_mode: Use prefix full-text matching
        now: Reference time for match_status

    Returns:
        List of predicates to AND together
    """
    predicates: list[ColumnElement[bool]] = []

    term = filters.term
    if term:
        predicates.append(
            or_(
                TextMatch([Video.title, Match.title], term, boolean_mode=boolean_mode),
                home_team.name.icontains(term, autoescape=True),
                away_team.name.icontains(term, autoescape=True),
            )
        )

    if filters.league:
        predicates.append(Match.league_id.in_(filters.league))

    if filters.team:
        predicates.append(
            or_(Match.home_team_id.in_(filters.team), Match.away_team_id.in_(filters.team))
        )

    if filters.category:
        predicates.append(Category.name.in_(filters.category))

    if filters.location:
        predicates.append(League.country_id.in_(filters.location))

    if filters.date:
        # Calendar day in DEFAULT_TIMEZONE, like the catalog date filters
        zone = get_timezone(DEFAULT_TIMEZONE)
        day_start, day_end = local_day_range(zone, filters.date, filters.date)
        predicates.append(and_(Match.date >= day_start, Match.date < day_end))

    if filters.match_status:
        predicates.append(_match_status_predicate(filters.match_status, now or utcnow()))

    return predicates


def build_search_query(
    filters: SearchFilters,
    boolean_mode: bool = False,
    now: Optional[datetime] = None,
) -> Select:
    """Paginated video query with a window-function total_count column"""
    home_team = aliased(Team, name="home_team")
    away_team = aliased(Team, name="away_team")

    return (
        select(
            Video.id,
            Video.title,
            Match.id.label("match_id"),
            Match.title.label("match_title"),
            Match.thumbnail,
            Category.name.label("category"),
            Match.date.label("match_date"),
            League.name.label("league"),
            Country.name.label("country"),
            home_team.name.label("home_team"),
            away_team.name.label("away_team"),
            Match.matchview_url.label("video_url"),
            func.count().over().label("total_count"),
        )
        .join(Match, Video.match_id == Match.id)
        .join(Category, Video.category_id == Category.id)
        .join(League, Match.league_id == League.id)
        .join(Country, League.country_id == Country.id)
        .join(home_team, Match.home_team_id == home_team.id)
        .join(away_team, Match.away_team_id == away_team.id)
        .where(*build_predicates(filters, home_team, away_team, boolean_mode, now))
        .order_by(Match.date.desc(), Video.id.desc())
        .limit(filters.limit)
        .offset(filters.offset)
    )


async def _run_search(
    session: AsyncSession, filters: SearchFilters, boolean_mode: bool
) -> list[dict[str, Any]]:
    result = await execute(session, build_search_query(filters, boolean_mode))
    return [dict(row) for row in result.mappings()]


async def search(session: AsyncSession, filters: SearchFilters) -> dict[str, Any]:
    """
    Search videos

    Args:
        session: Database session
        filters: Normalized filters

    Returns:
        Autosuggest payload {query, mode, suggestions} or full payload
        {query, mode, filters, results, pagination}
    """
    if filters.is_autosuggest():
        suggestions = await autosuggest(session, filters.term)
        return {"query": filters.q, "mode": "autosuggest", "suggestions": suggestions}

    rows = await _run_search(session, filters, boolean_mode=False)

    if not rows and filters.term:
        logger.debug(f"No natural-mode results for '{filters.term}', retrying in boolean mode")
        rows = await _run_search(session, filters, boolean_mode=True)

    total = rows[0]["total_count"] if rows else 0
    for row in rows:
        row.pop("total_count", None)

    return {
        "query": filters.q,
        "mode": "full",
        "filters": filters.to_dict(),
        "results": rows,
        "pagination": {"page": filters.page, "limit": filters.limit, "total": total},
    }


# ===========================
# FILTER OPTIONS
# ===========================


async def filter_options(
    session: AsyncSession,
    filter_type: Optional[str],
    q: str = "",
    limit: int = 10,
    offset: int = 0,
) -> dict[str, Any]:
    """
    Values for one search filter, shaped {id, name}

    match_status and category are static; team, league and location (countries)
    are looked up by name substring.

    Raises:
        ValidationError: Unknown filter type
    """
    if filter_type == "match_status":
        options = MATCH_STATUS_OPTIONS
    elif filter_type == "category":
        options = [{"id": name, "name": name} for name in VideoCategory.values()]
    elif filter_type in NAMED_FILTER_MODELS:
        model = NAMED_FILTER_MODELS[filter_type]
        stmt = select(model.id, model.name).order_by(model.name).limit(limit).offset(offset)
        if q.strip():
            stmt = stmt.where(model.name.icontains(q.strip(), autoescape=True))

        result = await execute(session, stmt)
        options = [{"id": row.id, "name": row.name} for row in result]
    else:
        raise ValidationError("Invalid filter type")

    return {"type": filter_type, "query": q, "options": options, "total": len(options)}
