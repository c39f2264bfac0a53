"""
Pytest configuration and fixtures for Football Highlights API tests
"""

from datetime import timedelta
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

from src.core.enums import Carrier, VideoCategory
from src.database.engine import Database
from src.database.models import (
    Category,
    Country,
    League,
    Match,
    SubscriptionLink,
    Team,
    Video,
)
from src.utils.dates import utcnow


# Test database URL (in-memory SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

MTN_LINK = "https://mtn.example.com/subscribe/highlights"
AIRTEL_LINK = "https://airtel.example.com/subscribe/highlights"


@pytest.fixture(scope="function")
async def test_db() -> AsyncGenerator[Database, None]:
    """
    Create test database (fresh schema per test)
    """
    db = Database(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await db.create_all()

    yield db

    await db.drop_all()
    await db.dispose()


@pytest.fixture(scope="function")
async def db_session(test_db) -> AsyncGenerator[AsyncSession, None]:
    """
    Create test database session
    """
    async with test_db.session() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
async def client(test_db) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client bound to an app that uses the test database
    """
    from api_server import create_app

    app = create_app(db=test_db)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


@pytest.fixture(scope="function")
async def subscription_links(db_session):
    """Carrier payment pages"""
    db_session.add_all(
        [
            SubscriptionLink(carrier=Carrier.MTN.value, link=MTN_LINK),
            SubscriptionLink(carrier=Carrier.AIRTEL.value, link=AIRTEL_LINK),
        ]
    )
    await db_session.commit()
    return {Carrier.MTN.value: MTN_LINK, Carrier.AIRTEL.value: AIRTEL_LINK}


@pytest.fixture(scope="function")
async def catalog(db_session) -> SimpleNamespace:
    """
    Seed a small catalog

    Matches (relative to now):
        derby      Arsenal vs Chelsea       1 day ago   (finished)
        live       Chelsea vs Liverpool     1 hour ago  (live)
        clasico    Barcelona vs Real Madrid in 2 days  (upcoming)
        spurs      Tottenham vs Everton     3 days ago  (finished)
    """
    now = utcnow()

    england = Country(name="England", code="GB")
    spain = Country(name="Spain", code="ES")
    db_session.add_all([england, spain])
    await db_session.flush()

    premier_league = League(name="Premier League", country_id=england.id)
    la_liga = League(name="La Liga", country_id=spain.id)
    db_session.add_all([premier_league, la_liga])

    teams = {
        name: Team(name=name, country_id=country.id)
        for name, country in [
            ("Arsenal", england),
            ("Chelsea", england),
            ("Liverpool", england),
            ("Tottenham", england),
            ("Everton", england),
            ("Barcelona", spain),
            ("Real Madrid", spain),
        ]
    }
    db_session.add_all(teams.values())

    categories = {name: Category(name=name) for name in VideoCategory.values()}
    db_session.add_all(categories.values())
    await db_session.flush()

    def make_match(title, league, home, away, date):
        return Match(
            title=title,
            league_id=league.id,
            home_team_id=teams[home].id,
            away_team_id=teams[away].id,
            date=date,
            thumbnail=f"https://cdn.example.com/{home.lower()}.jpg",
            matchview_url=f"https://watch.example.com/{home.lower()}-{away.lower()}",
        )

    derby = make_match("Arsenal vs Chelsea", premier_league, "Arsenal", "Chelsea", now - timedelta(days=1))
    live = make_match("Chelsea vs Liverpool", premier_league, "Chelsea", "Liverpool", now - timedelta(hours=1))
    clasico = make_match("El Clasico", la_liga, "Barcelona", "Real Madrid", now + timedelta(days=2))
    spurs = make_match("Tottenham vs Everton", premier_league, "Tottenham", "Everton", now - timedelta(days=3, hours=1))
    db_session.add_all([derby, live, clasico, spurs])
    await db_session.flush()

    def make_video(match, category, title):
        return Video(
            match_id=match.id,
            category_id=categories[category].id,
            title=title,
            video_id=f"vid-{match.id}-{categories[category].id}",
        )

    videos = SimpleNamespace(
        derby_highlights=make_video(derby, "Highlights", "Arsenal vs Chelsea Highlights"),
        derby_goals=make_video(derby, "All Goals", "Arsenal vs Chelsea All Goals"),
        live_stream=make_video(live, "Live Stream", "Chelsea vs Liverpool Live"),
        clasico_preview=make_video(clasico, "Extended Highlights", "El Clasico Extended Preview"),
        spurs_highlights=make_video(spurs, "Highlights", "Gunners Derby Highlights"),
    )
    db_session.add_all(vars(videos).values())
    await db_session.commit()

    return SimpleNamespace(
        now=now,
        countries=SimpleNamespace(england=england, spain=spain),
        leagues=SimpleNamespace(premier_league=premier_league, la_liga=la_liga),
        teams=teams,
        categories=categories,
        matches=SimpleNamespace(derby=derby, live=live, clasico=clasico, spurs=spurs),
        videos=videos,
    )
