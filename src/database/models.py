"""
Database models for Football Highlights API

SQLAlchemy 2.0 models with full type hints
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    String,
    Text,
    Integer,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    Numeric,
    JSON,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship, declared_attr

from src.core.enums import SubscriberStatus
from src.utils.dates import utcnow


class Base(DeclarativeBase):
    """Base class for all models"""

    pass


# ===========================
# CATALOG
# ===========================


class Country(Base):
    """Country a league belongs to (exposed as "location" in the API)"""

    __tablename__ = "countries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    code: Mapped[Optional[str]] = mapped_column(
        String(10), nullable=True, comment="ISO country code"
    )

    leagues: Mapped[list["League"]] = relationship(back_populates="country")


class League(Base):
    __tablename__ = "leagues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    logo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    country_id: Mapped[int] = mapped_column(
        ForeignKey("countries.id"), nullable=False, index=True
    )

    country: Mapped[Country] = relationship(back_populates="leagues")


class Team(Base):
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(150), nullable=False, index=True)
    logo: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    country_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("countries.id"), nullable=True
    )


class Match(Base):
    """
    A fixture between two teams

    `date` is the kick-off timestamp; search derives upcoming/live/finished from it.
    """

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    league_id: Mapped[int] = mapped_column(ForeignKey("leagues.id"), nullable=False, index=True)
    home_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    away_team_id: Mapped[int] = mapped_column(ForeignKey("teams.id"), nullable=False, index=True)
    date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True, comment="Kick-off time (UTC)"
    )
    thumbnail: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    matchview_url: Mapped[Optional[str]] = mapped_column(
        String(512), nullable=True, comment="Player page URL for the match videos"
    )

    league: Mapped[League] = relationship()
    home_team: Mapped[Team] = relationship(foreign_keys=[home_team_id])
    away_team: Mapped[Team] = relationship(foreign_keys=[away_team_id])


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)


class Video(Base):
    """Every video belongs to exactly one match and one category"""

    __tablename__ = "videos"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    match_id: Mapped[int] = mapped_column(ForeignKey("matches.id"), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    video_id: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, comment="Provider video identifier"
    )
    embed_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    match: Mapped[Match] = relationship()
    category: Mapped[Category] = relationship()


# ===========================
# SUBSCRIPTION GATE
# ===========================


class Subscriber(Base):
    """
    Carrier subscriber identified by canonical MSISDN

    Never hard-deleted; status moves through SubscriberStatus.
    """

    __tablename__ = "subscribers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    msisdn: Mapped[str] = mapped_column(
        String(32), unique=True, index=True, nullable=False, comment="Canonical MSISDN (234XXXXXXXXXX)"
    )
    status: Mapped[str] = mapped_column(
        String(20), default=SubscriberStatus.PENDING.value, nullable=False
    )
    start_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Start of the paid window"
    )
    end_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="End of the paid window"
    )
    amount: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(10, 2), nullable=True, comment="Amount of the last payment"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    sessions: Mapped[list["SubscriberSession"]] = relationship(back_populates="subscriber")


class SubscriberSession(Base):
    """Login session; expires together with the subscription window"""

    __tablename__ = "sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscriber_id: Mapped[int] = mapped_column(
        ForeignKey("subscribers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    subscriber: Mapped[Subscriber] = relationship(back_populates="sessions")


class WebhookEvent(Base):
    """Append-only audit trail of carrier webhook calls"""

    __tablename__ = "webhook_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    msisdn: Mapped[Optional[str]] = mapped_column(String(32), nullable=True, index=True)
    raw_status: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    normalized_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    raw_payload: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )


class SubscriptionLink(Base):
    """Carrier payment page shown to subscribers without access"""

    __tablename__ = "subscription_links"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    carrier: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    link: Mapped[str] = mapped_column(String(512), nullable=False)


# ===========================
# INTERACTIONS
# ===========================


class InteractionMixin:
    """
    One row per (subscriber_id, match_id); deleted_at marks soft removal
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subscriber_id: Mapped[int] = mapped_column(
        ForeignKey("subscribers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    match_id: Mapped[int] = mapped_column(
        ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, comment="Soft delete marker"
    )

    @declared_attr.directive
    def __table_args__(cls):
        return (
            UniqueConstraint(
                "subscriber_id", "match_id", name=f"uq_{cls.__tablename__}_subscriber_match"
            ),
        )


class SavedMatch(InteractionMixin, Base):
    __tablename__ = "saved_matches"


class LovedMatch(InteractionMixin, Base):
    __tablename__ = "loved_matches"


class FavoriteMatch(InteractionMixin, Base):
    __tablename__ = "favorite_matches"
