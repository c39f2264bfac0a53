"""
Interaction Service - saved / loved / favorite match ledgers

Each ledger keeps one row per (subscriber, match). Removal is a soft delete
(deleted_at set); adding again revives the row. Every count and listing only
sees active rows.
"""

from datetime import datetime
from typing import Any, Optional

from loguru import logger
from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.enums import InteractionType
from src.core.exceptions import NotFoundError
from src.database.gateway import commit, execute, upsert_insert
from src.database.models import FavoriteMatch, LovedMatch, Match, SavedMatch
from src.utils.dates import utcnow


INTERACTION_MODELS = {
    InteractionType.SAVED: SavedMatch,
    InteractionType.LOVED: LovedMatch,
    InteractionType.FAVORITE: FavoriteMatch,
}

# Per-match count column name in top_matches rows
TOP_TOTAL_LABELS = {
    InteractionType.SAVED: "total_saves",
    InteractionType.LOVED: "total_loves",
    InteractionType.FAVORITE: "total_favorites",
}

DEFAULT_TOP_LIMIT = 10


def _active_count(model: Any, *criteria: Any):
    return (
        select(func.count(model.id))
        .where(model.deleted_at.is_(None), *criteria)
        .scalar_subquery()
    )


class InteractionService:
    """Service for subscriber engagement with matches"""

    @staticmethod
    async def add(
        session: AsyncSession,
        interaction_type: InteractionType,
        subscriber_id: int,
        match_id: int,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Add a match to a ledger

        Inserts a new row or revives a soft-deleted one (deleted_at cleared,
        created_at refreshed). An already active row is left untouched.

        Args:
            session: Database session
            interaction_type: Ledger
            subscriber_id: Subscriber ID
            match_id: Match ID
            now: Timestamp for the row (default: current UTC time)

        Returns:
            True if the pair became active, False if it already was
        """
        model = INTERACTION_MODELS[interaction_type]
        now = now or utcnow()

        stmt = (
            upsert_insert(session, model)
            .values(subscriber_id=subscriber_id, match_id=match_id, created_at=now)
            .on_conflict_do_update(
                index_elements=[model.subscriber_id, model.match_id],
                set_={"deleted_at": None, "created_at": now},
                where=model.deleted_at.is_not(None),
            )
        )
        result = await execute(session, stmt)
        await commit(session)

        activated = result.rowcount > 0
        if activated:
            logger.info(
                f"Subscriber {subscriber_id} added match {match_id} to {interaction_type.value}"
            )
        return activated

    @staticmethod
    async def remove(
        session: AsyncSession,
        interaction_type: InteractionType,
        subscriber_id: int,
        match_id: int,
    ) -> None:
        """
        Soft-delete the active row for a pair

        Raises:
            NotFoundError: No active row for the pair
        """
        model = INTERACTION_MODELS[interaction_type]

        stmt = (
            update(model)
            .where(
                model.subscriber_id == subscriber_id,
                model.match_id == match_id,
                model.deleted_at.is_(None),
            )
            .values(deleted_at=utcnow())
        )
        result = await execute(session, stmt)
        await commit(session)

        if result.rowcount == 0:
            raise NotFoundError(f"{interaction_type.value.capitalize()} match not found")

        logger.info(
            f"Subscriber {subscriber_id} removed match {match_id} from {interaction_type.value}"
        )

    @staticmethod
    async def list_for_subscriber(
        session: AsyncSession,
        interaction_type: InteractionType,
        subscriber_id: int,
    ) -> list[dict[str, Any]]:
        """Active rows of one ledger for a subscriber, newest first, with match details"""
        model = INTERACTION_MODELS[interaction_type]

        stmt = (
            select(
                model.id,
                model.subscriber_id,
                model.match_id,
                model.created_at,
                Match.title,
                Match.thumbnail,
                Match.date.label("match_date"),
            )
            .join(Match, model.match_id == Match.id)
            .where(model.subscriber_id == subscriber_id, model.deleted_at.is_(None))
            .order_by(model.created_at.desc(), model.id.desc())
        )
        result = await execute(session, stmt)
        return [dict(row) for row in result.mappings()]

    @staticmethod
    async def stats_for_match(session: AsyncSession, match_id: int) -> dict[str, int]:
        """Active saved/loved/favorite counts for a match (one round trip)"""
        stmt = select(
            _active_count(SavedMatch, SavedMatch.match_id == match_id).label("saved_count"),
            _active_count(LovedMatch, LovedMatch.match_id == match_id).label("loved_count"),
            _active_count(FavoriteMatch, FavoriteMatch.match_id == match_id).label("favorite_count"),
        )
        result = await execute(session, stmt)
        return dict(result.mappings().one())

    @staticmethod
    async def stats_for_subscriber(session: AsyncSession, subscriber_id: int) -> dict[str, int]:
        """Active saved/loved/favorite counts for a subscriber (one round trip)"""
        stmt = select(
            _active_count(SavedMatch, SavedMatch.subscriber_id == subscriber_id).label("saved_count"),
            _active_count(LovedMatch, LovedMatch.subscriber_id == subscriber_id).label("loved_count"),
            _active_count(
                FavoriteMatch, FavoriteMatch.subscriber_id == subscriber_id
            ).label("favorite_count"),
        )
        result = await execute(session, stmt)
        return dict(result.mappings().one())

    @staticmethod
    async def top_matches(
        session: AsyncSession, limit: int = DEFAULT_TOP_LIMIT
    ) -> dict[str, Any]:
        """
        Most engaged matches of the busiest ledger

        The ledger with the most active rows wins (ties: saved, loved,
        favorite). Its matches are ranked by active count, then by most recent
        match date.

        Returns:
            {"type": ledger name or None, "rows": [...]}
        """
        totals_stmt = select(
            *(
                _active_count(model).label(interaction_type.value)
                for interaction_type, model in INTERACTION_MODELS.items()
            )
        )
        totals = (await execute(session, totals_stmt)).mappings().one()

        winner: Optional[InteractionType] = None
        for interaction_type in INTERACTION_MODELS:
            if totals[interaction_type.value] > 0 and (
                winner is None or totals[interaction_type.value] > totals[winner.value]
            ):
                winner = interaction_type

        if winner is None:
            return {"type": None, "rows": []}

        model = INTERACTION_MODELS[winner]
        total = func.count(model.id).label(TOP_TOTAL_LABELS[winner])

        stmt = (
            select(
                Match.id.label("match_id"),
                Match.title,
                Match.thumbnail,
                Match.date.label("match_date"),
                total,
            )
            .join(model, model.match_id == Match.id)
            .where(model.deleted_at.is_(None))
            .group_by(Match.id, Match.title, Match.thumbnail, Match.date)
            .order_by(desc(total), Match.date.desc())
            .limit(limit)
        )
        result = await execute(session, stmt)

        logger.debug(f"Top matches ledger: {winner.value} (totals={dict(totals)})")
        return {"type": winner.value, "rows": [dict(row) for row in result.mappings()]}
