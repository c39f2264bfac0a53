"""
Interactions API
- /saved-matches, /loved-matches, /favorite-matches (POST add, DELETE remove, GET list)
- /matches/{id}/stats, /subscribers/{id}/stats
- /interactions/top
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import success_response
from src.core.enums import InteractionType
from src.database.engine import get_session
from src.services.interaction_service import DEFAULT_TOP_LIMIT, InteractionService


router = APIRouter(tags=["interactions"])


class InteractionRequest(BaseModel):
    subscriber_id: int = Field(..., gt=0)
    match_id: int = Field(..., gt=0)


# Ledger -> (path, added, removed, listed) messages
LEDGER_ROUTES = {
    InteractionType.SAVED: (
        "/saved-matches",
        "Match saved for watch later.",
        "Match removed from saved.",
        "Saved matches retrieved.",
    ),
    InteractionType.LOVED: (
        "/loved-matches",
        "Match loved.",
        "Love removed.",
        "Loved matches retrieved.",
    ),
    InteractionType.FAVORITE: (
        "/favorite-matches",
        "Match favorited.",
        "Match removed from favorites.",
        "Favorite matches retrieved.",
    ),
}


def _register_ledger(
    interaction_type: InteractionType,
    path: str,
    added_message: str,
    removed_message: str,
    listed_message: str,
) -> None:
    async def add_match(
        request: InteractionRequest,
        session: AsyncSession = Depends(get_session),
    ) -> Dict[str, Any]:
        activated = await InteractionService.add(
            session, interaction_type, request.subscriber_id, request.match_id
        )
        return success_response(
            {
                "subscriber_id": request.subscriber_id,
                "match_id": request.match_id,
                "created": activated,
            },
            added_message,
        )

    async def remove_match(
        request: InteractionRequest,
        session: AsyncSession = Depends(get_session),
    ) -> Dict[str, Any]:
        await InteractionService.remove(
            session, interaction_type, request.subscriber_id, request.match_id
        )
        return success_response(None, removed_message)

    async def list_matches(
        subscriber_id: int = Query(..., gt=0),
        session: AsyncSession = Depends(get_session),
    ) -> Dict[str, Any]:
        rows = await InteractionService.list_for_subscriber(session, interaction_type, subscriber_id)
        return success_response(rows, listed_message)

    name = interaction_type.value
    router.add_api_route(path, add_match, methods=["POST"], name=f"add_{name}_match")
    router.add_api_route(path, remove_match, methods=["DELETE"], name=f"remove_{name}_match")
    router.add_api_route(path, list_matches, methods=["GET"], name=f"list_{name}_matches")


for _interaction_type, _messages in LEDGER_ROUTES.items():
    _register_ledger(_interaction_type, *_messages)


@router.get("/matches/{match_id}/stats")
async def match_stats(
    match_id: int,
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """Active saved/loved/favorite counts for a match"""
    stats = await InteractionService.stats_for_match(session, match_id)
    return success_response(stats, "Match stats fetched successfully")


@router.get("/subscribers/{subscriber_id}/stats")
async def subscriber_stats(
    subscriber_id: int,
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """Active saved/loved/favorite counts for a subscriber"""
    stats = await InteractionService.stats_for_subscriber(session, subscriber_id)
    return success_response(stats, "Subscriber stats fetched successfully")


@router.get("/interactions/top")
async def top_matches(
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Top matches of the busiest ledger

    Returns:
        {"type": "saved" | "loved" | "favorite" | null, "rows": [...]}
    """
    top = await InteractionService.top_matches(session, DEFAULT_TOP_LIMIT)
    if top["type"] is None:
        return success_response(top, "No interactions found.")

    return success_response(
        top, f"Top {DEFAULT_TOP_LIMIT} {top['type']} matches retrieved successfully."
    )
