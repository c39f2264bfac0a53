"""
Core module - shared enums and exceptions for the whole stack.
"""

from src.core.enums import (
    SubscriberStatus,
    Carrier,
    InteractionType,
    MatchStatus,
    VideoCategory,
    SuggestionType,
)
from src.core.exceptions import (
    AppError,
    ValidationError,
    UnknownCarrierError,
    AuthError,
    SessionExpiredError,
    NotFoundError,
    ConflictError,
    TransientStoreError,
    UnhandledStoreError,
)

__all__ = [
    "SubscriberStatus",
    "Carrier",
    "InteractionType",
    "MatchStatus",
    "VideoCategory",
    "SuggestionType",
    "AppError",
    "ValidationError",
    "UnknownCarrierError",
    "AuthError",
    "SessionExpiredError",
    "NotFoundError",
    "ConflictError",
    "TransientStoreError",
    "UnhandledStoreError",
]
