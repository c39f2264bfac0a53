"""
Core Enums - shared value types for the highlights API.

Defines:
- SubscriberStatus: subscription lifecycle states
- Carrier: telecom operators detected from MSISDN prefixes
- InteractionType: engagement ledgers (saved / loved / favorite)
- MatchStatus: computed match state used by search filters
- VideoCategory: the fixed category vocabulary accepted by search
- SuggestionType: entity tag on autosuggest results
"""

from enum import Enum


class SubscriberStatus(str, Enum):
    """Subscriber lifecycle state.

    pending → active → expired / cancelled → active (renewal).
    PENDING is also reported for MSISDNs that have no subscriber row yet.
    """

    PENDING = "pending"
    ACTIVE = "active"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Carrier(str, Enum):
    """Telecom operator inferred from the local MSISDN prefix."""

    MTN = "MTN"
    AIRTEL = "Airtel"


class InteractionType(str, Enum):
    """Engagement ledgers, in tie-break order for top matches."""

    SAVED = "saved"
    LOVED = "loved"
    FAVORITE = "favorite"


class MatchStatus(str, Enum):
    """Match state relative to now.

    LIVE covers the two hours ending now.
    """

    UPCOMING = "upcoming"
    FINISHED = "finished"
    LIVE = "live"


class VideoCategory(str, Enum):
    """Category names accepted by the search filter."""

    ALL_GOALS = "All Goals"
    HIGHLIGHTS = "Highlights"
    EXTENDED_HIGHLIGHTS = "Extended Highlights"
    LIVE_STREAM = "Live Stream"

    @classmethod
    def values(cls) -> list[str]:
        return [category.value for category in cls]


class SuggestionType(str, Enum):
    """Entity tag on autosuggest results, in ranking priority order."""

    TEAM = "team"
    LEAGUE = "league"
    COUNTRY = "country"
