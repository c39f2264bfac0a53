"""
Subscription Lifecycle Service - carrier subscription gate and login sessions

This service handles:
- MSISDN login (access payload or subscription link)
- Payment callback / webhook renewals (1-day window from now)
- On-demand expiry of elapsed subscriptions
- Session tokens whose lifetime equals the subscription end time
- Webhook audit trail
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.config import SUBSCRIPTION_AMOUNT, SUBSCRIPTION_DAYS
from src.core.enums import Carrier, SubscriberStatus
from src.core.exceptions import (
    AuthError,
    NotFoundError,
    SessionExpiredError,
    UnknownCarrierError,
    ValidationError,
)
from src.database.gateway import commit, execute, upsert_insert
from src.database.models import (
    Subscriber,
    SubscriberSession,
    SubscriptionLink,
    WebhookEvent,
)
from src.utils.dates import ensure_utc, seconds_until, utcnow
from src.utils.msisdn import detect_carrier, normalize_msisdn


# Raw carrier status vocabulary -> lifecycle status
WEBHOOK_STATUS_MAP: dict[str, SubscriberStatus] = {
    **dict.fromkeys(
        (
            "active", "activated", "success", "successful", "subscribed",
            "renewed", "renewal", "charged", "topup", "top-up",
        ),
        SubscriberStatus.ACTIVE,
    ),
    **dict.fromkeys(
        ("expired", "terminated", "deactivated", "suspended", "insufficient_balance"),
        SubscriberStatus.EXPIRED,
    ),
    **dict.fromkeys(
        ("pending", "waiting", "processing", "new"),
        SubscriberStatus.PENDING,
    ),
    **dict.fromkeys(
        ("cancelled", "canceled", "cancel", "unsubscribed", "unsubscribe", "optout", "opt-out"),
        SubscriberStatus.CANCELLED,
    ),
}

# Column widths of webhook_events
MAX_RAW_STATUS_LENGTH = 64
MAX_MSISDN_LENGTH = 32


@dataclass
class AccessResult:
    """Outcome of an auth operation: client message plus payload"""

    message: str
    data: dict[str, Any] = field(default_factory=dict)


def map_webhook_status(raw_status: Any) -> Optional[SubscriberStatus]:
    """
    Map a raw carrier status string to a lifecycle status

    Returns:
        SubscriberStatus, or None for unrecognized input
    """
    if not isinstance(raw_status, str):
        return None
    return WEBHOOK_STATUS_MAP.get(raw_status.strip().lower())


def _access_payload(
    subscriber: Subscriber,
    status: str,
    token: Optional[str],
    is_first_time: bool,
    session_expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    is_active = status == SubscriberStatus.ACTIVE.value
    return {
        "status": status,
        "msisdn": subscriber.msisdn,
        "start_time": ensure_utc(subscriber.start_time),
        "end_time": ensure_utc(subscriber.end_time),
        "session_token": token,
        "session_expires_at": ensure_utc(session_expires_at) if token else None,
        "is_first_time": is_first_time,
        "remaining_seconds": seconds_until(subscriber.end_time, now) if is_active else 0,
    }


async def _subscription_required_payload(
    session: AsyncSession,
    msisdn: str,
    carrier: Carrier,
    status: str,
    is_first_time: bool,
) -> dict[str, Any]:
    return {
        "status": status,
        "carrier": carrier.value,
        "subscription_link": await get_subscription_link(session, carrier),
        "msisdn": msisdn,
        "session_token": None,
        "is_first_time": is_first_time,
        "remaining_seconds": 0,
    }


# ===========================
# LOOKUPS
# ===========================


async def get_subscriber_by_msisdn(
    session: AsyncSession, msisdn: str
) -> Optional[Subscriber]:
    """
    Get subscriber by canonical MSISDN

    Always reloads attributes so a renewal earlier in the same session is visible.
    """
    stmt = (
        select(Subscriber)
        .where(Subscriber.msisdn == msisdn)
        .execution_options(populate_existing=True)
    )
    result = await execute(session, stmt)
    return result.scalar_one_or_none()


async def _reload_subscriber(session: AsyncSession, subscriber_id: int) -> Subscriber:
    """Refresh the identity-mapped instance in place"""
    stmt = (
        select(Subscriber)
        .where(Subscriber.id == subscriber_id)
        .execution_options(populate_existing=True)
    )
    result = await execute(session, stmt)
    return result.scalar_one()


async def get_subscription_link(session: AsyncSession, carrier: Carrier) -> Optional[str]:
    stmt = select(SubscriptionLink.link).where(SubscriptionLink.carrier == carrier.value)
    result = await execute(session, stmt)
    return result.scalar_one_or_none()


# ===========================
# LIFECYCLE PRIMITIVES
# ===========================


async def check_and_expire(
    session: AsyncSession, subscriber: Subscriber, now: Optional[datetime] = None
) -> str:
    """
    Expire an active subscriber whose window has elapsed

    Must run before trusting a stored status. Concurrent calls for the same
    subscriber all write the same value.

    Args:
        session: Database session
        subscriber: Subscriber model
        now: Reference time (default: current UTC time)

    Returns:
        Current status value
    """
    now = now or utcnow()
    end_time = ensure_utc(subscriber.end_time)

    if subscriber.status == SubscriberStatus.ACTIVE.value and (
        end_time is None or now >= end_time
    ):
        # A retried write rolls the session back, which expires loaded instances
        subscriber_id, msisdn = subscriber.id, subscriber.msisdn

        stmt = (
            update(Subscriber)
            .where(Subscriber.id == subscriber_id)
            .values(status=SubscriberStatus.EXPIRED.value, updated_at=now)
        )
        await execute(session, stmt)
        await commit(session)
        await _reload_subscriber(session, subscriber_id)

        logger.info(f"Subscription expired for {msisdn} (end_time={end_time})")
        return SubscriberStatus.EXPIRED.value

    return subscriber.status


async def create_session(
    session: AsyncSession, subscriber_id: int, end_time: datetime
) -> str:
    """
    Mint a session token that expires with the subscription window

    Returns:
        Opaque session token
    """
    token = secrets.token_urlsafe(32)
    session.add(
        SubscriberSession(
            subscriber_id=subscriber_id,
            token=token,
            expires_at=ensure_utc(end_time),
        )
    )
    await commit(session)

    logger.debug(f"Created session for subscriber {subscriber_id}")
    return token


async def destroy_session(session: AsyncSession, token: str) -> None:
    """Delete a session token; unknown tokens are not an error"""
    await execute(session, delete(SubscriberSession).where(SubscriberSession.token == token))
    await commit(session)


async def renew_subscription(
    session: AsyncSession, msisdn: str, now: Optional[datetime] = None
) -> Subscriber:
    """
    Mark a subscriber active with a fresh window starting now

    Creates the subscriber if absent; prior status is irrelevant.

    Args:
        session: Database session
        msisdn: Canonical MSISDN
        now: Window start (default: current UTC time)

    Returns:
        Renewed Subscriber model
    """
    now = now or utcnow()
    window = {
        "status": SubscriberStatus.ACTIVE.value,
        "start_time": now,
        "end_time": now + timedelta(days=SUBSCRIPTION_DAYS),
        "amount": Decimal(str(SUBSCRIPTION_AMOUNT)),
        "updated_at": now,
    }

    stmt = (
        upsert_insert(session, Subscriber)
        .values(msisdn=msisdn, created_at=now, **window)
        .on_conflict_do_update(index_elements=[Subscriber.msisdn], set_=window)
    )
    await execute(session, stmt)
    await commit(session)

    logger.info(f"Subscription renewed for {msisdn} until {window['end_time'].isoformat()}")
    return await get_subscriber_by_msisdn(session, msisdn)


async def record_webhook_event(
    session: AsyncSession,
    msisdn: Optional[str],
    raw_status: Any,
    normalized_status: Optional[SubscriberStatus],
    raw_payload: Any,
) -> WebhookEvent:
    """Append one row to the webhook audit trail"""
    event = WebhookEvent(
        msisdn=msisdn[:MAX_MSISDN_LENGTH] if msisdn else None,
        raw_status=str(raw_status)[:MAX_RAW_STATUS_LENGTH] if raw_status is not None else None,
        normalized_status=normalized_status.value if normalized_status else None,
        raw_payload=raw_payload,
    )
    session.add(event)
    await commit(session)
    return event


# ===========================
# AUTH FLOWS
# ===========================


def _require_msisdn(msisdn: Optional[str]) -> str:
    normalized = normalize_msisdn(msisdn)
    if not normalized:
        raise ValidationError("MSISDN required")
    return normalized


async def login(session: AsyncSession, msisdn: Optional[str]) -> AccessResult:
    """
    MSISDN login

    Active subscribers get a session token; everyone else gets the carrier's
    subscription link.

    Raises:
        ValidationError: Missing MSISDN
        UnknownCarrierError: MSISDN prefix matches no carrier
    """
    msisdn = _require_msisdn(msisdn)
    carrier = detect_carrier(msisdn)
    if carrier is None:
        raise UnknownCarrierError()

    subscriber = await get_subscriber_by_msisdn(session, msisdn)

    if subscriber is None:
        data = await _subscription_required_payload(
            session, msisdn, carrier, SubscriberStatus.PENDING.value, is_first_time=True
        )
        return AccessResult("Subscription required", data)

    now = utcnow()
    status = await check_and_expire(session, subscriber, now)

    if status != SubscriberStatus.ACTIVE.value:
        data = await _subscription_required_payload(
            session, msisdn, carrier, status, is_first_time=False
        )
        return AccessResult("Subscription required", data)

    token = await create_session(session, subscriber.id, subscriber.end_time)
    logger.info(f"Login granted for {msisdn} ({carrier.value})")
    return AccessResult(
        "Access granted",
        _access_payload(subscriber, status, token, False, subscriber.end_time, now),
    )


async def callback(
    session: AsyncSession, msisdn: Optional[str], carrier: Optional[str]
) -> AccessResult:
    """
    Carrier payment redirect target - always a successful payment

    Raises:
        ValidationError: Missing MSISDN or carrier
    """
    if not msisdn or not carrier:
        raise ValidationError("Missing msisdn or carrier")

    msisdn = _require_msisdn(msisdn)
    is_first_time = await get_subscriber_by_msisdn(session, msisdn) is None

    now = utcnow()
    subscriber = await renew_subscription(session, msisdn, now)
    token = await create_session(session, subscriber.id, subscriber.end_time)

    logger.info(f"Payment callback for {msisdn} via {carrier} (first_time={is_first_time})")
    return AccessResult(
        "Subscription verified",
        _access_payload(
            subscriber, subscriber.status, token, is_first_time, subscriber.end_time, now
        ),
    )


async def status_poll(
    session: AsyncSession,
    token: Optional[str] = None,
    msisdn: Optional[str] = None,
) -> AccessResult:
    """
    Subscription status check

    With a bearer token the session is resolved directly; without one the
    MSISDN is looked up and active subscribers get a fresh token.

    Raises:
        AuthError: Unknown token
        SessionExpiredError: Session past its expiry (the session is destroyed)
        ValidationError: Neither token nor MSISDN given
        NotFoundError: Unknown MSISDN
    """
    now = utcnow()

    if token:
        stmt = (
            select(SubscriberSession, Subscriber)
            .join(Subscriber, SubscriberSession.subscriber_id == Subscriber.id)
            .where(SubscriberSession.token == token)
            .execution_options(populate_existing=True)
        )
        row = (await execute(session, stmt)).first()
        if row is None:
            raise AuthError("Session expired or invalid")

        subscriber_session, subscriber = row
        session_expires_at = ensure_utc(subscriber_session.expires_at)
        if now >= session_expires_at:
            await destroy_session(session, token)
            raise SessionExpiredError()
    else:
        msisdn = _require_msisdn(msisdn)
        subscriber = await get_subscriber_by_msisdn(session, msisdn)
        if subscriber is None:
            raise NotFoundError("Subscriber not found")
        session_expires_at = None

    status = await check_and_expire(session, subscriber, now)
    is_active = status == SubscriberStatus.ACTIVE.value

    if not token and is_active:
        token = await create_session(session, subscriber.id, subscriber.end_time)
        session_expires_at = subscriber.end_time

    return AccessResult(
        "Session valid" if is_active else "Subscription inactive",
        _access_payload(subscriber, status, token, False, session_expires_at, now),
    )


async def webhook(
    session: AsyncSession,
    msisdn: Any,
    raw_status: Any,
    raw_payload: Any = None,
) -> Optional[SubscriberStatus]:
    """
    Carrier status notification

    The event is written to the audit trail before anything else. Recognized
    "active" statuses renew the subscription; other recognized statuses
    overwrite the status only; unrecognized ones change nothing.

    Returns:
        Mapped status, or None when nothing was applied
    """
    # Some carriers send the MSISDN as a JSON number
    if isinstance(msisdn, int) and not isinstance(msisdn, bool):
        msisdn = str(msisdn)
    canonical = normalize_msisdn(msisdn) if isinstance(msisdn, str) else None
    mapped = map_webhook_status(raw_status)

    await record_webhook_event(session, canonical, raw_status, mapped, raw_payload)

    if canonical is None or mapped is None:
        logger.warning(
            f"Webhook ignored: msisdn={msisdn!r} status={raw_status!r} (unrecognized input)"
        )
        return None

    if mapped == SubscriberStatus.ACTIVE:
        await renew_subscription(session, canonical)
    else:
        stmt = (
            update(Subscriber)
            .where(Subscriber.msisdn == canonical)
            .values(status=mapped.value, updated_at=utcnow())
        )
        result = await execute(session, stmt)
        await commit(session)
        if result.rowcount == 0:
            logger.info(f"Webhook status {mapped.value} for unknown subscriber {canonical}")

    logger.info(f"Webhook applied: {canonical} -> {mapped.value} (raw={raw_status!r})")
    return mapped


async def logout(session: AsyncSession, token: Optional[str]) -> AccessResult:
    """
    Destroy the caller's session

    Raises:
        AuthError: No token supplied
    """
    if not token:
        raise AuthError()

    await destroy_session(session, token)
    return AccessResult("Logged out successfully", {})
