"""
Subscription Auth API

MSISDN login, carrier payment callback, status polling, carrier webhooks and
logout. Session tokens are sent back as `Authorization: Bearer <token>`.
"""

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from loguru import logger
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.responses import auth_response, bearer_token
from src.core.exceptions import AuthError
from src.database.engine import get_session
from src.services import subscription_service


router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    """MSISDN login body; any common phone format is accepted"""

    msisdn: Optional[str] = None


@router.post("/login")
async def login(
    request: LoginRequest,
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Login with MSISDN

    Body:
        {"msisdn": "08031234567"}

    Returns:
        Access payload with session_token for active subscribers, otherwise
        the carrier subscription link.

    Errors:
        400: Missing MSISDN or unknown carrier
    """
    result = await subscription_service.login(session, request.msisdn)
    return auth_response(result.data, result.message)


@router.get("/callback")
async def payment_callback(
    msisdn: Optional[str] = Query(None),
    carrier: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Carrier redirect after a successful payment

    Renews the subscription for one window and returns a fresh session.
    """
    result = await subscription_service.callback(session, msisdn, carrier)
    return auth_response(result.data, result.message)


@router.get("/status")
async def subscription_status(
    authorization: Optional[str] = Header(None),
    msisdn: Optional[str] = Query(None),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Check session / subscription status

    Headers:
        Authorization: Bearer <session_token>  (or ?msisdn=... without a token)

    Errors:
        401: Invalid or expired session
        404: Unknown MSISDN
    """
    token = bearer_token(authorization)
    if authorization and token is None:
        raise AuthError()

    result = await subscription_service.status_poll(session, token=token, msisdn=msisdn)
    return auth_response(result.data, result.message)


@router.post("/webhook")
async def carrier_webhook(
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """
    Carrier status notification

    Body:
        {"msisdn": "2348031234567", "status": "renewed", ...}

    Always acknowledged with 200 so the carrier does not retry; failures are
    logged and every call lands in the webhook audit trail.
    """
    body = await request.body()
    try:
        payload: Any = json.loads(body) if body else None
    except ValueError:
        logger.warning("Webhook body is not valid JSON")
        payload = {"raw_body": body.decode("utf-8", errors="replace")}

    fields = payload if isinstance(payload, dict) else {}

    mapped = None
    try:
        mapped = await subscription_service.webhook(
            session, fields.get("msisdn"), fields.get("status"), payload
        )
    except Exception as e:
        logger.exception(f"Webhook processing failed: {e}")

    return auth_response(
        {"status": mapped.value if mapped else None},
        "Webhook received",
    )


@router.post("/logout")
async def logout(
    authorization: Optional[str] = Header(None),
    session: AsyncSession = Depends(get_session),
) -> Dict[str, Any]:
    """Destroy the current session"""
    result = await subscription_service.logout(session, bearer_token(authorization))
    return auth_response(result.data, result.message)
