# coding: utf-8
"""
Sentry configuration for error monitoring and tracking
"""
import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from loguru import logger

from config.config import SENTRY_DSN, ENVIRONMENT


# Request fields that carry subscriber credentials or phone numbers
SENSITIVE_HEADERS = ("Authorization", "authorization")
SENSITIVE_QUERY_KEYS = ("msisdn",)


def init_sentry() -> None:
    """
    Initialize Sentry SDK for error monitoring

    No-op when SENTRY_DSN is not configured.
    """
    if not SENTRY_DSN:
        logger.warning("SENTRY_DSN not configured - error monitoring disabled")
        return

    try:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=ENVIRONMENT,
            integrations=[
                AsyncioIntegration(),
                FastApiIntegration(),
                SqlalchemyIntegration(),
            ],
            traces_sample_rate=0.1 if ENVIRONMENT == "production" else 1.0,
            sample_rate=1.0,
            attach_stacktrace=True,
            send_default_pii=False,
            max_breadcrumbs=50,
            before_send=before_send_hook,
        )

        logger.info(f"Sentry initialized successfully (Environment: {ENVIRONMENT})")

    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")


def before_send_hook(event, hint):
    """
    Strip session tokens and MSISDNs from outgoing events
    """
    request = event.get("request")
    if request:
        headers = request.get("headers", {})
        for header in SENSITIVE_HEADERS:
            if header in headers:
                headers[header] = "[Filtered]"

        query_string = request.get("query_string")
        if isinstance(query_string, str) and any(
            key in query_string for key in SENSITIVE_QUERY_KEYS
        ):
            request["query_string"] = "[Filtered]"

    return event
