# coding: utf-8
"""
Logging configuration with loguru for Football Highlights API

Console plus one daily-rotated file under logs/. ERROR and above are forwarded
to Sentry when SENTRY_DSN is set.
"""
import logging
import sys
from pathlib import Path

import sentry_sdk
from loguru import logger

from config.config import ENVIRONMENT, LOG_LEVEL, SENTRY_DSN


LOGS_DIR = Path(__file__).parent.parent / "logs"
LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"

# Stdlib loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.ERROR,
    "uvicorn.access": logging.WARNING,
    "asyncio": logging.WARNING,
}


def setup_logging() -> None:
    """
    Setup loguru sinks (safe to call more than once)
    """
    logger.remove()
    LOGS_DIR.mkdir(exist_ok=True)

    logger.add(sys.stdout, format=f"<level>{LOG_FORMAT}</level>", level=LOG_LEVEL, colorize=True)

    logger.add(
        LOGS_DIR / "api_{time:YYYY-MM-DD}.log",
        format=LOG_FORMAT,
        level="DEBUG" if ENVIRONMENT != "production" else LOG_LEVEL,
        rotation="00:00",
        retention="14 days",
        compression="zip",
        encoding="utf-8",
    )

    if SENTRY_DSN:
        logger.add(sentry_sink, level="ERROR", format="{message}")

    for name, level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(level)

    logger.info(f"Highlights API logging initialized | Environment: {ENVIRONMENT} | Log level: {LOG_LEVEL}")


def sentry_sink(message) -> None:
    """Forward an ERROR/CRITICAL record to Sentry, with its exception when present"""
    record = message.record

    if record["exception"]:
        sentry_sdk.capture_exception(record["exception"].value)
        return

    sentry_sdk.capture_message(
        record["message"],
        level="fatal" if record["level"].name == "CRITICAL" else "error",
    )
