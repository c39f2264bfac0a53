"""
SQL execution gateway

Every statement the services issue goes through execute(), which retries
exactly once (no backoff) when the failure is a transient connection-level
error, and translates driver errors into the application error taxonomy.
"""

from typing import Any, Optional

from loguru import logger
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Result
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Executable
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)

from src.core.exceptions import (
    AppError,
    ConflictError,
    TransientStoreError,
    UnhandledStoreError,
)


# One try plus one retry
MAX_ATTEMPTS = 2

# Driver messages for a dropped or reset connection
TRANSIENT_ERROR_MARKERS = (
    "connection reset",
    "econnreset",
    "lost connection",
    "protocol_connection_lost",
    "connection was closed",
    "connection is closed",
    "server closed the connection",
    "connection has been closed",
)


def is_transient_error(exc: BaseException) -> bool:
    """
    Classify an error as a retryable connection-level failure

    Args:
        exc: Exception raised by the session

    Returns:
        True for connection resets / lost connections
    """
    if isinstance(exc, ConnectionResetError):
        return True

    if not isinstance(exc, DBAPIError) or isinstance(exc, IntegrityError):
        return False

    if exc.connection_invalidated:
        return True

    if isinstance(exc.orig, ConnectionResetError):
        return True

    message = str(exc.orig).lower()
    return any(marker in message for marker in TRANSIENT_ERROR_MARKERS)


def _log_retry(retry_state: RetryCallState) -> None:
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Transient DB error detected, retrying query "
        f"(attempt {retry_state.attempt_number}/{MAX_ATTEMPTS}): {exc}"
    )


def translate_error(exc: Exception) -> AppError:
    """
    Map a driver/ORM error to the application error taxonomy

    Raw database text is logged here and never placed in the returned error.
    """
    if isinstance(exc, IntegrityError):
        logger.warning(f"Integrity violation: {exc.orig}")
        return ConflictError("Record already exists")

    if is_transient_error(exc):
        logger.error(f"Transient DB error persisted after retry: {exc}")
        return TransientStoreError()

    logger.error(f"Unhandled DB error: {exc}")
    return UnhandledStoreError()


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except SQLAlchemyError as rollback_error:
        logger.warning(f"Rollback after transient error failed: {rollback_error}")


async def execute(
    session: AsyncSession,
    statement: Executable,
    params: Optional[dict[str, Any]] = None,
) -> Result:
    """
    Execute a statement with a single retry on transient connection errors

    The retry is preceded by a rollback, which expires every instance loaded in
    the session. Callers holding ORM objects across a write must reload them.

    Args:
        session: Database session
        statement: SQLAlchemy statement
        params: Optional bound parameters

    Returns:
        SQLAlchemy Result

    Raises:
        ConflictError: Integrity violation
        TransientStoreError: Connection failure on both attempts
        UnhandledStoreError: Any other database failure
    """
    try:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception(is_transient_error),
            stop=stop_after_attempt(MAX_ATTEMPTS),
            before_sleep=_log_retry,
            reraise=True,
        ):
            with attempt:
                try:
                    return await session.execute(statement, params)
                except (DBAPIError, ConnectionResetError) as exc:
                    if is_transient_error(exc):
                        # The invalidated transaction must be cleared before reuse
                        await _rollback_quietly(session)
                    raise
    except (SQLAlchemyError, ConnectionResetError) as exc:
        await _rollback_quietly(session)
        raise translate_error(exc) from exc


async def commit(session: AsyncSession) -> None:
    """
    Commit the current unit of work

    Not retried: a failed commit leaves the outcome unknown.
    """
    try:
        await session.commit()
    except (SQLAlchemyError, ConnectionResetError) as exc:
        await _rollback_quietly(session)
        raise translate_error(exc) from exc


# INSERT ... ON CONFLICT builders; both expose on_conflict_do_update(index_elements, set_, where)
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_insert(session: AsyncSession, model: Any):
    """
    Dialect-specific INSERT construct supporting ON CONFLICT DO UPDATE

    Args:
        session: Database session (its bind selects the dialect)
        model: Mapped class to insert into
    """
    dialect_name = session.get_bind().dialect.name
    try:
        return UPSERT_INSERTS[dialect_name](model)
    except KeyError:
        raise NotImplementedError(f"Upsert is not supported for dialect '{dialect_name}'") from None
