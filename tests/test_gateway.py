"""
Tests for the SQL execution gateway: transient-error retry and error translation
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from src.core.exceptions import ConflictError, TransientStoreError, UnhandledStoreError
from src.database import gateway


class FakeSession:
    """Session double that raises queued errors before succeeding"""

    def __init__(self, errors=(), commit_error=None):
        self.errors = list(errors)
        self.commit_error = commit_error
        self.execute_calls = 0
        self.commit_calls = 0
        self.rollbacks = 0

    async def execute(self, statement, params=None):
        self.execute_calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return "result"

    async def commit(self):
        self.commit_calls += 1
        if self.commit_error is not None:
            raise self.commit_error

    async def rollback(self):
        self.rollbacks += 1


def _connection_reset():
    return OperationalError("SELECT 1", {}, Exception("Connection reset by peer"))


def _invalidated():
    return DBAPIError("SELECT 1", {}, Exception("boom"), connection_invalidated=True)


def _integrity():
    return IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: subscribers.msisdn"))


def _syntax():
    return OperationalError("SELEC 1", {}, Exception('syntax error at or near "SELEC"'))


# ===========================
# CLASSIFICATION
# ===========================


@pytest.mark.parametrize(
    "exc, expected",
    [
        (_connection_reset(), True),
        (_invalidated(), True),
        (OperationalError("SELECT 1", {}, Exception("server closed the connection unexpectedly")), True),
        (ConnectionResetError(), True),
        (_integrity(), False),
        (_syntax(), False),
        (ValueError("connection reset"), False),
    ],
)
def test_is_transient_error(exc, expected):
    assert gateway.is_transient_error(exc) is expected


def test_translate_error_hides_driver_text():
    error = gateway.translate_error(_syntax())

    assert isinstance(error, UnhandledStoreError)
    assert "SELEC" not in error.message


# ===========================
# EXECUTE
# ===========================


@pytest.mark.asyncio
async def test_execute_success_first_try():
    session = FakeSession()

    assert await gateway.execute(session, text("SELECT 1")) == "result"
    assert session.execute_calls == 1
    assert session.rollbacks == 0


@pytest.mark.asyncio
async def test_execute_retries_once_on_transient_error():
    session = FakeSession(errors=[_connection_reset()])

    assert await gateway.execute(session, text("SELECT 1")) == "result"
    assert session.execute_calls == 2
    assert session.rollbacks == 1


@pytest.mark.asyncio
async def test_execute_persistent_transient_error():
    session = FakeSession(errors=[_connection_reset(), _invalidated(), _connection_reset()])

    with pytest.raises(TransientStoreError):
        await gateway.execute(session, text("SELECT 1"))

    assert session.execute_calls == gateway.MAX_ATTEMPTS


@pytest.mark.asyncio
async def test_execute_integrity_error_not_retried():
    session = FakeSession(errors=[_integrity()])

    with pytest.raises(ConflictError):
        await gateway.execute(session, text("INSERT"))

    assert session.execute_calls == 1


@pytest.mark.asyncio
async def test_execute_other_error_not_retried():
    session = FakeSession(errors=[_syntax()])

    with pytest.raises(UnhandledStoreError) as exc_info:
        await gateway.execute(session, text("SELEC 1"))

    assert session.execute_calls == 1
    assert exc_info.value.message == UnhandledStoreError.default_message


# ===========================
# COMMIT
# ===========================


@pytest.mark.asyncio
async def test_commit_is_not_retried():
    session = FakeSession(commit_error=_connection_reset())

    with pytest.raises(TransientStoreError):
        await gateway.commit(session)

    assert session.commit_calls == 1
    assert session.rollbacks == 1


@pytest.mark.asyncio
async def test_commit_integrity_error():
    session = FakeSession(commit_error=_integrity())

    with pytest.raises(ConflictError):
        await gateway.commit(session)
