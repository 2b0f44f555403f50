"""Unit tests for backend error translation."""

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, ProgrammingError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from medplus.backend.errors import BackendError, BackendErrorKind, classify_message
from medplus.storage.repositories import db_errors, profile_by_email_query, translate_db_error


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "message,kind",
    [
        ("A user with this email address has already been registered", BackendErrorKind.ALREADY_EXISTS),
        ("User already registered", BackendErrorKind.ALREADY_EXISTS),
        ('duplicate key value violates unique constraint "x"', BackendErrorKind.DUPLICATE),
        ('relation "public.lpos" does not exist', BackendErrorKind.MISSING_RELATION),
        ("permission denied for table companies", BackendErrorKind.PERMISSION_DENIED),
        ("connection refused", BackendErrorKind.OTHER),
        (None, BackendErrorKind.OTHER),
    ],
)
def test_classify_message(message, kind):
    assert classify_message(message) is kind


def test_sqlstate_wins_over_message():
    exc = IntegrityError("INSERT", {}, _DriverError("something odd", sqlstate="23505"))
    error = translate_db_error(exc)
    assert error.kind is BackendErrorKind.DUPLICATE
    assert error.message == "something odd"


def test_undefined_table_sqlstate():
    exc = ProgrammingError("SELECT", {}, _DriverError("no such thing", sqlstate="42P01"))
    assert translate_db_error(exc).kind is BackendErrorKind.MISSING_RELATION


def test_falls_back_to_message_without_sqlstate():
    exc = ProgrammingError("SELECT", {}, _DriverError('relation "lpos" does not exist'))
    assert translate_db_error(exc).kind is BackendErrorKind.MISSING_RELATION


def test_db_errors_context_translates_and_chains():
    original = IntegrityError("INSERT", {}, _DriverError("dup", sqlstate="23505"))
    with pytest.raises(Exception) as exc_info:
        with db_errors():
            raise original
    assert exc_info.value.kind is BackendErrorKind.DUPLICATE
    assert exc_info.value.__cause__ is original


@pytest.mark.parametrize(
    "raised",
    [
        PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached"),
        ConnectionRefusedError("connection refused"),
        OSError("Network is unreachable"),
    ],
)
def test_db_errors_translates_pool_and_connection_failures(raised):
    with pytest.raises(BackendError) as exc_info:
        with db_errors():
            raise raised
    assert exc_info.value.kind is BackendErrorKind.OTHER
    assert exc_info.value.__cause__ is raised


def test_profile_lookup_ignores_email_case():
    sql = str(
        profile_by_email_query("Admin@Mail.com").compile(
            dialect=postgresql.dialect(), compile_kwargs={"literal_binds": True}
        )
    )
    assert "lower(profiles.email) = lower('Admin@Mail.com')" in sql
