# python -m pytest tablecms/tests/cores/test_errors.py -v

import asyncio
import json

import asyncpg
import pytest
from asyncpg import exceptions as pg_exc

from tablecms.core.errors import (
    AppError,
    BadRequestError,
    ConflictError,
    InternalError,
    NotFoundError,
    QueryTimeoutError,
    UnprocessableError,
    from_db_error,
)


class TestAppError:
    """Status codes of the error kinds"""

    @pytest.mark.parametrize(
        "error_cls, status_code",
        [
            (NotFoundError, 404),
            (ConflictError, 409),
            (BadRequestError, 400),
            (UnprocessableError, 422),
            (QueryTimeoutError, 504),
            (InternalError, 500),
        ],
    )
    def test_status_codes(self, error_cls, status_code):
        error = error_cls("boom")
        assert error.status_code == status_code
        assert error.message == "boom"
        assert str(error) == "boom"

    def test_status_code_override(self):
        assert AppError("x", status_code=418).status_code == 418


class TestFromDbError:
    """Driver error classification"""

    @pytest.mark.parametrize(
        "exc, error_cls",
        [
            (pg_exc.UniqueViolationError("duplicate key"), ConflictError),
            (pg_exc.DuplicateTableError("relation exists"), ConflictError),
            (pg_exc.NotNullViolationError("null value"), BadRequestError),
            (pg_exc.ForeignKeyViolationError("fk"), BadRequestError),
            (pg_exc.CheckViolationError("check"), UnprocessableError),
            (pg_exc.UndefinedTableError("no relation"), NotFoundError),
            (pg_exc.UndefinedColumnError("no column"), NotFoundError),
        ],
    )
    def test_postgres_classes(self, exc, error_cls):
        error = from_db_error(exc)
        assert type(error) is error_cls
        assert error.message.startswith("Database error:")

    def test_sqlstate_class_fallback(self):
        assert isinstance(from_db_error(pg_exc.InvalidTextRepresentationError("bad")), BadRequestError)
        assert isinstance(from_db_error(pg_exc.QueryCanceledError("canceled")), QueryTimeoutError)

    def test_unmapped_postgres_error(self):
        assert isinstance(from_db_error(pg_exc.SyntaxOrAccessError("syntax")), InternalError)

    def test_timeout(self):
        assert isinstance(from_db_error(asyncio.TimeoutError()), QueryTimeoutError)

    def test_app_error_passes_through(self):
        error = NotFoundError("gone")
        assert from_db_error(error) is error

    def test_argument_encoding_error(self):
        class ArgumentError(asyncpg.InterfaceError, ValueError):
            pass

        exc = ArgumentError("invalid input for query argument $1")
        assert isinstance(from_db_error(exc), BadRequestError)

    def test_json_decode_error(self):
        exc = json.JSONDecodeError("Expecting value", "x", 0)
        assert isinstance(from_db_error(exc), InternalError)

    def test_value_error(self):
        assert isinstance(from_db_error(ValueError("nope")), BadRequestError)

    def test_unexpected(self):
        error = from_db_error(RuntimeError("weird"))
        assert isinstance(error, InternalError)
        assert error.status_code == 500
