"""Error taxonomy and database error classification"""
import asyncio
import json

import asyncpg
from asyncpg import exceptions as pg_exc


class AppError(Exception):
    """Error surfaced to the HTTP caller as a status code plus message"""

    status_code = 500
    kind = "internal"

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class NotFoundError(AppError):
    status_code = 404
    kind = "not_found"


class ConflictError(AppError):
    status_code = 409
    kind = "conflict"


class BadRequestError(AppError):
    status_code = 400
    kind = "bad_request"


class UnprocessableError(AppError):
    status_code = 422
    kind = "unprocessable"


class QueryTimeoutError(AppError):
    status_code = 504
    kind = "timeout"


class InternalError(AppError):
    status_code = 500
    kind = "internal"


# Checked in order; subclasses before their bases.
_PG_ERROR_MAP: list[tuple[type[Exception], type[AppError]]] = [
    (pg_exc.UniqueViolationError, ConflictError),
    (pg_exc.DuplicateTableError, ConflictError),
    (pg_exc.NotNullViolationError, BadRequestError),
    (pg_exc.ForeignKeyViolationError, BadRequestError),
    (pg_exc.CheckViolationError, UnprocessableError),
    (pg_exc.UndefinedTableError, NotFoundError),
    (pg_exc.UndefinedColumnError, NotFoundError),
    (pg_exc.UndefinedObjectError, NotFoundError),
    (pg_exc.SerializationError, InternalError),
]

# SQLSTATE class prefixes for errors without a dedicated class above.
_SQLSTATE_CLASS_MAP: dict[str, type[AppError]] = {
    "22": BadRequestError,  # data exception: invalid text representation, out of range, ...
    "23": ConflictError,  # remaining integrity constraint violations
    "57": QueryTimeoutError,  # query_canceled (statement_timeout)
}


def from_db_error(exc: BaseException) -> AppError:
    """Map a driver / serialization failure to one AppError kind."""
    if isinstance(exc, AppError):
        return exc

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return QueryTimeoutError(f"Query timed out: {exc}" if str(exc) else "Query timed out")

    if isinstance(exc, asyncpg.PostgresError):
        message = f"Database error: {exc}"
        for exc_type, error_cls in _PG_ERROR_MAP:
            if isinstance(exc, exc_type):
                return error_cls(message)
        sqlstate = str(getattr(exc, "sqlstate", "") or "")
        error_cls = _SQLSTATE_CLASS_MAP.get(sqlstate[:2])
        if error_cls is not None:
            return error_cls(message)
        return InternalError(message)

    # asyncpg raises an InterfaceError that is also a ValueError when a bound
    # argument cannot be encoded for its parameter type.
    if isinstance(exc, asyncpg.InterfaceError) and isinstance(exc, ValueError):
        return BadRequestError(f"Invalid query argument: {exc}")

    if isinstance(exc, json.JSONDecodeError):
        return InternalError(f"Serialization error: {exc}")

    if isinstance(exc, (TypeError, ValueError)):
        return BadRequestError(f"Invalid value: {exc}")

    return InternalError(f"Unexpected error: {exc}")
