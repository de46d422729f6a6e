"""SQL execution with timeout and error mapping"""
import asyncio
import re
import time
from typing import Any, Dict, List, Optional

import asyncpg

from tablecms.config import settings
from tablecms.core.errors import AppError, QueryTimeoutError, from_db_error
from tablecms.core.param_coercion import coerce_params
from tablecms.core.row_marshaller import RowMarshaller
from tablecms.core.sql_render import SqlStatement
from tablecms.smart_logger import SmartLogger


_STATUS_COUNT_PATTERN = re.compile(r"(\d+)\s*$")


def rows_affected(status: Optional[str]) -> int:
    """Row count from a command tag such as ``UPDATE 3`` or ``INSERT 0 1``."""
    match = _STATUS_COUNT_PATTERN.search(status or "")
    return int(match.group(1)) if match else 0


class StatementExecutor:
    """Run generated statements on an asyncpg connection.

    Statements are prepared first so the server-inferred parameter types can
    drive argument coercion and the result column types can drive row
    decoding. Every failure leaves here as an ``AppError``.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.sql_timeout_seconds

    async def fetch(
        self,
        conn: asyncpg.Connection,
        statement: SqlStatement,
        *,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """Execute a row-returning statement and return JSON objects."""

        async def _run():
            stmt = await conn.prepare(statement.sql)
            args = coerce_params(stmt.get_parameters(), statement.params)
            rows = await stmt.fetch(*args)
            marshaller = RowMarshaller.from_attributes(stmt.get_attributes())
            return marshaller.to_objects(rows)

        return await self._guarded(_run(), statement, timeout)

    async def fetch_one(
        self,
        conn: asyncpg.Connection,
        statement: SqlStatement,
        *,
        timeout: Optional[float] = None,
    ) -> Optional[Dict[str, Any]]:
        rows = await self.fetch(conn, statement, timeout=timeout)
        return rows[0] if rows else None

    async def execute(
        self,
        conn: asyncpg.Connection,
        statement: SqlStatement,
        *,
        timeout: Optional[float] = None,
    ) -> str:
        """Execute a statement and return its command tag (``DELETE 2``)."""

        async def _run():
            stmt = await conn.prepare(statement.sql)
            args = coerce_params(stmt.get_parameters(), statement.params)
            await stmt.fetch(*args)
            return stmt.get_statusmsg()

        return await self._guarded(_run(), statement, timeout)

    async def execute_ddl(
        self,
        conn: asyncpg.Connection,
        sql: str,
        *,
        timeout: Optional[float] = None,
    ) -> str:
        """Execute DDL, which takes no parameters."""
        return await self._guarded(conn.execute(sql), SqlStatement(sql), timeout)

    async def _guarded(self, coro, statement: SqlStatement, timeout: Optional[float]):
        effective_timeout = timeout if timeout is not None else self.timeout
        SmartLogger.log(
            "DEBUG",
            "sql_exec.statement",
            category="sql_exec",
            params={"sql": statement.sql, "params": statement.params},
        )
        start_time = time.perf_counter()
        try:
            result = await asyncio.wait_for(coro, timeout=effective_timeout)
        except AppError:
            raise
        except asyncio.TimeoutError as e:
            raise QueryTimeoutError(
                f"Query execution timeout after {effective_timeout} seconds"
            ) from e
        except Exception as e:
            raise from_db_error(e) from e

        SmartLogger.log(
            "DEBUG",
            "sql_exec.done",
            category="sql_exec",
            params={"execution_time_ms": round((time.perf_counter() - start_time) * 1000, 2)},
        )
        return result
