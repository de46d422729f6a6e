from __future__ import annotations

import asyncio
import time
from typing import Any

import asyncpg

from tablecms.config import settings
from tablecms.sanity_checks.result import SanityCheckResult


async def check_target_db(pool: asyncpg.Pool, *, timeout_seconds: float | None = None) -> SanityCheckResult:
    """
    Target DB connection + basic catalog queries.

    Fail-fast conditions:
    - the database does not answer within the timeout.
    - the configured schema is missing.
    """
    name = "target_db"
    timeout_seconds = timeout_seconds or settings.sanity_check_timeout_seconds
    start = time.perf_counter()

    async def _run() -> dict[str, Any]:
        async with pool.acquire() as conn:
            version = await conn.fetchval("SELECT version()")
            current_db = await conn.fetchval("SELECT current_database()")

            schema_exists = await conn.fetchval(
                "SELECT EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = $1)",
                settings.db_schema,
            )
            if not schema_exists:
                raise RuntimeError(f"Missing schema in target DB: {settings.db_schema}")

            table_count = await conn.fetchval(
                """
                SELECT count(*)
                FROM information_schema.tables
                WHERE table_schema = $1
                  AND table_type = 'BASE TABLE'
                """,
                settings.db_schema,
            )
            # Built in from PostgreSQL 13; older servers need pgcrypto
            has_gen_random_uuid = await conn.fetchval(
                "SELECT to_regproc('gen_random_uuid') IS NOT NULL"
            )

            return {
                "database": current_db,
                "schema": settings.db_schema,
                "table_count": int(table_count or 0),
                "gen_random_uuid": bool(has_gen_random_uuid),
                "version": (version.split(",")[0] if isinstance(version, str) else str(version)),
            }

    try:
        data = await asyncio.wait_for(_run(), timeout=timeout_seconds)
    except Exception as exc:
        return SanityCheckResult.failure(
            name,
            "Target DB sanity check failed",
            exc,
            data={"schema": settings.db_schema},
            duration_ms=(time.perf_counter() - start) * 1000,
        )
    return SanityCheckResult(
        name=name,
        ok=True,
        detail="OK",
        data=data,
        duration_ms=(time.perf_counter() - start) * 1000,
    )
