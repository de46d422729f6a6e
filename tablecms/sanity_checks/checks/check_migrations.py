from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import Any

import asyncpg

from tablecms.config import settings
from tablecms.core.migrations import discover_migrations
from tablecms.core.sql_guard import SQLGuard
from tablecms.sanity_checks.result import SanityCheckResult


async def check_migrations(pool: asyncpg.Pool, *, timeout_seconds: float | None = None) -> SanityCheckResult:
    """
    Migration settings + pending count (nothing is applied here).

    Fail-fast conditions:
    - the migrations table name is not a plain identifier.
    - the migrations path exists but is not a directory.
    """
    name = "migrations"
    timeout_seconds = timeout_seconds or settings.sanity_check_timeout_seconds
    start = time.perf_counter()

    async def _run() -> dict[str, Any]:
        table = SQLGuard().identifier(settings.migrations_table, what="migrations table")
        path = Path(settings.migrations_dir)
        if path.exists() and not path.is_dir():
            raise RuntimeError(f"Migrations path is not a directory: {path}")

        versions = [p.stem for p in discover_migrations(path)]
        async with pool.acquire() as conn:
            tracked = await conn.fetchval(
                "SELECT to_regclass(quote_ident($1) || '.' || quote_ident($2)) IS NOT NULL",
                settings.db_schema,
                table,
            )
            applied: set[str] = set()
            if tracked:
                applied = {row["version"] for row in await conn.fetch(f"SELECT version FROM {table}")}

        return {
            "table": table,
            "dir": str(path),
            "files": len(versions),
            "pending": [v for v in versions if v not in applied],
        }

    try:
        data = await asyncio.wait_for(_run(), timeout=timeout_seconds)
    except Exception as exc:
        return SanityCheckResult.failure(
            name,
            "Migration sanity check failed",
            exc,
            data={"table": settings.migrations_table, "dir": settings.migrations_dir},
            duration_ms=(time.perf_counter() - start) * 1000,
        )
    return SanityCheckResult(
        name=name,
        ok=True,
        detail="OK",
        data=data,
        duration_ms=(time.perf_counter() - start) * 1000,
    )
