"""Apply ``migrations/*.sql`` once each (idempotent)"""
from pathlib import Path
from typing import List, Optional

import asyncpg

from tablecms.config import settings
from tablecms.core.sql_guard import SQLGuard
from tablecms.smart_logger import SmartLogger


def discover_migrations(migrations_dir: str | Path) -> List[Path]:
    """SQL files in name order; a missing directory means no migrations."""
    path = Path(migrations_dir)
    if not path.is_dir():
        return []
    return sorted(p for p in path.glob("*.sql") if p.is_file())


async def run_migrations(
    conn: asyncpg.Connection,
    *,
    migrations_dir: Optional[str] = None,
    table: Optional[str] = None,
) -> List[str]:
    """Apply pending migrations and return the versions applied by this call."""
    migrations_dir = migrations_dir or settings.migrations_dir
    table = SQLGuard().identifier(table or settings.migrations_table, what="migrations table")

    await conn.execute(
        f"""
        CREATE TABLE IF NOT EXISTS {table} (
            version text PRIMARY KEY,
            applied_at timestamptz NOT NULL DEFAULT now()
        )
        """
    )
    applied = {row["version"] for row in await conn.fetch(f"SELECT version FROM {table}")}

    newly_applied: List[str] = []
    for path in discover_migrations(migrations_dir):
        version = path.stem
        if version in applied:
            continue

        async with conn.transaction():
            await conn.execute(path.read_text(encoding="utf-8"))
            await conn.execute(f"INSERT INTO {table} (version) VALUES ($1)", version)

        SmartLogger.log(
            "INFO",
            "migrations.applied",
            category="migrations",
            params={"version": version},
        )
        newly_applied.append(version)

    return newly_applied
