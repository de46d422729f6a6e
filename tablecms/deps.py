"""Dependency injection for FastAPI"""
from typing import AsyncGenerator

import asyncpg
from fastapi import Depends, Request

from tablecms.config import settings
from tablecms.core.errors import InternalError
from tablecms.core.sql_exec import StatementExecutor


async def create_db_pool() -> asyncpg.Pool:
    """Create the shared connection pool (called once from the app lifespan)"""
    return await asyncpg.create_pool(
        dsn=settings.database_url,
        min_size=settings.min_connections,
        max_size=max(1, settings.max_connections),
        # Unqualified table names resolve to the schema the catalog queries read
        server_settings={"search_path": settings.db_schema},
    )


def get_pool(request: Request) -> asyncpg.Pool:
    """FastAPI dependency for the pool stored on ``app.state``"""
    pool = getattr(request.app.state, "pool", None)
    if pool is None:
        raise InternalError("Database pool is not initialized")
    return pool


async def get_db_connection(
    pool: asyncpg.Pool = Depends(get_pool),
) -> AsyncGenerator[asyncpg.Connection, None]:
    """FastAPI dependency leasing one pooled connection per request"""
    async with pool.acquire() as conn:
        yield conn


def get_executor() -> StatementExecutor:
    return StatementExecutor(timeout=settings.sql_timeout_seconds)
