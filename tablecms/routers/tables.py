"""Table endpoints: create, describe, alter, drop"""
from typing import List

from fastapi import APIRouter, Depends, Query, Response

from tablecms.config import settings
from tablecms.core import introspection
from tablecms.core.ddl_builder import DDLBuilder
from tablecms.core.errors import ConflictError
from tablecms.core.sql_exec import StatementExecutor
from tablecms.deps import get_db_connection, get_executor
from tablecms.models.tables import (
    CreateTableRequest,
    EditTableRequest,
    TableColumnInfo,
    TableColumnInfoPk,
)
from tablecms.smart_logger import SmartLogger


router = APIRouter(prefix="/tables", tags=["Tables"])

# Serializes concurrent creators of the same table until the transaction ends
_CREATE_LOCK_SQL = "SELECT pg_advisory_xact_lock(hashtext($1))"


@router.get("", response_model=List[TableColumnInfo])
async def get_tables(conn=Depends(get_db_connection)):
    """Columns of every table in the schema"""
    return await introspection.list_columns(conn)


@router.get("/{name}", response_model=List[TableColumnInfoPk])
async def get_table(name: str, conn=Depends(get_db_connection)):
    """Columns of one table with their primary-key flag"""
    return await introspection.describe_table(conn, name)


@router.post("", status_code=201, response_model=List[TableColumnInfo])
async def create_table(
    table: CreateTableRequest,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
):
    """
    Create a table and return its fresh column list.

    Existence check and CREATE share one transaction; if the table already
    exists the transaction is rolled back and 409 is returned.
    """
    builder = DDLBuilder()
    # The name as the server stores it; lock, catalog checks and DDL agree on it
    name = builder.guard.identifier(table.name, what="table name")
    sql = builder.render_create(name, table.columns)

    SmartLogger.log(
        "INFO",
        "tables.create.request",
        category="tables.create",
        params={"table": name, "sql": sql},
    )

    async with conn.transaction():
        await conn.execute(_CREATE_LOCK_SQL, f"{settings.db_schema}.{name}")

        if await introspection.table_exists(conn, name):
            raise ConflictError(f'Table "{name}" already exists.')

        await executor.execute_ddl(conn, sql)
        columns = await introspection.fetch_table_columns(conn, name)

    return columns


@router.api_route("/{name}", methods=["PATCH", "PUT"])
async def update_table(
    name: str,
    table: EditTableRequest,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
):
    """Add and drop columns in one ALTER TABLE"""
    sql = DDLBuilder().render_alter(name, table.columns)

    SmartLogger.log(
        "INFO",
        "tables.update.request",
        category="tables.update",
        params={"table": name, "sql": sql},
    )

    if sql is not None:
        await executor.execute_ddl(conn, sql)
    return Response(status_code=200)


@router.delete("/{name}", status_code=204)
async def delete_table(
    name: str,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
):
    sql = DDLBuilder().render_drop(name)
    SmartLogger.log("WARNING", "tables.delete", category="tables.delete", params={"sql": sql})
    await executor.execute_ddl(conn, sql)
    return Response(status_code=204)


@router.delete("", status_code=204)
async def delete_tables(
    names: str = Query(..., description="Comma separated table names"),
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
):
    """Drop several tables at once (CASCADE)"""
    sql = DDLBuilder().render_drop_many(names)
    SmartLogger.log("WARNING", "tables.delete_many", category="tables.delete", params={"sql": sql})
    await executor.execute_ddl(conn, sql)
    return Response(status_code=204)
