"""Row endpoints: generic select / insert / update / delete"""
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query, Response

from tablecms.core.dml_builder import DMLBuilder, shape_select_result
from tablecms.core.errors import NotFoundError
from tablecms.core.sql_exec import StatementExecutor, rows_affected
from tablecms.deps import get_db_connection, get_executor
from tablecms.models.rows import ContentRequest, UpdateResult
from tablecms.smart_logger import SmartLogger


router = APIRouter(prefix="/rows", tags=["Rows"])


def _split_csv(value: Optional[str]) -> Optional[List[str]]:
    if not value:
        return None
    return [part.strip() for part in value.split(",") if part.strip()]


def _log_statement(event: str, statement) -> None:
    SmartLogger.log(
        "INFO",
        event,
        category="rows",
        params={"sql": statement.sql, "param_count": len(statement.params)},
    )


# /rows?table={table}&columns={columns}&limit={limit}&order_by={order_by}&order={order}
@router.get("")
async def select_many(
    table: str,
    columns: Optional[str] = Query(None, description="Comma separated column/s"),
    limit: Optional[int] = Query(None, ge=0),
    order_by: Optional[str] = Query(None, description="Comma separated column/s to order by"),
    order: Optional[str] = Query(None, description="asc or desc (asc by default)"),
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
) -> Any:
    statement = DMLBuilder().render_select(
        table,
        _split_csv(columns),
        order_by=order_by,
        order=order,
        limit=limit,
    )
    _log_statement("rows.select_many", statement)
    rows = await executor.fetch(conn, statement)
    return shape_select_result(rows, limit)


@router.post("/query")
async def select(
    content: ContentRequest,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
) -> Any:
    """
    Select driven by a JSON body, with an optional filter.

    ``limit`` of 1 returns a single object (or null); anything else an array.
    """
    statement = DMLBuilder().render_select(
        content.table,
        content.column_names(),
        filter=content.filters,
        order_by=content.order_by,
        order=content.order,
        limit=content.limit,
    )
    _log_statement("rows.select", statement)
    rows = await executor.fetch(conn, statement)
    return shape_select_result(rows, content.limit)


# /rows/{id}?table={table}&columns={columns}
@router.get("/{id}")
async def select_one(
    id: str,
    table: str,
    columns: Optional[str] = Query(None, description="Comma separated column/s"),
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
) -> Any:
    statement = DMLBuilder().render_select_by_id(table, id, _split_csv(columns))
    _log_statement("rows.select_one", statement)
    row = await executor.fetch_one(conn, statement)
    if row is None:
        raise NotFoundError(f'No row with id "{id}" in "{table}".')
    return row


@router.post("", status_code=201)
async def insert(
    content: ContentRequest,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
) -> Any:
    """Insert one row and return it as stored (defaults included)"""
    statement = DMLBuilder().render_insert(content.table, content.columns)
    _log_statement("rows.insert", statement)
    return await executor.fetch_one(conn, statement)


@router.patch("", response_model=UpdateResult)
async def update(
    content: ContentRequest,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
):
    statement = DMLBuilder().render_update(content.table, content.columns, content.filters)
    _log_statement("rows.update", statement)
    status = await executor.execute(conn, statement)
    return UpdateResult(rows_affected=rows_affected(status))


@router.delete("", status_code=204)
async def delete(
    content: ContentRequest,
    conn=Depends(get_db_connection),
    executor: StatementExecutor = Depends(get_executor),
):
    statement = DMLBuilder().render_delete(content.table, content.filters)
    _log_statement("rows.delete", statement)
    await executor.execute(conn, statement)
    return Response(status_code=204)
