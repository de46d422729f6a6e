"""SELECT / INSERT / UPDATE / DELETE rendering.

Every builder returns an ``SqlStatement`` whose values are bound as
positional parameters; only validated identifiers, allow-listed expressions
and integer limits are written into the SQL text itself.
"""
from typing import Any, List, Optional, Sequence

from tablecms.core.errors import BadRequestError
from tablecms.core.sql_guard import SQLGuard
from tablecms.core.sql_render import SqlParams, SqlStatement, render_value
from tablecms.models.rows import Filter, RowColumn
from tablecms.smart_logger import SmartLogger


class DMLBuilder:
    def __init__(self, guard: Optional[SQLGuard] = None):
        self.guard = guard or SQLGuard()

    # SELECT {columns} FROM {table} WHERE {filter} ORDER BY {order_by} {order} LIMIT {limit}
    def render_select(
        self,
        table: str,
        columns: Optional[Sequence[str]] = None,
        filter: Optional[Filter] = None,
        order_by: Optional[str] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> SqlStatement:
        params = SqlParams()
        sql = f"SELECT {self._select_list(columns)} FROM {self._table(table)}"
        sql += self._filter_clause(filter, params)
        sql += self._order_clause(order_by, order)
        sql += self._limit_clause(limit)
        return SqlStatement(sql, params.values)

    def render_select_by_id(
        self,
        table: str,
        id: Any,
        columns: Optional[Sequence[str]] = None,
    ) -> SqlStatement:
        # NOTE: assumes the key column is called `id`
        return self.render_select(table, columns, filter=Filter(name="id", value=id))

    # INSERT INTO {table} ({names}) VALUES ({values}) RETURNING *
    def render_insert(self, table: str, columns: Optional[Sequence[RowColumn]]) -> SqlStatement:
        table_name = self._table(table)
        if not columns:
            return SqlStatement(f"INSERT INTO {table_name} DEFAULT VALUES RETURNING *")

        params = SqlParams()
        names: List[str] = []
        values: List[str] = []
        # names and values are appended together so positions always line up
        for col in columns:
            names.append(self._column(col.name))
            values.append(render_value(col.value, col.is_db_expression, params))

        sql = (
            f"INSERT INTO {table_name} ({', '.join(names)}) "
            f"VALUES ({', '.join(values)}) RETURNING *"
        )
        return SqlStatement(sql, params.values)

    # UPDATE {table} SET {col} = {value}, {col} = {value} WHERE {filter}
    def render_update(
        self,
        table: str,
        columns: Optional[Sequence[RowColumn]],
        filter: Optional[Filter] = None,
    ) -> SqlStatement:
        table_name = self._table(table)
        if not columns:
            raise BadRequestError(f"Nothing to update in {table_name!r}: no columns given")

        params = SqlParams()
        assignments = [
            f"{self._column(col.name)} = {render_value(col.value, col.is_db_expression, params)}"
            for col in columns
        ]
        sql = f"UPDATE {table_name} SET {', '.join(assignments)}"
        sql += self._filter_clause(filter, params)
        if filter is None:
            self._warn_unfiltered("update", table_name)
        return SqlStatement(sql, params.values)

    # DELETE FROM {table} WHERE {filter}
    def render_delete(self, table: str, filter: Optional[Filter] = None) -> SqlStatement:
        table_name = self._table(table)
        params = SqlParams()
        sql = f"DELETE FROM {table_name}" + self._filter_clause(filter, params)
        if filter is None:
            self._warn_unfiltered("delete", table_name)
        return SqlStatement(sql, params.values)

    def _table(self, table: str) -> str:
        return self.guard.identifier(table, what="table name")

    def _column(self, name: str) -> str:
        return self.guard.identifier(name, what="column name")

    def _select_list(self, columns: Optional[Sequence[str]]) -> str:
        if not columns:
            return "*"
        return ", ".join(self._column(c) for c in columns)

    def _filter_clause(self, filter: Optional[Filter], params: SqlParams) -> str:
        if filter is None:
            return ""
        column = self._column(filter.name)
        if filter.value is None:
            return f" WHERE {column} IS NULL"
        return f" WHERE {column} = {params.add(filter.value)}"

    def _order_clause(self, order_by: Optional[str], order: Optional[str]) -> str:
        if not order_by:
            return ""
        columns = self.guard.identifier_list(order_by, what="order_by column")
        return f" ORDER BY {', '.join(columns)} {self.guard.order_direction(order)}"

    def _limit_clause(self, limit: Optional[int]) -> str:
        if limit is None:
            return ""
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise BadRequestError(f"Invalid limit {limit!r}: expected a non-negative integer")
        return f" LIMIT {limit}"

    @staticmethod
    def _warn_unfiltered(statement: str, table: str) -> None:
        SmartLogger.log(
            "WARNING",
            f"dml.{statement}.unfiltered",
            category="dml",
            params={"table": table},
        )


def shape_select_result(rows: List[Any], limit: Optional[int]) -> Any:
    """``limit == 1`` means "fetch one": a single object or None. Otherwise a list."""
    if limit == 1:
        return rows[0] if rows else None
    return rows
