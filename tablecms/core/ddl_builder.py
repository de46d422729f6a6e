"""CREATE / ALTER / DROP TABLE rendering"""
from typing import Optional, Sequence

from tablecms.core.errors import BadRequestError
from tablecms.core.sql_guard import SQLGuard
from tablecms.core.sql_render import render_default
from tablecms.models.tables import ColumnDescriptor, ColumnEdit, ColumnState
from tablecms.smart_logger import SmartLogger


class DDLBuilder:
    def __init__(self, guard: Optional[SQLGuard] = None):
        self.guard = guard or SQLGuard()

    def column_definition(self, column: ColumnDescriptor) -> str:
        """``<name> <type>[ NOT NULL][ DEFAULT x][ PRIMARY KEY | UNIQUE]``"""
        name = self.guard.identifier(column.name, what="column name")
        data_type = self.guard.data_type(column.data_type)

        parts = [f"{name} {data_type}"]
        if not column.is_nullable:
            parts.append("NOT NULL")
        if column.has_default:
            parts.append(f"DEFAULT {render_default(column.default, data_type)}")
        if column.is_primary_key:
            parts.append("PRIMARY KEY")
        elif column.is_unique:
            parts.append("UNIQUE")
        return " ".join(parts)

    def render_create(self, table_name: str, columns: Sequence[ColumnDescriptor]) -> str:
        table = self.guard.identifier(table_name, what="table name")
        if not columns:
            raise BadRequestError(f"Table {table!r} needs at least one column")
        col_list = ", ".join(self.column_definition(col) for col in columns)
        return f"CREATE TABLE IF NOT EXISTS {table} ({col_list})"

    def render_alter(self, table_name: str, edits: Sequence[ColumnEdit]) -> Optional[str]:
        """One ALTER TABLE for every added/removed column, or None if nothing changed."""
        table = self.guard.identifier(table_name, what="table name")

        clauses = []
        for edit in edits:
            if edit.state is ColumnState.ADDED:
                SmartLogger.log(
                    "INFO",
                    "ddl.alter.add_column",
                    category="ddl.alter",
                    params={"table": table, "column": edit.name},
                )
                clauses.append(f"ADD COLUMN IF NOT EXISTS {self.column_definition(edit)}")
            elif edit.state is ColumnState.REMOVED:
                column = self.guard.identifier(edit.name, what="column name")
                SmartLogger.log(
                    "WARNING",
                    "ddl.alter.drop_column",
                    category="ddl.alter",
                    params={"table": table, "column": column},
                )
                clauses.append(f"DROP COLUMN IF EXISTS {column}")
            elif edit.state is ColumnState.MODIFIED:
                # Needs the previous column definition to compute a diff
                SmartLogger.log(
                    "INFO",
                    "ddl.alter.modify_column.skipped",
                    category="ddl.alter",
                    params={"table": table, "column": edit.name},
                )

        if not clauses:
            return None
        return f"ALTER TABLE {table} " + ", ".join(clauses)

    def render_drop(self, table_name: str) -> str:
        table = self.guard.identifier(table_name, what="table name")
        return f"DROP TABLE IF EXISTS {table}"

    def render_drop_many(self, names_csv: str) -> str:
        tables = self.guard.identifier_list(names_csv, what="table name")
        return f"DROP TABLE IF EXISTS {', '.join(tables)} CASCADE"
