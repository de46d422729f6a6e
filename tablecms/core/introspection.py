"""Catalog queries for table/column metadata"""
from typing import List, Optional

import asyncpg

from tablecms.config import settings
from tablecms.core.errors import NotFoundError
from tablecms.core.sql_guard import SQLGuard
from tablecms.models.tables import TableColumnInfo, TableColumnInfoPk


_LIST_COLUMNS_SQL = """
SELECT
    table_name,
    column_name,
    column_default,
    data_type,
    is_nullable,
    character_maximum_length
FROM
    information_schema.columns
WHERE
    table_schema = $1 AND table_name <> $2
ORDER BY
    table_name, ordinal_position
"""

_TABLE_COLUMNS_SQL = """
SELECT
    table_name,
    column_name,
    column_default,
    data_type,
    is_nullable,
    character_maximum_length
FROM
    information_schema.columns
WHERE
    table_schema = $1 AND table_name = $2
ORDER BY
    ordinal_position
"""

_DESCRIBE_TABLE_SQL = """
WITH primary_key AS (
    SELECT
        a.attname
    FROM pg_index i
    JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = ANY(i.indkey)
    WHERE i.indrelid = to_regclass(quote_ident($1) || '.' || quote_ident($2))
      AND i.indisprimary
)
SELECT
    cols.table_name,
    cols.column_name,
    cols.column_default,
    cols.data_type,
    cols.is_nullable,
    cols.character_maximum_length,
    (pk.attname IS NOT NULL) AS is_primary_key
FROM
    information_schema.columns AS cols
LEFT JOIN primary_key pk ON pk.attname = cols.column_name
WHERE
    cols.table_schema = $1 AND cols.table_name = $2
ORDER BY
    cols.ordinal_position
"""

_TABLE_EXISTS_SQL = """
SELECT EXISTS (
    SELECT FROM information_schema.tables
    WHERE table_schema = $1 AND table_name = $2
)
"""


def _schema(schema: Optional[str]) -> str:
    return schema or settings.db_schema


def _table(table_name: str) -> str:
    # information_schema holds the folded spelling of unquoted names
    return SQLGuard().identifier(table_name, what="table name")


async def list_columns(
    conn: asyncpg.Connection,
    *,
    schema: Optional[str] = None,
    exclude_table: Optional[str] = None,
) -> List[TableColumnInfo]:
    """Every column of every user table, minus the migrations table."""
    rows = await conn.fetch(
        _LIST_COLUMNS_SQL,
        _schema(schema),
        _table(exclude_table or settings.migrations_table),
    )
    return [TableColumnInfo(**dict(row)) for row in rows]


async def fetch_table_columns(
    conn: asyncpg.Connection,
    table_name: str,
    *,
    schema: Optional[str] = None,
) -> List[TableColumnInfo]:
    rows = await conn.fetch(_TABLE_COLUMNS_SQL, _schema(schema), _table(table_name))
    return [TableColumnInfo(**dict(row)) for row in rows]


async def describe_table(
    conn: asyncpg.Connection,
    table_name: str,
    *,
    schema: Optional[str] = None,
) -> List[TableColumnInfoPk]:
    """Columns of one table, flagging the primary-key column(s)."""
    table_name = _table(table_name)
    rows = await conn.fetch(_DESCRIBE_TABLE_SQL, _schema(schema), table_name)
    if not rows:
        raise NotFoundError(f'Table "{table_name}" not found.')
    return [TableColumnInfoPk(**dict(row)) for row in rows]


async def table_exists(
    conn: asyncpg.Connection,
    table_name: str,
    *,
    schema: Optional[str] = None,
) -> bool:
    return bool(await conn.fetchval(_TABLE_EXISTS_SQL, _schema(schema), _table(table_name)))
