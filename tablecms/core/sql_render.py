"""Value rendering for generated SQL.

DML values become positional placeholders (``$1``, ``$2``, ...) collected in
an ``SqlParams`` list; the driver binds them. DDL cannot take parameters, so
column defaults are rendered as escaped inline literals instead. Database
expressions (``now()``, ``gen_random_uuid()``) are the only text emitted
verbatim, and only from the allow-list in ``tablecms.core.expressions``.
"""
from dataclasses import dataclass, field
from typing import Any, List

from tablecms.core.errors import BadRequestError
from tablecms.core.expressions import parse_expression
from tablecms.core.values import ValueKind, canonical_text, kind_of, to_json_text


@dataclass
class SqlStatement:
    """SQL text with ``$n`` placeholders and the values they bind."""

    sql: str
    params: List[Any] = field(default_factory=list)


class SqlParams:
    """Accumulates bound values and hands out their placeholders"""

    def __init__(self):
        self.values: List[Any] = []

    def add(self, value: Any) -> str:
        # Raw JSON value; converted per inferred parameter type at execution
        self.values.append(value)
        return f"${len(self.values)}"

    def __len__(self) -> int:
        return len(self.values)


def render_value(value: Any, is_db_expression: bool, params: SqlParams) -> str:
    """Render one DML value as a placeholder or an allow-listed expression."""
    if is_db_expression:
        if kind_of(value) is not ValueKind.STRING:
            raise BadRequestError(f"Database expression must be a string, got {value!r}")
        return parse_expression(value).value
    return params.add(value)


def quote_literal(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def render_default(value: Any, data_type: str) -> str:
    """Render a DDL ``DEFAULT`` operand.

    A string default on a ``uuid`` column is a function call such as
    ``gen_random_uuid()`` and stays unquoted; every other string is a quoted
    literal.
    """
    kind = kind_of(value)
    if kind is ValueKind.STRING:
        if data_type.strip().lower() == "uuid":
            return parse_expression(value).value
        return quote_literal(value)
    if kind in (ValueKind.OBJECT, ValueKind.ARRAY):
        return quote_literal(to_json_text(value))
    try:
        return canonical_text(value)
    except ValueError as e:
        raise BadRequestError(str(e)) from e
