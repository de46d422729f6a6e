"""Database expressions a caller may ask for instead of a literal value"""
import enum
from typing import Any

from tablecms.core.errors import BadRequestError


class DbExpression(str, enum.Enum):
    NOW = "now()"
    CURRENT_TIMESTAMP = "current_timestamp"
    CURRENT_DATE = "current_date"
    CURRENT_TIME = "current_time"
    LOCALTIMESTAMP = "localtimestamp"
    GEN_RANDOM_UUID = "gen_random_uuid()"
    UUID_GENERATE_V4 = "uuid_generate_v4()"


_BY_TEXT = {expr.value: expr for expr in DbExpression}


def lookup_expression(text: Any) -> DbExpression | None:
    """Return the allow-listed expression spelled by ``text``, if any."""
    if not isinstance(text, str):
        return None
    normalized = "".join(text.split()).lower()
    return _BY_TEXT.get(normalized)


def parse_expression(text: Any) -> DbExpression:
    """Like ``lookup_expression`` but raise for anything off the allow-list."""
    expr = lookup_expression(text)
    if expr is None:
        allowed = ", ".join(_BY_TEXT)
        raise BadRequestError(f"Unsupported database expression {text!r}. Allowed: {allowed}")
    return expr
