"""Validation for the caller-supplied pieces that end up in SQL text"""
import re

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from tablecms.core.errors import BadRequestError


# PostgreSQL truncates identifiers beyond NAMEDATALEN - 1
MAX_IDENTIFIER_LENGTH = 63
MAX_DATA_TYPE_LENGTH = 128

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# <name>[ <name>][(p[, s])][ with[out] time zone][[]...], matched on the
# lower-cased text with whitespace collapsed to single spaces
TYPE_SHAPE_PATTERN = re.compile(
    r"(?P<name>[a-z_][a-z0-9_]*(?: [a-z_][a-z0-9_]*)?)"
    r"(?P<modifiers> ?\( ?\d+ ?(?:, ?\d+ ?)?\))?"
    r"(?P<zone> with(?:out)? time zone)?"
    r"(?P<array>(?: ?\[\d*\])*)"
)
MULTI_WORD_TYPES = {"double precision", "character varying", "bit varying"}
ZONED_TYPES = {"time", "timestamp"}

ORDER_DIRECTIONS = {"ASC", "DESC"}


class SQLGuard:
    """Identifier, data type and ordering checks.

    Identifiers are emitted bare, so they are restricted to the unquoted
    PostgreSQL identifier alphabet and folded to lower case, the way the
    server folds them. Data types keep the caller's spelling once they have
    the shape of a single type name and parse as a PostgreSQL type.
    """

    def __init__(self, dialect: str = "postgres"):
        self.dialect = dialect

    def identifier(self, name: str, *, what: str = "identifier") -> str:
        if not isinstance(name, str) or not name:
            raise BadRequestError(f"Invalid {what}: empty name")
        if len(name) > MAX_IDENTIFIER_LENGTH:
            raise BadRequestError(
                f"Invalid {what} {name!r}: longer than {MAX_IDENTIFIER_LENGTH} characters"
            )
        if not IDENTIFIER_PATTERN.fullmatch(name):
            raise BadRequestError(
                f"Invalid {what} {name!r}: only letters, digits and underscores are allowed"
            )
        return name.lower()

    def identifier_list(self, names_csv: str, *, what: str = "identifier") -> list[str]:
        """Split a comma-separated name list and validate every entry."""
        names = [n.strip() for n in (names_csv or "").split(",")]
        names = [n for n in names if n]
        if not names:
            raise BadRequestError(f"Invalid {what} list: no names given")
        return [self.identifier(n, what=what) for n in names]

    def data_type(self, data_type: str) -> str:
        """
        Validate one column type such as ``varchar(255)``, ``numeric(10, 2)``,
        ``timestamp with time zone`` or ``int[]``.

        Anything after the type (constraints, COLLATE, a second column) is
        rejected.
        """
        text = (data_type or "").strip() if isinstance(data_type, str) else ""
        if not text:
            raise BadRequestError("Invalid data type: empty")
        if len(text) > MAX_DATA_TYPE_LENGTH:
            raise BadRequestError(f"Invalid data type {data_type!r}: too long")

        shape = TYPE_SHAPE_PATTERN.fullmatch(" ".join(text.split()).lower())
        if shape is None:
            raise BadRequestError(f"Invalid data type {data_type!r}: expected a single type name")
        name = shape.group("name")
        if " " in name and name not in MULTI_WORD_TYPES:
            raise BadRequestError(f"Invalid data type {data_type!r}: expected a single type name")
        if shape.group("zone") and name not in ZONED_TYPES:
            raise BadRequestError(f"Invalid data type {data_type!r}: time zone on a non-time type")

        try:
            sqlglot.parse_one(text, read=self.dialect, into=exp.DataType)
        except (ValueError, SqlglotError):
            # Extension and enum types (citext, mood, ...) are plain names
            if " " in name or shape.group("modifiers") or shape.group("zone"):
                raise BadRequestError(f"Invalid data type {data_type!r}")
        return text

    def order_direction(self, order: str | None) -> str:
        direction = (order or "ASC").strip().upper()
        if direction not in ORDER_DIRECTIONS:
            raise BadRequestError(f"Invalid order {order!r}: expected 'asc' or 'desc'")
        return direction
