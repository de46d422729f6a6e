"""Row -> JSON value conversion.

Decoding is keyed by the column's PostgreSQL type name, taken once per
statement from the prepared statement's result attributes, so each cell is
decoded exactly once by the decoder for its declared type.
"""
import datetime
import decimal
import json
import uuid
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from tablecms.core.values import Value
from tablecms.smart_logger import SmartLogger


Decoder = Callable[[Any], Value]


def _as_str(v: Any) -> Value:
    return str(v)


def _as_int(v: Any) -> Value:
    return int(v)


def _as_float(v: Any) -> Value:
    return float(v)


def _as_numeric(v: Any) -> Value:
    d = v if isinstance(v, decimal.Decimal) else decimal.Decimal(str(v))
    if not d.is_finite():
        return None
    if d == d.to_integral_value():
        return int(d)
    return float(d)


def _as_bool(v: Any) -> Value:
    return bool(v)


def _as_isoformat(v: Any) -> Value:
    if isinstance(v, (datetime.date, datetime.time)):
        return v.isoformat()
    return str(v)


def _as_seconds(v: Any) -> Value:
    if isinstance(v, datetime.timedelta):
        return v.total_seconds()
    return str(v)


def _as_json(v: Any) -> Value:
    # asyncpg hands json/jsonb over as text unless a codec is registered
    if isinstance(v, (str, bytes, bytearray)):
        return json.loads(v)
    return v


DECODERS: Dict[str, Decoder] = {
    "uuid": _as_str,
    "text": _as_str,
    "varchar": _as_str,
    "bpchar": _as_str,
    "char": _as_str,
    "name": _as_str,
    "citext": _as_str,
    "int2": _as_int,
    "int4": _as_int,
    "int8": _as_int,
    "float4": _as_float,
    "float8": _as_float,
    "numeric": _as_numeric,
    "bool": _as_bool,
    "timestamp": _as_isoformat,
    "timestamptz": _as_isoformat,
    "date": _as_isoformat,
    "time": _as_isoformat,
    "timetz": _as_isoformat,
    "interval": _as_seconds,
    "json": _as_json,
    "jsonb": _as_json,
}


def decoder_for(type_name: Optional[str]) -> Optional[Decoder]:
    """Decoder for a type name; ``_elem`` array names decode element-wise."""
    if not type_name:
        return None
    type_name = type_name.lower()
    if type_name in DECODERS:
        return DECODERS[type_name]
    if type_name.startswith("_"):
        element = decoder_for(type_name[1:])
        if element is None:
            return None
        return lambda items: [None if item is None else element(item) for item in items]
    return None


def decode_native(v: Any) -> Value:
    """Decode by the Python type the driver produced; used without type info."""
    if v is None or isinstance(v, (bool, int, float, str)):
        return v
    if isinstance(v, uuid.UUID):
        return str(v)
    if isinstance(v, decimal.Decimal):
        return _as_numeric(v)
    if isinstance(v, (datetime.date, datetime.time)):
        return v.isoformat()
    if isinstance(v, datetime.timedelta):
        return v.total_seconds()
    if isinstance(v, (list, tuple)):
        return [decode_native(item) for item in v]
    if isinstance(v, dict):
        return {str(k): decode_native(item) for k, item in v.items()}
    return None


class RowMarshaller:
    """Converts fetched rows into JSON objects.

    ``column_types`` maps column name to PostgreSQL type name. Columns without
    an entry are decoded by their Python type; columns whose type has no
    decoder come out as null.
    """

    def __init__(self, column_types: Optional[Mapping[str, str]] = None):
        self.column_types: Dict[str, str] = dict(column_types or {})
        self._decoders: Dict[str, Optional[Decoder]] = {
            name: decoder_for(type_name) for name, type_name in self.column_types.items()
        }

    @classmethod
    def from_attributes(cls, attributes: Iterable[Any]) -> "RowMarshaller":
        """Build from asyncpg ``PreparedStatement.get_attributes()``."""
        return cls({attr.name: attr.type.name for attr in attributes})

    def extract(self, row: Mapping[str, Any], column_name: str) -> Value:
        raw = row[column_name]
        if raw is None:
            return None
        if column_name not in self._decoders:
            return decode_native(raw)

        decoder = self._decoders[column_name]
        if decoder is None:
            SmartLogger.log(
                "DEBUG",
                "row_marshaller.unsupported_type",
                category="row_marshaller",
                params={"column": column_name, "type": self.column_types.get(column_name)},
            )
            return None
        return decoder(raw)

    def to_object(self, row: Mapping[str, Any]) -> Dict[str, Value]:
        return {name: self.extract(row, name) for name in row.keys()}

    def to_objects(self, rows: Iterable[Mapping[str, Any]]) -> list:
        return [self.to_object(row) for row in rows]
