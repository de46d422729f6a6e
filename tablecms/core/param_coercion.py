"""JSON value -> driver argument coercion.

asyncpg encodes arguments strictly by the parameter type the server inferred
while preparing the statement (``'42'`` is rejected for an ``int4``). JSON
payloads are loosely typed, so each value is converted here, keyed by the
inferred type name.
"""
import datetime
import decimal
import json
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from tablecms.core.errors import BadRequestError
from tablecms.core.values import ValueKind, kind_of, to_json_text


Coercer = Callable[[Any], Any]

_TRUE_STRINGS = {"true", "t", "yes", "y", "on", "1"}
_FALSE_STRINGS = {"false", "f", "no", "n", "off", "0"}


def _to_int(v: Any) -> int:
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        if not v.is_integer():
            raise ValueError(f"{v!r} is not an integer")
        return int(v)
    if isinstance(v, str):
        return int(v.strip())
    raise ValueError(f"{v!r} is not an integer")


def _to_float(v: Any) -> float:
    if isinstance(v, (int, float, str)) and not isinstance(v, bool):
        return float(v)
    raise ValueError(f"{v!r} is not a number")


def _to_decimal(v: Any) -> decimal.Decimal:
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        raise ValueError(f"{v!r} is not a number")
    try:
        return decimal.Decimal(str(v).strip())
    except decimal.InvalidOperation:
        raise ValueError(f"{v!r} is not a number")


def _to_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, int) and v in (0, 1):
        return bool(v)
    if isinstance(v, str):
        text = v.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ValueError(f"{v!r} is not a boolean")


def _to_uuid(v: Any) -> uuid.UUID:
    if isinstance(v, uuid.UUID):
        return v
    if not isinstance(v, str):
        raise ValueError(f"{v!r} is not a UUID")
    return uuid.UUID(v.strip())


def _parse_iso_datetime(v: Any) -> datetime.datetime:
    if isinstance(v, datetime.datetime):
        return v
    if not isinstance(v, str):
        raise ValueError(f"{v!r} is not an ISO-8601 timestamp")
    text = v.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return datetime.datetime.fromisoformat(text)


def _to_timestamp(v: Any) -> datetime.datetime:
    value = _parse_iso_datetime(v)
    # timestamp without time zone: keep wall-clock time in UTC
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def _to_timestamptz(v: Any) -> datetime.datetime:
    value = _parse_iso_datetime(v)
    if value.tzinfo is None:
        value = value.replace(tzinfo=datetime.timezone.utc)
    return value


def _to_date(v: Any) -> datetime.date:
    if isinstance(v, datetime.date) and not isinstance(v, datetime.datetime):
        return v
    if not isinstance(v, str):
        raise ValueError(f"{v!r} is not an ISO-8601 date")
    return datetime.date.fromisoformat(v.strip())


def _to_time(v: Any) -> datetime.time:
    if isinstance(v, datetime.time):
        return v
    if not isinstance(v, str):
        raise ValueError(f"{v!r} is not an ISO-8601 time")
    return datetime.time.fromisoformat(v.strip())


def _to_json_text(v: Any) -> str:
    # A string that already holds a JSON document is bound as that document
    if isinstance(v, str):
        try:
            json.loads(v)
        except ValueError:
            return to_json_text(v)
        return v
    return to_json_text(v)


def _to_text(v: Any) -> str:
    if isinstance(v, str):
        return v
    if kind_of(v) is ValueKind.BOOL:
        return "true" if v else "false"
    if kind_of(v) in (ValueKind.OBJECT, ValueKind.ARRAY):
        return to_json_text(v)
    return str(v)


COERCERS: Dict[str, Coercer] = {
    "int2": _to_int,
    "int4": _to_int,
    "int8": _to_int,
    "oid": _to_int,
    "float4": _to_float,
    "float8": _to_float,
    "numeric": _to_decimal,
    "bool": _to_bool,
    "uuid": _to_uuid,
    "timestamp": _to_timestamp,
    "timestamptz": _to_timestamptz,
    "date": _to_date,
    "time": _to_time,
    "json": _to_json_text,
    "jsonb": _to_json_text,
    "text": _to_text,
    "varchar": _to_text,
    "bpchar": _to_text,
    "char": _to_text,
    "name": _to_text,
    "citext": _to_text,
}


def coercer_for(type_name: Optional[str]) -> Optional[Coercer]:
    if not type_name:
        return None
    type_name = type_name.lower()
    if type_name in COERCERS:
        return COERCERS[type_name]
    if type_name.startswith("_"):
        element = coercer_for(type_name[1:])
        if element is None:
            return None

        def _to_array(v: Any) -> List[Any]:
            if not isinstance(v, (list, tuple)):
                raise ValueError(f"{v!r} is not an array")
            return [None if item is None else element(item) for item in v]

        return _to_array
    return None


def _passthrough(type_name: Optional[str], value: Any) -> Any:
    # Types without a coercer go through the text codec; objects and
    # non-array lists reach it as JSON text
    kind = kind_of(value)
    if kind is ValueKind.OBJECT:
        return to_json_text(value)
    if kind is ValueKind.ARRAY and not (type_name or "").startswith("_"):
        return to_json_text(value)
    return value


def coerce_params(param_types: Sequence[Any], values: Iterable[Any]) -> List[Any]:
    """Coerce ``values`` for the statement's inferred ``param_types``.

    ``param_types`` are asyncpg ``Type`` records (anything with ``.name``).
    Values for types without a coercer are passed through, objects as JSON
    text.
    """
    values = list(values)
    if len(param_types) != len(values):
        raise BadRequestError(
            f"Statement expects {len(param_types)} parameter(s), got {len(values)}"
        )

    coerced: List[Any] = []
    for index, (param_type, value) in enumerate(zip(param_types, values), start=1):
        if value is None:
            coerced.append(None)
            continue
        type_name = getattr(param_type, "name", None)
        coercer = coercer_for(type_name)
        if coercer is None:
            coerced.append(_passthrough(type_name, value))
            continue
        try:
            coerced.append(coercer(value))
        except (TypeError, ValueError) as e:
            raise BadRequestError(
                f"Invalid value for parameter ${index} ({type_name}): {value!r} ({e})"
            ) from e
    return coerced
