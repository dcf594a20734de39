"""
configkit.convert
-----------------

Conversion of raw configuration strings into typed field values.

``convert_value`` dispatches on the declared type of a field: scalars
(``str``, ``bool``, ``int``, ``float``, ``Decimal``), paths, durations,
enums, homogeneous collections parsed from comma-separated text,
``Optional``/``Union`` types and any class implementing the
``from_config_string`` capability.
"""

import dataclasses
import datetime
import decimal
import enum
import re
import types
import typing
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .exceptions import ConversionError
from .utils import expand_path

_TRUE_STRINGS = {"1", "t", "true", "y", "yes", "on"}
_FALSE_STRINGS = {"0", "f", "false", "n", "no", "off"}

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

_BUILTIN_NAMES = {
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "bytes": bytes,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d)")


@runtime_checkable
class ConfigUnmarshaler(Protocol):
    """Capability for types that parse themselves from a raw config string."""

    @classmethod
    def from_config_string(cls, raw: str) -> Any:
        ...


def strip_annotated(tp: Any) -> Any:
    """Return the underlying type of an ``Annotated[...]`` hint."""
    while typing.get_origin(tp) is typing.Annotated:
        tp = typing.get_args(tp)[0]
    return tp


def is_record_type(tp: Any) -> bool:
    """True for dataclass types that are populated field by field."""
    tp = strip_annotated(tp)
    return (
        isinstance(tp, type)
        and dataclasses.is_dataclass(tp)
        and not hasattr(tp, "from_config_string")
    )


def parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ValueError(f"invalid boolean {raw!r}")


def parse_duration(raw: str) -> datetime.timedelta:
    """Parse ``1h30m``, ``250ms``, ``-1.5s`` or a bare number of seconds."""
    text = raw.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if not text:
        raise ValueError("empty duration")
    try:
        return datetime.timedelta(seconds=sign * float(text))
    except ValueError:
        pass
    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {raw!r}")
    return datetime.timedelta(seconds=sign * seconds)


def _parse_enum(raw: str, tp: type) -> enum.Enum:
    stripped = raw.strip()
    for member in tp:
        if member.name.lower() == stripped.lower():
            return member
    for member in tp:
        if str(member.value) == stripped:
            return member
    raise ValueError(f"expected one of {[m.name for m in tp]}")


def _split_items(raw: str) -> list:
    if not raw.strip():
        return []
    return [item.strip() for item in raw.split(",")]


def convert_value(raw: str, tp: Any, key: str = "") -> Any:
    """
    Convert ``raw`` to an instance of ``tp``.

    Raises:
        ConversionError: naming ``key``, ``tp`` and ``raw`` when parsing fails
                         or the type is not supported.
    """
    tp = strip_annotated(tp)
    if isinstance(tp, str):
        # unevaluated annotation
        tp = _BUILTIN_NAMES.get(tp.strip(), tp)

    if tp is Any or tp is str:
        return raw

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if tp in (list, tuple, set, frozenset):
        origin, args = tp, ()

    # Optional[T] / Union[A, B] / A | B
    if origin is typing.Union or origin is types.UnionType:
        members = [a for a in args if a is not type(None)]
        if len(members) != len(args) and not raw.strip():
            return None
        last_error = None
        for member in members:
            try:
                return convert_value(raw, member, key)
            except ConversionError as e:
                last_error = e
        raise ConversionError(key, tp, raw, last_error)

    if origin is typing.Literal:
        for choice in args:
            if str(choice) == raw.strip():
                return choice
        raise ConversionError(key, tp, raw, f"expected one of {list(args)}")

    if origin in (list, tuple, set, frozenset):
        item_type = args[0] if args else str
        if origin is tuple and args and (len(args) != 2 or args[1] is not Ellipsis):
            raise ConversionError(key, tp, raw, "only variadic tuples are supported")
        items = [convert_value(item, item_type, key) for item in _split_items(raw)]
        return origin(items)

    try:
        if isinstance(tp, type) and hasattr(tp, "from_config_string"):
            return tp.from_config_string(raw)
        if tp is bool:
            return parse_bool(raw)
        if tp is int:
            return int(raw.strip(), 10)
        if tp is float:
            return float(raw.strip())
        if tp is decimal.Decimal:
            return decimal.Decimal(raw.strip())
        if tp is bytes:
            return raw.encode("utf-8")
        if tp is datetime.timedelta:
            return parse_duration(raw)
        if isinstance(tp, type) and issubclass(tp, Path):
            return tp(expand_path(raw))
        if isinstance(tp, type) and issubclass(tp, enum.Enum):
            return _parse_enum(raw, tp)
    except (ValueError, TypeError, ArithmeticError) as e:
        raise ConversionError(key, tp, raw, e) from e

    raise ConversionError(key, tp, raw, "unsupported field type")
