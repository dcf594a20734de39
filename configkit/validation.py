"""
configkit.validation
--------------------

Pluggable validation of a populated record.

The builder only needs an object with a ``validate(target)`` method that
raises :class:`~configkit.exceptions.ValidationError`. The default
:class:`PydanticValidator` checks every field of the record against its
type annotation with pydantic, so constraints can be declared inline::

    from typing import Annotated
    from pydantic import Field

    @dataclass
    class ServerConfig:
        port: Annotated[int, Field(gt=0, lt=65536)] = setting()
"""

import dataclasses
import logging
import typing
from typing import Any, Callable, Dict, List, Protocol, Tuple, runtime_checkable

import pydantic
from pydantic import ConfigDict, TypeAdapter

from .convert import is_record_type
from .exceptions import ValidationError
from .utils import SEPARATOR, split_key

log = logging.getLogger(__name__)


@runtime_checkable
class StructValidator(Protocol):
    """Validate a populated record, raising ``ValidationError`` on failure."""

    def validate(self, target: Any) -> None:
        ...


class PydanticValidator:
    """
    Validates each dataclass field against its annotation using pydantic
    ``TypeAdapter`` objects, descending into nested dataclasses.

    All failures are collected and raised together as one
    ``ValidationError`` whose ``errors`` carry dotted field locations.

    Args:
        strict: Use pydantic strict mode (no coercion between types).
    """

    def __init__(self, strict: bool = False):
        self.strict = strict
        self.config = ConfigDict(arbitrary_types_allowed=True)
        self._checks: List[Tuple[Tuple[str, ...], Callable[[Any], Any]]] = []

    def add_check(self, key: str, check: Callable[[Any], Any]) -> "PydanticValidator":
        """
        Register an extra check for the field at ``key`` (``"a__b"`` form).

        ``check`` receives the field value and signals failure by raising
        ``ValueError``; its message becomes the error entry's ``msg``.
        """
        self._checks.append((tuple(split_key(key)), check))
        return self

    def validate(self, target: Any) -> None:
        errors: List[Dict[str, Any]] = []
        self._validate_record(target, (), errors, set())

        for path, check in self._checks:
            value = target
            try:
                for part in path:
                    value = getattr(value, part)
            except AttributeError:
                errors.append(_error(path, f"unknown field {SEPARATOR.join(path)!r}",
                                     "missing", None))
                continue
            try:
                check(value)
            except ValueError as e:
                errors.append(_error(path, str(e) or "check failed", "value_error", value))

        if errors:
            log.debug(f"Validation of {type(target).__name__} failed with {len(errors)} error(s)")
            raise ValidationError(type(target).__name__, errors)

    def _validate_record(self, record: Any, path: Tuple[str, ...],
                         errors: List[Dict[str, Any]], seen: set) -> None:
        if id(record) in seen:
            return
        seen.add(id(record))

        try:
            hints = typing.get_type_hints(type(record), include_extras=True)
        except (NameError, TypeError):
            hints = {}

        for f in dataclasses.fields(record):
            if f.name.startswith("_"):
                continue
            value = getattr(record, f.name, None)
            field_path = path + (f.name,)
            if dataclasses.is_dataclass(value) and is_record_type(type(value)):
                self._validate_record(value, field_path, errors, seen)
                continue

            tp = hints.get(f.name, f.type)
            if isinstance(tp, str):
                continue
            try:
                self._adapter(tp).validate_python(value, strict=self.strict)
            except pydantic.ValidationError as e:
                for err in e.errors(include_url=False):
                    errors.append(_error(field_path + tuple(err["loc"]), err["msg"],
                                         err["type"], err.get("input")))

    def _adapter(self, tp: Any) -> TypeAdapter:
        if dataclasses.is_dataclass(tp):
            # pydantic refuses a config override for dataclass types
            return TypeAdapter(tp)
        return TypeAdapter(tp, config=self.config)


def _error(loc: Tuple[Any, ...], msg: str, kind: str, value: Any) -> Dict[str, Any]:
    return {"loc": tuple(loc), "msg": msg, "type": kind, "input": value}
