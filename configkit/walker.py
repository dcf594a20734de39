"""
configkit.walker
----------------

Reflective traversal of a target dataclass.

``walk_struct`` visits the root record and then every field, descending
into nested dataclasses, and hands the visitor a :class:`FieldRef` per
slot: its dotted path, its ``default`` tag, its declared type and a
handle that writes back into the owning instance.

Targets declare defaults two ways, both optional:

- a ``default`` entry in the field metadata, most easily written with
  :func:`setting`::

      @dataclass
      class ServerConfig:
          host: str = setting("localhost")
          port: int = setting()

- a ``default_config()`` method on the field's type (or the root type)
  returning a mapping of sub-key to default value (see
  :class:`DefaultConfig`).
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import sys
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

from .convert import is_record_type, strip_annotated
from .exceptions import ShapeError
from .utils import join_key

log = logging.getLogger(__name__)

DEFAULT_TAG = "default"


@runtime_checkable
class DefaultConfig(Protocol):
    """Capability for types that describe their own default values."""

    def default_config(self) -> Mapping[str, str]:
        ...


def setting(default: Any = None, /, **kwargs: Any) -> Any:
    """
    Declare a configuration field.

    The positional ``default`` becomes the field's ``default`` tag (stored
    as a string in the field metadata). Without one the key is required.
    Keyword arguments go to :func:`dataclasses.field`; unless a dataclass
    ``default=`` or ``default_factory=`` is among them, the attribute
    starts out as ``None`` so the record can be instantiated before it is
    built.
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    if default is not None:
        metadata[DEFAULT_TAG] = str(default)
    if "default" not in kwargs and "default_factory" not in kwargs:
        kwargs["default"] = None
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclass
class FieldRef:
    """
    A slot discovered while walking a record.

    Attributes:
        path: Field names from the root, empty for the root record.
        owner: Instance holding the field (``None`` for the root).
        name: Attribute name on ``owner`` (``None`` for the root).
        field: The ``dataclasses.Field`` (``None`` for the root).
        type: Declared type hint of the field.
        value: Current value of the field.
        settable: False for hidden (underscore-prefixed) fields.
    """

    path: tuple
    owner: Any
    name: str | None
    field: dataclasses.Field | None
    type: Any
    value: Any
    settable: bool = True

    @property
    def key(self) -> str:
        return join_key(self.path)

    @property
    def default(self) -> str | None:
        """The ``default`` tag, or ``None`` when the field declares none."""
        if self.field is None or DEFAULT_TAG not in self.field.metadata:
            return None
        return str(self.field.metadata[DEFAULT_TAG])

    @property
    def is_record(self) -> bool:
        """True when the walker descends into this slot instead of assigning it."""
        return (
            self.settable
            and dataclasses.is_dataclass(self.value)
            and not isinstance(self.value, type)
            and not hasattr(type(self.value), "from_config_string")
        )

    @property
    def assignable(self) -> bool:
        return self.settable and self.owner is not None and not self.is_record

    def set(self, value: Any) -> None:
        # object.__setattr__ also writes through frozen dataclasses
        object.__setattr__(self.owner, self.name, value)
        self.value = value

    def default_config(self) -> Mapping[str, str] | None:
        """Call the ``default_config`` capability of this slot, if any."""
        if self.value is not None:
            if isinstance(self.value, DefaultConfig):
                return self.value.default_config()
            return None
        tp = strip_annotated(self.type)
        if not isinstance(tp, type):
            return None
        attr = inspect.getattr_static(tp, "default_config", None)
        if isinstance(attr, (classmethod, staticmethod)):
            return tp.default_config()
        return None


def _type_hints(record: Any) -> dict:
    """
    Type hints of ``record``'s fields.

    When the class-wide evaluation fails (typically a record declared inside
    a function under postponed annotations), each string annotation is
    evaluated on its own, with the classes of the record's current nested
    values in scope. Only the fields that still fail keep their string form.
    """
    cls = type(record)
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        log.debug(f"Evaluating type hints of {cls.__name__} per field: {e}")

    module = sys.modules.get(cls.__module__)
    globalns = dict(vars(module)) if module is not None else {}
    localns = {cls.__name__: cls}
    for f in dataclasses.fields(cls):
        value = getattr(record, f.name, None)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            localns.setdefault(type(value).__name__, type(value))

    hints = {}
    for f in dataclasses.fields(cls):
        hints[f.name] = f.type
        if not isinstance(f.type, str):
            continue
        try:
            hints[f.name] = eval(f.type, globalns, localns)
        except (NameError, AttributeError, TypeError, SyntaxError) as e:
            log.warning(f"Could not evaluate type hint of {cls.__name__}.{f.name}: {e}")
    return hints


def _record_type(tp: Any) -> type | None:
    """Return the dataclass type behind ``tp``, unwrapping ``Optional``."""
    tp = strip_annotated(tp)
    if typing.get_origin(tp) in (typing.Union, types.UnionType):
        members = [a for a in typing.get_args(tp) if a is not type(None)]
        if len(members) != 1:
            return None
        tp = strip_annotated(members[0])
    return tp if is_record_type(tp) else None


def blank_record(cls: type) -> Any:
    """
    Allocate ``cls`` without calling ``__init__``, filling in dataclass
    defaults. Fields without a dataclass default start as ``None``.
    """
    record = object.__new__(cls)
    for f in dataclasses.fields(cls):
        if f.default is not dataclasses.MISSING:
            value = f.default
        elif f.default_factory is not dataclasses.MISSING:
            value = f.default_factory()
        else:
            value = None
        object.__setattr__(record, f.name, value)
    return record


def walk_struct(target: Any, visit: Callable[[FieldRef], None]) -> None:
    """
    Visit ``target`` and every field reachable from it, depth first in
    declaration order.

    Raises:
        ShapeError: If ``target`` is not a dataclass instance. Nothing is
                    visited in that case.
    """
    if not dataclasses.is_dataclass(target) or isinstance(target, type):
        raise ShapeError(target)

    root = FieldRef(path=(), owner=None, name=None, field=None,
                    type=type(target), value=target)
    _walk(root, visit, set())


def _walk(ref: FieldRef, visit: Callable[[FieldRef], None], seen: set) -> None:
    visit(ref)
    if not ref.is_record or id(ref.value) in seen:
        return
    seen.add(id(ref.value))

    record = ref.value
    hints = _type_hints(record)
    for f in dataclasses.fields(record):
        child = FieldRef(
            path=ref.path + (f.name,),
            owner=record,
            name=f.name,
            field=f,
            type=hints.get(f.name, f.type),
            value=getattr(record, f.name, None),
            settable=not f.name.startswith("_"),
        )
        if child.settable and child.value is None:
            nested = _record_type(child.type)
            if nested is not None:
                log.debug(f"Allocating blank {nested.__name__} for '{child.key}'")
                child.set(blank_record(nested))
        _walk(child, visit, seen)
