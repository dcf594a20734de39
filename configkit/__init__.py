# configkit/__init__.py
"""
configkit – merge configuration sources and bind them onto dataclasses.

Build a :class:`~configkit.builder.Builder`, chain sources with ``set``,
``merge_file``, ``merge_environ``, ``merge_map`` (and friends), then call
``build(record)`` to populate a dataclass instance declared with
:func:`~configkit.walker.setting` fields.
"""

from .builder import Builder
from .convert import ConfigUnmarshaler
from .exceptions import (
    ConfigKitError,
    ConversionError,
    MissingKeysError,
    ResolutionError,
    ShapeError,
    SourceIOError,
    ValidationError,
)
from .mapping import SEPARATOR, Map
from .validation import PydanticValidator, StructValidator
from .walker import DefaultConfig, FieldRef, setting, walk_struct

__version__ = "0.1.0"

__all__ = [
    "Builder",
    "ConfigKitError",
    "ConfigUnmarshaler",
    "ConversionError",
    "DefaultConfig",
    "FieldRef",
    "Map",
    "MissingKeysError",
    "PydanticValidator",
    "ResolutionError",
    "SEPARATOR",
    "ShapeError",
    "SourceIOError",
    "StructValidator",
    "ValidationError",
    "setting",
    "walk_struct",
]
