"""
configkit.mapping
-----------------

The flat key/value mapping every configuration source is merged into.

Keys are dotted paths joined with ``SEPARATOR`` (``"__"``), values are
always strings. Keys compare case-insensitively so that upper-case
environment variables meet lower-case dataclass field names; iteration
keeps insertion order and the spelling of the most recent write.
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Dict, Iterator, Mapping, Optional, Sequence, Tuple, Union

from .convert import convert_value
from .utils import SEPARATOR, join_key

log = logging.getLogger(__name__)

KeyLike = Union[str, Sequence[str]]


def _fold(key: KeyLike) -> str:
    if not isinstance(key, str):
        key = join_key(key)
    return key.casefold()


class Map(MutableMapping):
    """
    Case-insensitive, insertion-ordered ``str -> str`` mapping.

    ``Map`` behaves like a regular mutable mapping and adds the merge,
    nested lookup and typed unmarshal operations the builder relies on.

    Examples:
        >>> m = Map({"database__port": "5432"})
        >>> m.lookup(["DATABASE", "PORT"])
        ('5432', True)
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None, **kwargs: Any):
        # folded key -> (display key, value)
        self._data: Dict[str, Tuple[str, str]] = {}
        if initial:
            self.merge(initial)
        if kwargs:
            self.merge(kwargs)

    # --- MutableMapping protocol ---
    def __getitem__(self, key: KeyLike) -> str:
        return self._data[_fold(key)][1]

    def __setitem__(self, key: KeyLike, value: Any) -> None:
        if not isinstance(key, str):
            key = join_key(key)
        self._data[_fold(key)] = (key, "" if value is None else str(value))

    def __delitem__(self, key: KeyLike) -> None:
        del self._data[_fold(key)]

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, list, tuple)):
            return False
        return _fold(key) in self._data

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_dict()!r})"

    # --- Merge operations ---
    def set(self, key: KeyLike, value: Any) -> "Map":
        """Store ``value`` at ``key``, replacing any existing entry."""
        self[key] = value
        return self

    def merge(self, other: Mapping[str, Any]) -> "Map":
        """
        Apply every entry of ``other`` onto this mapping.

        Entries of ``other`` win on key collision; keys present on only one
        side are kept untouched.
        """
        for k, v in other.items():
            self[k] = v
        return self

    def lookup(self, key: KeyLike) -> Tuple[Optional[str], bool]:
        """
        Return ``(value, found)`` for ``key``.

        ``key`` may be a joined string (``"a__b"``) or a sequence of path
        segments (``["a", "b"]``); both address the same entry.
        """
        entry = self._data.get(_fold(key))
        if entry is None:
            return None, False
        return entry[1], True

    def unmarshal(self, key: KeyLike, ref: Any) -> Any:
        """
        Convert the value stored at ``key`` to ``ref.type`` and assign it
        through ``ref.set``. Returns the converted value.

        Raises:
            KeyError: If ``key`` is not present.
            ConversionError: If the raw value cannot be parsed as ``ref.type``.
        """
        raw, found = self.lookup(key)
        if not found:
            raise KeyError(key if isinstance(key, str) else join_key(key))
        display = key if isinstance(key, str) else join_key(key)
        value = convert_value(raw, ref.type, display)
        ref.set(value)
        log.debug(f"Unmarshalled '{display}' into {getattr(ref.type, '__name__', ref.type)}")
        return value

    # --- Utility methods ---
    def copy(self) -> "Map":
        new = type(self)()
        new._data = dict(self._data)
        return new

    def as_dict(self) -> Dict[str, str]:
        """Return a plain ``dict`` copy using the display spelling of each key."""
        return {display: value for display, value in self._data.values()}

    def to_lines(self) -> str:
        """Serialize as ``key=value`` lines, the format ``merge_data`` reads."""
        return "".join(f"{k}={v}\n" for k, v in self.items())


__all__ = ["Map", "SEPARATOR"]
