"""
configkit.utils
---------------

Shared helpers for key handling, nested-document flattening and path
expansion. Used internally by configkit and available for downstream
consumers.
"""

import os
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Union

SEPARATOR = "__"


def join_key(path: Iterable[str], sep: str = SEPARATOR) -> str:
    """Join path segments into a flat configuration key.

    Examples:
        >>> join_key(["database", "port"])
        'database__port'
        >>> join_key([])
        ''
    """
    return sep.join(path)


def split_key(key: Union[str, Sequence[str]], sep: str = SEPARATOR) -> list:
    """Split a flat key into path segments. Sequences are returned as a list."""
    if isinstance(key, str):
        return key.split(sep)
    return list(key)


def prefix_keys(values: Mapping[str, Any], prefix: str,
                sep: str = SEPARATOR) -> Dict[str, Any]:
    """Prefix every key of ``values`` with ``prefix`` and ``sep``.

    An empty prefix leaves the keys untouched, so a record at the root
    contributes its keys as-is.
    """
    if not prefix:
        return dict(values)
    return {f"{prefix}{sep}{k}": v for k, v in values.items()}


def render_scalar(value: Any) -> str:
    """Render a parsed TOML/JSON scalar the way the flat file format spells it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(render_scalar(item) for item in value)
    return str(value)


def flatten(d: Mapping[str, Any], prefix: str = "", sep: str = SEPARATOR) -> Dict[str, str]:
    """Flatten a nested document into ``{'a__b__c': 'value', ...}``."""
    items: Dict[str, str] = {}
    for k, v in d.items():
        key = f"{prefix}{sep}{k}" if prefix else str(k)
        if isinstance(v, Mapping):
            items.update(flatten(v, key, sep))
        else:
            items[key] = render_scalar(v)
    return items


def expand_path(path: Optional[str]) -> Optional[str]:
    """Expand ``~`` and environment variables in a path string.

    Examples:
        >>> expand_path("~/configs/app.env")
        '/home/user/configs/app.env'
        >>> expand_path(None)
        None
    """
    if path is None:
        return None
    return os.path.expandvars(os.path.expanduser(os.fspath(path)))
