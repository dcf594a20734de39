"""
configkit.resolver
------------------

Resolution of ``${key}`` references between configuration values.

A value may embed the value of another key with ``${other__key}``; ``$$``
stands for a literal ``$``. Resolution runs once, after every source has
been merged, and rewrites the mapping in place with final literal
strings.
"""

import logging
import re
from typing import Dict, List

from .exceptions import ResolutionError
from .mapping import Map

log = logging.getLogger(__name__)

_REFERENCE = re.compile(r"\$(\$|\{([^}]*)\})")


def references(value: str) -> List[str]:
    """Return the keys referenced by ``value`` in order of appearance."""
    return [m.group(2).strip() for m in _REFERENCE.finditer(value) if m.group(1) != "$"]


def resolve_values(values: Map) -> Map:
    """
    Replace every reference in ``values`` by the referenced value, in place.

    Keys are processed in mapping order. A value is finalized only after
    everything it references has been finalized, so chains such as
    ``a -> b -> c`` resolve regardless of declaration order.

    Raises:
        ResolutionError: On a reference to a key that does not exist, or
                         when references form a cycle.
    """
    resolved: Dict[str, str] = {}
    stack: List[str] = []

    def resolve(key: str) -> str:
        folded = key.casefold()
        if folded in resolved:
            return resolved[folded]

        folded_stack = [k.casefold() for k in stack]
        if folded in folded_stack:
            cycle = stack[folded_stack.index(folded):] + [key]
            raise ResolutionError(key, cycle=cycle)

        stack.append(key)

        def substitute(match: re.Match) -> str:
            if match.group(1) == "$":
                return "$"
            ref = match.group(2).strip()
            if ref not in values:
                raise ResolutionError(key, reference=ref)
            return resolve(ref)

        result = _REFERENCE.sub(substitute, values[key])
        stack.pop()
        resolved[folded] = result
        return result

    for key in list(values):
        resolve(key)

    changed = 0
    for key in list(values):
        final = resolved[key.casefold()]
        if values[key] != final:
            values[key] = final
            changed += 1

    log.debug(f"Resolved {changed} of {len(values)} values")
    return values
