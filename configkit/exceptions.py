"""
configkit.exceptions
--------------------

Custom exceptions for configkit.

Every error raised by the library derives from :class:`ConfigKitError`.
Errors raised from inside ``Builder.build`` may carry a ``stage`` naming
the build step that failed; the stage is prepended to the message.
"""

from typing import Any, Dict, List, Optional, Sequence


class ConfigKitError(Exception):
    """Base class for all configkit errors."""

    stage: Optional[str] = None

    def with_stage(self, stage: str) -> "ConfigKitError":
        """Tag the error with the build step it escaped from and return it."""
        self.stage = stage
        return self

    def __str__(self) -> str:
        message = super().__str__()
        if self.stage:
            return f"{self.stage}: {message}"
        return message


class ShapeError(ConfigKitError, TypeError):
    """
    Raised when a build target is not a dataclass instance.
    """

    def __init__(self, target: Any):
        kind = "None" if target is None else type(target).__name__
        if isinstance(target, type):
            kind = f"class {target.__name__}"
        super().__init__(f"target must be a dataclass instance, got {kind}")
        self.target = target


class SourceIOError(ConfigKitError):
    """
    Raised (lazily, via the builder's sticky error) when a configuration
    source cannot be read or parsed.
    """

    def __init__(self, source: str, reason: Any = None):
        message = f"cannot read configuration source {source!r}"
        if reason is not None:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source = source


class MissingKeysError(ConfigKitError):
    """
    Raised when one or more configuration keys have neither a default nor
    an explicit value.
    """

    def __init__(self, keys: Sequence[str]):
        keys = list(keys)
        plural = "s" if len(keys) > 1 else ""
        super().__init__(
            f"missing {len(keys)} configuration key{plural}: {', '.join(keys)}"
        )
        self.missing_keys = keys


class ResolutionError(ConfigKitError):
    """
    Raised when a ``${key}`` reference points at an unknown key or when
    references form a cycle.
    """

    def __init__(self, key: str, reference: Optional[str] = None,
                 cycle: Optional[Sequence[str]] = None):
        if cycle:
            message = f"reference cycle detected: {' -> '.join(cycle)}"
        else:
            message = f"key {key!r} references unknown key {reference!r}"
        super().__init__(message)
        self.key = key
        self.reference = reference
        self.cycle = list(cycle) if cycle else None


class ConversionError(ConfigKitError, ValueError):
    """
    Raised when a raw string value cannot be converted to the declared
    type of its field.
    """

    def __init__(self, key: str, expected_type: Any, value: str,
                 reason: Any = None):
        type_name = getattr(expected_type, "__name__", None) or repr(expected_type)
        message = f"cannot convert {key!r} value {value!r} to {type_name}"
        if reason is not None:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.key = key
        self.expected_type = expected_type
        self.value = value


class ValidationError(ConfigKitError):
    """
    Raised by the struct validator when a populated record breaks its
    constraints. ``errors`` holds one dict per failure with ``loc``,
    ``msg``, ``type`` and ``input`` entries.
    """

    def __init__(self, title: str, errors: List[Dict[str, Any]]):
        lines = [f"{len(errors)} validation error{'s' if len(errors) != 1 else ''} for {title}"]
        for err in errors:
            loc = ".".join(str(part) for part in err.get("loc", ()))
            lines.append(f"  {loc}: {err.get('msg')}")
        super().__init__("\n".join(lines))
        self.title = title
        self.errors = errors
