"""
configkit.builder
-----------------

The fluent :class:`Builder` that gathers configuration values from
several sources and binds them onto a dataclass instance.

Precedence (lowest to highest):

1.  **Defaults declared on the target**: ``default`` field tags and
    ``default_config()`` capabilities, in declaration order.
2.  **Explicit sources**, in call order: ``set``, ``merge_file``,
    ``merge_data``, ``merge_environ``, ``merge_map``, ``merge_dotenv``,
    ``merge_toml`` and ``merge_json``. Each call overrides earlier values
    key for key and leaves other keys untouched.

Example::

    @dataclass
    class ServerConfig:
        host: str = setting("localhost")
        port: int = setting()

    cfg = ServerConfig()
    Builder().merge_file("/etc/app.conf").merge_environ("APP_").build(cfg)
"""

import dataclasses
import json
import logging
import os
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

# Use tomli for reading TOML (works for Python 3.10+)
try:
    import tomli
except ImportError:
    import tomllib as tomli  # Python 3.11+

from dotenv import dotenv_values

from .exceptions import ConfigKitError, ConversionError, MissingKeysError, \
    ResolutionError, ShapeError, SourceIOError
from .mapping import Map
from .provenance import ProvenanceStore
from .resolver import resolve_values
from .utils import expand_path, flatten, prefix_keys
from .validation import PydanticValidator, StructValidator
from .walker import FieldRef, walk_struct

log = logging.getLogger(__name__)

Environ = Union[Mapping[str, str], Sequence[str]]


class Builder:
    """
    Accumulates configuration values and binds them onto a target record.

    Ingestion methods never raise: the first failure is kept as a sticky
    error, every later chained call becomes a no-op, and the error is
    surfaced by :meth:`error` or :meth:`build`.

    A builder mutates its state on every chained call without locking;
    use one builder per thread or synchronize access externally.

    Args:
        environ: Environment used by :meth:`merge_environ`. Either a
                 mapping, a sequence of ``"KEY=VALUE"`` strings, or a
                 zero-argument callable returning one of those. Defaults
                 to ``os.environ`` read at call time.
        validator: Struct validator run at the end of :meth:`build`.
        track_provenance: Record the source of every ingested key in
                          :attr:`provenance`.
    """

    def __init__(self,
                 environ: Optional[Union[Environ, Callable[[], Environ]]] = None,
                 validator: Optional[StructValidator] = None,
                 track_provenance: bool = False):
        self._err: Optional[ConfigKitError] = None
        self._values = Map()
        self._validator = validator
        self._environ = environ
        self.provenance: Optional[ProvenanceStore] = ProvenanceStore() if track_provenance else None

    # --- Sticky error handling ---
    def error(self) -> Optional[ConfigKitError]:
        """Return the recorded sticky error, or ``None``."""
        return self._err

    def _has_error(self) -> bool:
        return self._err is not None

    def _fail(self, err: ConfigKitError) -> "Builder":
        log.warning(f"configkit: {err} (further merges are skipped)")
        self._err = err
        return self

    # --- Sources ---
    def set(self, key: str, value: Any) -> "Builder":
        """Shorthand for ``merge_map({key: value})``."""
        if self._has_error():
            return self
        return self.merge_map({key: value}, _source="set")

    def merge_map(self, m: Mapping[str, Any],
                  _source: Union[str, Callable[[str], str]] = "map") -> "Builder":
        """Merge ``m`` into the accumulated values; later values win."""
        if self._has_error():
            return self

        self._values.merge(m)
        if self.provenance is not None:
            for k, v in m.items():
                self.provenance.record(k, str(v), _source(k) if callable(_source) else _source)
        log.debug(f"Merged {len(m)} key(s) from {_source if isinstance(_source, str) else 'map'}")
        return self

    def merge_file(self, filename: Union[str, os.PathLike]) -> "Builder":
        """Read a flat ``key=value`` file and merge it (see :meth:`merge_data`)."""
        if self._has_error():
            return self

        path = expand_path(filename)
        try:
            with open(path, mode="rb") as f:
                data = f.read()
        except OSError as e:
            err = SourceIOError(os.fspath(filename), e.strerror or e)
            err.__cause__ = e
            return self._fail(err)

        return self.merge_data(data, _source=f"file:{path}")

    def merge_data(self, data: Union[bytes, str], _source: str = "data") -> "Builder":
        """
        Parse flat ``key=value`` text and merge it.

        - Lines are stripped; blank lines and lines starting with ``#``
          are skipped.
        - Each line is split on its first ``=``; a line with an empty key
          is ignored.
        - A line without ``=`` yields the key with an empty value.
        """
        if self._has_error():
            return self

        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                err = SourceIOError(_source, e)
                err.__cause__ = e
                return self._fail(err)

        m: Dict[str, str] = {}
        for line in data.split("\n"):
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            key, _, value = line.partition("=")
            if not key:
                continue
            m[key] = value

        return self.merge_map(m, _source=_source)

    def merge_environ(self, prefix: str, environ: Optional[Environ] = None) -> "Builder":
        """
        Merge environment variables whose name starts with ``prefix``
        (literal, case-sensitive), with the prefix removed from the key.
        """
        if self._has_error():
            return self

        if environ is None:
            environ = self._environ() if callable(self._environ) else self._environ
        if environ is None:
            environ = os.environ

        if isinstance(environ, Mapping):
            entries = list(environ.items())
        else:
            entries = []
            for entry in environ:
                name, sep, value = entry.partition("=")
                entries.append((name, value if sep else ""))

        m: Dict[str, str] = {}
        for name, value in entries:
            if not name.startswith(prefix):
                continue
            key = name[len(prefix):]
            if not key:
                continue
            m[key] = value

        log.debug(f"Collected {len(m)} environment variable(s) with prefix '{prefix}'")
        return self.merge_map(m, _source=lambda key: f"env:{prefix}{key}")

    def merge_dotenv(self, filename: Union[str, os.PathLike]) -> "Builder":
        """Merge the variables of a ``.env`` file, parsed by python-dotenv."""
        if self._has_error():
            return self

        path = expand_path(filename)
        if not os.path.isfile(path):
            return self._fail(SourceIOError(os.fspath(filename), "no such file"))

        # ${...} is left for resolve_values, not expanded against os.environ
        parsed = dotenv_values(path, interpolate=False)
        values = {k: "" if v is None else v for k, v in parsed.items()}
        return self.merge_map(values, _source=f"dotenv:{path}")

    def merge_toml(self, filename: Union[str, os.PathLike]) -> "Builder":
        """Merge a TOML document; nested tables become ``__``-joined keys."""
        if self._has_error():
            return self

        path = expand_path(filename)
        try:
            with open(path, mode="rb") as f:
                document = tomli.load(f)
        except (OSError, tomli.TOMLDecodeError) as e:
            err = SourceIOError(os.fspath(filename), e)
            err.__cause__ = e
            return self._fail(err)

        return self.merge_map(flatten(document), _source=f"toml:{path}")

    def merge_json(self, filename: Union[str, os.PathLike]) -> "Builder":
        """Merge a JSON object; nested objects become ``__``-joined keys."""
        if self._has_error():
            return self

        path = expand_path(filename)
        try:
            with open(path, mode="r", encoding="utf-8") as f:
                document = json.load(f)
        except (OSError, ValueError) as e:
            err = SourceIOError(os.fspath(filename), e)
            err.__cause__ = e
            return self._fail(err)

        if not isinstance(document, dict):
            return self._fail(SourceIOError(os.fspath(filename), "top-level value must be an object"))
        return self.merge_map(flatten(document), _source=f"json:{path}")

    # --- Validator ---
    def with_validator(self, validator: StructValidator) -> "Builder":
        if self._has_error():
            return self

        self._validator = validator
        return self

    def map_validator(self, f: Callable[[StructValidator], Any]) -> "Builder":
        """Call ``f`` with this builder's validator, e.g. to register checks."""
        if self._has_error():
            return self

        f(self.validator())
        return self

    def validator(self) -> StructValidator:
        """Return the attached validator, creating the default one on first use."""
        if self._validator is None:
            self._validator = PydanticValidator()
        return self._validator

    # --- Results ---
    def values(self) -> Map:
        """
        Return a resolved copy of the explicitly supplied values, without
        any defaults from a target record.
        """
        if self._has_error():
            raise self._err
        return resolve_values(self._values.copy())

    def build(self, target: Any) -> None:
        """
        Populate ``target`` (a dataclass instance) in place.

        Raises:
            ShapeError: ``target`` is not a dataclass instance.
            SourceIOError: A source recorded earlier in the chain failed.
            MissingKeysError: Fields without default or explicit value.
            ResolutionError: Broken or cyclic ``${key}`` reference.
            ConversionError: A value does not parse as its field type.
            ValidationError: Raised by the validator, unchanged.
        """
        if not dataclasses.is_dataclass(target) or isinstance(target, type):
            raise ShapeError(target)

        if self._has_error():
            raise self._err

        values = Map()
        known: Dict[str, FieldRef] = {}

        def visit(ref: FieldRef) -> None:
            key = ref.key

            if ref.assignable:
                known[key] = ref

            if ref.settable and ref.default is not None:
                values.set(key, ref.default)

            defaults = ref.default_config()
            if defaults:
                values.merge(prefix_keys(defaults, key))

        walk_struct(target, visit)
        log.debug(f"Discovered {len(known)} field(s) and {len(values)} default(s) "
                  f"on {type(target).__name__}")

        values.merge(self._values)

        missing = [key for key in known if key not in values]
        if missing:
            raise MissingKeysError(missing)

        try:
            resolve_values(values)
        except ResolutionError as e:
            raise e.with_stage("resolve values")

        for key, ref in known.items():
            try:
                values.unmarshal(key, ref)
            except ConversionError as e:
                raise e.with_stage("unmarshal value")

        self.validator().validate(target)
        log.debug(f"Built {type(target).__name__} from {len(values)} value(s)")

    def must_build(self, target: Any) -> None:
        """
        Like :meth:`build`, but any failure aborts the process with
        ``SystemExit(1)``. Meant for start-up code that cannot continue
        without valid configuration.
        """
        try:
            self.build(target)
        except Exception as e:
            log.critical(f"Configuration of {type(target).__name__} failed: {e}")
            raise SystemExit(1) from e
