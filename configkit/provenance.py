"""
configkit.provenance
--------------------

Optional tracking of where each explicitly supplied key came from.

Enabled with ``Builder(track_provenance=True)``. Every ingestion call
records a :class:`ProvenanceEntry` per key with a source label such as
``"set"``, ``"file:/etc/app.conf"`` or ``"env:APP_DATABASE__PORT"``, so
"why is this value X?" can be answered after a chain of merges.
Defaults declared on the target record are not tracked.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class ProvenanceEntry:
    """One write of a key by a source."""

    key: str
    value: str
    source: str

    def __repr__(self) -> str:
        return f"{self.key}={self.value!r} ← {self.source}"


@dataclass
class ProvenanceStore:
    """
    Ordered log of key writes, looked up case-insensitively like
    :class:`~configkit.mapping.Map`.
    """

    _writes: dict[str, list[ProvenanceEntry]] = field(default_factory=dict)

    def record(self, key: str, value: str, source: str) -> None:
        self._writes.setdefault(key.casefold(), []).append(
            ProvenanceEntry(key=key, value=value, source=source)
        )

    def get(self, key: str) -> ProvenanceEntry | None:
        """The write that currently wins for ``key``, or ``None``."""
        writes = self._writes.get(key.casefold())
        return writes[-1] if writes else None

    def get_history(self, key: str) -> list[ProvenanceEntry]:
        """Every write of ``key``, oldest first; the last one wins."""
        return list(self._writes.get(key.casefold(), []))

    def all_entries(self) -> dict[str, ProvenanceEntry]:
        """Winning entry per key, keyed by the spelling of that write."""
        return {writes[-1].key: writes[-1] for writes in self._writes.values()}

    def sources_summary(self) -> dict[str, int]:
        """Count winning keys per source kind (the label before ``:``)."""
        counts: dict[str, int] = {}
        for entry in self.all_entries().values():
            kind = entry.source.split(":", 1)[0]
            counts[kind] = counts.get(kind, 0) + 1
        return counts

    def explain(self, key: str) -> str:
        """Human readable override chain for ``key``."""
        history = self.get_history(key)
        if not history:
            return f"{key}: no explicit value"
        return "\n".join(repr(entry) for entry in history)
