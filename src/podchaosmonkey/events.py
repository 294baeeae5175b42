"""Event primitives consumed by the pod store."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class PodUpsert:
    """A pod was added or modified and should be (re)cached."""

    pod: Any


@dataclass(frozen=True)
class PodDelete:
    """A pod stopped matching the watch and must be evicted.

    Deletions are keyed rather than carrying the object because the watch may
    only hand back a tombstone with enough metadata to build the key.
    """

    key: str


@dataclass(frozen=True)
class PodReplace:
    """Full list result replacing whatever the store currently holds."""

    pods: Sequence[Any]
    resource_version: str | None = None
