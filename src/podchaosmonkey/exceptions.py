"""Errors surfaced by a chaos cycle.

Races where the victim disappears are not errors and never show up here.
"""

from __future__ import annotations

from typing import Optional


class ChaosMonkeyError(Exception):
    """Base class for every failure of a single deletion cycle."""


class CacheLookupError(ChaosMonkeyError):
    """The pod store could not resolve a key."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"fetching pod {key!r} from cache failed: {reason}")
        self.key = key


class CacheTypeError(ChaosMonkeyError):
    """The store returned something that is not a pod."""

    def __init__(self, key: str, obj: object) -> None:
        super().__init__(
            f"unable to convert cached object for {key!r} to a pod: "
            f"got {type(obj).__name__}"
        )
        self.key = key


class PodDeletionError(ChaosMonkeyError):
    """The API server refused or failed the delete call."""

    def __init__(self, key: str, reason: str, status: Optional[int] = None) -> None:
        super().__init__(f"deleting pod {key!r} failed: {reason}")
        self.key = key
        self.status = status
