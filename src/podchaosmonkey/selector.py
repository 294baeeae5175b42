"""Victim selection strategies."""

from __future__ import annotations

import random
from abc import ABC, abstractmethod
from typing import Optional, Sequence


class VictimSelector(ABC):
    """Pick one key out of a non-empty snapshot of cached pod keys.

    Strategies are plain callables from the orchestrator's point of view, so a
    bare function with the same signature works just as well.
    """

    @abstractmethod
    def select(self, keys: Sequence[str]) -> str:
        """Return one element of ``keys``."""

    def __call__(self, keys: Sequence[str]) -> str:
        return self.select(keys)


class RandomSelector(VictimSelector):
    """Uniform choice over the snapshot.

    Victim selection is not a security boundary, a seeded
    :class:`random.Random` is fine and makes runs reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def select(self, keys: Sequence[str]) -> str:
        if not keys:
            raise ValueError("cannot select a victim from an empty key list")
        if len(keys) == 1:
            return keys[0]
        return keys[self._rng.randrange(len(keys))]


class FixedSelector(VictimSelector):
    """Always target the same key, whether or not it is in the snapshot."""

    def __init__(self, key: str) -> None:
        self._key = key

    def select(self, keys: Sequence[str]) -> str:
        return self._key


class IndexSelector(VictimSelector):
    """Target the key at ``index`` in sorted order."""

    def __init__(self, index: int = 0) -> None:
        self._index = index

    def select(self, keys: Sequence[str]) -> str:
        if not keys:
            raise ValueError("cannot select a victim from an empty key list")
        return sorted(keys)[self._index]


_DEFAULT = RandomSelector()


def select_random(keys: Sequence[str]) -> str:
    """Module level shortcut around a shared :class:`RandomSelector`."""

    return _DEFAULT.select(keys)
