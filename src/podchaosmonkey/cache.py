"""Thread-safe local mirror of the running pods in a namespace."""

from __future__ import annotations

import logging
from threading import Event, Lock
from typing import Any, Dict, Iterable, List, Tuple

from .events import PodDelete, PodReplace, PodUpsert

LOG = logging.getLogger(__name__)


def pod_key(pod: Any) -> str:
    """Return the ``<namespace>/<name>`` key for ``pod``."""

    metadata = pod.metadata
    if metadata is None or not metadata.name:
        raise ValueError("pod has no name, unable to build a cache key")
    if metadata.namespace:
        return f"{metadata.namespace}/{metadata.name}"
    return metadata.name


def split_key(key: str) -> Tuple[str, str]:
    """Split a cache key into ``(namespace, name)``.

    Keys without a namespace part yield an empty namespace.
    """

    parts = key.split("/")
    if len(parts) == 1 and parts[0]:
        return "", parts[0]
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    raise ValueError(f"unexpected key format: {key!r}")


class PodStore:
    """Keyed pod mirror written by a watcher and read by the orchestrator.

    Readers only get snapshots: :meth:`list_keys` copies the keys under the
    lock so the caller may iterate while the watcher keeps mutating the store.
    """

    def __init__(self) -> None:
        self._items: Dict[str, Any] = {}
        self._lock = Lock()
        self._synced = Event()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    def list_keys(self) -> List[str]:
        with self._lock:
            return list(self._items)

    def get_by_key(self, key: str) -> Tuple[Any, bool]:
        """Return ``(obj, found)`` for ``key`` without touching the API."""

        split_key(key)
        with self._lock:
            if key in self._items:
                return self._items[key], True
        return None, False

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def has_synced(self) -> bool:
        return self._synced.is_set()

    def wait_for_sync(self, timeout: float | None = None) -> bool:
        """Block until the first full list landed in the store."""

        return self._synced.wait(timeout)

    # ------------------------------------------------------------------
    # Write side, only used by the watcher
    # ------------------------------------------------------------------
    def handle(self, event: PodUpsert | PodDelete | PodReplace) -> None:
        if isinstance(event, PodUpsert):
            self.add(event.pod)
        elif isinstance(event, PodDelete):
            self.delete(event.key)
        elif isinstance(event, PodReplace):
            self.replace(event.pods)
        else:
            raise TypeError(f"Unsupported event type: {type(event)!r}")

    def add(self, pod: Any) -> str:
        key = pod_key(pod)
        with self._lock:
            self._items[key] = pod
        LOG.debug("pod %s cached", key)
        return key

    def delete(self, key: str) -> None:
        with self._lock:
            removed = self._items.pop(key, None)
        if removed is not None:
            LOG.debug("pod %s evicted from cache", key)

    def replace(self, pods: Iterable[Any]) -> None:
        fresh = {pod_key(pod): pod for pod in pods}
        with self._lock:
            stale = set(self._items) - set(fresh)
            self._items = fresh
        if stale:
            LOG.debug("relist dropped %d stale pods: %s", len(stale), sorted(stale))
        LOG.debug("cache replaced with %d pods", len(fresh))
        self._synced.set()
