"""List-then-watch mirror of the running pods in a namespace."""

from __future__ import annotations

import logging
import time
from threading import Event, Thread
from typing import Any, Callable, Dict, Mapping, Optional

from kubernetes import client, watch
from kubernetes.client.rest import ApiException

from podchaosmonkey.cache import PodStore, pod_key
from podchaosmonkey.events import PodDelete, PodReplace, PodUpsert

from ..config import RESYNC_PERIOD_DEFAULT, RUNNING_PODS_FIELD_SELECTOR

LOG = logging.getLogger(__name__)

HTTP_GONE = 410


class PodWatcher(Thread):
    """Keep a :class:`PodStore` in sync with the API server.

    The watcher lists the matching pods once, replaces the store content with
    the result, then follows a watch from the list's resourceVersion.  The
    store is relisted every ``resync_period`` seconds and whenever the API
    server reports the resourceVersion as expired (``410 Gone``).
    """

    def __init__(
        self,
        api: client.CoreV1Api,
        store: PodStore,
        namespace: str,
        *,
        stop_event: Event,
        field_selector: str = RUNNING_PODS_FIELD_SELECTOR,
        label_selector: str = "",
        resync_period: float = RESYNC_PERIOD_DEFAULT,
        watch_timeout: float = 300.0,
        backoff: float = 5.0,
        watch_factory: Callable[[], Any] = watch.Watch,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(daemon=True, name=f"pod-watcher-{namespace}")
        self._api = api
        self._store = store
        self._namespace = namespace
        self._stop_event = stop_event
        self._field_selector = field_selector
        self._label_selector = label_selector
        self._resync_period = resync_period
        self._watch_timeout = watch_timeout
        self._backoff = backoff
        self._watch_factory = watch_factory
        self._clock = clock
        self._resource_version: Optional[str] = None
        self._last_list: Optional[float] = None
        self._watch: Any = None

    @property
    def resource_version(self) -> Optional[str]:
        return self._resource_version

    def run(self) -> None:
        LOG.info(
            "Starting pod watcher (namespace=%s, field_selector=%r, label_selector=%r)",
            self._namespace,
            self._field_selector,
            self._label_selector,
        )
        while not self._stop_event.is_set():
            try:
                if self._resource_version is None or self._resync_due():
                    self.relist()
                self.watch_once()
            except ApiException as exc:
                if exc.status == HTTP_GONE:
                    LOG.info("pod watch expired, relisting namespace %s", self._namespace)
                    self._resource_version = None
                    continue
                LOG.warning("pod watch failed: (%s) %s", exc.status, exc.reason)
                self._stop_event.wait(self._backoff)
            except Exception:  # pragma: no cover - logged below
                LOG.exception("pod watcher encountered an error")
                self._stop_event.wait(self._backoff)
        LOG.info("Stopping pod watcher")

    def stop(self) -> None:
        self._stop_event.set()
        current = self._watch
        if current is not None:
            current.stop()

    # ------------------------------------------------------------------
    # List / watch steps
    # ------------------------------------------------------------------
    def relist(self) -> Optional[str]:
        pods = self._api.list_namespaced_pod(self._namespace, **self._selectors())
        resource_version = pods.metadata.resource_version if pods.metadata else None
        self._store.handle(PodReplace(list(pods.items or []), resource_version))
        self._resource_version = resource_version
        self._last_list = self._clock()
        LOG.debug(
            "listed %d pods in namespace %s at resourceVersion %s",
            len(pods.items or []),
            self._namespace,
            resource_version,
        )
        return resource_version

    def watch_once(self) -> None:
        """Follow one bounded watch stream, applying events to the store."""

        stream_watch = self._watch_factory()
        self._watch = stream_watch
        try:
            for event in stream_watch.stream(
                self._api.list_namespaced_pod,
                self._namespace,
                resource_version=self._resource_version,
                timeout_seconds=int(self._watch_timeout),
                **self._selectors(),
            ):
                self.handle_event(event)
                if self._stop_event.is_set() or self._resync_due():
                    break
        finally:
            stream_watch.stop()
            self._watch = None

    def handle_event(self, event: Mapping[str, Any]) -> None:
        event_type = event.get("type")
        obj = event.get("object")

        if event_type == "ERROR":
            raw = event.get("raw_object") or {}
            code = raw.get("code") if isinstance(raw, Mapping) else None
            if code == HTTP_GONE:
                raise ApiException(status=HTTP_GONE, reason=raw.get("message"))
            LOG.warning("pod watch returned an error event: %s", raw)
            return

        metadata = getattr(obj, "metadata", None)
        if metadata is not None and metadata.resource_version:
            self._resource_version = metadata.resource_version

        if event_type in ("ADDED", "MODIFIED"):
            self._store.handle(PodUpsert(obj))
        elif event_type == "DELETED":
            self._store.handle(PodDelete(pod_key(obj)))
        elif event_type == "BOOKMARK":
            return
        else:
            LOG.debug("ignoring pod watch event of type %s", event_type)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _selectors(self) -> Dict[str, str]:
        selectors: Dict[str, str] = {}
        if self._field_selector:
            selectors["field_selector"] = self._field_selector
        if self._label_selector:
            selectors["label_selector"] = self._label_selector
        return selectors

    def _resync_due(self) -> bool:
        if self._last_list is None:
            return True
        return self._clock() - self._last_list >= self._resync_period


def create_pod_watcher(
    api: client.CoreV1Api,
    store: PodStore,
    agent_config,
    stop_event: Event,
) -> PodWatcher:
    return PodWatcher(
        api,
        store,
        agent_config.namespace,
        stop_event=stop_event,
        field_selector=agent_config.field_selector,
        label_selector=agent_config.label_selector,
        resync_period=agent_config.resync_period,
        watch_timeout=agent_config.watch_timeout,
    )
