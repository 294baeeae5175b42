from __future__ import annotations

from typing import Callable, Dict, List, Optional, Tuple

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

NAMESPACE = "workloads"


def make_pod(name: str, namespace: str = NAMESPACE, resource_version: str = "1") -> client.V1Pod:
    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels={"key": "value"},
            resource_version=resource_version,
        ),
        status=client.V1PodStatus(phase="Running"),
    )


def make_pods(count: int, namespace: str = NAMESPACE) -> List[client.V1Pod]:
    return [make_pod(f"pod{i}", namespace) for i in range(count)]


class FakeCoreV1Api:
    """In-memory stand-in for the pod endpoints of ``CoreV1Api``."""

    def __init__(self, pods=()) -> None:
        self.pods: Dict[Tuple[str, str], client.V1Pod] = {
            (pod.metadata.namespace, pod.metadata.name): pod for pod in pods
        }
        self.delete_calls: List[Tuple[str, str, Optional[client.V1DeleteOptions]]] = []
        self.list_calls: List[Tuple[str, dict]] = []
        self.delete_error: Optional[Exception] = None
        self.resource_version = 100

    def read_namespaced_pod(self, name: str, namespace: str) -> client.V1Pod:
        try:
            return self.pods[(namespace, name)]
        except KeyError:
            raise ApiException(status=404, reason="Not Found") from None

    def delete_namespaced_pod(self, name: str, namespace: str, body=None, **kwargs):
        self.delete_calls.append((namespace, name, body))
        if self.delete_error is not None:
            raise self.delete_error
        if (namespace, name) not in self.pods:
            raise ApiException(status=404, reason="Not Found")
        if body is not None and body.dry_run:
            return self.pods[(namespace, name)]
        return self.pods.pop((namespace, name))

    def list_namespaced_pod(self, namespace: str, **kwargs) -> client.V1PodList:
        self.list_calls.append((namespace, kwargs))
        self.resource_version += 1
        items = [pod for (ns, _), pod in sorted(self.pods.items()) if ns == namespace]
        return client.V1PodList(
            items=items,
            metadata=client.V1ListMeta(resource_version=str(self.resource_version)),
        )


class FakeWatchFactory:
    """Hand out watches replaying one scripted stream per ``stream()`` call.

    Each script is either a list of events or an exception raised when the
    stream starts.  Once every script was consumed ``on_exhausted`` fires.
    """

    def __init__(self, *streams, on_exhausted: Optional[Callable[[], None]] = None) -> None:
        self.streams = list(streams)
        self.on_exhausted = on_exhausted
        self.stream_kwargs: List[dict] = []
        self.stopped = 0

    def __call__(self) -> "_FakeWatch":
        return _FakeWatch(self)


class _FakeWatch:
    def __init__(self, factory: FakeWatchFactory) -> None:
        self._factory = factory
        self._stopped = False

    def stream(self, func, *args, **kwargs):
        self._factory.stream_kwargs.append(kwargs)
        if not self._factory.streams:
            if self._factory.on_exhausted is not None:
                self._factory.on_exhausted()
            return
        script = self._factory.streams.pop(0)
        if isinstance(script, Exception):
            raise script
        for event in script:
            if self._stopped:
                return
            yield event

    def stop(self) -> None:
        self._stopped = True
        self._factory.stopped += 1


@pytest.fixture
def fake_api() -> FakeCoreV1Api:
    return FakeCoreV1Api()
