import pytest
from kubernetes.client.rest import ApiException

from podchaosmonkey import (
    CacheLookupError,
    CacheTypeError,
    FixedSelector,
    IndexSelector,
    PodChaosMonkey,
    PodDeletionError,
    PodStore,
    select_random,
)
from podchaosmonkey.monkey import DeletionRequest

from conftest import NAMESPACE, FakeCoreV1Api, make_pods


def build_monkey(pod_count: int, dry_run: bool = False):
    pods = make_pods(pod_count)
    api = FakeCoreV1Api(pods)
    store = PodStore()
    for pod in pods:
        store.add(pod)
    return api, store, PodChaosMonkey(api, store, NAMESPACE, dry_run=dry_run)


def assert_not_found(api: FakeCoreV1Api, name: str) -> None:
    with pytest.raises(ApiException) as excinfo:
        api.read_namespaced_pod(name, NAMESPACE)
    assert excinfo.value.status == 404


def test_delete_random_pod():
    api, store, monkey = build_monkey(1)

    # one pod in the namespace and in the cache
    assert monkey.run_cycle(select_random) == "workloads/pod0"
    assert_not_found(api, "pod0")

    # pod already gone from the API server but still cached
    assert monkey.run_cycle(select_random) is None
    assert len(api.delete_calls) == 2

    # pod gone from both
    store.delete("workloads/pod0")
    assert monkey.run_cycle(select_random) is None
    assert len(api.delete_calls) == 2


def test_delete_random_pods():
    api, store, monkey = build_monkey(3)
    selector = FixedSelector("workloads/pod0")

    assert monkey.run_cycle(selector) == "workloads/pod0"
    assert_not_found(api, "pod0")
    assert api.read_namespaced_pod("pod1", NAMESPACE).metadata.name == "pod1"
    assert api.read_namespaced_pod("pod2", NAMESPACE).metadata.name == "pod2"

    # pod0 does not exist anymore but is still cached
    assert monkey.run_cycle(selector) is None

    # the selected key is not cached at all
    calls = len(api.delete_calls)
    assert monkey.run_cycle(FixedSelector("namespace/idontexist")) is None
    assert len(api.delete_calls) == calls

    store.delete("workloads/pod0")
    assert monkey.run_cycle(select_random) in ("workloads/pod1", "workloads/pod2")
    assert len(api.pods) == 1


def test_index_selector_only_deletes_chosen_pod():
    api, _, monkey = build_monkey(3)

    assert monkey.run_cycle(IndexSelector(0)) == "workloads/pod0"

    assert sorted(name for _, name in api.pods) == ["pod1", "pod2"]


def test_empty_cache_is_a_noop():
    api, _, monkey = build_monkey(0)

    assert monkey.run_cycle(select_random) is None
    assert api.delete_calls == []


def test_dry_run_keeps_pod():
    api, _, monkey = build_monkey(1, dry_run=True)

    assert monkey.run_cycle(select_random) == "workloads/pod0"

    assert api.read_namespaced_pod("pod0", NAMESPACE).metadata.name == "pod0"
    namespace, name, body = api.delete_calls[0]
    assert (namespace, name) == (NAMESPACE, "pod0")
    assert body.dry_run == ["All"]


def test_api_errors_are_raised_without_retry():
    api, _, monkey = build_monkey(1)
    api.delete_error = ApiException(status=403, reason="Forbidden")

    with pytest.raises(PodDeletionError) as excinfo:
        monkey.run_cycle(select_random)

    assert excinfo.value.status == 403
    assert excinfo.value.key == "workloads/pod0"
    assert isinstance(excinfo.value.__cause__, ApiException)
    assert len(api.delete_calls) == 1


def test_transport_errors_are_raised():
    api, _, monkey = build_monkey(1)
    api.delete_error = ConnectionError("connection refused")

    with pytest.raises(PodDeletionError) as excinfo:
        monkey.run_cycle(select_random)

    assert excinfo.value.status is None
    assert len(api.delete_calls) == 1


def test_malformed_key_is_a_lookup_error():
    api, _, monkey = build_monkey(1)

    with pytest.raises(CacheLookupError):
        monkey.run_cycle(FixedSelector("a/b/c"))

    assert api.delete_calls == []


def test_non_pod_object_is_a_type_error():
    api, store, monkey = build_monkey(1)
    store._items["workloads/bogus"] = {"kind": "Pod"}  # type: ignore[attr-defined]

    with pytest.raises(CacheTypeError):
        monkey.run_cycle(FixedSelector("workloads/bogus"))

    assert api.delete_calls == []


def test_deletion_request_options():
    assert DeletionRequest("ns/a", "ns", "a").delete_options().dry_run is None
    assert DeletionRequest("ns/a", "ns", "a", dry_run=True).delete_options().dry_run == ["All"]
