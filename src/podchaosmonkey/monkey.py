"""Random pod deletion cycle.

:class:`PodChaosMonkey` is driven by the agent's timer: each call to
:meth:`PodChaosMonkey.run_cycle` reads the cached keys, asks a selector for a
victim, re-resolves it against the cache and issues one delete call.  Pods
vanishing between any of those steps is normal churn and ends the cycle
quietly; only cache wiring defects and API failures are raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from kubernetes import client
from kubernetes.client.rest import ApiException

from .cache import PodStore
from .exceptions import CacheLookupError, CacheTypeError, PodDeletionError
from .selector import select_random

LOG = logging.getLogger(__name__)

Selector = Callable[[Sequence[str]], str]

DRY_RUN_ALL = "All"


@dataclass(frozen=True)
class DeletionRequest:
    """One intended pod removal, built and dropped within a single cycle."""

    key: str
    namespace: str
    name: str
    dry_run: bool = False

    def delete_options(self) -> client.V1DeleteOptions:
        options = client.V1DeleteOptions()
        if self.dry_run:
            options.dry_run = [DRY_RUN_ALL]
        return options


class PodChaosMonkey:
    """Delete one random running pod of ``namespace`` per cycle."""

    def __init__(
        self,
        api: client.CoreV1Api,
        store: PodStore,
        namespace: str,
        dry_run: bool = False,
    ) -> None:
        self._api = api
        self._store = store
        self._namespace = namespace
        self._dry_run = dry_run

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def run_cycle(self, selector: Selector = select_random) -> Optional[str]:
        """Run one selection and deletion cycle.

        Returns the key of the pod the API server accepted the delete for, or
        ``None`` when there was nothing to do.  Raises
        :class:`~podchaosmonkey.exceptions.ChaosMonkeyError` on failure; the
        caller is expected to log it and wait for the next tick.
        """

        keys = self._store.list_keys()
        if not keys:
            LOG.debug("no running pod found in namespace %s", self._namespace)
            return None

        key = selector(keys)
        pod = self._resolve(key)
        if pod is None:
            return None

        request = DeletionRequest(
            key=key,
            namespace=self._namespace,
            name=pod.metadata.name,
            dry_run=self._dry_run,
        )
        if self._delete(request):
            return key
        return None

    def _resolve(self, key: str) -> Optional[client.V1Pod]:
        try:
            obj, found = self._store.get_by_key(key)
        except ValueError as exc:
            raise CacheLookupError(key, str(exc)) from exc

        if not found:
            LOG.info("pod %s not found in cache, skipping deletion", key)
            return None

        LOG.debug("pod candidate %s found for deletion", key)

        # the store only ever holds pods unless it is wired to the wrong watch
        if not isinstance(obj, client.V1Pod):
            raise CacheTypeError(key, obj)
        return obj

    def _delete(self, request: DeletionRequest) -> bool:
        LOG.info(
            "deleting pod %s%s", request.key, " (dry run)" if request.dry_run else ""
        )
        try:
            self._api.delete_namespaced_pod(
                request.name,
                request.namespace,
                body=request.delete_options(),
            )
        except ApiException as exc:
            if exc.status == 404:
                LOG.info("pod candidate %s was already deleted", request.key)
                return False
            raise PodDeletionError(
                request.key, _describe(exc), status=exc.status
            ) from exc
        except Exception as exc:
            raise PodDeletionError(request.key, str(exc)) from exc

        if request.dry_run:
            LOG.info("pod %s deletion validated by the API server (dry run)", request.key)
        else:
            LOG.info("pod %s deleted", request.key)
        return True


def _describe(exc: ApiException) -> str:
    return f"({exc.status}) {exc.reason}"
