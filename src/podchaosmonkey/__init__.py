"""Random pod deletion for chaos testing a Kubernetes namespace.

The package is split in three small pieces so each one can be exercised in
isolation:

* :class:`podchaosmonkey.cache.PodStore` mirrors the running pods of a
  namespace.  It is fed by a list+watch subscription owned by the agent
  runtime and only ever read by the orchestrator;
* :mod:`podchaosmonkey.selector` picks the victim among the cached keys.  The
  strategy is injected so tests can swap randomness for a fixed choice; and
* :class:`podchaosmonkey.monkey.PodChaosMonkey` runs one selection and deletion
  cycle, absorbing the races where the victim disappears on its own.

Nothing here talks to the cluster except the single delete call issued by the
orchestrator, which keeps the unit tests free of a live API server.
"""

from .cache import PodStore, pod_key, split_key  # noqa: F401
from .exceptions import (  # noqa: F401
    CacheLookupError,
    CacheTypeError,
    ChaosMonkeyError,
    PodDeletionError,
)
from .monkey import DeletionRequest, PodChaosMonkey  # noqa: F401
from .selector import (  # noqa: F401
    FixedSelector,
    IndexSelector,
    RandomSelector,
    VictimSelector,
    select_random,
)

__all__ = [
    "CacheLookupError",
    "CacheTypeError",
    "ChaosMonkeyError",
    "DeletionRequest",
    "FixedSelector",
    "IndexSelector",
    "PodChaosMonkey",
    "PodDeletionError",
    "PodStore",
    "RandomSelector",
    "VictimSelector",
    "pod_key",
    "select_random",
    "split_key",
]
