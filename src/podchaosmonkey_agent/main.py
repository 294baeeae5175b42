"""Entry point for the pod chaos monkey agent."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
from pathlib import Path
from threading import Event

import yaml

from podchaosmonkey import ChaosMonkeyError, PodChaosMonkey, PodStore, RandomSelector
from podchaosmonkey.monkey import Selector

from .config import ConfigurationError, load_config
from .kube import new_core_api
from .watchers import create_pod_watcher

LOG = logging.getLogger(__name__)

DEBUG_VERBOSITY = 3


def log_level_from_verbosity(verbosity: int) -> int:
    """Map a klog style ``-v`` value onto a :mod:`logging` level."""

    if verbosity < 0:
        raise ValueError(f"invalid log level: {verbosity}")
    if verbosity >= DEBUG_VERBOSITY:
        return logging.DEBUG
    return logging.INFO


def _setup_logging(level: int) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Randomly delete one running pod of a namespace on a fixed interval"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Optional YAML configuration file; flags override its values",
    )
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="The path to the kubeconfig, defaults to $KUBECONFIG then in-cluster config",
    )
    parser.add_argument("--namespace", default=None, help="Namespace to watch")
    parser.add_argument(
        "--deletion-interval",
        default=None,
        help="Interval between two pod deletions, e.g. 1h, 30m or 90s",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=None,
        help="Send deletions in dry-run mode; pods are validated but not deleted",
    )
    parser.add_argument(
        "--label-selector",
        default=None,
        help="Only consider pods matching this label selector",
    )
    parser.add_argument(
        "-v",
        "--verbosity",
        type=int,
        default=0,
        help="Log verbosity, 3 and above enables debug logging",
    )
    return parser


def run_forever(
    monkey: PodChaosMonkey,
    selector: Selector,
    interval: float,
    stop_event: Event,
) -> int:
    """Run one cycle every ``interval`` seconds until ``stop_event`` is set.

    Cycle failures are logged and never stop the loop.  Returns the number of
    cycles that ran.
    """

    cycles = 0
    while not stop_event.wait(interval):
        cycles += 1
        try:
            monkey.run_cycle(selector)
        except ChaosMonkeyError as exc:
            LOG.error("an error occurred during pod deletion: %s", exc)
        except Exception:  # pragma: no cover - logged below
            LOG.exception("unexpected error during pod deletion cycle")
    LOG.info("termination signal received, closing podchaosmonkey gracefully")
    return cycles


def _wait_for_sync(store: PodStore, stop_event: Event, timeout: float) -> bool:
    waited = 0.0
    while not stop_event.is_set() and waited < timeout:
        if store.wait_for_sync(min(1.0, timeout - waited)):
            return True
        waited += 1.0
    return store.has_synced


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        level = log_level_from_verbosity(args.verbosity)
    except ValueError as exc:
        parser.error(str(exc))
    _setup_logging(level)

    try:
        config = load_config(args.config).with_overrides(
            kubeconfig=args.kubeconfig,
            namespace=args.namespace,
            deletion_interval=args.deletion_interval,
            dry_run=args.dry_run,
            label_selector=args.label_selector,
        )
        api = new_core_api(config.kubeconfig)
    except (ConfigurationError, OSError, yaml.YAMLError) as exc:
        LOG.error("unable to start podchaosmonkey: %s", exc)
        return 1

    LOG.info(
        "podchaosmonkey started (namespace=%s, deletion_interval=%ss, dry_run=%s)",
        config.namespace,
        config.deletion_interval,
        config.dry_run,
    )

    stop_event = Event()

    def _shutdown(signum, frame):  # pragma: no cover - signal handler
        LOG.info("received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    store = PodStore()
    watcher = create_pod_watcher(api, store, config, stop_event)
    watcher.start()

    if not _wait_for_sync(store, stop_event, config.sync_timeout):
        LOG.warning(
            "pod cache not synced after %ss, cycles may find no candidates",
            config.sync_timeout,
        )

    monkey = PodChaosMonkey(api, store, config.namespace, dry_run=config.dry_run)
    try:
        run_forever(monkey, RandomSelector(), config.deletion_interval, stop_event)
    except KeyboardInterrupt:  # pragma: no cover - fallback if signal not set
        stop_event.set()

    watcher.stop()
    watcher.join(timeout=5.0)

    LOG.info("podchaosmonkey stopped")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
