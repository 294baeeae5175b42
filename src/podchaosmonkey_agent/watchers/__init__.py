"""Watcher implementations used by the pod chaos monkey agent."""

from .pods import PodWatcher, create_pod_watcher  # noqa: F401

__all__ = ["PodWatcher", "create_pod_watcher"]
