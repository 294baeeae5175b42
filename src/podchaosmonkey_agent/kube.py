"""Kubernetes API client bootstrap."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from kubernetes import client, config
from kubernetes.config.config_exception import ConfigException

from .config import ConfigurationError

LOG = logging.getLogger(__name__)


def new_core_api(kubeconfig: Optional[Path] = None) -> client.CoreV1Api:
    """Build a ``CoreV1Api`` from ``kubeconfig`` or the in-cluster service account."""

    try:
        if kubeconfig is not None:
            config.load_kube_config(config_file=str(kubeconfig))
            LOG.debug("loaded kubeconfig from %s", kubeconfig)
        else:
            config.load_incluster_config()
            LOG.debug("loaded in-cluster configuration")
    except (ConfigException, OSError) as exc:
        source = kubeconfig if kubeconfig is not None else "in-cluster"
        raise ConfigurationError(
            f"error loading Kubernetes configuration ({source}): {exc}"
        ) from exc

    return client.CoreV1Api()
