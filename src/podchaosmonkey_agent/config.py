"""YAML configuration loader for the pod chaos monkey agent."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

NAMESPACE_DEFAULT = "workloads"
DELETION_INTERVAL_DEFAULT = 3600.0
RESYNC_PERIOD_DEFAULT = 24 * 3600.0
RUNNING_PODS_FIELD_SELECTOR = "status.phase=Running"

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


class ConfigurationError(ValueError):
    """Raised when the agent cannot be configured; fatal at startup."""


def parse_duration(value: Any) -> float:
    """Convert ``value`` into seconds.

    Numbers are taken as seconds.  Strings follow Go's ``time.Duration``
    syntax (``1h``, ``30m``, ``1h30m``, ``500ms``) so flags carried over from
    existing deployments keep working.  The result must be positive.
    """

    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip()
        try:
            seconds = float(text)
        except ValueError:
            seconds = _parse_duration_string(text)
    if seconds <= 0:
        raise ConfigurationError(f"duration must be positive, got {value!r}")
    return seconds


def _parse_duration_string(text: str) -> float:
    pos = 0
    total = 0.0
    while pos < len(text):
        match = _DURATION_PART.match(text, pos)
        if match is None:
            raise ConfigurationError(f"invalid duration {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos == 0:
        raise ConfigurationError(f"invalid duration {text!r}")
    return total


@dataclass(frozen=True)
class AgentConfig:
    namespace: str = NAMESPACE_DEFAULT
    deletion_interval: float = DELETION_INTERVAL_DEFAULT
    dry_run: bool = False
    kubeconfig: Optional[Path] = None
    label_selector: str = ""
    field_selector: str = RUNNING_PODS_FIELD_SELECTOR
    resync_period: float = RESYNC_PERIOD_DEFAULT
    watch_timeout: float = 300.0
    sync_timeout: float = 60.0

    def with_overrides(self, **overrides: Any) -> "AgentConfig":
        """Return a copy with every non-``None`` override applied."""

        changes = {k: v for k, v in overrides.items() if v is not None}
        if not changes:
            return self
        return _validated(replace(self, **changes))


_DURATION_FIELDS = ("deletion_interval", "resync_period", "watch_timeout", "sync_timeout")


def _validated(config: AgentConfig) -> AgentConfig:
    if not config.namespace:
        raise ConfigurationError("namespace must not be empty")
    changes: Dict[str, Any] = {
        name: parse_duration(getattr(config, name)) for name in _DURATION_FIELDS
    }
    if config.kubeconfig is not None and not isinstance(config.kubeconfig, Path):
        changes["kubeconfig"] = Path(config.kubeconfig) if config.kubeconfig else None
    return replace(config, **changes)


def default_kubeconfig() -> Optional[Path]:
    """Honour ``$KUBECONFIG``; ``None`` means in-cluster configuration."""

    value = os.environ.get("KUBECONFIG", "")
    return Path(value) if value else None


def _parse_section(data: Dict[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(AgentConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"unknown configuration keys: {', '.join(unknown)}")

    parsed: Dict[str, Any] = {}
    if "namespace" in data:
        parsed["namespace"] = str(data["namespace"])
    if "dry_run" in data:
        parsed["dry_run"] = bool(data["dry_run"])
    if data.get("kubeconfig"):
        parsed["kubeconfig"] = Path(data["kubeconfig"])
    for name in ("label_selector", "field_selector"):
        if name in data:
            parsed[name] = str(data[name] or "")
    for name in _DURATION_FIELDS:
        if name in data:
            parsed[name] = parse_duration(data[name])
    return parsed


def load_config(path: Optional[Path] = None) -> AgentConfig:
    """Load the agent configuration from ``path``, or defaults if omitted."""

    base = AgentConfig(kubeconfig=default_kubeconfig())
    if path is None:
        return _validated(base)

    data = yaml.safe_load(Path(path).read_text())
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError("Agent configuration must be a mapping")

    return _validated(replace(base, **_parse_section(data)))
