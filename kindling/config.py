"""Environment-driven settings for install and uninstall runs.

Configuration is read once at startup by :meth:`Settings.from_env` and passed
explicitly to collaborators:

- ``KINDLING_LOG_LEVEL``: Log level (default ``INFO``)
- ``KINDLING_NAMESPACE``: Application namespace (default ``kindling``)
- ``KINDLING_RELEASE``: Helm release name (default ``kindling``)
- ``KINDLING_CHART``: Chart reference (default ``kindling/kindling``)
- ``KINDLING_CHART_REPO``: Chart repository URL
- ``KINDLING_CHART_VERSION``: Chart version (default: latest)
- ``KINDLING_PORT``: Host port for ingress (default: auto-selected)
- ``KINDLING_VALUES_FILE``: Extra Helm values file (optional)
"""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from pathlib import Path

from kindling import paths
from kindling.errors import ConfigError

# Non-privileged host ports only.
_MIN_PORT = 1024
_MAX_PORT = 65535


def parse_port(raw: str | None) -> int | None:
    """Parse an ingress port value, treating empty input as unset.

    Raises
    ------
    ConfigError
        If the value is not an integer in the range 1024-65535.

    """
    if raw is None or not raw.strip():
        return None
    try:
        port = int(raw)
    except ValueError as exc:
        raise ConfigError.invalid_port(raw) from exc
    if not _MIN_PORT <= port <= _MAX_PORT:
        raise ConfigError.invalid_port(raw)
    return port


@dataclasses.dataclass(frozen=True, slots=True)
class Settings:
    """Settings for the application deployed into the local cluster.

    Attributes:
        ingress_port: Host port mapped to the cluster ingress. When None, a
            free loopback port is picked at cluster creation time.
        data_dir: Host directory for persisted application data, removed by
            ``uninstall --persisted``.

    """

    log_level: str = "INFO"
    namespace: str = "kindling"
    release_name: str = "kindling"
    chart_name: str = "kindling/kindling"
    chart_repo_name: str = "kindling"
    chart_repo_url: str = "https://charts.kindling.dev"
    chart_version: str | None = None
    ingress_port: int | None = None
    values_file: Path | None = None
    data_dir: Path = dataclasses.field(default_factory=paths.data_dir)

    @classmethod
    def from_env(cls, environ: typ.Mapping[str, str] | None = None) -> Settings:
        """Build settings from ``KINDLING_*`` environment variables."""
        env = os.environ if environ is None else environ
        defaults = cls()
        values_file = env.get("KINDLING_VALUES_FILE")
        return cls(
            log_level=env.get("KINDLING_LOG_LEVEL", defaults.log_level),
            namespace=env.get("KINDLING_NAMESPACE", defaults.namespace),
            release_name=env.get("KINDLING_RELEASE", defaults.release_name),
            chart_name=env.get("KINDLING_CHART", defaults.chart_name),
            chart_repo_url=env.get("KINDLING_CHART_REPO", defaults.chart_repo_url),
            chart_version=env.get("KINDLING_CHART_VERSION") or None,
            ingress_port=parse_port(env.get("KINDLING_PORT")),
            values_file=Path(values_file) if values_file else None,
        )
