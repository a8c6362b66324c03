"""Command-line interface for the local environment.

Usage:
    kindling install              # Create the cluster and install the app
    kindling uninstall            # Remove the app and delete the cluster
    kindling uninstall --persisted  # ...and remove persisted data
    kindling status               # Show runtime and cluster status
    kindling logs app.log         # Classify a captured log file

Environment variables are documented in :mod:`kindling.config`.
"""

from __future__ import annotations

import dataclasses
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter

from kindling import __version__
from kindling.config import Settings, parse_port
from kindling.errors import KindlingError
from kindling.k8s.provider import default_provider
from kindling.logging import configure_logging, get_logger, log_warning
from kindling.logscan import LogScanner
from kindling.orchestration import Orchestrator
from kindling.service.manager import InstallOptions

logger = get_logger(__name__)

app = App(
    name="kindling",
    help="Manage a local single-node Kubernetes environment",
    version=__version__,
)


def _load_settings() -> Settings | None:
    try:
        settings = Settings.from_env()
    except KindlingError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return None

    normalized, invalid = configure_logging(settings.log_level)
    if invalid:
        log_warning(
            logger,
            "Invalid KINDLING_LOG_LEVEL %r, falling back to %s",
            settings.log_level,
            normalized,
        )
    return settings


def _orchestrator(settings: Settings) -> Orchestrator:
    return Orchestrator(default_provider(), settings)


@app.command
def install(
    *,
    port: typ.Annotated[str | None, Parameter(env_var="KINDLING_PORT")] = None,
    chart_version: typ.Annotated[
        str | None, Parameter(env_var="KINDLING_CHART_VERSION")
    ] = None,
    values: Path | None = None,
) -> int:
    """Create the local cluster if needed and install the application.

    Args:
        port: Host port for ingress (auto-selected if not specified).
        chart_version: Chart version to install (default: latest).
        values: Extra Helm values file.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    settings = _load_settings()
    if settings is None:
        return 1
    try:
        settings = dataclasses.replace(settings, ingress_port=parse_port(port))
        _orchestrator(settings).install(
            InstallOptions(chart_version=chart_version, values_file=values)
        )
    except KindlingError as exc:
        print(f"Installation failed: {exc}", file=sys.stderr)
        return 1
    return 0


@app.command
def uninstall(*, persisted: bool = False) -> int:
    """Remove the application and delete the local cluster.

    Args:
        persisted: Also remove persisted data.

    Returns:
        Exit code (0 for success, 1 for failure).

    """
    settings = _load_settings()
    if settings is None:
        return 1
    try:
        _orchestrator(settings).uninstall(persisted=persisted)
    except KindlingError as exc:
        print(f"Uninstallation failed: {exc}", file=sys.stderr)
        return 1
    return 0


@app.command
def status() -> int:
    """Show container runtime and cluster status.

    Returns:
        Exit code (0 when the runtime answers and the cluster exists).

    """
    settings = _load_settings()
    if settings is None:
        return 1
    report = _orchestrator(settings).status()

    if report.runtime is None:
        print(f"Container runtime: unavailable ({report.runtime_error})")
    else:
        rt = report.runtime
        print(f"Container runtime: {rt.version} ({rt.platform}, {rt.arch})")
    state = "present" if report.cluster_exists else "absent"
    print(f"Cluster '{report.cluster_name}': {state}")
    print(f"Kubeconfig contexts: {', '.join(report.contexts) or '(none)'}")
    return 0 if report.healthy else 1


@app.command
def logs(path: Path | None = None, *, level: str | None = None) -> int:
    """Classify log output as structured or plain lines.

    Args:
        path: Log file to read (default: standard input).
        level: Only show lines with this level.

    Returns:
        Exit code (0 for success, 1 if the stream could not be read).

    """
    wanted = level.upper() if level else None
    if path is None:
        return _print_lines(LogScanner(sys.stdin), wanted)
    try:
        with path.open(encoding="utf-8") as stream:
            return _print_lines(LogScanner(stream), wanted)
    except OSError as exc:
        print(f"Unable to open {path}: {exc}", file=sys.stderr)
        return 1


def _print_lines(scanner: LogScanner, wanted: str | None) -> int:
    for line in scanner:
        if wanted is not None and line.level.upper() != wanted:
            continue
        print(f"{line.level or '-':<5} {line.message}")
    if scanner.err is not None:
        print(str(scanner.err), file=sys.stderr)
        return 1
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
