"""Container runtime endpoint discovery.

The connector builds an ordered list of candidate endpoint addresses and
probes them one at a time, returning the first that answers a ping:

1. The endpoint of the current ``docker context``, when the CLI reports one.
2. Platform defaults: the standard Unix socket plus the Docker Desktop socket
   on macOS and Linux, or the engine named pipe on Windows.

``DOCKER_HOST`` (and the other ``DOCKER_*`` client variables) take precedence
over whichever candidate is being probed.

Examples
--------
Connect and report the server version:

    runtime = connect()
    print(runtime.version())

Probe an explicit candidate list with a stub client factory:

    runtime = connect(hosts=["unix:///tmp/a.sock"], client_factory=make_stub)

"""

from __future__ import annotations

import subprocess
import sys
import typing as typ
from pathlib import Path

import docker
import msgspec
from docker.errors import DockerException

from kindling import paths
from kindling.errors import RuntimeUnavailableError
from kindling.logging import get_logger, log_debug
from kindling.runtime.client import ContainerRuntime, PingableClient, Version

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

PLATFORM_MAC = "darwin"
PLATFORM_WINDOWS = "win32"

DEFAULT_UNIX_SOCKET = "unix:///var/run/docker.sock"
WINDOWS_NAMED_PIPE = "npipe:////./pipe/docker_engine"

# Seconds allowed for ``docker context inspect`` and for each client call.
_CONTEXT_INSPECT_TIMEOUT = 10
_CLIENT_TIMEOUT = 30

ClientFactory = typ.Callable[[str], PingableClient]

_PROBE_ERRORS = (DockerException, OSError, ValueError)


class _DockerEndpoint(msgspec.Struct):
    host: str = msgspec.field(name="Host", default="")


class _ContextEndpoints(msgspec.Struct):
    docker: _DockerEndpoint = msgspec.field(default_factory=_DockerEndpoint)


class DockerContext(msgspec.Struct):
    """Subset of one ``docker context inspect`` entry."""

    endpoints: _ContextEndpoints = msgspec.field(
        name="Endpoints", default_factory=_ContextEndpoints
    )


def parse_context_host(payload: bytes | str) -> str | None:
    """Return the docker endpoint host from ``docker context inspect`` output.

    Returns ``None`` when the payload is not the expected JSON array or the
    first context has no docker endpoint.
    """
    try:
        contexts = msgspec.json.decode(payload, type=list[DockerContext])
    except msgspec.DecodeError:
        return None
    if not contexts:
        return None
    return contexts[0].endpoints.docker.host or None


def docker_context_host() -> str | None:
    """Ask the docker CLI for the current context's endpoint.

    Any failure (CLI missing, non-zero exit, timeout, unexpected output)
    yields ``None`` so discovery falls back to platform defaults.
    """
    try:
        result = subprocess.run(
            ["docker", "context", "inspect"],  # noqa: S607
            capture_output=True,
            check=True,
            timeout=_CONTEXT_INSPECT_TIMEOUT,
        )
    except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as exc:
        log_debug(logger, "docker context inspect failed: %s", exc)
        return None
    return parse_context_host(result.stdout)


def candidate_hosts(
    platform: str,
    home: Path,
    *,
    context_host: str | None = None,
) -> list[str]:
    """Return runtime endpoint candidates in probing order.

    Parameters
    ----------
    platform : str
        Platform name as reported by ``sys.platform``.
    home : Path
        The user's home directory, used for Docker Desktop socket paths.
    context_host : str | None, optional
        Endpoint reported by the current docker context; probed first.

    """
    hosts: list[str] = []
    if context_host:
        hosts.append(context_host)

    if platform == PLATFORM_MAC:
        hosts.extend(
            [DEFAULT_UNIX_SOCKET, f"unix://{home}/.docker/run/docker.sock"]
        )
    elif platform == PLATFORM_WINDOWS:
        hosts.append(WINDOWS_NAMED_PIPE)
    else:
        hosts.extend(
            [DEFAULT_UNIX_SOCKET, f"unix://{home}/.docker/desktop/docker-cli.sock"]
        )
    return hosts


def docker_client_factory(host: str) -> PingableClient:
    """Create a ``docker.DockerClient`` for ``host``.

    Settings from ``DOCKER_HOST``, ``DOCKER_TLS_VERIFY`` and
    ``DOCKER_CERT_PATH`` override the candidate address.
    """
    params: dict[str, typ.Any] = {
        "base_url": host,
        "version": "auto",
        "timeout": _CLIENT_TIMEOUT,
    }
    params.update(docker.utils.kwargs_from_env())
    return docker.DockerClient(**params)


def _create_and_ping(factory: ClientFactory, host: str) -> PingableClient:
    client = factory(host)
    try:
        if not client.ping():
            msg = f"runtime at {host} did not acknowledge ping"
            raise DockerException(msg)
    except _PROBE_ERRORS:
        client.close()
        raise
    return client


def connect(
    *,
    hosts: cabc.Sequence[str] | None = None,
    client_factory: ClientFactory | None = None,
    platform: str | None = None,
) -> ContainerRuntime:
    """Connect to the first reachable container runtime endpoint.

    Parameters
    ----------
    hosts : Sequence[str] | None, optional
        Explicit candidate list. When omitted, candidates are discovered
        from the docker context and platform defaults.
    client_factory : ClientFactory | None, optional
        Builds a client for one address. Defaults to
        :func:`docker_client_factory`.
    platform : str | None, optional
        Platform used for default candidates; defaults to ``sys.platform``.

    Raises
    ------
    RuntimeUnavailableError
        If no candidate could be reached. The last probe failure is chained
        as the cause.

    """
    factory = client_factory or docker_client_factory
    if hosts is None:
        hosts = candidate_hosts(
            platform or sys.platform,
            paths.user_home(),
            context_host=docker_context_host(),
        )

    last_error: BaseException | None = None
    for host in hosts:
        try:
            client = _create_and_ping(factory, host)
        except _PROBE_ERRORS as exc:
            log_debug(logger, "error connecting to runtime host %s: %s", host, exc)
            last_error = exc
            continue
        log_debug(logger, "connected to runtime host %s", host)
        return ContainerRuntime(client, host=host)

    raise RuntimeUnavailableError.exhausted() from last_error


def runtime_installed(connector: typ.Callable[[], ContainerRuntime] = connect) -> Version:
    """Confirm a runtime is reachable and return its version.

    The connection is closed before returning.
    """
    runtime = connector()
    try:
        return runtime.version()
    finally:
        runtime.close()
