"""Container runtime discovery and the narrow client it returns."""

from __future__ import annotations

from kindling.runtime.client import ContainerRuntime, RuntimeClient, Version
from kindling.runtime.connector import (
    candidate_hosts,
    connect,
    docker_client_factory,
    runtime_installed,
)

__all__ = [
    "ContainerRuntime",
    "RuntimeClient",
    "Version",
    "candidate_hosts",
    "connect",
    "docker_client_factory",
    "runtime_installed",
]
