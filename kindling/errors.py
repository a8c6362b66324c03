"""Error taxonomy for local environment lifecycle operations.

Fatal errors (runtime, cluster lookup, cluster creation and deletion) propagate
to the CLI. ``ApplicationTeardownError`` and ``ManagerInitError`` are raised
by the deployment layer but recovered by the uninstall sequence.
"""

from __future__ import annotations


class KindlingError(Exception):
    """Base exception for all kindling errors."""


class ConfigError(KindlingError):
    """Raised when environment configuration is invalid."""

    @classmethod
    def invalid_port(cls, raw: str) -> ConfigError:
        """Return an error for an unusable ``KINDLING_PORT`` value."""
        return cls(f"KINDLING_PORT must be an integer between 1024 and 65535, got {raw!r}")


class ExecutableNotFoundError(KindlingError):
    """Required CLI tool is not installed."""

    @classmethod
    def missing(cls, name: str) -> ExecutableNotFoundError:
        """Return an error for an executable absent from PATH."""
        return cls(f"Required executable '{name}' not found in PATH")


class RuntimeUnavailableError(KindlingError):
    """No container runtime endpoint could be reached.

    The last probe failure is attached as ``__cause__``.
    """

    @classmethod
    def exhausted(cls) -> RuntimeUnavailableError:
        """Return the error raised once every candidate endpoint failed."""
        return cls("unable to create container-runtime client")

    @classmethod
    def version_unknown(cls) -> RuntimeUnavailableError:
        """Return the error raised when the server version query fails."""
        return cls("unable to determine server version")


class ClusterLookupError(KindlingError):
    """The cluster handle for a provider could not be obtained."""

    @classmethod
    def for_cluster(cls, cluster_name: str, reason: object) -> ClusterLookupError:
        """Return an error naming the cluster that could not be resolved."""
        return cls(f"unable to determine if the cluster '{cluster_name}' exists: {reason}")


class ClusterCreationError(KindlingError):
    """The cluster could not be created."""

    @classmethod
    def for_cluster(cls, cluster_name: str, reason: object) -> ClusterCreationError:
        """Return an error naming the cluster that failed to start."""
        return cls(f"unable to create cluster '{cluster_name}': {reason}")


class ClusterDeletionError(KindlingError):
    """The cluster existed but could not be removed."""

    @classmethod
    def for_cluster(cls, cluster_name: str) -> ClusterDeletionError:
        """Return an error naming the cluster that could not be removed."""
        return cls(f"unable to uninstall cluster {cluster_name}")


class ManagerInitError(KindlingError):
    """The deployment manager could not be constructed."""


class ApplicationTeardownError(KindlingError):
    """Application-level uninstall failed while the cluster still existed."""


class DeploymentError(KindlingError):
    """Application-level install failed."""


class LogReadError(KindlingError):
    """The stream behind a log scanner failed to read."""
