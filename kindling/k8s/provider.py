"""Named cluster profiles.

A :class:`Provider` is an immutable description of one local cluster: its
name, kubeconfig context and kubeconfig file. Two canonical profiles exist:

- :func:`default_provider`: the operator's real cluster, with its kubeconfig
  under ``KINDLING_HOME``.
- :func:`test_provider`: a throwaway cluster whose kubeconfig lives in a
  fresh temporary directory, so test runs never collide with or rewrite the
  operator's kubeconfig.

Build the profile once at startup and pass it to collaborators.
"""

from __future__ import annotations

import dataclasses
import enum
import tempfile
import typing as typ
from pathlib import Path

from kindling import paths
from kindling.errors import ClusterLookupError
from kindling.k8s.cluster import KindCluster

DEFAULT_CLUSTER_NAME = "kindling"
TEST_CLUSTER_NAME = "test-kindling"


class ProviderKind(enum.StrEnum):
    """Kinds of cluster profile."""

    KIND = "kind"
    TEST = "test"


@typ.runtime_checkable
class Cluster(typ.Protocol):
    """Capabilities of a live cluster handle."""

    name: str

    def exists(self) -> bool: ...

    def create(self, port: int) -> bool: ...

    def delete(self) -> None: ...


@dataclasses.dataclass(frozen=True, slots=True)
class Provider:
    """Configuration for one local cluster.

    Attributes:
        name: Profile kind.
        cluster_name: Name of the kind cluster.
        context: Kubeconfig context kind writes for the cluster.
        kubeconfig: Kubeconfig file the cluster entry is written to.

    """

    name: ProviderKind
    cluster_name: str
    context: str
    kubeconfig: Path

    def cluster(self) -> Cluster:
        """Return a handle on this profile's cluster.

        The handle attaches to an existing cluster rather than creating a
        second one. The kubeconfig directory is created if missing.

        Raises
        ------
        ClusterLookupError
            If the kubeconfig directory cannot be created.

        """
        try:
            self.kubeconfig.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ClusterLookupError.for_cluster(self.cluster_name, exc) from exc
        return KindCluster(self.cluster_name, self.kubeconfig)


def default_provider() -> Provider:
    """Return the operator's default cluster profile."""
    return Provider(
        name=ProviderKind.KIND,
        cluster_name=DEFAULT_CLUSTER_NAME,
        context=f"kind-{DEFAULT_CLUSTER_NAME}",
        kubeconfig=paths.kubeconfig(),
    )


def test_provider(base_dir: Path | None = None) -> Provider:
    """Return the isolated test cluster profile.

    Parameters
    ----------
    base_dir : Path | None, optional
        Directory to hold the kubeconfig directory. A fresh temporary
        directory is created when omitted; the caller owns it and removes
        it (``provider.kubeconfig.parent.parent``) when done.

    """
    root = base_dir if base_dir is not None else Path(tempfile.mkdtemp(prefix="kindling-"))
    return Provider(
        name=ProviderKind.TEST,
        cluster_name=TEST_CLUSTER_NAME,
        context=TEST_CLUSTER_NAME,
        kubeconfig=root / "kube" / paths.FILE_KUBECONFIG,
    )
