"""kind cluster lifecycle operations.

This module wraps the kind CLI to check for, create and delete the single
local cluster a provider describes. Every call passes the provider's
kubeconfig explicitly so the user's default kubeconfig is never touched.

Examples
--------
Create the cluster if needed and remove it again:

    cluster = KindCluster("kindling", Path("~/.kindling/kindling.kubeconfig"))
    cluster.create(port=8000)
    if cluster.exists():
        cluster.delete()

Notes
-----
All kind subprocess calls have timeouts so a wedged runtime cannot hang
the CLI indefinitely.

"""

from __future__ import annotations

import io
import subprocess
import typing as typ

from ruamel.yaml import YAML

from kindling.errors import ClusterCreationError, ClusterDeletionError
from kindling.logging import get_logger, log_debug, log_info

if typ.TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)

# Default timeouts for kind subprocess operations (seconds).
_KIND_LIST_TIMEOUT = 60
_KIND_CREATE_TIMEOUT = 600
_KIND_DELETE_TIMEOUT = 300

_KIND_API_VERSION = "kind.x-k8s.io/v1alpha4"
_INGRESS_READY_PATCH = """\
kind: InitConfiguration
nodeRegistration:
  kubeletExtraArgs:
    node-labels: "ingress-ready=true"
"""


def kind_config_manifest(port: int) -> str:
    """Return a kind cluster config mapping ``127.0.0.1:port`` to ingress.

    The single control-plane node is labelled ``ingress-ready=true`` so an
    ingress controller can schedule onto it.
    """
    config = {
        "kind": "Cluster",
        "apiVersion": _KIND_API_VERSION,
        "nodes": [
            {
                "role": "control-plane",
                "kubeadmConfigPatches": [_INGRESS_READY_PATCH],
                "extraPortMappings": [
                    {
                        "containerPort": 80,
                        "hostPort": port,
                        "listenAddress": "127.0.0.1",
                        "protocol": "TCP",
                    }
                ],
            }
        ],
    }
    yaml_serializer = YAML(typ="safe")
    yaml_serializer.default_flow_style = False
    yaml_serializer.indent(mapping=2, sequence=4, offset=2)
    with io.StringIO() as stream:
        yaml_serializer.dump(config, stream)
        return stream.getvalue()


class KindCluster:
    """Handle on one named kind cluster.

    The handle holds no state beyond its name and kubeconfig path; existence
    is always read back from kind.
    """

    def __init__(self, name: str, kubeconfig: Path) -> None:
        """Bind the handle to a cluster name and kubeconfig file."""
        self.name = name
        self.kubeconfig = kubeconfig

    def __repr__(self) -> str:
        """Return a debug representation naming the cluster."""
        return f"KindCluster(name={self.name!r}, kubeconfig={str(self.kubeconfig)!r})"

    def exists(self, timeout: float = _KIND_LIST_TIMEOUT) -> bool:
        """Check whether the cluster exists.

        Returns
        -------
        bool
            True if kind lists the cluster. Any failure to ask kind (missing
            binary, non-zero exit, timeout) is reported as False.

        """
        try:
            result = subprocess.run(
                ["kind", "get", "clusters"],  # noqa: S607
                capture_output=True,
                text=True,
                check=True,
                timeout=timeout,
            )
        except (OSError, subprocess.CalledProcessError, subprocess.TimeoutExpired) as exc:
            log_debug(logger, "unable to list kind clusters: %s", exc)
            return False
        return self.name in result.stdout.split()

    def create(self, port: int, timeout: float = _KIND_CREATE_TIMEOUT) -> bool:
        """Create the cluster unless it already exists.

        Parameters
        ----------
        port : int
            Loopback host port mapped to the ingress controller.
        timeout : float, default 600
            Maximum time in seconds to wait for creation.

        Returns
        -------
        bool
            True if a new cluster was created, False if an existing one was
            reused.

        Raises
        ------
        ClusterCreationError
            If kind fails or times out.

        """
        if self.exists():
            log_info(logger, "cluster '%s' already exists, reusing", self.name)
            return False

        self.kubeconfig.parent.mkdir(parents=True, exist_ok=True)
        config_path = self.kubeconfig.parent / f"{self.name}.kind.yaml"
        config_path.write_text(kind_config_manifest(port), encoding="utf-8")

        try:
            subprocess.run(  # noqa: S603
                # kind is expected on PATH; shell=False mitigates injection
                [  # noqa: S607
                    "kind",
                    "create",
                    "cluster",
                    "--name",
                    self.name,
                    "--kubeconfig",
                    str(self.kubeconfig),
                    "--config",
                    str(config_path),
                ],
                check=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            msg = f"timed out after {timeout} seconds"
            raise ClusterCreationError.for_cluster(self.name, msg) from e
        except (OSError, subprocess.CalledProcessError) as e:
            raise ClusterCreationError.for_cluster(self.name, e) from e
        finally:
            config_path.unlink(missing_ok=True)
        return True

    def delete(self, timeout: float = _KIND_DELETE_TIMEOUT) -> None:
        """Delete the cluster and prune it from the kubeconfig.

        kind treats deleting an absent cluster as success.

        Raises
        ------
        ClusterDeletionError
            If kind fails or times out.

        """
        try:
            subprocess.run(  # noqa: S603
                # kind is expected on PATH; shell=False mitigates injection
                [  # noqa: S607
                    "kind",
                    "delete",
                    "cluster",
                    "--name",
                    self.name,
                    "--kubeconfig",
                    str(self.kubeconfig),
                ],
                check=True,
                timeout=timeout,
            )
        except (
            OSError,
            subprocess.CalledProcessError,
            subprocess.TimeoutExpired,
        ) as e:
            raise ClusterDeletionError.for_cluster(self.name) from e
