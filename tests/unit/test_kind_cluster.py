"""Unit tests for kind cluster operations."""

from __future__ import annotations

import subprocess
import typing as typ

import pytest
from ruamel.yaml import YAML

from kindling.errors import ClusterCreationError, ClusterDeletionError
from kindling.k8s.cluster import KindCluster, kind_config_manifest
from tests.helpers.doubles import SubprocessRecorder

if typ.TYPE_CHECKING:
    from pathlib import Path

    from cmd_mox import CmdMox


@pytest.fixture
def cluster(tmp_path: Path) -> KindCluster:
    """Handle on the test cluster with a kubeconfig under tmp_path."""
    return KindCluster("test-kindling", tmp_path / "kube" / "kindling.kubeconfig")


class TestExists:
    """Tests for KindCluster.exists using cmd-mox."""

    def test_returns_true_when_cluster_listed(
        self, cmd_mox: CmdMox, cluster: KindCluster
    ) -> None:
        """Should return True when kind lists the cluster."""
        cmd_mox.mock("kind").with_args("get", "clusters").returns(
            exit_code=0,
            stdout="kind\ntest-kindling\n",
        )

        assert cluster.exists() is True

    def test_returns_false_when_only_other_clusters(
        self, cmd_mox: CmdMox, cluster: KindCluster
    ) -> None:
        """Should not match cluster names by prefix."""
        cmd_mox.mock("kind").with_args("get", "clusters").returns(
            exit_code=0,
            stdout="test-kindling-2\n",
        )

        assert cluster.exists() is False

    def test_returns_false_when_kind_fails(
        self, cmd_mox: CmdMox, cluster: KindCluster
    ) -> None:
        """A failing kind invocation is reported as absent."""
        cmd_mox.mock("kind").with_args("get", "clusters").returns(
            exit_code=1
        )

        assert cluster.exists() is False

    def test_returns_false_when_kind_missing(
        self, monkeypatch: pytest.MonkeyPatch, cluster: KindCluster
    ) -> None:
        """A missing kind binary is reported as absent."""

        def missing(*args: object, **kwargs: object) -> None:
            raise FileNotFoundError(2, "No such file or directory", "kind")

        monkeypatch.setattr(subprocess, "run", missing)

        assert cluster.exists() is False


class TestCreate:
    """Tests for KindCluster.create."""

    def test_creates_cluster_with_port_mapping(
        self, monkeypatch: pytest.MonkeyPatch, cluster: KindCluster
    ) -> None:
        """A new cluster is created with the generated config, which is then removed."""
        config_path = cluster.kubeconfig.parent / "test-kindling.kind.yaml"
        recorder = SubprocessRecorder()
        manifests: list[str] = []

        def run(args: list[str], **kwargs: object) -> subprocess.CompletedProcess[str]:
            if args[:3] == ["kind", "create", "cluster"]:
                manifests.append(config_path.read_text(encoding="utf-8"))
            return recorder(args, **kwargs)

        monkeypatch.setattr(subprocess, "run", run)

        created = cluster.create(port=18080)

        assert created is True, "Expected a new cluster"
        assert recorder.calls[-1] == (
            "kind",
            "create",
            "cluster",
            "--name",
            "test-kindling",
            "--kubeconfig",
            str(cluster.kubeconfig),
            "--config",
            str(config_path),
        ), "Expected kind create with explicit kubeconfig and config"
        assert "hostPort: 18080" in manifests[0], "Expected the ingress port mapping"
        assert not config_path.exists(), "Expected the config file to be removed"

    def test_existing_cluster_is_reused(
        self, fake_run: SubprocessRecorder, cluster: KindCluster
    ) -> None:
        """An existing cluster is not recreated."""
        fake_run.respond(("kind", "get", "clusters"), stdout="test-kindling\n")

        assert cluster.create(port=18080) is False, "Expected reuse"
        assert not fake_run.called(("kind", "create")), "Expected no create call"

    def test_failure_raises_creation_error(
        self, fake_run: SubprocessRecorder, cluster: KindCluster
    ) -> None:
        """A failing kind create raises ClusterCreationError."""
        fake_run.respond(("kind", "create", "cluster"), returncode=1)

        with pytest.raises(ClusterCreationError, match="test-kindling"):
            cluster.create(port=18080)
        assert not (cluster.kubeconfig.parent / "test-kindling.kind.yaml").exists(), (
            "Expected the config file to be removed after failure"
        )


class TestDelete:
    """Tests for KindCluster.delete using cmd-mox."""

    def test_invokes_kind_delete(self, cmd_mox: CmdMox, cluster: KindCluster) -> None:
        """Should delete the named cluster against its own kubeconfig."""
        cmd_mox.mock("kind").with_args(
            "delete",
            "cluster",
            "--name",
            "test-kindling",
            "--kubeconfig",
            str(cluster.kubeconfig),
        ).returns(exit_code=0)

        cluster.delete()

    def test_failure_raises_deletion_error(
        self, cmd_mox: CmdMox, cluster: KindCluster
    ) -> None:
        """A failing kind delete raises ClusterDeletionError."""
        cmd_mox.mock("kind").with_args(
            "delete",
            "cluster",
            "--name",
            "test-kindling",
            "--kubeconfig",
            str(cluster.kubeconfig),
        ).returns(exit_code=1)

        with pytest.raises(
            ClusterDeletionError, match="unable to uninstall cluster test-kindling"
        ):
            cluster.delete()


def test_kind_config_manifest_maps_ingress() -> None:
    """The manifest has one ingress-ready control-plane node on loopback."""
    document = YAML(typ="safe").load(kind_config_manifest(18080))

    (node,) = document["nodes"]
    assert document["kind"] == "Cluster", "Expected a kind Cluster document"
    assert node["role"] == "control-plane", "Expected a single control plane"
    assert "ingress-ready=true" in node["kubeadmConfigPatches"][0], (
        "Expected the ingress-ready node label"
    )
    assert node["extraPortMappings"] == [
        {
            "containerPort": 80,
            "hostPort": 18080,
            "listenAddress": "127.0.0.1",
            "protocol": "TCP",
        }
    ], "Expected port 80 mapped to the loopback host port"
