"""Unit tests for the kindling CLI."""

from __future__ import annotations

import typing as typ

import pytest

from kindling import cli
from kindling.cli import app
from kindling.orchestration import Orchestrator
from kindling.runtime.client import Version
from kindling.telemetry import NullTelemetryClient
from tests.helpers.doubles import (
    FakeCluster,
    RecordingManagerFactory,
    RecordingReporter,
    StubProvider,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from kindling.config import Settings


def run_cli(args: list[str]) -> int:
    """Invoke the app and normalise its exit status."""
    try:
        exit_code = app(args)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    return exit_code if isinstance(exit_code, int) else 0


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep CLI runs from reconfiguring global logging."""
    monkeypatch.setattr(cli, "configure_logging", lambda level: ("INFO", False))


class TestCliStructure:
    """Tests for CLI structure and subcommands."""

    def test_app_has_name(self) -> None:
        """App should have the correct name."""
        # Cyclopts returns name as a tuple
        assert app.name == ("kindling",)

    def test_app_has_version(self) -> None:
        """App should report the package version."""
        assert app.version == "0.1.0"

    @pytest.mark.parametrize("command", ["install", "uninstall", "status", "logs"])
    def test_app_has_command(self, command: str) -> None:
        """App should expose each lifecycle subcommand."""
        command_names = [cmd.name for cmd in app._commands.values()]
        assert (command,) in command_names


class TestLogsCommand:
    """Tests for the logs subcommand."""

    def test_prints_classified_lines(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Structured lines show their level; plain lines show a dash."""
        log = tmp_path / "app.log"
        log.write_text(
            'banner\n{"level":"WARN","message":"disk nearly full"}\n', encoding="utf-8"
        )

        exit_code = run_cli(["logs", str(log)])

        out = capsys.readouterr().out.splitlines()
        assert exit_code == 0, "Expected success"
        assert out == ["-     banner", "WARN  disk nearly full"], "Expected both lines"

    def test_level_filter(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Only lines at the requested level are printed."""
        log = tmp_path / "app.log"
        log.write_text(
            '{"level":"INFO","message":"ready"}\n{"level":"WARN","message":"slow"}\n',
            encoding="utf-8",
        )

        run_cli(["logs", str(log), "--level", "warn"])

        assert capsys.readouterr().out.splitlines() == ["WARN  slow"], (
            "Expected only the WARN line"
        )

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing log file is a failure."""
        assert run_cli(["logs", str(tmp_path / "absent.log")]) == 1


class TestLifecycleCommands:
    """Tests for install, uninstall and status wiring."""

    @pytest.fixture
    def cluster(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> FakeCluster:
        """Route CLI commands to an orchestrator built on doubles."""
        cluster = FakeCluster(present=True)
        provider = StubProvider(
            cluster_handle=cluster, kubeconfig=tmp_path / "kube" / "kindling.kubeconfig"
        )

        def orchestrator(settings: Settings) -> Orchestrator:
            return Orchestrator(
                typ.cast("typ.Any", provider),
                settings,
                telemetry=NullTelemetryClient(),
                reporter=RecordingReporter(),
                runtime_check=lambda: Version("27.3.1", "amd64", "Docker Engine"),
                manager_factory=RecordingManagerFactory(),
            )

        monkeypatch.setattr(cli, "_orchestrator", orchestrator)
        return cluster

    def test_uninstall_succeeds(self, cluster: FakeCluster) -> None:
        """Uninstall deletes the cluster and exits 0."""
        assert run_cli(["uninstall"]) == 0, "Expected success"
        assert cluster.deleted, "Expected the cluster to be deleted"

    def test_uninstall_failure_exits_1(
        self, cluster: FakeCluster, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A deletion failure is reported and exits 1."""
        cluster.delete_fails = True

        assert run_cli(["uninstall"]) == 1, "Expected failure"
        assert "unable to uninstall cluster test-kindling" in capsys.readouterr().err

    def test_install_with_port(self, cluster: FakeCluster) -> None:
        """Install passes the requested port to cluster creation."""
        cluster.present = False

        assert run_cli(["install", "--port", "18123"]) == 0, "Expected success"
        assert cluster.created_ports == [18123], "Expected the requested port"

    @pytest.mark.usefixtures("cluster")
    def test_install_rejects_bad_port(self) -> None:
        """An out-of-range port fails before anything runs."""
        assert run_cli(["install", "--port", "80"]) == 1

    @pytest.mark.usefixtures("cluster")
    def test_invalid_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Invalid environment configuration exits 1."""
        monkeypatch.setenv("KINDLING_PORT", "not-a-port")

        assert run_cli(["uninstall"]) == 1

    def test_status_reports_cluster(
        self, cluster: FakeCluster, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Status prints the runtime and cluster state and exits 0 when healthy."""
        assert run_cli(["status"]) == 0, "Expected a healthy status"
        out = capsys.readouterr().out
        assert "Container runtime: 27.3.1 (Docker Engine, amd64)" in out
        assert f"Cluster '{cluster.name}': present" in out

    def test_status_absent_cluster_exits_1(self, cluster: FakeCluster) -> None:
        """A missing cluster makes status exit 1."""
        cluster.present = False

        assert run_cli(["status"]) == 1
