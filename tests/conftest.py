"""Shared fixtures for unit and feature tests.

The cmd-mox plugin is registered globally via pyproject.toml.
"""

from __future__ import annotations

import typing as typ

import pytest

from kindling.config import Settings
from kindling.k8s.provider import Provider
from kindling.k8s.provider import test_provider as make_test_provider
from tests.helpers.doubles import RecordingReporter, SubprocessRecorder

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def provider(tmp_path: Path) -> Provider:
    """Test profile whose kubeconfig lives under the test's tmp_path."""
    return make_test_provider(tmp_path)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings with a fixed ingress port and data dir under tmp_path."""
    return Settings(ingress_port=18080, data_dir=tmp_path / "data")


@pytest.fixture
def reporter() -> RecordingReporter:
    """Reporter that records progress messages."""
    return RecordingReporter()


@pytest.fixture
def tools_on_path(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend every CLI tool is installed."""
    monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> SubprocessRecorder:
    """Replace subprocess.run with a recorder."""
    recorder = SubprocessRecorder()
    monkeypatch.setattr("subprocess.run", recorder)
    return recorder
