"""Application-level install and uninstall inside the local cluster.

The manager drives helm and kubectl against one provider's kubeconfig and
context. Cluster creation and deletion are not its concern; the orchestrator
handles those around it.

Examples
--------
Uninstall the application and its persisted data:

    manager = Manager.from_provider(provider, settings)
    manager.uninstall(UninstallOptions(persisted=True))

"""

from __future__ import annotations

import dataclasses
import os
import shutil
import subprocess
import typing as typ

from kindling.errors import (
    ApplicationTeardownError,
    DeploymentError,
    KindlingError,
    ManagerInitError,
)
from kindling.logging import get_logger, log_info
from kindling.telemetry import NullTelemetryClient
from kindling.validation import require_exe

if typ.TYPE_CHECKING:
    from pathlib import Path

    from kindling.config import Settings
    from kindling.k8s.provider import Provider
    from kindling.telemetry import TelemetryClient
    from kindling.ui import ProgressReporter

logger = get_logger(__name__)

# Timeouts for helm and kubectl operations (seconds).
_HELM_REPO_TIMEOUT = 60
_HELM_INSTALL_TIMEOUT = 900
_HELM_UNINSTALL_TIMEOUT = 300
_KUBECTL_TIMEOUT = 120

_REQUIRED_TOOLS = ("helm", "kubectl")


@dataclasses.dataclass(frozen=True, slots=True)
class InstallOptions:
    """Options for :meth:`Manager.install`."""

    chart_version: str | None = None
    values_file: Path | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class UninstallOptions:
    """Options for :meth:`Manager.uninstall`.

    Attributes:
        persisted: Also delete persistent volume claims and the host data
            directory.

    """

    persisted: bool = False


class Manager:
    """Deployment manager bound to one provider."""

    def __init__(
        self,
        provider: Provider,
        settings: Settings,
        *,
        telemetry: TelemetryClient | None = None,
        reporter: ProgressReporter | None = None,
    ) -> None:
        """Bind the manager without validating the environment.

        Use :meth:`from_provider` to validate tools and kubeconfig first.
        """
        self.provider = provider
        self.settings = settings
        self.telemetry = telemetry or NullTelemetryClient()
        self.reporter = reporter

    @classmethod
    def from_provider(
        cls,
        provider: Provider,
        settings: Settings,
        *,
        telemetry: TelemetryClient | None = None,
        reporter: ProgressReporter | None = None,
    ) -> Manager:
        """Validate the environment and return a manager.

        Raises
        ------
        ManagerInitError
            If helm or kubectl is missing, or the provider kubeconfig does
            not exist.

        """
        try:
            for exe in _REQUIRED_TOOLS:
                require_exe(exe)
        except KindlingError as exc:
            raise ManagerInitError(str(exc)) from exc

        if not provider.kubeconfig.is_file():
            msg = f"kubeconfig not found at {provider.kubeconfig}"
            raise ManagerInitError(msg)

        return cls(provider, settings, telemetry=telemetry, reporter=reporter)

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["KUBECONFIG"] = str(self.provider.kubeconfig)
        return env

    def _status(self, text: str) -> None:
        if self.reporter is not None:
            self.reporter.update(text)

    def _run(
        self,
        args: list[str],
        *,
        timeout: float,
        error: type[KindlingError],
        what: str,
    ) -> subprocess.CompletedProcess[str]:
        try:
            # helm/kubectl via PATH is standard; args come from Settings
            return subprocess.run(  # noqa: S603
                args,
                capture_output=True,
                text=True,
                check=True,
                env=self._env(),
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            msg = f"{what} timed out after {timeout} seconds"
            raise error(msg) from e
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or str(e)
            msg = f"{what} failed: {detail}"
            raise error(msg) from e
        except OSError as e:
            msg = f"{what} failed: {e}"
            raise error(msg) from e

    def _helm(self, *args: str) -> list[str]:
        return ["helm", *args, "--kube-context", self.provider.context]

    def _kubectl(self, *args: str) -> list[str]:
        return ["kubectl", *args, "--context", self.provider.context]

    def install(self, opts: InstallOptions | None = None) -> None:
        """Install or upgrade the application chart.

        Raises
        ------
        DeploymentError
            If any helm or kubectl step fails.

        """
        opts = opts or InstallOptions()
        cfg = self.settings
        with self.telemetry.span("helm install") as span:
            span.set_attribute("release", cfg.release_name)

            self._status(f"Adding chart repository '{cfg.chart_repo_name}'")
            self._run(
                self._helm(
                    "repo", "add", "--force-update", cfg.chart_repo_name, cfg.chart_repo_url
                ),
                timeout=_HELM_REPO_TIMEOUT,
                error=DeploymentError,
                what=f"helm repo add '{cfg.chart_repo_name}'",
            )
            self._run(
                self._helm("repo", "update", cfg.chart_repo_name),
                timeout=_HELM_REPO_TIMEOUT,
                error=DeploymentError,
                what="helm repo update",
            )

            self._status(f"Installing '{cfg.chart_name}' into namespace '{cfg.namespace}'")
            cmd = self._helm(
                "upgrade",
                "--install",
                cfg.release_name,
                cfg.chart_name,
                "--namespace",
                cfg.namespace,
                "--create-namespace",
                "--wait",
                "--timeout",
                f"{_HELM_INSTALL_TIMEOUT}s",
            )
            version = opts.chart_version or cfg.chart_version
            if version:
                cmd.extend(["--version", version])
            values_file = opts.values_file or cfg.values_file
            if values_file is not None:
                if not values_file.is_file():
                    msg = f"values file not found at {values_file}"
                    raise DeploymentError(msg)
                cmd.extend(["--values", str(values_file)])
            self._run(
                cmd,
                timeout=_HELM_INSTALL_TIMEOUT + 30,
                error=DeploymentError,
                what=f"helm install of '{cfg.chart_name}'",
            )
        log_info(logger, "installed release %s in %s", cfg.release_name, cfg.namespace)

    def uninstall(self, opts: UninstallOptions | None = None) -> None:
        """Remove the application release and, optionally, persisted data.

        Raises
        ------
        ApplicationTeardownError
            If the release, volume claims or data directory cannot be removed.

        """
        opts = opts or UninstallOptions()
        cfg = self.settings
        with self.telemetry.span("helm uninstall") as span:
            span.set_attribute("persisted", opts.persisted)

            self._status(f"Uninstalling release '{cfg.release_name}'")
            self._run(
                self._helm(
                    "uninstall",
                    cfg.release_name,
                    "--namespace",
                    cfg.namespace,
                    "--ignore-not-found",
                    "--wait",
                ),
                timeout=_HELM_UNINSTALL_TIMEOUT,
                error=ApplicationTeardownError,
                what=f"helm uninstall of '{cfg.release_name}'",
            )

            if opts.persisted:
                self._remove_persisted_data()
        log_info(
            logger,
            "uninstalled release %s (persisted=%s)",
            cfg.release_name,
            opts.persisted,
        )

    def _remove_persisted_data(self) -> None:
        cfg = self.settings
        self._status("Removing persisted data")
        self._run(
            self._kubectl(
                "delete",
                "pvc",
                "--all",
                "--namespace",
                cfg.namespace,
                "--ignore-not-found",
                "--wait=true",
            ),
            timeout=_KUBECTL_TIMEOUT,
            error=ApplicationTeardownError,
            what=f"deleting volume claims in '{cfg.namespace}'",
        )
        try:
            shutil.rmtree(cfg.data_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            msg = f"unable to remove data directory {cfg.data_dir}: {e}"
            raise ApplicationTeardownError(msg) from e
