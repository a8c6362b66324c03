"""Install and uninstall sequences for the local environment.

Each sequence is a strictly ordered list of steps. Every step ends in a
:class:`StepResult`; the outcome decides whether the sequence continues:

==========================  ==========================  ======================
Step                        On failure                  Error raised
==========================  ==========================  ======================
runtime check               abort                       RuntimeUnavailableError
cluster lookup              abort                       ClusterLookupError
cluster create (install)    abort                       ClusterCreationError
manager init (uninstall)    recover, skip app teardown  (none)
app uninstall               recover, continue           (none)
cluster delete              abort                       ClusterDeletionError
manager init (install)      abort                       ManagerInitError
app install                 abort                       DeploymentError
==========================  ==========================  ======================

An absent cluster ends the uninstall sequence successfully.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import typing as typ

from kindling.errors import (
    ApplicationTeardownError,
    ClusterDeletionError,
    ClusterLookupError,
    KindlingError,
    ManagerInitError,
    RuntimeUnavailableError,
)
from kindling.k8s.kubeconfig import kubeconfig_contexts
from kindling.logging import get_logger, log_error, log_info, log_warning
from kindling.runtime.connector import runtime_installed
from kindling.service.manager import InstallOptions, Manager, UninstallOptions
from kindling.telemetry import LoggingTelemetryClient, Operation
from kindling.ui import ConsoleReporter
from kindling.validation import pick_free_loopback_port

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from kindling.config import Settings
    from kindling.k8s.provider import Cluster, Provider
    from kindling.runtime.client import Version
    from kindling.telemetry import TelemetryClient
    from kindling.ui import ProgressReporter

logger = get_logger(__name__)


def _call_wrapped(func: cabc.Callable[[], None], wrap: type[KindlingError]) -> None:
    """Run ``func``, re-raising foreign exceptions as ``wrap``."""
    try:
        func()
    except KindlingError:
        raise
    except Exception as exc:
        msg = str(exc) or type(exc).__name__
        raise wrap(msg) from exc


class Step(enum.StrEnum):
    """Steps of the lifecycle sequences."""

    RUNTIME_CHECK = "runtime_check"
    CLUSTER_LOOKUP = "cluster_lookup"
    CLUSTER_EXISTS = "cluster_exists"
    CLUSTER_CREATE = "cluster_create"
    MANAGER_INIT = "manager_init"
    APP_INSTALL = "app_install"
    APP_UNINSTALL = "app_uninstall"
    CLUSTER_DELETE = "cluster_delete"


class StepOutcome(enum.StrEnum):
    """How a step ended.

    ``RECOVERED`` marks a failure the sequence tolerated and continued past.
    """

    OK = "ok"
    SKIPPED = "skipped"
    RECOVERED = "recovered"


@dataclasses.dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one step, with the tolerated error if any."""

    step: Step
    outcome: StepOutcome
    error: KindlingError | None = None


@dataclasses.dataclass(slots=True)
class LifecycleReport:
    """Ordered step results for one install or uninstall run."""

    cluster_name: str
    steps: list[StepResult] = dataclasses.field(default_factory=list)
    cluster_existed: bool | None = None
    ingress_port: int | None = None

    def record(
        self, step: Step, outcome: StepOutcome, error: KindlingError | None = None
    ) -> StepResult:
        """Append a step result and return it."""
        result = StepResult(step, outcome, error)
        self.steps.append(result)
        return result

    def outcome_of(self, step: Step) -> StepOutcome | None:
        """Return the outcome recorded for ``step``, or None if it never ran."""
        return next((r.outcome for r in self.steps if r.step is step), None)

    @property
    def recovered(self) -> list[StepResult]:
        """Step results whose failures were tolerated."""
        return [r for r in self.steps if r.outcome is StepOutcome.RECOVERED]


@dataclasses.dataclass(frozen=True, slots=True)
class StatusReport:
    """Snapshot of the runtime and cluster for the ``status`` command."""

    cluster_name: str
    runtime: Version | None
    runtime_error: str | None
    cluster_exists: bool
    contexts: tuple[str, ...]

    @property
    def healthy(self) -> bool:
        """True when the runtime answers and the cluster exists."""
        return self.runtime is not None and self.cluster_exists


class ApplicationManager(typ.Protocol):
    """Deployment manager capabilities used by the orchestrator."""

    def install(self, opts: InstallOptions | None = None) -> None: ...

    def uninstall(self, opts: UninstallOptions | None = None) -> None: ...


ManagerFactory = typ.Callable[["Provider"], ApplicationManager]
RuntimeCheck = typ.Callable[[], "Version"]


class Orchestrator:
    """Sequence lifecycle steps for one provider.

    All collaborators are injected; defaults talk to the real runtime,
    kind, helm and stdout.
    """

    def __init__(  # noqa: PLR0913
        self,
        provider: Provider,
        settings: Settings,
        *,
        telemetry: TelemetryClient | None = None,
        reporter: ProgressReporter | None = None,
        runtime_check: RuntimeCheck = runtime_installed,
        manager_factory: ManagerFactory | None = None,
    ) -> None:
        """Bind the orchestrator to a provider and its collaborators."""
        self.provider = provider
        self.settings = settings
        self.telemetry = telemetry or LoggingTelemetryClient()
        self.reporter = reporter or ConsoleReporter()
        self.runtime_check = runtime_check
        self.manager_factory = manager_factory or functools.partial(
            Manager.from_provider,
            settings=settings,
            telemetry=self.telemetry,
            reporter=self.reporter,
        )

    def _check_runtime(self, report: LifecycleReport) -> Version:
        self.reporter.update("Checking for Docker installation")
        try:
            version = self.runtime_check()
        except RuntimeUnavailableError as exc:
            self.reporter.error("Unable to determine if Docker is installed")
            log_error(logger, "container runtime unavailable: %s", exc)
            raise
        report.record(Step.RUNTIME_CHECK, StepOutcome.OK)
        log_info(
            logger,
            "container runtime %s (%s/%s) reachable",
            version.version,
            version.platform,
            version.arch,
        )
        return version

    def _lookup_cluster(self, report: LifecycleReport) -> Cluster:
        name = self.provider.cluster_name
        self.reporter.update(f"Checking for existing Kubernetes cluster '{name}'")
        try:
            cluster = self.provider.cluster()
        except ClusterLookupError as exc:
            self.reporter.error(f"Unable to determine if the cluster '{name}' exists")
            log_error(logger, "cluster lookup failed for %s: %s", name, exc)
            raise
        report.record(Step.CLUSTER_LOOKUP, StepOutcome.OK)
        return cluster

    def _recoverable(
        self,
        report: LifecycleReport,
        step: Step,
        func: cabc.Callable[[], None],
        wrap: type[KindlingError],
    ) -> StepResult:
        try:
            _call_wrapped(func, wrap)
        except KindlingError as exc:
            return report.record(step, StepOutcome.RECOVERED, exc)
        return report.record(step, StepOutcome.OK)

    def uninstall(self, *, persisted: bool = False) -> LifecycleReport:
        """Tear down the application and delete the cluster.

        Application teardown is best effort: if the deployment manager cannot
        be built or its uninstall fails, the failure is logged and the
        cluster is deleted anyway.

        Parameters
        ----------
        persisted : bool, default False
            Also remove persisted application data.

        Returns
        -------
        LifecycleReport
            Step results, including any tolerated failures.

        Raises
        ------
        RuntimeUnavailableError
            If no container runtime is reachable. Nothing else is touched.
        ClusterLookupError
            If the cluster handle cannot be obtained.
        ClusterDeletionError
            If the cluster exists but cannot be removed.

        """
        name = self.provider.cluster_name
        report = LifecycleReport(cluster_name=name)
        self.reporter.update("Starting uninstallation")
        self._check_runtime(report)

        with self.telemetry.span(Operation.UNINSTALL) as span:
            span.set_attribute("persisted", persisted)

            cluster = self._lookup_cluster(report)
            report.cluster_existed = cluster.exists()
            report.record(Step.CLUSTER_EXISTS, StepOutcome.OK)
            if not report.cluster_existed:
                self.reporter.success(
                    f"Cluster '{name}' does not exist\nNo additional action required"
                )
                return report

            self.reporter.success(f"Existing cluster '{name}' found")
            self._teardown_application(report, persisted=persisted)
            self._delete_cluster(report, cluster)

        self.reporter.success("Uninstallation complete")
        return report

    def _teardown_application(self, report: LifecycleReport, *, persisted: bool) -> None:
        managers: list[ApplicationManager] = []
        init = self._recoverable(
            report,
            Step.MANAGER_INIT,
            lambda: managers.append(self.manager_factory(self.provider)),
            ManagerInitError,
        )
        if init.outcome is StepOutcome.RECOVERED:
            self.reporter.warning(
                "Failed to initialize deployment manager\n"
                "Uninstallation attempt will continue"
            )
            log_warning(logger, "deployment manager init failed: %s", init.error)
            report.record(Step.APP_UNINSTALL, StepOutcome.SKIPPED)
            return

        manager = managers[0]
        teardown = self._recoverable(
            report,
            Step.APP_UNINSTALL,
            lambda: manager.uninstall(UninstallOptions(persisted=persisted)),
            ApplicationTeardownError,
        )
        if teardown.outcome is StepOutcome.RECOVERED:
            self.reporter.warning(f"unable to complete uninstall: {teardown.error}")
            self.reporter.warning("will still attempt to uninstall the cluster")
            log_warning(logger, "application uninstall failed: %s", teardown.error)

    def _delete_cluster(self, report: LifecycleReport, cluster: Cluster) -> None:
        name = self.provider.cluster_name
        self.reporter.update(f"Verifying uninstallation status of cluster '{name}'")
        try:
            cluster.delete()
        except KindlingError as exc:
            self.reporter.error(f"Uninstallation of cluster '{name}' failed")
            log_error(logger, "cluster deletion failed for %s: %s", name, exc)
            raise ClusterDeletionError.for_cluster(name) from exc
        report.record(Step.CLUSTER_DELETE, StepOutcome.OK)
        self.reporter.success(f"Uninstallation of cluster '{name}' completed successfully")

    def install(self, opts: InstallOptions | None = None) -> LifecycleReport:
        """Create the cluster if needed and install the application.

        Every step is fatal on failure; the exception from the failing step
        propagates.
        """
        name = self.provider.cluster_name
        report = LifecycleReport(cluster_name=name)
        self.reporter.update("Starting installation")
        self._check_runtime(report)

        with self.telemetry.span(Operation.INSTALL) as span:
            cluster = self._lookup_cluster(report)
            report.cluster_existed = cluster.exists()
            report.record(Step.CLUSTER_EXISTS, StepOutcome.OK)
            span.set_attribute("cluster_existed", report.cluster_existed)

            if report.cluster_existed:
                self.reporter.success(f"Existing cluster '{name}' found")
                report.record(Step.CLUSTER_CREATE, StepOutcome.SKIPPED)
            else:
                port = self.settings.ingress_port or pick_free_loopback_port()
                report.ingress_port = port
                self.reporter.update(f"Creating cluster '{name}' on port {port}")
                cluster.create(port)
                report.record(Step.CLUSTER_CREATE, StepOutcome.OK)
                self.reporter.success(f"Cluster '{name}' created")

            manager = self.manager_factory(self.provider)
            report.record(Step.MANAGER_INIT, StepOutcome.OK)
            manager.install(opts)
            report.record(Step.APP_INSTALL, StepOutcome.OK)

        if report.ingress_port is not None:
            self.reporter.info(f"Available at http://127.0.0.1:{report.ingress_port}/")
        self.reporter.success("Installation complete")
        return report

    def status(self) -> StatusReport:
        """Report runtime reachability, cluster existence and contexts."""
        with self.telemetry.span(Operation.STATUS):
            runtime: Version | None = None
            runtime_error: str | None = None
            try:
                runtime = self.runtime_check()
            except RuntimeUnavailableError as exc:
                runtime_error = str(exc)

            exists = False
            if runtime is not None:
                try:
                    exists = self.provider.cluster().exists()
                except ClusterLookupError as exc:
                    log_warning(logger, "cluster lookup failed: %s", exc)

        return StatusReport(
            cluster_name=self.provider.cluster_name,
            runtime=runtime,
            runtime_error=runtime_error,
            cluster_exists=exists,
            contexts=tuple(kubeconfig_contexts(self.provider.kubeconfig)),
        )
