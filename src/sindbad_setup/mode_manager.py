"""
Environment mode manager.

Switches the tutorials environment between development mode (local git
checkouts registered with Pkg.develop) and registry mode. Every
per-dependency operation is isolated: failures are recorded in the
SetupReport and processing continues with the next dependency.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple

from .cli_config import SetupSettings
from .dependency import (
    DISTINGUISHED_DEPENDENCY,
    INTERNAL_SUBCOMPONENTS,
    NESTED_DEV_DEPENDENCIES,
    DependencySpec,
    EnvironmentMode,
    dependency_names,
    get_dependency,
    get_distinguished_dependency,
    list_dependencies,
)
from .error_handling import (
    CommandError,
    ErrorCategory,
    get_error_handler,
    log_command_error,
    sanitize_message,
)
from .package_manager import PackageManager
from .prompts import ConfirmationProvider, interactive_confirm
from .reporting import SetupReporter
from .structured_logging import log_dependency_operation
from .vcs import GitClient


class StepStatus(Enum):
    """Outcome of one setup operation."""

    OK = "ok"
    SKIPPED = "skipped"
    INFO = "info"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """A single reported operation on a dependency."""

    dependency: str
    operation: str
    status: StepStatus
    message: str


@dataclass
class SetupReport:
    """Accumulated outcome of a setup run."""

    mode: EnvironmentMode
    steps: List[StepResult] = field(default_factory=list)

    @property
    def failures(self) -> List[StepResult]:
        return [step for step in self.steps if step.status == StepStatus.FAILED]

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)

    def for_dependency(self, name: str) -> List[StepResult]:
        return [step for step in self.steps if step.dependency == name]

    def operations(self, operation: str) -> List[StepResult]:
        return [step for step in self.steps if step.operation == operation]


class ModeManager:
    """Drives the development and registry flows against the registry."""

    def __init__(
        self,
        settings: SetupSettings,
        package_manager: PackageManager,
        git: Optional[GitClient] = None,
        confirm: ConfirmationProvider = interactive_confirm,
        reporter: Optional[SetupReporter] = None,
    ):
        """
        Args:
            settings: Loaded settings (source overrides, executables)
            package_manager: Package manager whose active context is the
                tutorials project
            git: Git client, built from settings when omitted
            confirm: Asked before pulling into an existing clean checkout
            reporter: Console commentary
        """
        self.settings = settings
        self.package_manager = package_manager
        self.git = git or GitClient(settings.git.executable, settings.git.timeout_seconds)
        self.confirm = confirm
        self.reporter = reporter or SetupReporter()
        self.project_dir = package_manager.active.path
        self.error_handler = get_error_handler()

    def dev_path(self, spec: DependencySpec) -> Path:
        """Checkout location of a dependency inside the project."""
        return self.project_dir / spec.local_path

    def _record(
        self,
        report: SetupReport,
        dependency: str,
        operation: str,
        status: StepStatus,
        message: str,
    ) -> StepResult:
        step = StepResult(dependency, operation, status, message)
        report.steps.append(step)
        self.reporter.print_step(step)
        log_dependency_operation(dependency, operation, status.value)
        return step

    def run(self, mode: EnvironmentMode) -> SetupReport:
        """Run the flow for `mode`, then instantiate the environment."""
        if mode == EnvironmentMode.DEVELOPMENT:
            report = self.enable_dev_mode()
        else:
            report = self.enable_run_mode()
        self.instantiate(report)
        return report

    # Development flow

    def enable_dev_mode(self) -> SetupReport:
        report = SetupReport(EnvironmentMode.DEVELOPMENT)
        self.reporter.print_intro("Enabling DEV mode for Sindbad ecosystem packages...")

        # All checkouts must exist before any develop call looks at siblings
        self.reporter.print_banner("STEP 1: Cloning packages...")
        for spec in list_dependencies():
            self.materialize_checkout(spec, report)

        self.reporter.print_banner("STEP 2: Developing packages...")
        for spec in list_dependencies():
            self.register_dev_dependency(spec, report)

        self.setup_nested_dev_dependencies(report)
        return report

    def materialize_checkout(self, spec: DependencySpec, report: SetupReport) -> None:
        """Clone a missing checkout, or offer to update an existing clean one."""
        self.reporter.print_dependency(spec.name)
        path = self.dev_path(spec)

        if path.is_dir():
            self._update_checkout(spec, path, report)
            return

        git_url = self.settings.git_url_for(spec)
        if git_url is None:
            self._record(
                report, spec.name, "clone", StepStatus.SKIPPED,
                "No git URL configured, skipping clone",
            )
            return

        self.reporter.print_note(f"🔄 Cloning from {sanitize_message(git_url)}...")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self.error_handler.error(
                ErrorCategory.FILESYSTEM,
                "Could not create checkout directory",
                "mode_manager",
                "materialize_checkout",
                exception=e,
                details={"path": str(path.parent)},
            )
            self._record(
                report, spec.name, "clone", StepStatus.FAILED,
                f"Error creating {path.parent}: {e}",
            )
            return

        try:
            self.git.clone(git_url, path)
        except CommandError as e:
            log_command_error(
                ErrorCategory.VERSION_CONTROL, "Clone failed", "mode_manager",
                "materialize_checkout", e, spec.name,
            )
            self._record(report, spec.name, "clone", StepStatus.FAILED, f"Error cloning: {e}")
            return

        self._record(report, spec.name, "clone", StepStatus.OK, "Successfully cloned")

    def _update_checkout(self, spec: DependencySpec, path: Path, report: SetupReport) -> None:
        rel_path = spec.local_path
        self.reporter.print_note(f"⚠️  Already cloned at `{rel_path}`", style="yellow")

        try:
            status = self.git.status_porcelain(path)
        except CommandError as e:
            log_command_error(
                ErrorCategory.VERSION_CONTROL, "git status failed", "mode_manager",
                "_update_checkout", e, spec.name,
            )
            self._record(
                report, spec.name, "status", StepStatus.FAILED,
                f"Error checking git status: {e}",
            )
            return

        if status.strip():
            self._record(
                report, spec.name, "status", StepStatus.SKIPPED,
                f"Uncommitted changes detected in {rel_path}. "
                "Please commit or stash them before updating.",
            )
            return

        if not self.confirm(f"Do you want to update (git pull) {rel_path}?"):
            self._record(
                report, spec.name, "pull", StepStatus.INFO,
                f"Skipping update for {rel_path}.",
            )
            return

        try:
            self.git.pull(path)
        except CommandError as e:
            log_command_error(
                ErrorCategory.VERSION_CONTROL, "git pull failed", "mode_manager",
                "_update_checkout", e, spec.name,
            )
            self._record(report, spec.name, "pull", StepStatus.FAILED, f"Error pulling updates: {e}")
            return

        self._record(report, spec.name, "pull", StepStatus.OK, f"Updated {rel_path} from remote.")

    def register_dev_dependency(self, spec: DependencySpec, report: SetupReport) -> None:
        """Develop an existing checkout into the active project."""
        path = self.dev_path(spec)
        if not path.is_dir():
            self._record(
                report, spec.name, "develop", StepStatus.SKIPPED,
                f"path does not exist at `{spec.local_path}`, skipping",
            )
            return

        self.reporter.print_dependency(f"{spec.name}: developing from `{spec.local_path}`...")
        try:
            self.package_manager.develop(self.package_manager.active, path.resolve())
        except CommandError as e:
            log_command_error(
                ErrorCategory.PACKAGE_MANAGER, "Pkg.develop failed", "mode_manager",
                "register_dev_dependency", e, spec.name,
            )
            self._record(report, spec.name, "develop", StepStatus.FAILED, f"Error: {e}")
            return

        self._record(report, spec.name, "develop", StepStatus.OK, "Successfully developed")

    def nested_dev_paths(self) -> List[Tuple[str, Path]]:
        """Paths developed inside the distinguished dependency's environment."""
        root = self.dev_path(get_distinguished_dependency())
        paths = [(name, self.dev_path(get_dependency(name))) for name in NESTED_DEV_DEPENDENCIES]
        paths.extend((name, root / rel) for name, rel in INTERNAL_SUBCOMPONENTS)
        return [(name, path.resolve()) for name, path in paths]

    def setup_nested_dev_dependencies(self, report: SetupReport) -> None:
        """
        Develop sibling checkouts inside the distinguished checkout's own
        environment. The previously active environment is restored even if
        a registration raises.
        """
        distinguished = get_distinguished_dependency()
        root = self.dev_path(distinguished)
        self.reporter.print_banner(f"Setting up {distinguished.name}.jl dev dependencies...")

        if not root.is_dir():
            self._record(
                report, distinguished.name, "nested-develop", StepStatus.SKIPPED,
                f"{distinguished.name}.jl not found at {distinguished.local_path}, skipping dev setup",
            )
            return

        with self.package_manager.activated(root) as context:
            self.reporter.print_note(f"📦 Activated {distinguished.name}.jl environment")

            for name, path in self.nested_dev_paths():
                if not path.is_dir():
                    self._record(
                        report, name, "nested-develop", StepStatus.SKIPPED,
                        f"{name} not found at {path}",
                    )
                    continue

                self.reporter.print_note(f"📝 Developing {name} from {path}...")
                try:
                    self.package_manager.develop(context, path)
                except CommandError as e:
                    log_command_error(
                        ErrorCategory.PACKAGE_MANAGER, "Nested Pkg.develop failed",
                        "mode_manager", "setup_nested_dev_dependencies", e, name,
                    )
                    self._record(
                        report, name, "nested-develop", StepStatus.FAILED,
                        f"Error developing {name}: {e}",
                    )
                    continue

                self._record(
                    report, name, "nested-develop", StepStatus.OK,
                    f"{name} developed successfully",
                )

            self.reporter.print_note(
                f"✨ {distinguished.name}.jl dependencies configured for local development"
            )

    # Registry flow

    def enable_run_mode(self) -> SetupReport:
        report = SetupReport(EnvironmentMode.REGISTRY)
        self.reporter.print_intro(
            "Enabling RUN (registry) mode...",
            "→ Removing local dev packages and installing from registry.",
        )
        context = self.package_manager.active

        self.reporter.print_banner("Removing dev packages...")
        for name in dependency_names():
            try:
                self.package_manager.rm(context, name)
            except CommandError:
                # Not registered, which is the state we want
                self._record(
                    report, name, "rm", StepStatus.INFO,
                    f"{name} not in dev mode (or already removed)",
                )
                continue
            self._record(report, name, "rm", StepStatus.OK, f"Removed {name}")

        self.reporter.print_banner(f"Installing {DISTINGUISHED_DEPENDENCY} from registry...")
        try:
            self.package_manager.add(context, DISTINGUISHED_DEPENDENCY)
        except CommandError as e:
            log_command_error(
                ErrorCategory.PACKAGE_MANAGER, "Pkg.add failed", "mode_manager",
                "enable_run_mode", e, DISTINGUISHED_DEPENDENCY,
            )
            self._record(
                report, DISTINGUISHED_DEPENDENCY, "add", StepStatus.FAILED,
                f"Error installing {DISTINGUISHED_DEPENDENCY}: {e}",
            )
        else:
            self._record(
                report, DISTINGUISHED_DEPENDENCY, "add", StepStatus.OK,
                f"{DISTINGUISHED_DEPENDENCY} installed from registry (with dependencies)",
            )

        self.reporter.print_note("✨ Run mode enabled")
        self.reporter.print_note("   All packages are now using registry versions", style="dim")
        return report

    def instantiate(self, report: SetupReport) -> None:
        """Resolve and install the active project's full dependency graph."""
        self.reporter.print_banner("Instantiating SindbadTutorials environment...")
        try:
            self.package_manager.instantiate(self.package_manager.active)
        except CommandError as e:
            log_command_error(
                ErrorCategory.PACKAGE_MANAGER, "Pkg.instantiate failed", "mode_manager",
                "instantiate", e,
            )
            self._record(
                report, "SindbadTutorials", "instantiate", StepStatus.FAILED,
                f"Error instantiating environment: {e}",
            )
            return

        self._record(
            report, "SindbadTutorials", "instantiate", StepStatus.OK,
            "Environment instantiated successfully",
        )
