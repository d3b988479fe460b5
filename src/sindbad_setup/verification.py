"""
Post-setup verification of the tutorials environment.

Read-only checks that the environment matches the expected mode. Checks
never raise: every mismatch is downgraded to a warning in the returned
VerificationReport, and the best-effort package loading step only adds
informational notes when a package cannot be loaded.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from .dependency import (
    DEV_ROOT,
    DISTINGUISHED_DEPENDENCY,
    EnvironmentMode,
    get_distinguished_dependency,
    list_dependencies,
)
from .error_handling import ErrorCategory, ErrorLevel, get_error_handler
from .package_manager import PROJECT_FILE, PackageManager, ProjectContext
from .structured_logging import log_verification

# Written by Pkg for packages resolved from a local path
MANIFEST_PATH_MARKER = "path = "
# Depot directory of registry-installed packages
REGISTRY_PATH_MARKER = ".julia"


class CheckStatus(Enum):
    PASSED = "passed"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class VerificationCheck:
    section: str
    subject: str
    status: CheckStatus
    message: str


@dataclass
class VerificationReport:
    """Checks for one mode; `all_ok` is False if any check warned."""

    mode: EnvironmentMode
    checks: List[VerificationCheck] = field(default_factory=list)

    @property
    def warnings(self) -> List[VerificationCheck]:
        return [check for check in self.checks if check.status == CheckStatus.WARNING]

    @property
    def all_ok(self) -> bool:
        return not self.warnings

    def add(self, section: str, subject: str, status: CheckStatus, message: str) -> None:
        self.checks.append(VerificationCheck(section, subject, status, message))


def is_dev_path(path: str) -> bool:
    """True if a resolved source path lies under a `dev` checkout directory."""
    return DEV_ROOT in Path(path).parts


def read_manifest(context: ProjectContext) -> Optional[str]:
    """Return the manifest text, or None if it is missing or unreadable."""
    try:
        return context.manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        if context.manifest_path.exists():
            get_error_handler().warning(
                ErrorCategory.VERIFICATION,
                "Could not read manifest",
                "verification",
                "read_manifest",
                exception=e,
            )
        return None


def _locate(package_manager: PackageManager, context: ProjectContext, name: str) -> Optional[str]:
    # Loading needs a working julia; any failure only means "unknown"
    try:
        return package_manager.locate(context, name)
    except Exception as e:
        get_error_handler().handle_error(
            level=ErrorLevel.INFO,
            category=ErrorCategory.VERIFICATION,
            message=f"Could not load {name}",
            module="verification",
            function="_locate",
            exception=e,
        )
        return None


def verify_dev_setup(
    package_manager: PackageManager, load_packages: bool = True
) -> VerificationReport:
    """Check that every managed dependency is developed from its checkout."""
    context = package_manager.active
    report = VerificationReport(EnvironmentMode.DEVELOPMENT)
    specs = list_dependencies()

    section = "Checking package status..."
    manifest = read_manifest(context)
    if manifest is None:
        report.add(section, "Manifest.toml", CheckStatus.WARNING, "Manifest.toml not found")
    else:
        for spec in specs:
            if MANIFEST_PATH_MARKER in manifest and spec.name in manifest:
                report.add(section, spec.name, CheckStatus.PASSED, f"{spec.name}: in dev mode")
            else:
                report.add(
                    section, spec.name, CheckStatus.WARNING,
                    f"{spec.name}: not found as dev package",
                )

    section = "Checking dev folders exist..."
    for spec in specs:
        if (context.path / spec.local_path).is_dir():
            report.add(section, spec.name, CheckStatus.PASSED, f"{spec.local_path} exists")
        else:
            report.add(section, spec.name, CheckStatus.WARNING, f"{spec.local_path} not found")

    section = f"Checking {DISTINGUISHED_DEPENDENCY}.jl dev environment..."
    distinguished = get_distinguished_dependency()
    project_file = context.path / distinguished.local_path / PROJECT_FILE
    label = f"{distinguished.name}.jl/{PROJECT_FILE}"
    if project_file.is_file():
        report.add(section, distinguished.name, CheckStatus.PASSED, f"{label} exists")
    else:
        report.add(section, distinguished.name, CheckStatus.WARNING, f"{label} not found")

    if load_packages:
        section = "Package paths..."
        for spec in specs:
            path = _locate(package_manager, context, spec.name)
            if path is None:
                report.add(
                    section, spec.name, CheckStatus.INFO,
                    f"{spec.name}: not loaded (might need restart)",
                )
            elif is_dev_path(path):
                report.add(section, spec.name, CheckStatus.PASSED, f"{spec.name}: {path}")
            else:
                report.add(
                    section, spec.name, CheckStatus.WARNING,
                    f"{spec.name}: {path} (not in {DEV_ROOT}/)",
                )

    log_verification(report.mode.value, report.all_ok, len(report.warnings))
    return report


def verify_run_setup(
    package_manager: PackageManager, load_packages: bool = True
) -> VerificationReport:
    """Check that the distinguished dependency comes from the registry."""
    context = package_manager.active
    report = VerificationReport(EnvironmentMode.REGISTRY)
    name = DISTINGUISHED_DEPENDENCY

    section = "Checking package status..."
    manifest = read_manifest(context)
    if manifest is None:
        report.add(section, "Manifest.toml", CheckStatus.WARNING, "Manifest.toml not found")
    elif name in manifest and MANIFEST_PATH_MARKER in manifest:
        report.add(section, name, CheckStatus.WARNING, f"{name}: still appears to be in dev mode")
    else:
        report.add(
            section, name, CheckStatus.PASSED,
            f"{name}: not in dev mode (using registry version)",
        )

    if load_packages:
        section = "Package paths..."
        path = _locate(package_manager, context, name)
        if path is None:
            report.add(section, name, CheckStatus.INFO, f"{name}: not loaded (might need restart)")
        elif REGISTRY_PATH_MARKER in path or not is_dev_path(path):
            report.add(section, name, CheckStatus.PASSED, f"{name}: {path}")
        else:
            report.add(
                section, name, CheckStatus.WARNING,
                f"{name}: {path} (appears to be local dev)",
            )

    section = "Dependencies..."
    for spec in list_dependencies():
        if spec.name != name:
            report.add(
                section, spec.name, CheckStatus.INFO,
                f"{spec.name}: included as dependency of {name}",
            )

    log_verification(report.mode.value, report.all_ok, len(report.warnings))
    return report


def verify_setup(
    mode: EnvironmentMode, package_manager: PackageManager, load_packages: bool = True
) -> VerificationReport:
    if mode == EnvironmentMode.DEVELOPMENT:
        return verify_dev_setup(package_manager, load_packages)
    return verify_run_setup(package_manager, load_packages)
