"""
Package-manager interface for the tutorials environment.

The active project is an explicit ProjectContext handle. Operations take
the context they act on, and `activated()` scopes a temporary switch to
another environment, restoring the previous one on every exit path.
"""

import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional

from .commands import CommandRunner

MANIFEST_FILE = "Manifest.toml"
PROJECT_FILE = "Project.toml"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class ProjectContext:
    """Handle on a package environment directory."""

    path: Path

    @property
    def manifest_path(self) -> Path:
        return self.path / MANIFEST_FILE

    @property
    def project_file(self) -> Path:
        return self.path / PROJECT_FILE


class PackageManager(ABC):
    """Base class for package managers driving one active environment."""

    def __init__(self, project: Path):
        self.active = ProjectContext(Path(project).resolve())

    def activate(self, path: Path) -> ProjectContext:
        """Make `path` the active environment and return the previous context."""
        previous = self.active
        self.active = ProjectContext(Path(path).resolve())
        return previous

    @contextmanager
    def activated(self, path: Path) -> Iterator[ProjectContext]:
        """Temporarily activate another environment."""
        previous = self.activate(path)
        try:
            yield self.active
        finally:
            self.active = previous

    @abstractmethod
    def develop(self, context: ProjectContext, path: Path) -> None:
        """Register a local checkout as a development dependency."""

    @abstractmethod
    def add(self, context: ProjectContext, name: str) -> None:
        """Add a package from the registry."""

    @abstractmethod
    def rm(self, context: ProjectContext, name: str) -> None:
        """Remove a package from the environment."""

    @abstractmethod
    def instantiate(self, context: ProjectContext) -> None:
        """Resolve and install the full dependency graph."""

    @abstractmethod
    def locate(self, context: ProjectContext, name: str) -> str:
        """Load a package and return the path of its source entry file."""


def julia_string(value: str) -> str:
    """Render a Julia string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


class JuliaPackageManager(PackageManager):
    """Runs Julia's Pkg in a fresh `julia` process per operation."""

    def __init__(
        self,
        project: Path,
        executable: str = "julia",
        timeout_seconds: Optional[int] = None,
    ):
        super().__init__(project)
        self.executable = executable
        self.runner = CommandRunner("julia", timeout_seconds)

    def _command(self, context: ProjectContext, code: str) -> List[str]:
        return [
            self.executable,
            "--startup-file=no",
            f"--project={context.path}",
            "-e",
            code,
        ]

    def _pkg(self, context: ProjectContext, call: str) -> None:
        self.runner.run(self._command(context, f"using Pkg; Pkg.{call}"))

    def develop(self, context: ProjectContext, path: Path) -> None:
        self._pkg(context, f"develop(path={julia_string(str(path))})")

    def add(self, context: ProjectContext, name: str) -> None:
        self._pkg(context, f"add({julia_string(name)})")

    def rm(self, context: ProjectContext, name: str) -> None:
        self._pkg(context, f"rm({julia_string(name)})")

    def instantiate(self, context: ProjectContext) -> None:
        self._pkg(context, "instantiate()")

    def locate(self, context: ProjectContext, name: str) -> str:
        if not _IDENTIFIER.match(name):
            raise ValueError(f"Invalid package name: {name}")
        result = self.runner.run(
            self._command(context, f"using {name}; print(pathof({name}))")
        )
        return result.stdout.strip()
