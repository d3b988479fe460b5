"""
Git operations used to materialize development checkouts.
"""

from pathlib import Path
from typing import Optional

from .commands import CommandRunner


class GitClient:
    """Thin wrapper over the git command line."""

    def __init__(self, executable: str = "git", timeout_seconds: Optional[int] = None):
        self.executable = executable
        self.runner = CommandRunner("git", timeout_seconds)

    def status_porcelain(self, path: Path) -> str:
        """Return `git status --porcelain` output; empty means a clean tree."""
        result = self.runner.run([self.executable, "status", "--porcelain"], cwd=path)
        return result.stdout

    def pull(self, path: Path) -> None:
        self.runner.run([self.executable, "pull"], cwd=path, capture_output=False)

    def clone(self, url: str, path: Path) -> None:
        # Output streams to the terminal so progress stays visible
        self.runner.run([self.executable, "clone", url, str(path)], capture_output=False)
