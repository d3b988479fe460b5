"""
Blocking execution of external git and julia commands.
"""

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .error_handling import CommandError
from .structured_logging import log_command


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    stdout: str
    stderr: str
    returncode: int


class CommandRunner:
    """Runs one command at a time and raises CommandError on failure."""

    def __init__(self, component: str, timeout_seconds: Optional[int] = None):
        """
        Args:
            component: "git" or "julia", used for logging
            timeout_seconds: Per-command timeout, None to wait indefinitely
        """
        self.component = component
        self.timeout_seconds = timeout_seconds

    def run(
        self,
        command: List[str],
        cwd: Optional[Path] = None,
        capture_output: bool = True,
    ) -> CommandResult:
        """
        Run a command to completion.

        Args:
            command: Command and arguments to run
            cwd: Working directory
            capture_output: Capture stdout/stderr instead of streaming
                them to the terminal

        Returns:
            CommandResult of a zero-exit command

        Raises:
            CommandError: On non-zero exit, timeout, or missing executable
        """
        if not command or not isinstance(command[0], str):
            raise ValueError("Invalid command")

        safe_command = [str(arg) for arg in command]
        started = time.monotonic()

        try:
            completed = subprocess.run(
                safe_command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=capture_output,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            log_command(self.component, safe_command[0], None, self._elapsed(started))
            raise CommandError(
                f"{self.component} timed out after {self.timeout_seconds}s",
                safe_command,
            )
        except OSError as e:
            raise CommandError(f"Could not run {safe_command[0]}: {e}", safe_command)

        log_command(
            self.component, safe_command[0], completed.returncode, self._elapsed(started)
        )

        stdout = completed.stdout or ""
        stderr = completed.stderr or ""
        if completed.returncode != 0:
            detail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
            message = f"{self.component} exited with status {completed.returncode}"
            if detail:
                message += f": {detail}"
            raise CommandError(message, safe_command, completed.returncode, stderr)

        return CommandResult(stdout, stderr, completed.returncode)

    @staticmethod
    def _elapsed(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
