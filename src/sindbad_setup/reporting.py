"""
Console output for setup runs.

Provides the running commentary (step banners and per-item markers), the
end-of-run summary and the verification pass/fail banner using Rich.
"""

from typing import TYPE_CHECKING, Dict, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from .mode_manager import SetupReport, StepResult
    from .verification import VerificationReport

BANNER_WIDTH = 60

STEP_MARKERS: Dict[str, str] = {
    "ok": "✅",
    "skipped": "⚠️ ",
    "info": "ℹ️ ",
    "failed": "❌",
}

STEP_STYLES: Dict[str, str] = {
    "ok": "green",
    "skipped": "yellow",
    "info": "dim",
    "failed": "red",
}

CHECK_MARKERS: Dict[str, str] = {"passed": "✅", "warning": "⚠️ ", "info": "ℹ️ "}
CHECK_STYLES: Dict[str, str] = {"passed": "green", "warning": "yellow", "info": "dim"}


class SetupReporter:
    """Formats and displays setup progress and results."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_header(self, project: str, version: str) -> None:
        self.console.print(
            Panel(
                f"Activating SindbadTutorials environment at: {project}",
                title=f"[bold blue]sindbad-setup[/bold blue] v{version}",
                border_style="blue",
            )
        )

    def print_banner(self, title: str) -> None:
        rule = "=" * BANNER_WIDTH
        self.console.print(f"\n{rule}\n{title}\n{rule}", style="bold", highlight=False)

    def print_intro(self, *lines: str) -> None:
        self.console.print()
        for line in lines:
            self.console.print(line, style="bold blue", highlight=False)

    def print_dependency(self, label: str) -> None:
        self.console.print(f"\n📦 {label}", highlight=False)

    def print_note(self, text: str, style: str = "") -> None:
        self.console.print(f"   {text}", style=style, highlight=False)

    def print_step(self, step: "StepResult") -> None:
        status = step.status.value
        self.console.print(
            f"   {STEP_MARKERS[status]} {step.message}",
            style=STEP_STYLES[status],
            highlight=False,
        )

    def print_unknown_mode(self, mode: str, settings_file: str) -> None:
        self.console.print(f"❌ Unknown mode: {mode}", style="red", highlight=False)
        self.console.print(
            f'   Use "run" or "dev" in the [mode] section of {settings_file}.',
            highlight=False,
        )

    def print_summary(self, report: "SetupReport") -> None:
        """Print a per-dependency table of everything that was attempted."""
        table = Table(
            title=f"📊 Setup Summary ({report.mode.value} mode)",
            box=box.ROUNDED,
            title_style="bold cyan",
        )
        table.add_column("Dependency", style="bold")
        table.add_column("Operation")
        table.add_column("Status", justify="center")
        table.add_column("Details")

        for step in report.steps:
            status = step.status.value
            table.add_row(
                step.dependency,
                step.operation,
                f"[{STEP_STYLES[status]}]{STEP_MARKERS[status]} {status.upper()}[/]",
                step.message,
            )

        self.console.print()
        self.console.print(table)

        if report.has_failures:
            self.console.print(
                f"❌ {len(report.failures)} operation(s) failed; re-run after fixing the "
                "issues above. Completed steps are skipped or offered as updates.",
                style="red",
            )

    def print_verification(self, report: "VerificationReport") -> None:
        """Print verification checks grouped by section, then the banner."""
        label = report.mode.value.upper()
        self.print_banner(f"TESTING {label} MODE SETUP")

        section = None
        for check in report.checks:
            if check.section != section:
                section = check.section
                self.console.print(f"\n✓ {section}", style="bold", highlight=False)
            status = check.status.value
            self.console.print(
                f"  {CHECK_MARKERS[status]} {check.message}",
                style=CHECK_STYLES[status],
                highlight=False,
            )

        rule = "=" * BANNER_WIDTH
        self.console.print(f"\n{rule}", style="bold")
        if report.all_ok:
            self.console.print(
                f"✨ {label} SETUP VERIFICATION PASSED", style="bold green"
            )
        else:
            self.console.print(
                f"⚠️  {label} SETUP: Some issues detected (see above)", style="bold yellow"
            )
        self.console.print(rule, style="bold")
