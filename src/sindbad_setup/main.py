import sys
import time
import uuid
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .cli_config import (
    SETTINGS_FILE,
    SetupSettings,
    create_sample_settings,
    load_settings,
    load_settings_file,
    settings_from_dict,
    validate_settings,
)
from .dependency import EnvironmentMode, list_dependencies
from .error_handling import SettingsError, get_error_handler
from .mode_manager import ModeManager, SetupReport
from .package_manager import JuliaPackageManager
from .prompts import ConfirmationProvider, always, interactive_confirm
from .reporting import SetupReporter
from .structured_logging import configure_logging, log_run_complete, log_run_start
from .verification import verify_setup
from .vcs import GitClient

__version__ = "1.0.0"

console = Console()


def build_package_manager(settings: SetupSettings, project_dir: Path) -> JuliaPackageManager:
    return JuliaPackageManager(
        project_dir, settings.julia.executable, settings.julia.timeout_seconds
    )


def run_setup(
    settings: SetupSettings,
    project_dir: Path,
    confirm: ConfirmationProvider = interactive_confirm,
    reporter: Optional[SetupReporter] = None,
) -> Optional[SetupReport]:
    """
    Run the configured flow, instantiate, then verify.

    Returns None without touching the environment when the configured
    mode is not recognised.
    """
    reporter = reporter or SetupReporter(console)
    console.print(f"\nSindbad ecosystem mode: {settings.mode.sindbad}", highlight=False)

    mode = settings.environment_mode
    if mode is None:
        reporter.print_unknown_mode(settings.mode.sindbad, SETTINGS_FILE)
        return None

    run_id = f"setup_{uuid.uuid4().hex[:12]}"
    started = time.monotonic()
    log_run_start(run_id, mode.value, str(project_dir))

    package_manager = build_package_manager(settings, project_dir)
    manager = ModeManager(
        settings,
        package_manager,
        GitClient(settings.git.executable, settings.git.timeout_seconds),
        confirm=confirm,
        reporter=reporter,
    )
    report = manager.run(mode)
    reporter.print_summary(report)

    verification = verify_setup(mode, package_manager)
    reporter.print_verification(verification)

    log_run_complete(
        run_id,
        mode.value,
        int((time.monotonic() - started) * 1000),
        len(report.failures),
        verification.all_ok,
        get_error_handler().get_error_stats(),
    )
    return report


def _load_settings_or_exit(settings_path: Optional[str], project_dir: Path) -> SetupSettings:
    try:
        settings = load_settings(Path(settings_path) if settings_path else None, project_dir)
    except SettingsError as e:
        Console(stderr=True).print(f"❌ {e}", style="red")
        sys.exit(1)

    # An unknown mode is reported by the commands themselves
    errors = validate_settings(settings, check_mode=False)
    if errors:
        err_console = Console(stderr=True)
        err_console.print("❌ Invalid settings:", style="red")
        for error in errors:
            err_console.print(f"  • {error}", style="red")
        sys.exit(1)

    configure_logging(settings.logging.log_level, settings.logging.enable_json)
    return settings


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🧪 sindbad-setup: SindbadTutorials environment bootstrapper

    Switches the tutorials environment between development mode (local
    git checkouts of the Sindbad ecosystem) and run mode (registry
    versions), as selected in SindbadSetup.toml. Without a subcommand,
    runs `setup`.
    """
    if version:
        console.print(f"sindbad-setup version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        ctx.invoke(setup)


@cli.command()
@click.option(
    "--settings",
    "settings_path",
    type=click.Path(dir_okay=False),
    help=f"Settings file (default: <project>/{SETTINGS_FILE})",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
    help="SindbadTutorials project directory",
)
@click.option(
    "--yes", "-y", "assume_yes", is_flag=True, help="Update existing clean checkouts without asking"
)
def setup(settings_path: Optional[str], project: str, assume_yes: bool) -> None:
    """
    Configure the environment for the mode selected in the settings file.

    Examples:

      sindbad-setup

      sindbad-setup setup --project ~/SindbadTutorials --yes
    """
    project_dir = Path(project).resolve()
    reporter = SetupReporter(console)
    reporter.print_header(str(project_dir), __version__)

    settings = _load_settings_or_exit(settings_path, project_dir)

    try:
        run_setup(
            settings,
            project_dir,
            confirm=always(True) if assume_yes else interactive_confirm,
            reporter=reporter,
        )
    except KeyboardInterrupt:
        Console(stderr=True).print("\n⚠️  Setup interrupted by user", style="yellow")
        sys.exit(130)


@cli.command()
@click.option(
    "--mode",
    type=click.Choice([mode.value for mode in EnvironmentMode], case_sensitive=False),
    help="Mode to verify (default: the configured mode)",
)
@click.option("--settings", "settings_path", type=click.Path(dir_okay=False))
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    show_default=True,
)
@click.option("--no-load", is_flag=True, help="Skip loading packages to read their paths")
def verify(mode: Optional[str], settings_path: Optional[str], project: str, no_load: bool):
    """Check that the environment matches a mode without changing it."""
    project_dir = Path(project).resolve()
    settings = _load_settings_or_exit(settings_path, project_dir)

    selected = EnvironmentMode.from_setting(mode) if mode else settings.environment_mode
    if selected is None:
        SetupReporter(console).print_unknown_mode(settings.mode.sindbad, SETTINGS_FILE)
        sys.exit(1)

    report = verify_setup(
        selected, build_package_manager(settings, project_dir), load_packages=not no_load
    )
    SetupReporter(console).print_verification(report)
    if not report.all_ok:
        sys.exit(1)


@cli.command()
def info():
    """Show the managed dependencies and the files the tool uses."""
    table = Table(title="📦 Managed Dependencies", title_style="bold cyan")
    table.add_column("Package", style="bold")
    table.add_column("Checkout")
    table.add_column("Default source")
    for spec in list_dependencies():
        table.add_row(spec.name, spec.local_path, spec.default_source or "-")
    console.print(table)

    info_text = f"""
[bold blue]📄 Files:[/bold blue]

• [green]{SETTINGS_FILE}[/green] - mode selection and git_url overrides
• [green]Manifest.toml[/green] - read back to verify the resulting mode
• [green]dev/[/green] - development checkouts

[bold blue]🌍 Environment Variables:[/bold blue]

• [cyan]SINDBAD_SETUP_SETTINGS[/cyan] - Settings file path
• [cyan]SINDBAD_SETUP_MODE[/cyan] - Override mode.sindbad ("dev" or "run")
• [cyan]SINDBAD_SETUP_JULIA[/cyan] - julia executable
• [cyan]SINDBAD_SETUP_GIT[/cyan] - git executable
• [cyan]SINDBAD_SETUP_TIMEOUT[/cyan] - Per-command timeout in seconds
• [cyan]SINDBAD_SETUP_LOG_LEVEL[/cyan] - Structured log level

[bold blue]💡 Development Workflow:[/bold blue]

  sindbad-setup            # with [mode] sindbad = "dev"
  julia --project=.
  julia> using Revise
  julia> using SindbadTutorials
  julia> includet("your_script.jl")  # edits in dev/* reload automatically
"""
    console.print(
        Panel(info_text, title="[bold]sindbad-setup Information[/bold]", border_style="blue")
    )


@cli.group()
def config():
    """Settings file management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(dir_okay=False),
    default=SETTINGS_FILE,
    help="Path where to create the settings file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing settings file")
def config_init(path: str, force: bool):
    """Create a sample settings file."""
    settings_path = Path(path)

    if settings_path.exists() and not force:
        console.print(f"⚠️  Settings file already exists at {settings_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        settings_path.write_text(create_sample_settings(), encoding="utf-8")
    except OSError as e:
        console.print(f"❌ Failed to create settings file: {e}", style="red")
        sys.exit(1)

    console.print(f"✅ Created settings file at {settings_path}", style="green")
    console.print('Set [mode] sindbad = "dev" to work on local checkouts', style="dim")


@config.command("show")
@click.option("--settings", "settings_path", type=click.Path(dir_okay=False))
def config_show(settings_path: Optional[str]):
    """Show the effective settings."""
    current = _load_settings_or_exit(settings_path, Path.cwd())

    console.print(Panel("[bold blue]🔧 Effective Settings[/bold blue]", border_style="blue"))
    console.print(f"  Source: {current.source_file or 'defaults'}")

    console.print("\n[bold cyan]🔀 Mode:[/bold cyan]")
    console.print(f"  sindbad: {current.mode.sindbad}")

    console.print("\n[bold cyan]📦 Sources:[/bold cyan]")
    for spec in list_dependencies():
        marker = " (override)" if spec.name in current.dependencies else ""
        console.print(f"  {spec.name}: {current.git_url_for(spec)}{marker}")

    console.print("\n[bold cyan]⚙️  Tools:[/bold cyan]")
    console.print(f"  julia: {current.julia.executable}")
    console.print(f"  git: {current.git.executable}")

    console.print("\n[bold cyan]📝 Logging:[/bold cyan]")
    console.print(f"  Log Level: {current.logging.log_level}")
    console.print(f"  JSON: {current.logging.enable_json}")


@config.command("validate")
@click.argument("settings_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(settings_file: str):
    """Validate a settings file."""
    try:
        data = load_settings_file(Path(settings_file)) or {}
        errors = validate_settings(settings_from_dict(data))
    except SettingsError as e:
        console.print(f"❌ {e}", style="red")
        sys.exit(1)

    if errors:
        console.print("❌ Settings validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print(f"✅ Settings file {settings_file} is valid", style="green")
