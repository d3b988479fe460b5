"""
Settings management for sindbad-setup.

Reads the optional `SindbadSetup.toml` file that selects the environment
mode and overrides where each managed dependency is cloned from, plus the
ambient julia/git/logging settings, and applies environment overrides.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import toml
from rich.console import Console

from .dependency import (
    DependencySpec,
    EnvironmentMode,
    dependency_names,
    get_dependency,
)
from .error_handling import SettingsError, log_settings_error

console = Console()

SETTINGS_FILE = "SindbadSetup.toml"
SETTINGS_ENV_VAR = "SINDBAD_SETUP_SETTINGS"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ModeConfig:
    """Mode selection, the `[mode]` table."""

    sindbad: str = EnvironmentMode.REGISTRY.value


@dataclass
class DependencyOverride:
    """Per-dependency overrides, one `[<Name>]` table each."""

    git_url: Optional[str] = None


@dataclass
class JuliaConfig:
    """Julia package manager invocation."""

    executable: str = "julia"
    timeout_seconds: Optional[int] = None


@dataclass
class GitConfig:
    """Git client invocation."""

    executable: str = "git"
    timeout_seconds: Optional[int] = None


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    log_level: str = "WARNING"
    enable_json: bool = True


@dataclass
class SetupSettings:
    """Main settings object containing all subsections."""

    mode: ModeConfig = field(default_factory=ModeConfig)
    dependencies: Dict[str, DependencyOverride] = field(default_factory=dict)
    julia: JuliaConfig = field(default_factory=JuliaConfig)
    git: GitConfig = field(default_factory=GitConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source_file: Optional[Path] = None

    @property
    def environment_mode(self) -> Optional[EnvironmentMode]:
        """The selected mode, or None when the setting is not recognised."""
        return EnvironmentMode.from_setting(self.mode.sindbad)

    def git_url_for(self, spec: DependencySpec) -> Optional[str]:
        """Resolve the clone source: settings override, else the default."""
        override = self.dependencies.get(spec.name)
        if override is not None and override.git_url is not None:
            return str(override.git_url)
        return spec.default_source


_SECTIONS = ("mode", "julia", "git", "logging")

# TOML value type accepted for each settings key
_VALUE_TYPES: Dict[str, type] = {
    "sindbad": str,
    "git_url": str,
    "executable": str,
    "timeout_seconds": int,
    "log_level": str,
    "enable_json": bool,
}
_TYPE_NAMES = {str: "a string", int: "an integer", bool: "true or false"}


def validate_settings(settings: SetupSettings, check_mode: bool = True) -> List[str]:
    """
    Validate settings values and return any errors.

    Args:
        settings: Settings to validate
        check_mode: Also report an unrecognised mode.sindbad; setup itself
            handles that case with guidance instead of an error

    Returns:
        List[str]: List of validation errors (empty if valid)
    """
    errors = []

    if check_mode and settings.environment_mode is None:
        errors.append(f'mode.sindbad must be "run" or "dev" (got "{settings.mode.sindbad}")')

    for name, override in settings.dependencies.items():
        if override.git_url is not None and not str(override.git_url).strip():
            errors.append(f"{name}.git_url must not be empty")

    if settings.julia.timeout_seconds is not None and settings.julia.timeout_seconds <= 0:
        errors.append("julia.timeout_seconds must be positive")
    if settings.git.timeout_seconds is not None and settings.git.timeout_seconds <= 0:
        errors.append("git.timeout_seconds must be positive")
    if not str(settings.julia.executable).strip():
        errors.append("julia.executable must not be empty")
    if not str(settings.git.executable).strip():
        errors.append("git.executable must not be empty")

    if str(settings.logging.log_level).upper() not in VALID_LOG_LEVELS:
        errors.append(f"logging.log_level must be one of {', '.join(VALID_LOG_LEVELS)}")

    return errors


def load_settings_file(settings_path: Path) -> Optional[Dict[str, Any]]:
    """
    Parse a settings file.

    Returns None if the file does not exist.

    Raises:
        SettingsError: If the file cannot be read or is not valid TOML
    """
    if not settings_path.is_file():
        return None

    try:
        with open(settings_path, encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        log_settings_error("Invalid TOML in settings file", str(settings_path), e)
        raise SettingsError(f"Failed to parse {settings_path}: {e}", str(settings_path))
    except (OSError, UnicodeDecodeError) as e:
        log_settings_error("Unreadable settings file", str(settings_path), e)
        raise SettingsError(f"Failed to read {settings_path}: {e}", str(settings_path))


def find_settings_file(project_dir: Optional[Path] = None) -> Path:
    """Locate the settings file: environment override, else the project's file."""
    if env_path := os.environ.get(SETTINGS_ENV_VAR):
        return Path(env_path)
    return (project_dir or Path.cwd()) / SETTINGS_FILE


def _check_value_type(section_name: str, key: str, value: Any) -> None:
    expected = _VALUE_TYPES.get(key)
    if expected is None:
        return
    # TOML booleans are ints to Python
    if (expected is int and isinstance(value, bool)) or not isinstance(value, expected):
        raise SettingsError(
            f"{section_name}.{key} must be {_TYPE_NAMES[expected]}, "
            f"got {type(value).__name__} ({value!r})"
        )


def apply_config_section(
    config: Any, section_data: Dict[str, Any], section_name: str
) -> None:
    """
    Apply configuration from dictionary to config section.

    Raises:
        SettingsError: If a known key holds a value of the wrong type
    """
    for key, value in section_data.items():
        if hasattr(config, key):
            _check_value_type(section_name, key, value)
            setattr(config, key, value)
        else:
            console.print(
                f"⚠️  Unknown config key in {section_name}: {key}", style="yellow"
            )


def load_environment_overrides(settings: SetupSettings) -> None:
    """Load environment variable overrides."""

    def get_env_int(key: str) -> Optional[int]:
        try:
            return int(os.environ[key]) if key in os.environ else None
        except ValueError:
            console.print(f"⚠️  Invalid integer value for {key}, ignoring", style="yellow")
            return None

    if mode := os.environ.get("SINDBAD_SETUP_MODE"):
        settings.mode.sindbad = mode
    if julia := os.environ.get("SINDBAD_SETUP_JULIA"):
        settings.julia.executable = julia
    if git := os.environ.get("SINDBAD_SETUP_GIT"):
        settings.git.executable = git
    if log_level := os.environ.get("SINDBAD_SETUP_LOG_LEVEL"):
        settings.logging.log_level = log_level.upper()
    timeout = get_env_int("SINDBAD_SETUP_TIMEOUT")
    if timeout is not None:
        settings.julia.timeout_seconds = timeout
        settings.git.timeout_seconds = timeout


def settings_from_dict(data: Dict[str, Any]) -> SetupSettings:
    """
    Build settings from a parsed settings document.

    Tables named after managed dependencies carry source overrides; any
    other unknown table is reported and ignored, so the managed set can
    never be extended from the file.

    Raises:
        SettingsError: If a known section is not a table or holds a
            value of the wrong type
    """
    settings = SetupSettings()
    managed = set(dependency_names())

    for key, value in data.items():
        if key in _SECTIONS or key in managed:
            if not isinstance(value, dict):
                raise SettingsError(f"[{key}] must be a table, got {type(value).__name__}")

        if key in _SECTIONS:
            apply_config_section(getattr(settings, key), value, key)
        elif key in managed:
            override = DependencyOverride()
            apply_config_section(override, value, key)
            settings.dependencies[key] = override
        else:
            console.print(f"⚠️  Unknown config key: {key} (ignored)", style="yellow")

    return settings


def load_settings(
    path: Optional[Path] = None, project_dir: Optional[Path] = None
) -> SetupSettings:
    """
    Load settings from file and environment.

    An absent file yields defaults (registry mode). A malformed file is
    fatal and raises SettingsError before anything is mutated.
    """
    settings_path = Path(path) if path is not None else find_settings_file(project_dir)

    file_settings = load_settings_file(settings_path)
    if file_settings is None:
        console.print(f"No settings file found ({settings_path.name}); using defaults.")
        settings = SetupSettings()
    else:
        console.print(f"Loading settings from {settings_path.resolve()}")
        try:
            settings = settings_from_dict(file_settings)
        except SettingsError as e:
            log_settings_error("Invalid settings value", str(settings_path), e)
            raise SettingsError(f"{settings_path}: {e}", str(settings_path))
        settings.source_file = settings_path.resolve()

    load_environment_overrides(settings)
    return settings


def create_sample_settings() -> str:
    """Generate a sample settings file."""
    sample: Dict[str, Any] = {
        "mode": {"sindbad": EnvironmentMode.REGISTRY.value},
    }
    for name in dependency_names():
        sample[name] = {"git_url": get_dependency(name).default_source}
    sample["julia"] = {"executable": "julia"}
    sample["git"] = {"executable": "git"}
    sample["logging"] = {"log_level": "WARNING", "enable_json": True}

    return toml.dumps(sample)
