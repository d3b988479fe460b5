# In src/sindbad_setup/dependency.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class EnvironmentMode(Enum):
    """Dependency resolution modes of the tutorials environment."""

    DEVELOPMENT = "dev"  # Local git checkouts wired with Pkg.develop
    REGISTRY = "run"  # Versions installed from the package registry

    @classmethod
    def from_setting(cls, value: str) -> Optional["EnvironmentMode"]:
        """Map a `mode.sindbad` setting to a mode, or None if unknown (case-sensitive)."""
        for mode in cls:
            if mode.value == value:
                return mode
        return None


@dataclass(frozen=True)
class DependencySpec:
    """A managed package of the Sindbad ecosystem."""

    name: str
    local_path: str
    default_source: Optional[str] = None


DEV_ROOT = "dev"

DEV_PACKAGES: Tuple[DependencySpec, ...] = (
    DependencySpec(
        "Sindbad", "dev/Sindbad.jl", "https://github.com/LandEcosystems/Sindbad.jl.git"
    ),
    DependencySpec(
        "ErrorMetrics",
        "dev/ErrorMetrics.jl",
        "https://github.com/LandEcosystems/ErrorMetrics.jl.git",
    ),
    DependencySpec(
        "TimeSamplers",
        "dev/TimeSamplers.jl",
        "https://github.com/LandEcosystems/TimeSamplers.jl.git",
    ),
    DependencySpec(
        "OmniTools",
        "dev/OmniTools.jl",
        "https://github.com/LandEcosystems/OmniTools.jl.git",
    ),
)

# The framework package whose own environment gets nested dev wiring
DISTINGUISHED_DEPENDENCY = "Sindbad"

# Registry entries developed inside the distinguished checkout
NESTED_DEV_DEPENDENCIES: Tuple[str, ...] = ("ErrorMetrics", "TimeSamplers", "OmniTools")

# (name, path relative to the distinguished checkout)
INTERNAL_SUBCOMPONENTS: Tuple[Tuple[str, str], ...] = (("SindbadTEM", "SindbadTEM"),)


def list_dependencies() -> Tuple[DependencySpec, ...]:
    """Return the managed dependencies in processing order."""
    return DEV_PACKAGES


def dependency_names() -> Tuple[str, ...]:
    return tuple(spec.name for spec in DEV_PACKAGES)


def get_dependency(name: str) -> DependencySpec:
    """Look up a managed dependency by name."""
    for spec in DEV_PACKAGES:
        if spec.name == name:
            return spec
    raise KeyError(f"Not a managed dependency: {name}")


def get_distinguished_dependency() -> DependencySpec:
    return get_dependency(DISTINGUISHED_DEPENDENCY)
