"""
Shared fixtures for sindbad-setup tests.
Provides a temporary tutorials project plus recording fakes for git and
the package manager so no real git or julia process is started.
"""

import io
from pathlib import Path

import pytest
from rich.console import Console

from src.sindbad_setup.cli_config import SetupSettings
from src.sindbad_setup.error_handling import CommandError
from src.sindbad_setup.package_manager import PackageManager, ProjectContext
from src.sindbad_setup.reporting import SetupReporter


class FakeGit:
    """Records git calls; clone creates the checkout directory."""

    def __init__(self):
        self.calls = []
        self.statuses = {}
        self.failing_clones = set()
        self.failing_pulls = set()
        self.parent_existed_at_clone = {}

    def status_porcelain(self, path):
        self.calls.append(("status", Path(path)))
        status = self.statuses.get(Path(path), "")
        if isinstance(status, Exception):
            raise status
        return status

    def pull(self, path):
        self.calls.append(("pull", Path(path)))
        if Path(path) in self.failing_pulls:
            raise CommandError("git exited with status 1", ["git", "pull"], 1)

    def clone(self, url, path):
        path = Path(path)
        self.calls.append(("clone", url, path))
        self.parent_existed_at_clone[path] = path.parent.is_dir()
        if url in self.failing_clones:
            raise CommandError("git exited with status 128", ["git", "clone", url], 128)
        path.mkdir()
        if path.name == "Sindbad.jl":
            (path / "Project.toml").write_text('name = "Sindbad"\n')
            (path / "SindbadTEM").mkdir()

    def operations(self, name):
        return [call for call in self.calls if call[0] == name]


class RecordingPackageManager(PackageManager):
    """Package manager fake recording (operation, environment, argument)."""

    def __init__(self, project):
        super().__init__(project)
        self.calls = []
        self.fail = {}
        self.locations = {}

    def _call(self, operation, context, argument=None):
        self.calls.append((operation, context.path, argument))
        failure = self.fail.get((operation, argument)) or self.fail.get(operation)
        if failure is not None:
            raise failure

    def develop(self, context: ProjectContext, path: Path) -> None:
        self._call("develop", context, Path(path))

    def add(self, context, name):
        self._call("add", context, name)

    def rm(self, context, name):
        self._call("rm", context, name)

    def instantiate(self, context):
        self._call("instantiate", context)

    def locate(self, context, name):
        if name not in self.locations:
            raise CommandError(f"julia exited with status 1: ArgumentError: Package {name} not found")
        return self.locations[name]

    def operations(self, operation):
        return [call for call in self.calls if call[0] == operation]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep SINDBAD_SETUP_* variables from the caller out of tests."""
    for key in (
        "SINDBAD_SETUP_SETTINGS",
        "SINDBAD_SETUP_MODE",
        "SINDBAD_SETUP_JULIA",
        "SINDBAD_SETUP_GIT",
        "SINDBAD_SETUP_TIMEOUT",
        "SINDBAD_SETUP_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def temp_dir(tmp_path):
    """Temporary working directory."""
    return tmp_path


@pytest.fixture
def project_dir(tmp_path):
    """An empty SindbadTutorials project."""
    project = tmp_path / "SindbadTutorials"
    project.mkdir()
    (project / "Project.toml").write_text('name = "SindbadTutorials"\n')
    return project.resolve()


@pytest.fixture
def fake_git():
    return FakeGit()


@pytest.fixture
def package_manager(project_dir):
    return RecordingPackageManager(project_dir)


@pytest.fixture
def console_output():
    return io.StringIO()


@pytest.fixture
def reporter(console_output):
    """Reporter writing into a buffer instead of the terminal."""
    return SetupReporter(Console(file=console_output, width=200, color_system=None))


@pytest.fixture
def dev_settings():
    settings = SetupSettings()
    settings.mode.sindbad = "dev"
    return settings


@pytest.fixture
def make_checkout(project_dir):
    """Create an existing checkout directory inside the project."""

    def create(local_path, project_file=False):
        path = project_dir / local_path
        path.mkdir(parents=True)
        if project_file:
            (path / "Project.toml").write_text("")
        return path

    return create
