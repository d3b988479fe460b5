"""
Integration tests for sindbad-setup.
Runs complete setup flows against recording git and package-manager
fakes, and checks verification against realistic manifests.
"""

from unittest.mock import patch

import pytest

from src.sindbad_setup.cli_config import SetupSettings
from src.sindbad_setup.dependency import dependency_names, list_dependencies
from src.sindbad_setup.main import run_setup
from src.sindbad_setup.mode_manager import StepStatus
from src.sindbad_setup.prompts import always, scripted
from src.sindbad_setup.verification import (
    CheckStatus,
    is_dev_path,
    verify_dev_setup,
    verify_run_setup,
)

DEV_MANIFEST = """
[[deps.ErrorMetrics]]
path = "dev/ErrorMetrics.jl"
uuid = "00000000-0000-0000-0000-000000000001"

[[deps.OmniTools]]
path = "dev/OmniTools.jl"
uuid = "00000000-0000-0000-0000-000000000002"

[[deps.Sindbad]]
path = "dev/Sindbad.jl"
uuid = "00000000-0000-0000-0000-000000000003"

[[deps.TimeSamplers]]
path = "dev/TimeSamplers.jl"
uuid = "00000000-0000-0000-0000-000000000004"
"""

REGISTRY_MANIFEST = """
[[deps.Sindbad]]
git-tree-sha1 = "0123456789abcdef"
uuid = "00000000-0000-0000-0000-000000000003"
version = "0.4.2"
"""


@pytest.fixture
def wired(package_manager, fake_git):
    """Route run_setup to the recording fakes."""
    with patch(
        "src.sindbad_setup.main.build_package_manager", return_value=package_manager
    ), patch("src.sindbad_setup.main.GitClient", return_value=fake_git):
        yield package_manager, fake_git


class TestDevelopmentSetup:
    """End-to-end development mode runs."""

    def test_fresh_project(self, wired, dev_settings, project_dir, reporter, console_output):
        """A fresh project ends with every checkout cloned and developed twice over."""
        package_manager, fake_git = wired

        report = run_setup(dev_settings, project_dir, confirm=always(False), reporter=reporter)

        assert not report.has_failures
        assert [call[2].name for call in fake_git.operations("clone")] == [
            f"{name}.jl" for name in dependency_names()
        ]
        for spec in list_dependencies():
            assert (project_dir / spec.local_path).is_dir()

        sindbad_env = (project_dir / "dev" / "Sindbad.jl").resolve()
        develops = package_manager.operations("develop")
        assert [call[1] for call in develops] == [project_dir] * 4 + [sindbad_env] * 4
        assert [call[2].name for call in develops[4:]] == [
            "ErrorMetrics.jl", "TimeSamplers.jl", "OmniTools.jl", "SindbadTEM",
        ]
        assert all(call[2].is_absolute() for call in develops)

        assert package_manager.calls[-1] == ("instantiate", project_dir, None)
        assert package_manager.active.path == project_dir

        output = console_output.getvalue()
        assert output.index("STEP 1: Cloning packages...") < output.index(
            "STEP 2: Developing packages..."
        )
        assert "TESTING DEV MODE SETUP" in output

    def test_rerun_with_existing_checkouts(
        self, wired, dev_settings, project_dir, reporter
    ):
        """A second run offers updates instead of cloning again."""
        package_manager, fake_git = wired
        run_setup(dev_settings, project_dir, confirm=always(False), reporter=reporter)
        fake_git.calls.clear()
        package_manager.calls.clear()

        report = run_setup(
            dev_settings, project_dir, confirm=scripted([True]), reporter=reporter
        )

        assert fake_git.operations("clone") == []
        assert fake_git.operations("pull") == [("pull", project_dir / "dev" / "Sindbad.jl")]
        assert [step.status for step in report.operations("pull")] == [
            StepStatus.OK, StepStatus.INFO, StepStatus.INFO, StepStatus.INFO,
        ]
        assert len(package_manager.operations("develop")) == 8

    def test_verification_after_setup(self, wired, dev_settings, project_dir, reporter, console_output):
        """A dev manifest and dev load paths pass verification."""
        package_manager, _ = wired
        (project_dir / "Manifest.toml").write_text(DEV_MANIFEST)
        for spec in list_dependencies():
            package_manager.locations[spec.name] = str(
                project_dir / spec.local_path / "src" / f"{spec.name}.jl"
            )

        run_setup(dev_settings, project_dir, confirm=always(False), reporter=reporter)

        assert "DEV SETUP VERIFICATION PASSED" in console_output.getvalue()


class TestRegistrySetup:
    """End-to-end registry mode runs."""

    def test_switch_to_registry(self, wired, project_dir, reporter, console_output):
        """Run mode removes every managed package, adds Sindbad and instantiates."""
        package_manager, fake_git = wired

        report = run_setup(SetupSettings(), project_dir, confirm=always(False), reporter=reporter)

        assert [call[0] for call in package_manager.calls] == ["rm"] * 4 + ["add", "instantiate"]
        assert [call[2] for call in package_manager.operations("rm")] == list(dependency_names())
        assert fake_git.calls == []
        assert not report.has_failures
        assert "TESTING RUN MODE SETUP" in console_output.getvalue()

    def test_unknown_mode_returns_without_changes(self, wired, project_dir, reporter):
        package_manager, fake_git = wired
        settings = SetupSettings()
        settings.mode.sindbad = "prod"

        assert run_setup(settings, project_dir, reporter=reporter) is None
        assert package_manager.calls == []
        assert fake_git.calls == []


class TestVerification:
    """Verification checks against manifests and load paths."""

    def test_dev_path_component(self):
        """Only a `dev` path component counts, not a substring."""
        assert is_dev_path("/work/SindbadTutorials/dev/Sindbad.jl/src/Sindbad.jl")
        assert not is_dev_path("/home/developer/.julia/packages/Sindbad/abc/src/Sindbad.jl")

    def test_missing_checkout_fails_dev_verification(
        self, package_manager, project_dir, make_checkout
    ):
        """A good manifest is not enough when a checkout directory is missing."""
        (project_dir / "Manifest.toml").write_text(DEV_MANIFEST)
        for spec in list_dependencies():
            if spec.name != "TimeSamplers":
                make_checkout(spec.local_path, project_file=spec.name == "Sindbad")

        report = verify_dev_setup(package_manager, load_packages=False)

        assert not report.all_ok
        assert [check.subject for check in report.warnings] == ["TimeSamplers"]

    def test_load_failures_are_informational(self, package_manager, project_dir, make_checkout):
        """Packages that cannot be loaded do not fail verification."""
        (project_dir / "Manifest.toml").write_text(DEV_MANIFEST)
        for spec in list_dependencies():
            make_checkout(spec.local_path, project_file=spec.name == "Sindbad")

        report = verify_dev_setup(package_manager)

        assert report.all_ok
        loads = [check for check in report.checks if check.section == "Package paths..."]
        assert {check.status for check in loads} == {CheckStatus.INFO}

    def test_registry_path_in_dev_mode_warns(self, package_manager, project_dir, make_checkout):
        (project_dir / "Manifest.toml").write_text(DEV_MANIFEST)
        for spec in list_dependencies():
            make_checkout(spec.local_path, project_file=spec.name == "Sindbad")
        package_manager.locations["OmniTools"] = "/home/u/.julia/packages/OmniTools/x/src/OmniTools.jl"

        report = verify_dev_setup(package_manager)

        assert [check.subject for check in report.warnings] == ["OmniTools"]

    def test_missing_manifest_warns(self, package_manager):
        report = verify_run_setup(package_manager, load_packages=False)

        assert not report.all_ok
        assert report.warnings[0].subject == "Manifest.toml"

    def test_registry_manifest_passes(self, package_manager, project_dir):
        """Sindbad from the depot passes run verification."""
        (project_dir / "Manifest.toml").write_text(REGISTRY_MANIFEST)
        package_manager.locations["Sindbad"] = (
            "/home/u/.julia/packages/Sindbad/Ab1cD/src/Sindbad.jl"
        )

        report = verify_run_setup(package_manager)

        assert report.all_ok
        info = [check.subject for check in report.checks if check.status == CheckStatus.INFO]
        assert info == ["ErrorMetrics", "TimeSamplers", "OmniTools"]

    def test_leftover_dev_entry_warns_in_run_mode(self, package_manager, project_dir):
        (project_dir / "Manifest.toml").write_text(DEV_MANIFEST)
        package_manager.locations["Sindbad"] = str(project_dir / "dev" / "Sindbad.jl" / "src" / "Sindbad.jl")

        report = verify_run_setup(package_manager)

        assert {check.subject for check in report.warnings} == {"Sindbad"}
        assert len(report.warnings) == 2
