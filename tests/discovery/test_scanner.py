"""Tests for ProjectScanner and project classification."""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from conftest import FakeLiveness, make_project

from bonk.core.config import BonkPaths
from bonk.core.exceptions import DiscoveryError
from bonk.core.types import GitStatus, PackageManager, Runtime, TaskStatus
from bonk.discovery.scanner import (
    ProjectScanner,
    analyze_project,
    detect_package_manager,
    probe_git,
)
from bonk.process.registry import ProcessRegistry


@pytest.fixture
def registry(bonk_paths: BonkPaths) -> ProcessRegistry:
    return ProcessRegistry(bonk_paths.pidfile, bonk_paths.starts_file)


class TestDetectPackageManager:
    """Tests for lockfile based package manager detection."""

    def test_npm_default(self, tmp_path: Path) -> None:
        """No lockfile means npm."""
        assert detect_package_manager(tmp_path, Runtime.NODE) == PackageManager.NPM

    def test_yarn_beats_pnpm(self, tmp_path: Path) -> None:
        """yarn.lock wins over pnpm-lock.yaml."""
        (tmp_path / "yarn.lock").write_text("")
        (tmp_path / "pnpm-lock.yaml").write_text("")

        assert detect_package_manager(tmp_path, Runtime.NODE) == PackageManager.YARN

    def test_pnpm(self, tmp_path: Path) -> None:
        """pnpm-lock.yaml alone means pnpm."""
        (tmp_path / "pnpm-lock.yaml").write_text("")

        assert detect_package_manager(tmp_path, Runtime.NODE) == PackageManager.PNPM

    def test_deno_ignores_lockfiles(self, tmp_path: Path) -> None:
        """Deno projects always use deno."""
        (tmp_path / "yarn.lock").write_text("")

        assert detect_package_manager(tmp_path, Runtime.DENO) == PackageManager.DENO


class TestAnalyzeProject:
    """Tests for analyze_project."""

    def test_node_project(self, tmp_path: Path) -> None:
        """package.json scripts become tasks."""
        path = make_project(tmp_path, "foo", scripts={"test": "jest", "dev": "vite"})

        project = analyze_project("work", path)

        assert project is not None
        assert project.id == "work/foo"
        assert project.runtime == Runtime.NODE
        assert project.package_manager == PackageManager.NPM
        assert sorted(project.tasks) == ["dev", "test"]
        assert project.tasks["test"].command == "jest"
        assert all(t.status == TaskStatus.STOPPED for t in project.tasks.values())

    def test_deno_wins_over_node(self, tmp_path: Path) -> None:
        """A directory with both manifests is a Deno project."""
        path = make_project(tmp_path, "svc", deno_tasks={"start": "deno run main.ts"})
        (path / "package.json").write_text('{"scripts": {"ignored": "x"}}')

        project = analyze_project("work", path)

        assert project is not None
        assert project.runtime == Runtime.DENO
        assert project.package_manager == PackageManager.DENO
        assert list(project.tasks) == ["start"]

    def test_deno_task_objects(self, tmp_path: Path) -> None:
        """Object-form deno tasks use their command field."""
        path = tmp_path / "svc"
        path.mkdir()
        (path / "deno.json").write_text(
            '{"tasks": {"dev": {"command": "deno run -A dev.ts", "description": "d"}}}'
        )

        project = analyze_project("work", path)

        assert project is not None
        assert project.tasks["dev"].command == "deno run -A dev.ts"

    def test_missing_scripts_means_no_tasks(self, tmp_path: Path) -> None:
        """A manifest without a task table yields an empty task set."""
        path = tmp_path / "bare"
        path.mkdir()
        (path / "package.json").write_text('{"name": "bare"}')

        project = analyze_project("work", path)

        assert project is not None
        assert project.tasks == {}

    def test_non_project(self, tmp_path: Path) -> None:
        """A directory without a manifest is not a project."""
        path = tmp_path / "notes"
        path.mkdir()

        assert analyze_project("work", path) is None

    def test_broken_manifest_raises(self, tmp_path: Path) -> None:
        """Unparseable manifests raise DiscoveryError."""
        path = tmp_path / "broken"
        path.mkdir()
        (path / "package.json").write_text("{oops")

        with pytest.raises(DiscoveryError, match="Cannot parse"):
            analyze_project("work", path)


class TestProjectScanner:
    """Tests for ProjectScanner.scan."""

    def test_node_scenario(self, home: Path, bonk_paths: BonkPaths, registry: ProcessRegistry) -> None:
        """work/foo with a test script is an npm project with a stopped task."""
        make_project(home / "work", "foo", scripts={"test": "jest"})
        (home / "work" / "notes").mkdir()
        (home / "work" / "README.md").write_text("hi")

        scan = ProjectScanner(bonk_paths, registry, FakeLiveness()).scan(["work"], cwd=home)

        assert list(scan.projects) == ["work/foo"]
        project = scan.projects["work/foo"]
        assert project.package_manager == PackageManager.NPM
        assert project.tasks["test"].status == TaskStatus.STOPPED
        assert scan.project_in_cwd is None

    def test_multiple_roots(self, home: Path, bonk_paths: BonkPaths, registry: ProcessRegistry) -> None:
        """Projects from all roots are collected and sorted by root then name."""
        make_project(home / "work", "zeta")
        make_project(home / "work", "alpha", lockfiles=["yarn.lock"])
        make_project(home / "oss", "lib", deno_tasks={"test": "deno test"})

        scan = ProjectScanner(bonk_paths, registry, FakeLiveness()).scan(["work", "oss"], cwd=home)

        assert [p.id for p in scan.sorted_projects()] == ["oss/lib", "work/alpha", "work/zeta"]
        assert scan.projects["work/alpha"].package_manager == PackageManager.YARN

    def test_missing_root_warns_once(
        self,
        home: Path,
        bonk_paths: BonkPaths,
        registry: ProcessRegistry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A missing root is skipped with exactly one warning."""
        make_project(home / "work", "foo")

        with caplog.at_level(logging.WARNING, logger="bonk.discovery.scanner"):
            scan = ProjectScanner(bonk_paths, registry, FakeLiveness()).scan(
                ["work", "gone"], cwd=home
            )

        assert list(scan.projects) == ["work/foo"]
        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "Project directory not found" in warnings[0].getMessage()
        assert "gone" in warnings[0].getMessage()

    def test_broken_manifest_is_skipped(
        self,
        home: Path,
        bonk_paths: BonkPaths,
        registry: ProcessRegistry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """One unreadable package.json does not abort the scan."""
        make_project(home / "work", "good")
        broken = home / "work" / "bad"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("not json")

        with caplog.at_level(logging.WARNING, logger="bonk.discovery.scanner"):
            scan = ProjectScanner(bonk_paths, registry, FakeLiveness()).scan(["work"], cwd=home)

        assert list(scan.projects) == ["work/good"]
        assert "Error analyzing project" in caplog.text

    def test_registry_status_applied(self, home: Path, bonk_paths: BonkPaths) -> None:
        """Live pids mark tasks running, dead pids leave them stopped but stale."""
        make_project(home / "work", "foo", scripts={"dev": "vite", "test": "jest", "lint": "eslint"})
        bonk_paths.bonk_home.mkdir(parents=True)
        bonk_paths.pidfile.write_text(
            json.dumps({"work/foo": {"dev": 100, "test": 200, "ghost": 300}})
        )
        registry = ProcessRegistry(bonk_paths.pidfile)

        scan = ProjectScanner(bonk_paths, registry, FakeLiveness(alive={100})).scan(
            ["work"], cwd=home
        )

        tasks = scan.projects["work/foo"].tasks
        assert tasks["dev"].status == TaskStatus.RUNNING
        assert tasks["dev"].pid == 100
        assert tasks["test"].status == TaskStatus.STOPPED
        assert tasks["test"].is_stale
        assert tasks["lint"].pid is None
        assert registry.get("work/foo", "test") == 200

    def test_project_in_cwd(self, home: Path, bonk_paths: BonkPaths, registry: ProcessRegistry) -> None:
        """A cwd inside a project selects that project."""
        path = make_project(home / "work", "foo")
        nested = path / "src" / "lib"
        nested.mkdir(parents=True)

        scan = ProjectScanner(bonk_paths, registry, FakeLiveness()).scan(["work"], cwd=nested)

        assert scan.project_in_cwd == "work/foo"

    def test_project_name_prefix_is_not_cwd(
        self, home: Path, bonk_paths: BonkPaths, registry: ProcessRegistry
    ) -> None:
        """A sibling sharing a name prefix is not mistaken for the cwd project."""
        make_project(home / "work", "api")
        other = make_project(home / "work", "api-gateway")

        scan = ProjectScanner(bonk_paths, registry, FakeLiveness()).scan(["work"], cwd=other)

        assert scan.project_in_cwd == "work/api-gateway"


class TestProbeGit:
    """Tests for lazy git probing."""

    def test_no_marker_skips_git(self, tmp_path: Path) -> None:
        """Projects without .git are never probed."""
        project = analyze_project("work", make_project(tmp_path, "foo"))
        assert project is not None

        with patch("bonk.discovery.scanner.get_git_status") as mock_status:
            probe_git(project)

        mock_status.assert_not_called()
        assert project.git is None

    def test_marker_fills_status(self, tmp_path: Path) -> None:
        """A .git marker triggers the probe."""
        path = make_project(tmp_path, "foo")
        (path / ".git").mkdir()
        project = analyze_project("work", path)
        assert project is not None
        status = GitStatus(branch="main", is_dirty=False)

        with patch("bonk.discovery.scanner.get_git_status", return_value=status):
            probe_git(project)

        assert project.git == status

    def test_missing_git_binary_warns(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A missing git executable leaves the status empty."""
        path = make_project(tmp_path, "foo")
        (path / ".git").mkdir()
        project = analyze_project("work", path)
        assert project is not None

        with patch(
            "bonk.discovery.scanner.get_git_status", side_effect=FileNotFoundError("git")
        ), caplog.at_level(logging.WARNING):
            probe_git(project)

        assert project.git is None
        assert "Cannot query git status" in caplog.text
