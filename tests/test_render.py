"""Tests for the project listing renderer."""

from pathlib import Path

import pytest
from rich.console import Console

from bonk.core.types import GitStatus, PackageManager, Project, Runtime, Task, TaskStatus
from bonk.discovery.scanner import ScanResult
from bonk.render import (
    format_git,
    format_runtime,
    format_tasks,
    group_projects,
    highlight,
    render_listing,
)


def _project(root_dir: str, name: str, pm: PackageManager = PackageManager.NPM, **tasks: str) -> Project:
    runtime = Runtime.DENO if pm == PackageManager.DENO else Runtime.NODE
    return Project(
        root_dir=root_dir,
        name=name,
        path=Path("/home/me") / root_dir / name,
        runtime=runtime,
        package_manager=pm,
        tasks={n: Task(name=n, command=c) for n, c in tasks.items()},
    )


def _no_git(project: Project) -> None:
    return None


def _render(table) -> str:
    console = Console(record=True, width=160, color_system=None)
    console.print(table)
    return console.export_text()


@pytest.fixture
def scan() -> ScanResult:
    projects = [
        _project("work", "api", dev="vite", test="jest"),
        _project("work", "web", PackageManager.YARN, build="tsc"),
        _project("oss", "lib", PackageManager.DENO, check="deno check"),
    ]
    return ScanResult(projects={p.id: p for p in projects}, project_in_cwd="work/web")


class TestFormatting:
    """Tests for cell formatters."""

    def test_highlight_marks_every_occurrence(self) -> None:
        """Each occurrence of the filter gets the highlight style."""
        text = highlight("api-apic", "api")

        assert text.plain == "api-apic"
        assert [(s.start, s.end) for s in text.spans] == [(0, 3), (4, 7)]

    def test_highlight_without_filter(self) -> None:
        """No filter means no spans."""
        assert highlight("api", None).spans == []

    def test_git_clean_and_synced(self) -> None:
        """A clean branch shows just its name."""
        assert format_git(GitStatus(branch="main", is_dirty=False)).plain == "main"

    def test_git_dirty_with_divergence(self) -> None:
        """Ahead and behind counts are appended."""
        text = format_git(GitStatus(branch="dev", is_dirty=True, ahead=2, behind=3))

        assert text.plain == "dev ↑2 ↓3"
        assert text.style == "red"

    def test_runtime(self) -> None:
        """Node projects show the package manager, deno shows itself."""
        assert format_runtime(_project("w", "a", PackageManager.PNPM)).plain == "node pnpm"
        assert format_runtime(_project("w", "b", PackageManager.DENO)).plain == "deno"

    def test_tasks_sorted_with_state_styles(self) -> None:
        """Tasks are sorted and styled by state."""
        project = _project("w", "a", test="jest", dev="vite", lint="eslint")
        project.tasks["dev"].status = TaskStatus.RUNNING
        project.tasks["dev"].pid = 10
        project.tasks["test"].pid = 11

        text = format_tasks(project)

        assert text.plain == "• dev • lint • test"
        styles = {text.plain[s.start : s.end]: s.style for s in text.spans}
        assert styles == {"• dev": "bright_green", "• lint": "dim", "• test": "bright_red"}


class TestGrouping:
    """Tests for group_projects."""

    def test_groups_sorted(self, scan: ScanResult) -> None:
        """Groups and projects within them are sorted."""
        groups = group_projects(scan)

        assert list(groups) == ["oss", "work"]
        assert [p.name for p in groups["work"]] == ["api", "web"]

    def test_filter_on_project_id(self, scan: ScanResult) -> None:
        """The filter matches against the full project id."""
        assert list(group_projects(scan, "work")) == ["work"]
        assert [p.id for p in group_projects(scan, "we")["work"]] == ["work/web"]
        assert group_projects(scan, "nothing") == {}


class TestRenderListing:
    """Tests for the full table."""

    def test_tree_output(self, scan: ScanResult) -> None:
        """Groups are titled and projects drawn as tree nodes."""
        output = _render(render_listing(scan, probe=_no_git))

        lines = [line.rstrip() for line in output.splitlines() if line.strip()]
        assert lines[0].strip() == "oss"
        assert lines[1].startswith("└─lib")
        assert "deno" in lines[1]
        assert "• check" in lines[1]
        assert lines[2].strip() == "work"
        assert lines[3].startswith("├─api")
        assert "node npm" in lines[3]
        assert lines[4].startswith("└─web")
        assert "node yarn" in lines[4]

    def test_probe_called_per_rendered_project(self, scan: ScanResult) -> None:
        """Git is probed only for projects that pass the filter."""
        probed: list[str] = []

        def probe(project: Project) -> None:
            probed.append(project.id)
            project.git = GitStatus(branch="main", is_dirty=False, ahead=1)

        output = _render(render_listing(scan, "api", probe=probe))

        assert probed == ["work/api"]
        assert "main ↑1" in output
        assert "web" not in output

    def test_empty_listing(self, scan: ScanResult) -> None:
        """A filter matching nothing gives an empty table."""
        assert render_listing(scan, "zzz", probe=_no_git).row_count == 0
