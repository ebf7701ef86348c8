"""Project discovery under configured root directories.

Each immediate subdirectory of a root is a project candidate:

- ``deno.json`` present: Deno project, tasks from its ``tasks`` table.
- else ``package.json`` present: Node project, tasks from ``scripts``.
  The package manager is npm, unless ``yarn.lock`` (yarn) or
  ``pnpm-lock.yaml`` (pnpm) is present. yarn wins if both are.
- else: not a project.

A broken manifest skips only that candidate. A missing root skips only
that root. Both are logged as warnings.
"""

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from bonk.core.config import BonkPaths
from bonk.core.exceptions import DiscoveryError
from bonk.core.types import PackageManager, Project, Runtime, Task, TaskStatus
from bonk.discovery.git_status import get_git_status, has_git_marker
from bonk.process.liveness import LivenessChecker
from bonk.process.registry import ProcessRegistry

logger = logging.getLogger(__name__)

DENO_MANIFEST = "deno.json"
NODE_MANIFEST = "package.json"
YARN_LOCKFILE = "yarn.lock"
PNPM_LOCKFILE = "pnpm-lock.yaml"


@dataclass
class ScanResult:
    """Projects found by a scan.

    Attributes:
        projects: Project id to Project mapping.
        project_in_cwd: Id of the project containing the working directory.

    """

    projects: dict[str, Project] = field(default_factory=dict)
    project_in_cwd: str | None = None

    def sorted_projects(self) -> list[Project]:
        return sorted(self.projects.values(), key=lambda p: (p.root_dir, p.name))


def detect_package_manager(path: Path, runtime: Runtime) -> PackageManager:
    if runtime == Runtime.DENO:
        return PackageManager.DENO
    if (path / YARN_LOCKFILE).exists():
        return PackageManager.YARN
    if (path / PNPM_LOCKFILE).exists():
        return PackageManager.PNPM
    return PackageManager.NPM


def _read_manifest(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DiscoveryError(f"Cannot parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise DiscoveryError(f"Cannot parse {path}: top level is not an object")
    return data


def _tasks_from_table(table: Any) -> dict[str, Task]:
    if not isinstance(table, dict):
        return {}
    tasks: dict[str, Task] = {}
    for name, command in table.items():
        # deno allows {"command": ..., "description": ...} task objects
        if isinstance(command, dict):
            command = command.get("command", "")
        tasks[name] = Task(name=name, command=str(command))
    return tasks


def analyze_project(root_dir: str, path: Path) -> Project | None:
    """Classify a directory and read its tasks.

    Args:
        root_dir: Configured root directory name.
        path: Candidate project directory.

    Returns:
        Project, or None if the directory has no runtime manifest.

    Raises:
        DiscoveryError: If the manifest exists but cannot be parsed.

    """
    deno_manifest = path / DENO_MANIFEST
    node_manifest = path / NODE_MANIFEST

    if deno_manifest.is_file():
        runtime = Runtime.DENO
        tasks = _tasks_from_table(_read_manifest(deno_manifest).get("tasks"))
    elif node_manifest.is_file():
        runtime = Runtime.NODE
        tasks = _tasks_from_table(_read_manifest(node_manifest).get("scripts"))
    else:
        return None

    return Project(
        root_dir=root_dir,
        name=path.name,
        path=path,
        runtime=runtime,
        package_manager=detect_package_manager(path, runtime),
        tasks=tasks,
    )


def find_project_in_cwd(projects: Iterable[Project], cwd: Path) -> str | None:
    """Return the id of the deepest project containing cwd."""
    cwd = cwd.resolve()
    best: Project | None = None
    for project in projects:
        project_path = project.path.resolve()
        if cwd == project_path or project_path in cwd.parents:
            if best is None or len(project_path.parts) > len(best.path.resolve().parts):
                best = project
    return best.id if best is not None else None


class ProjectScanner:
    """Walks configured roots and builds the in-memory project set.

    Attributes:
        paths: Resolved bonk paths, roots are relative to ``paths.home``.
        registry: Process registry consulted for task status.
        liveness: Checker for recorded pids.

    """

    def __init__(
        self,
        paths: BonkPaths,
        registry: ProcessRegistry,
        liveness: LivenessChecker | None = None,
    ) -> None:
        self.paths = paths
        self.registry = registry
        self.liveness = liveness if liveness is not None else LivenessChecker()

    def scan(self, project_dirs: Iterable[str], cwd: Path | None = None) -> ScanResult:
        """Discover projects in every configured root.

        Args:
            project_dirs: Root directory names relative to the home dir.
            cwd: Working directory for the current-project lookup.

        Returns:
            ScanResult with all projects and the current-directory project.

        """
        result = ScanResult()

        for root_dir in project_dirs:
            root_path = self.paths.project_root(root_dir)
            if not root_path.is_dir():
                logger.warning("Project directory not found: %s", root_path)
                continue

            for project in self._scan_root(root_dir, root_path):
                self._apply_registry(project)
                result.projects[project.id] = project

        cwd = cwd if cwd is not None else Path(os.getcwd())
        result.project_in_cwd = find_project_in_cwd(result.projects.values(), cwd)
        logger.debug(
            "Scan found %d projects, current: %s", len(result.projects), result.project_in_cwd
        )
        return result

    def _scan_root(self, root_dir: str, root_path: Path) -> list[Project]:
        projects: list[Project] = []
        try:
            entries = sorted(root_path.iterdir())
        except OSError as e:
            logger.warning("Cannot read project directory %s: %s", root_path, e)
            return projects

        for entry in entries:
            if not entry.is_dir():
                continue
            try:
                project = analyze_project(root_dir, entry)
            except DiscoveryError as e:
                logger.warning("Error analyzing project %s: %s", entry, e)
                continue
            if project is not None:
                projects.append(project)
        return projects

    def _apply_registry(self, project: Project) -> None:
        """Mark tasks with a live registered process as running.

        Stale entries are left in the registry; only stop or relaunch
        removes them.
        """
        for task_name, pid in self.registry.for_project(project.id).items():
            task = project.tasks.get(task_name)
            if task is None:
                continue
            started_at = self.registry.started_at(project.id, task_name)
            task.pid = pid
            task.started_at = started_at
            if self.liveness.is_alive(pid, started_at):
                task.status = TaskStatus.RUNNING
            else:
                task.status = TaskStatus.STOPPED


def probe_git(project: Project) -> None:
    """Fill ``project.git`` if the project is a git checkout.

    Git is only queried when a listing is rendered.
    """
    if project.git is not None or not has_git_marker(project.path):
        return
    try:
        project.git = get_git_status(project.path)
    except OSError as e:
        logger.warning("Cannot query git status of %s: %s", project.path, e)


__all__ = [
    "ProjectScanner",
    "ScanResult",
    "analyze_project",
    "detect_package_manager",
    "find_project_in_cwd",
    "probe_git",
]
