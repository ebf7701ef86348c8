"""Shared domain types: projects, tasks and git snapshots.

Projects and tasks are rebuilt from the filesystem on every invocation.
Only the process registry is persisted between runs.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class Runtime(StrEnum):
    """JavaScript runtime detected from a project's manifest."""

    NODE = "node"
    DENO = "deno"


class PackageManager(StrEnum):
    """Tool used to invoke a project's tasks."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    DENO = "deno"


class TaskStatus(StrEnum):
    """Whether a task has a live background process."""

    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class Task:
    """A named script declared by a project manifest.

    Attributes:
        name: Script name, unique within its project.
        command: Literal script body, informational only.
        status: Derived at scan time from the registry and liveness check.
        pid: Process id recorded in the registry, if any. Kept even when the
            process is gone so stale entries remain visible.
        started_at: OS start time of the recorded process (epoch seconds).

    """

    name: str
    command: str
    status: TaskStatus = TaskStatus.STOPPED
    pid: int | None = None
    started_at: float | None = None

    @property
    def is_running(self) -> bool:
        return self.status == TaskStatus.RUNNING

    @property
    def is_stale(self) -> bool:
        """True when a pid is recorded but its process is not alive."""
        return self.pid is not None and self.status == TaskStatus.STOPPED


@dataclass(frozen=True)
class GitStatus:
    """Point-in-time git state of a project checkout."""

    branch: str
    is_dirty: bool
    ahead: int = 0
    behind: int = 0


@dataclass
class Project:
    """A directory recognized as a software project.

    Attributes:
        root_dir: Configured root directory name the project lives under.
        name: Folder name of the project.
        path: Absolute filesystem path.
        runtime: Detected runtime.
        package_manager: Tool used to run tasks.
        tasks: Task name to Task mapping.
        git: Git snapshot, filled lazily when a listing is rendered.

    """

    root_dir: str
    name: str
    path: Path
    runtime: Runtime
    package_manager: PackageManager
    tasks: dict[str, Task] = field(default_factory=dict)
    git: GitStatus | None = None

    @property
    def id(self) -> str:
        """Stable identifier, ``<root_dir>/<name>``."""
        return f"{self.root_dir}/{self.name}"

    def sorted_tasks(self) -> list[Task]:
        return sorted(self.tasks.values(), key=lambda t: t.name)


__all__ = [
    "GitStatus",
    "PackageManager",
    "Project",
    "Runtime",
    "Task",
    "TaskStatus",
]
