"""Persistent registry of background task processes.

The registry is the only state bonk keeps between invocations. It maps
project id -> task name -> pid and is stored as plain JSON so a stuck entry
can be removed by hand::

    {
      "work/api": {"dev": 41235}
    }

Process start times live in a sidecar file with the same nesting. They are
advisory: a missing or broken sidecar only disables pid-reuse detection.

The whole file is read once per invocation and rewritten on every mutation.
There is no locking, so two bonk processes mutating the registry at the
same time can lose an update (last writer wins).
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from bonk.core.exceptions import ConfigError
from bonk.core.types import Project, Task, TaskStatus

logger = logging.getLogger(__name__)

# Linux pid_max ceiling, also keeps os.kill within C int range
MAX_PID = 4194304


class ProcessRegistry:
    """Durable (project id, task name) -> pid mapping.

    Attributes:
        pidfile: Path to the registry JSON file.
        starts_file: Path to the start-time sidecar, or None to disable it.

    """

    def __init__(self, pidfile: Path, starts_file: Path | None = None) -> None:
        """Load the registry, creating an empty file if missing.

        Args:
            pidfile: Path to the registry JSON file.
            starts_file: Optional path to the start-time sidecar.

        Raises:
            ConfigError: If the registry file exists but cannot be parsed.

        """
        self.pidfile = pidfile
        self.starts_file = starts_file
        self._pids: dict[str, dict[str, int]] = {}
        self._starts: dict[str, dict[str, float]] = {}

        self._load()

    def _load(self) -> None:
        if not self.pidfile.exists():
            self.pidfile.parent.mkdir(parents=True, exist_ok=True)
            self._write_json(self.pidfile, {})
            logger.debug("Created empty registry at %s", self.pidfile)
        else:
            data = self._read_json(self.pidfile)
            if data is None:
                raise ConfigError(
                    f"Registry file {self.pidfile} is not a valid JSON object. "
                    "Fix or delete it to continue."
                )
            self._pids = self._coerce(data, int, self.pidfile)

        if self.starts_file is not None and self.starts_file.exists():
            data = self._read_json(self.starts_file)
            if data is None:
                logger.warning("Ignoring unreadable start-time file %s", self.starts_file)
            else:
                self._starts = self._coerce(data, float, self.starts_file)

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any] | None:
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _coerce(data: dict[str, Any], kind: type, path: Path) -> dict[str, dict[str, Any]]:
        """Keep well-formed entries, warn about hand-editing mistakes."""
        result: dict[str, dict[str, Any]] = {}
        for project_id, tasks in data.items():
            if not isinstance(tasks, dict):
                logger.warning("Skipping malformed entry %r in %s", project_id, path)
                continue
            for task_name, value in tasks.items():
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    logger.warning(
                        "Skipping malformed entry %s/%s in %s", project_id, task_name, path
                    )
                    continue
                if kind is int and not 0 < value <= MAX_PID:
                    logger.warning(
                        "Skipping out-of-range PID %s for %s/%s in %s",
                        value,
                        project_id,
                        task_name,
                        path,
                    )
                    continue
                result.setdefault(project_id, {})[task_name] = kind(value)
        return result

    @staticmethod
    def _write_json(path: Path, data: dict[str, Any]) -> None:
        """Write JSON atomically using temp file + rename.

        Args:
            path: Target file path.
            data: Data to serialize.

        Raises:
            ConfigError: If the file cannot be written.

        """
        temp_path = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise ConfigError(f"Failed to write {path}: {e}") from e

    def save(self) -> None:
        """Rewrite the registry (and sidecar) from memory.

        Raises:
            ConfigError: If a file cannot be written.

        """
        self._write_json(self.pidfile, self._pids)
        if self.starts_file is not None:
            self._write_json(self.starts_file, self._starts)

    def get(self, project_id: str, task_name: str) -> int | None:
        return self._pids.get(project_id, {}).get(task_name)

    def started_at(self, project_id: str, task_name: str) -> float | None:
        return self._starts.get(project_id, {}).get(task_name)

    def for_project(self, project_id: str) -> dict[str, int]:
        """Return a copy of the task -> pid mapping for one project."""
        return dict(self._pids.get(project_id, {}))

    def record(
        self,
        project: Project,
        task: Task,
        pid: int,
        started_at: float | None = None,
    ) -> None:
        """Insert or overwrite an entry and flush it to disk.

        Also marks the in-memory task as running with the given pid.

        Args:
            project: Owning project.
            task: Task the process belongs to.
            pid: Process id of the background process.
            started_at: OS start time of the process, if known.

        """
        self._pids.setdefault(project.id, {})[task.name] = pid
        if started_at is not None:
            self._starts.setdefault(project.id, {})[task.name] = started_at
        else:
            self._drop(self._starts, project.id, task.name)
        self.save()

        task.pid = pid
        task.started_at = started_at
        task.status = TaskStatus.RUNNING
        logger.debug("Recorded %s/%s -> %d", project.id, task.name, pid)

    def clear(self, project: Project, task: Task) -> None:
        """Remove an entry if present and flush to disk.

        Absence is not an error. The in-memory task is marked stopped.

        Args:
            project: Owning project.
            task: Task to clear.

        """
        removed = self._drop(self._pids, project.id, task.name)
        self._drop(self._starts, project.id, task.name)
        if removed:
            self.save()
            logger.debug("Cleared %s/%s", project.id, task.name)

        task.pid = None
        task.started_at = None
        task.status = TaskStatus.STOPPED

    @staticmethod
    def _drop(store: dict[str, dict[str, Any]], project_id: str, task_name: str) -> bool:
        tasks = store.get(project_id)
        if tasks is None or task_name not in tasks:
            return False
        del tasks[task_name]
        if not tasks:
            del store[project_id]
        return True


__all__ = ["ProcessRegistry"]
