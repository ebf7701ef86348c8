"""Launch and terminate project tasks.

Tasks are invoked through the project's package manager so that its
environment (node_modules/.bin on PATH, lifecycle hooks) applies. Package
managers run the actual script in a child process, which is why background
tasks are started in their own session and stopped by signalling the whole
process group.
"""

import logging
import os
import signal
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum

from bonk.core.exceptions import ConfigError, LaunchError
from bonk.core.types import PackageManager, Project, Task
from bonk.process.liveness import LivenessChecker
from bonk.process.registry import ProcessRegistry

logger = logging.getLogger(__name__)

# executable and subcommand per package manager; task name and extra args follow
TASK_COMMANDS: dict[PackageManager, tuple[str, tuple[str, ...]]] = {
    PackageManager.DENO: ("deno", ("task",)),
    PackageManager.NPM: ("npm", ("run",)),
    PackageManager.YARN: ("yarn", ("run",)),
    PackageManager.PNPM: ("pnpm", ("run",)),
}


class LaunchOutcome(StrEnum):
    ALREADY_RUNNING = "already_running"
    STARTED = "started"
    COMPLETED = "completed"


class StopOutcome(StrEnum):
    NOT_RUNNING = "not_running"
    STALE_CLEARED = "stale_cleared"
    STOPPED = "stopped"


@dataclass(frozen=True)
class LaunchResult:
    """Outcome of TaskLauncher.launch.

    Attributes:
        outcome: What happened.
        pid: Background or already-running pid, None for foreground runs.
        returncode: Exit code of a foreground run.
        command: The command line that was (or would have been) executed.

    """

    outcome: LaunchOutcome
    command: tuple[str, ...]
    pid: int | None = None
    returncode: int | None = None


@dataclass(frozen=True)
class StopResult:
    """Outcome of TaskLauncher.terminate."""

    outcome: StopOutcome
    pid: int | None = None
    pgid: int | None = None


def build_task_command(
    package_manager: PackageManager,
    task_name: str,
    extra_args: Sequence[str] = (),
) -> list[str]:
    """Build the argv that runs a task through its package manager.

    Args:
        package_manager: Project's package manager.
        task_name: Task to run.
        extra_args: Arguments forwarded verbatim after the task name.

    Returns:
        Command list suitable for subprocess.

    Examples:
        >>> build_task_command(PackageManager.DENO, "dev", ["--port", "8000"])
        ['deno', 'task', 'dev', '--port', '8000']

    """
    executable, subcommand = TASK_COMMANDS[package_manager]
    return [executable, *subcommand, task_name, *extra_args]


class TaskLauncher:
    """Starts tasks in the foreground or background and stops them.

    Attributes:
        registry: Process registry, mutated on background launch and stop.
        liveness: Checker used to tell live processes from stale entries.

    """

    def __init__(
        self,
        registry: ProcessRegistry,
        liveness: LivenessChecker | None = None,
    ) -> None:
        self.registry = registry
        self.liveness = liveness if liveness is not None else LivenessChecker()

    def _recorded(self, project: Project, task: Task) -> tuple[int | None, float | None]:
        pid = self.registry.get(project.id, task.name)
        if pid is None:
            pid = task.pid
        started_at = self.registry.started_at(project.id, task.name)
        if started_at is None:
            started_at = task.started_at
        return pid, started_at

    def launch(
        self,
        project: Project,
        task: Task,
        extra_args: Sequence[str] = (),
        *,
        background: bool = False,
    ) -> LaunchResult:
        """Run a task unless it is already running in the background.

        Args:
            project: Project owning the task.
            task: Task to run.
            extra_args: Arguments appended to the task invocation.
            background: Detach the task and record it in the registry.

        Returns:
            LaunchResult describing the outcome.

        Raises:
            LaunchError: If the process cannot be spawned.

        """
        command = build_task_command(project.package_manager, task.name, extra_args)

        pid, started_at = self._recorded(project, task)
        if pid is not None and self.liveness.is_alive(pid, started_at):
            logger.info("%s/%s already running with PID %d", project.id, task.name, pid)
            self.registry.record(project, task, pid, started_at)
            return LaunchResult(LaunchOutcome.ALREADY_RUNNING, tuple(command), pid=pid)

        if background:
            return self._launch_background(project, task, command)
        return self._launch_foreground(project, task, command)

    def _launch_foreground(self, project: Project, task: Task, command: list[str]) -> LaunchResult:
        logger.debug("Running in foreground in %s: %s", project.path, " ".join(command))
        try:
            completed = subprocess.run(command, cwd=project.path, check=False)
        except OSError as e:
            raise LaunchError(f"Failed to start {command[0]}: {e}") from e

        logger.info("%s/%s exited with code %d", project.id, task.name, completed.returncode)
        return LaunchResult(
            LaunchOutcome.COMPLETED,
            tuple(command),
            returncode=completed.returncode,
        )

    def _launch_background(self, project: Project, task: Task, command: list[str]) -> LaunchResult:
        logger.debug("Spawning in background in %s: %s", project.path, " ".join(command))
        try:
            process = subprocess.Popen(
                command,
                cwd=project.path,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            raise LaunchError(f"Failed to start {command[0]}: {e}") from e

        if not process.pid:
            raise LaunchError("Failed to start task: no process id")

        started_at = self.liveness.start_time(process.pid)
        try:
            self.registry.record(project, task, process.pid, started_at)
        except ConfigError as e:
            raise LaunchError(
                f"Task started with PID {process.pid} but could not be recorded: {e}"
            ) from e
        logger.info("Started %s/%s in background with PID %d", project.id, task.name, process.pid)
        return LaunchResult(LaunchOutcome.STARTED, tuple(command), pid=process.pid)

    def terminate(self, project: Project, task: Task) -> StopResult:
        """Stop a background task by signalling its whole process group.

        The registry entry is cleared whether or not the signal could be
        delivered.

        Args:
            project: Project owning the task.
            task: Task to stop.

        Returns:
            StopResult describing the outcome.

        """
        pid, started_at = self._recorded(project, task)
        if pid is None:
            return StopResult(StopOutcome.NOT_RUNNING)

        if not self.liveness.is_alive(pid, started_at):
            logger.info("%s/%s recorded PID %d is gone", project.id, task.name, pid)
            self.registry.clear(project, task)
            return StopResult(StopOutcome.STALE_CLEARED, pid=pid)

        pgid = self._signal_group(pid)
        self.registry.clear(project, task)
        return StopResult(StopOutcome.STOPPED, pid=pid, pgid=pgid)

    @staticmethod
    def _signal_group(pid: int) -> int | None:
        """Send SIGTERM to pid's process group, or to pid alone as a fallback.

        Returns:
            The signalled group id, or None if only the process was signalled.

        """
        try:
            pgid = os.getpgid(pid)
        except OSError as e:
            logger.warning("Cannot resolve process group of PID %d: %s", pid, e)
            pgid = None

        if pgid is not None and pgid == os.getpgrp():
            logger.warning("PID %d shares bonk's process group, signalling it alone", pid)
            pgid = None

        try:
            if pgid is not None:
                logger.debug("Sending SIGTERM to process group %d", pgid)
                os.killpg(pgid, signal.SIGTERM)
            else:
                os.kill(pid, signal.SIGTERM)
        except OSError as e:
            logger.warning("Failed to signal PID %d: %s", pid, e)
        return pgid


__all__ = [
    "LaunchOutcome",
    "LaunchResult",
    "StopOutcome",
    "StopResult",
    "TASK_COMMANDS",
    "TaskLauncher",
    "build_task_command",
]
