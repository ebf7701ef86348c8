"""Background task lifecycle: registry, liveness and launching.

Public API:
    ProcessRegistry: Durable project -> task -> pid mapping
    LivenessChecker: Tells live processes from stale or recycled pids
    TaskLauncher: Starts tasks and stops whole process groups
"""

from .launcher import (
    LaunchOutcome,
    LaunchResult,
    StopOutcome,
    StopResult,
    TaskLauncher,
    build_task_command,
)
from .liveness import LivenessChecker, is_pid_alive
from .registry import ProcessRegistry

__all__ = [
    "LaunchOutcome",
    "LaunchResult",
    "LivenessChecker",
    "ProcessRegistry",
    "StopOutcome",
    "StopResult",
    "TaskLauncher",
    "build_task_command",
    "is_pid_alive",
]
