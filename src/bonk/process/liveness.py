"""Process liveness checks.

A pid is alive when signal 0 can be delivered to it. Signal 0 performs the
permission and existence checks without touching the target. A pid owned by
another user fails the same way as a missing one and counts as not alive.

Pids get recycled by the OS. To catch that, the registry stores the process
start time next to the pid, and ``LivenessChecker.is_alive`` compares it
with the start time the OS reports now. Where no start time can be read
(non-Linux without ``ps``, hand-edited registry entries) the pid alone
decides, and a recycled pid is indistinguishable from the original process.
"""

import logging
import os
import subprocess
import sys
import time
from pathlib import Path

logger = logging.getLogger(__name__)

PROC_ROOT = Path("/proc")

# Seconds of drift tolerated between recorded and observed start times.
START_TIME_TOLERANCE = 2.0

# /proc/<pid>/stat fields after the ")" that closes the command name
_STATE_FIELD = 0
_STARTTIME_FIELD = 19


def is_pid_alive(pid: int) -> bool:
    """Check whether a pid refers to a live process reachable by this user.

    Args:
        pid: Process ID to check.

    Returns:
        True if the process exists and can be signalled.

    """
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except (OSError, OverflowError):
        return False
    return not _is_zombie(pid)


def _read_proc_stat_fields(pid: int) -> list[str] | None:
    """Return the /proc/<pid>/stat fields following the command name."""
    try:
        raw = (PROC_ROOT / str(pid) / "stat").read_text()
    except OSError:
        return None
    # comm may contain spaces and parentheses, split after the last ")"
    _, _, rest = raw.rpartition(")")
    fields = rest.split()
    return fields or None


def _is_zombie(pid: int) -> bool:
    fields = _read_proc_stat_fields(pid)
    if fields is None:
        return False
    return fields[_STATE_FIELD] == "Z"


def _boot_time() -> float | None:
    try:
        for line in (PROC_ROOT / "stat").read_text().splitlines():
            if line.startswith("btime "):
                return float(line.split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return None


def _proc_start_time(pid: int) -> float | None:
    fields = _read_proc_stat_fields(pid)
    if fields is None or len(fields) <= _STARTTIME_FIELD:
        return None
    boot = _boot_time()
    if boot is None:
        return None
    try:
        ticks = int(fields[_STARTTIME_FIELD])
        hertz = os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError):
        return None
    return boot + ticks / hertz


def _parse_etime(value: str) -> int | None:
    """Parse ps ``etime`` output ``[[dd-]hh:]mm:ss`` into seconds."""
    value = value.strip()
    if not value:
        return None
    days = 0
    if "-" in value:
        day_part, value = value.split("-", 1)
        try:
            days = int(day_part)
        except ValueError:
            return None
    try:
        parts = [int(part) for part in value.split(":")]
    except ValueError:
        return None
    seconds = 0
    for part in parts:
        seconds = seconds * 60 + part
    return days * 86400 + seconds


def _ps_start_time(pid: int) -> float | None:
    try:
        result = subprocess.run(
            ["ps", "-o", "etime=", "-p", str(pid)],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    elapsed = _parse_etime(result.stdout)
    if elapsed is None:
        return None
    return time.time() - elapsed


def get_process_start_time(pid: int) -> float | None:
    """Return when a process started, as epoch seconds.

    Args:
        pid: Process ID to inspect.

    Returns:
        Start time, or None if the platform does not expose it or the
        process does not exist.

    """
    if pid <= 0:
        return None
    if sys.platform.startswith("linux"):
        started = _proc_start_time(pid)
        if started is not None:
            return started
    return _ps_start_time(pid)


class LivenessChecker:
    """Answers "is this recorded process still the one we started?"."""

    def __init__(self, tolerance: float = START_TIME_TOLERANCE) -> None:
        self.tolerance = tolerance

    def is_alive(self, pid: int, started_at: float | None = None) -> bool:
        """Check that pid is alive and, when known, has the recorded start time.

        Args:
            pid: Process ID from the registry.
            started_at: Start time recorded when the process was launched.

        Returns:
            False if the pid is gone or now belongs to a different process.

        """
        if not is_pid_alive(pid):
            return False
        if started_at is None:
            return True
        current = get_process_start_time(pid)
        if current is None:
            return True
        if abs(current - started_at) > self.tolerance:
            logger.debug(
                "PID %d was reused: recorded start %.1f, current start %.1f",
                pid,
                started_at,
                current,
            )
            return False
        return True

    def start_time(self, pid: int) -> float | None:
        return get_process_start_time(pid)


__all__ = [
    "LivenessChecker",
    "START_TIME_TOLERANCE",
    "get_process_start_time",
    "is_pid_alive",
]
