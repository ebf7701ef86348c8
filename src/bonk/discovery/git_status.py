"""Git status probe for project listings."""

import logging
import subprocess
from pathlib import Path

from bonk.core.types import GitStatus

logger = logging.getLogger(__name__)

GIT_MARKER = ".git"


def has_git_marker(path: Path) -> bool:
    return (path / GIT_MARKER).exists()


def _git(path: Path, *args: str) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        ["git", *args],
        capture_output=True,
        text=True,
        cwd=path,
        check=False,
    )


def _parse_ahead_behind(output: str) -> tuple[int, int]:
    parts = output.split()
    counts = []
    for part in parts[:2]:
        try:
            counts.append(int(part))
        except ValueError:
            counts.append(0)
    while len(counts) < 2:
        counts.append(0)
    return counts[0], counts[1]


def get_git_status(path: Path) -> GitStatus:
    """Query branch, dirty flag and upstream divergence of a checkout.

    Args:
        path: Project directory containing a .git marker.

    Returns:
        GitStatus snapshot. Ahead/behind are 0 when no upstream is set.

    """
    branch = _git(path, "rev-parse", "--abbrev-ref", "HEAD").stdout.strip()
    is_dirty = bool(_git(path, "status", "--porcelain").stdout.strip())

    ahead = behind = 0
    result = _git(path, "rev-list", "--left-right", "--count", "HEAD...@{upstream}")
    if result.returncode == 0:
        ahead, behind = _parse_ahead_behind(result.stdout)
    else:
        logger.debug("No upstream for %s: %s", path, result.stderr.strip())

    return GitStatus(branch=branch, is_dirty=is_dirty, ahead=ahead, behind=behind)


__all__ = ["get_git_status", "has_git_marker"]
