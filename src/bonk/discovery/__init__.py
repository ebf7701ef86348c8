"""Project discovery and git status.

Public API:
    ProjectScanner: Walks configured roots into a ScanResult
    ScanResult: Projects plus the current-directory project
    get_git_status: Branch, dirty flag and upstream divergence
"""

from .git_status import get_git_status
from .scanner import ProjectScanner, ScanResult, analyze_project, probe_git

__all__ = [
    "ProjectScanner",
    "ScanResult",
    "analyze_project",
    "get_git_status",
    "probe_git",
]
