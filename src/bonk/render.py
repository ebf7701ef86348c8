"""Rich rendering of the project listing."""

from collections.abc import Callable
from pathlib import PurePosixPath

from rich.table import Table
from rich.text import Text

from bonk.core.types import GitStatus, PackageManager, Project, Runtime
from bonk.discovery.scanner import ScanResult, probe_git

FILTER_STYLE = "black on blue"

PACKAGE_MANAGER_STYLES = {
    PackageManager.NPM: "cyan",
    PackageManager.YARN: "green",
    PackageManager.PNPM: "bright_green",
    PackageManager.DENO: "magenta",
}


def highlight(text: str, filter_text: str | None) -> Text:
    """Return text with every occurrence of filter_text highlighted."""
    result = Text(text)
    if filter_text:
        result.highlight_words([filter_text], style=FILTER_STYLE)
    return result


def format_git(git: GitStatus) -> Text:
    text = Text(git.branch, style="red" if git.is_dirty else "dim")
    if git.ahead > 0:
        text.append(f" ↑{git.ahead}", style="bright_green")
    if git.behind > 0:
        text.append(f" ↓{git.behind}", style="bright_yellow")
    return text


def format_runtime(project: Project) -> Text:
    if project.runtime == Runtime.DENO:
        return Text("deno", style="magenta")
    pm_style = PACKAGE_MANAGER_STYLES[project.package_manager]
    return Text.assemble(("node", "cyan"), " ", (project.package_manager.value, pm_style))


def format_tasks(project: Project) -> Text:
    """Bullet list of tasks: green running, red stale, dim idle."""
    text = Text()
    for task in project.sorted_tasks():
        if task.is_running:
            style = "bright_green"
        elif task.is_stale:
            style = "bright_red"
        else:
            style = "dim"
        if text:
            text.append(" ")
        text.append(f"• {task.name}", style=style)
    return text


def group_projects(scan: ScanResult, filter_text: str | None = None) -> dict[str, list[Project]]:
    """Group matching projects by root directory, both levels sorted by name."""
    groups: dict[str, list[Project]] = {}
    for project in scan.sorted_projects():
        if filter_text and filter_text not in project.id:
            continue
        groups.setdefault(project.root_dir, []).append(project)
    return groups


def render_listing(
    scan: ScanResult,
    filter_text: str | None = None,
    probe: Callable[[Project], None] = probe_git,
) -> Table:
    """Build the ``bonk ls`` table.

    Args:
        scan: Scan result to render.
        filter_text: Optional substring filter on project ids.
        probe: Fills in git status per rendered project.

    Returns:
        Borderless table with project, git, runtime and task columns.

    """
    table = Table(show_header=False, box=None, pad_edge=False)
    for _ in range(4):
        table.add_column()

    for group, projects in group_projects(scan, filter_text).items():
        table.add_row()
        title = highlight(PurePosixPath(group).name, filter_text)
        title.stylize("bold")
        table.add_row(title)

        for index, project in enumerate(projects, start=1):
            node = Text("└─" if index == len(projects) else "├─", style="dim")
            name = highlight(project.name, filter_text)
            if project.id == scan.project_in_cwd:
                name.stylize("underline")

            probe(project)
            git = format_git(project.git) if project.git is not None else Text()
            table.add_row(
                Text.assemble(node, name),
                git,
                format_runtime(project),
                format_tasks(project),
            )
    return table


__all__ = [
    "format_git",
    "format_runtime",
    "format_tasks",
    "group_projects",
    "highlight",
    "render_listing",
]
