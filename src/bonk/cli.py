"""bonk command-line interface.

Commands:
    bonk ls [filter]                       List projects, optionally filtered
    bonk run [project] [task] [...args]    Run a task (-b for background)
    bonk stop [project] [task]             Stop a background task
    bonk cd [project]                      Open a nested shell in a project
    bonk edit [project]                    Open a project in the editor

Inside a project directory the project can be omitted:
    $ cd ~/work/api && bonk run dev -b
"""

import json
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.markup import escape

from bonk import __version__
from bonk.cli_utils import (
    ARROW,
    BADGE_DOWN,
    BADGE_OOPS,
    EXIT_ERROR,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    SIGIL,
    _error,
    _info,
    _setup_logging,
    _success,
    _warning,
    console,
    rage_emoticon,
)
from bonk.core.config import EXAMPLE_CONFIG, BonkConfig, BonkPaths, ensure_config
from bonk.core.exceptions import BonkError
from bonk.core.types import Project, Task
from bonk.discovery.scanner import ProjectScanner, ScanResult
from bonk.process.launcher import LaunchOutcome, StopOutcome, TaskLauncher
from bonk.process.liveness import LivenessChecker
from bonk.process.registry import ProcessRegistry
from bonk.render import render_listing
from bonk.resolver.disambiguator import default_disambiguator
from bonk.resolver.resolver import Resolver

logger = logging.getLogger(__name__)

DESCRIPTION = "Bonk is your chaotic-good JS project companion."

app = typer.Typer(
    name="bonk",
    help=DESCRIPTION,
    add_completion=False,
    invoke_without_command=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


@dataclass
class AppState:
    """Everything a command needs, loaded once per invocation."""

    paths: BonkPaths
    config: BonkConfig
    registry: ProcessRegistry
    liveness: LivenessChecker
    scan: ScanResult

    def resolver(self) -> Resolver:
        return Resolver(self.scan, default_disambiguator())

    def launcher(self) -> TaskLauncher:
        return TaskLauncher(self.registry, self.liveness)


def _print_missing_config(paths: BonkPaths) -> None:
    console.print(f"{SIGIL} {rage_emoticon()}", highlight=False)
    console.print(
        f"{BADGE_OOPS} [bright_red]No project directories found. "
        "Please add some directories to the bonk config.[/bright_red]"
    )
    console.print()
    console.print(
        f"Your config file is located at: [bright_blue]{escape(str(paths.config_file))}[/bright_blue]"
    )
    console.print(
        "The paths are relative to your home directory which is: "
        f"[bright_blue]{escape(str(paths.home))}[/bright_blue]"
    )
    console.print()
    console.print("Example:")
    console.print(f"[dim]{escape(json.dumps(EXAMPLE_CONFIG, indent=2))}[/dim]", highlight=False)


def _load_state() -> AppState:
    """Load config and registry, then scan the configured roots.

    Raises:
        typer.Exit: On configuration errors or an empty project list.

    """
    paths = BonkPaths.from_env()
    try:
        config = ensure_config(paths)
        if not config.project_dirs:
            _print_missing_config(paths)
            raise typer.Exit(code=EXIT_ERROR)
        registry = ProcessRegistry(paths.pidfile, paths.starts_file)
    except BonkError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    liveness = LivenessChecker()
    scan = ProjectScanner(paths, registry, liveness).scan(config.project_dirs)
    return AppState(paths=paths, config=config, registry=registry, liveness=liveness, scan=scan)


def _project_label(state: AppState, project: Project) -> str:
    label = escape(project.id)
    if project.id == state.scan.project_in_cwd:
        return f"[underline]{label}[/underline]"
    return label


def _print_task_header(state: AppState, project: Project, task: Task, style: str) -> None:
    header = (
        f"{SIGIL} {ARROW} {_project_label(state, project)} {ARROW} "
        f"[{style}]{escape(task.name)}[/{style}]"
    )
    if style == "bright_green":
        header += f" [dim]: {escape(task.command)}[/dim]"
    console.print(header, highlight=False)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output with debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        help="Only show errors in log output",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        is_eager=True,
    ),
) -> None:
    """Bonk is your chaotic-good JS project companion."""
    _setup_logging(verbose=verbose, quiet=quiet)

    if version:
        console.print(__version__, highlight=False)
        raise typer.Exit(code=EXIT_SUCCESS)

    if ctx.invoked_subcommand is None:
        console.print(f"{SIGIL} [bright_yellow](っ•﹏•)っ ✂[/bright_yellow] [dim]v{__version__}[/dim]")
        console.print(f"       {DESCRIPTION}")
        console.print()
        console.print(ctx.get_help(), markup=False, highlight=False)
        raise typer.Exit(code=EXIT_SUCCESS)


def ls_command(
    filter_text: str | None = typer.Argument(
        None,
        metavar="[FILTER]",
        help="Only show projects whose id contains this text",
    ),
) -> None:
    """List your projects. Optionally filter by project name."""
    state = _load_state()
    table = render_listing(state.scan, filter_text)
    if table.row_count == 0:
        _info("No projects found")
        return
    console.print(table)


def run_command(
    args: list[str] | None = typer.Argument(
        None,
        metavar="[PROJECT] [TASK] [ARGS]...",
        help="Project and task (partial names are fine), then task arguments",
    ),
    background: bool = typer.Option(
        False,
        "--background",
        "--bg",
        "-b",
        help="Run in background",
    ),
) -> None:
    """Run a task in a project."""
    state = _load_state()
    try:
        resolution = state.resolver().resolve(args or [])
    except BonkError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    project, task = resolution.project, resolution.task
    _print_task_header(state, project, task, "bright_green")

    try:
        result = state.launcher().launch(
            project, task, resolution.extra_args, background=background
        )
    except BonkError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None
    except KeyboardInterrupt:
        raise typer.Exit(code=EXIT_INTERRUPTED) from None

    if result.outcome == LaunchOutcome.ALREADY_RUNNING:
        _success(f"Task is already running (PID {result.pid})")
    elif result.outcome == LaunchOutcome.STARTED:
        _success(f"Task started in background with PID: {result.pid}")
        raise typer.Exit(code=EXIT_SUCCESS)
    elif result.returncode:
        _info(f"Task exited with code {result.returncode}")


def stop_command(
    project: str | None = typer.Argument(None, help="Project (partial name is fine)"),
    task: str | None = typer.Argument(None, help="Task (partial name is fine)"),
) -> None:
    """Stop a background task in a project."""
    state = _load_state()
    tokens = [token for token in (project, task) if token]
    try:
        resolution = state.resolver().resolve(tokens)
    except BonkError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None

    _print_task_header(state, resolution.project, resolution.task, "bright_red")
    result = state.launcher().terminate(resolution.project, resolution.task)

    if result.outcome == StopOutcome.NOT_RUNNING:
        console.print(f"{BADGE_DOWN} Task is not running, did nothing")
    elif result.outcome == StopOutcome.STALE_CLEARED:
        console.print(f"{BADGE_DOWN} Task is not running even though it should, cleared pidfile")
    else:
        console.print(f"{BADGE_DOWN} Task stopped")


def _resolve_single_project(state: AppState, token: str | None) -> Project:
    try:
        return state.resolver().resolve_project_or_current(token)
    except BonkError as e:
        _error(str(e))
        raise typer.Exit(code=EXIT_ERROR) from None


def _run_interactive(command: list[str], cwd: Path | None = None) -> None:
    try:
        subprocess.run(command, cwd=cwd, check=False)
    except OSError as e:
        _error(f"Failed to start {command[0]}: {e}")
        raise typer.Exit(code=EXIT_ERROR) from None
    except KeyboardInterrupt:
        raise typer.Exit(code=EXIT_INTERRUPTED) from None


def cd_command(
    project: str | None = typer.Argument(None, help="Project (partial name is fine)"),
) -> None:
    """Open a shell in a project."""
    state = _load_state()
    target = _resolve_single_project(state, project)
    shell = os.environ.get("SHELL") or "sh"

    console.print(
        f"{SIGIL} {ARROW} {escape(target.id)} {ARROW} [dim]{escape(shell)}[/dim]",
        highlight=False,
    )
    _warning("This is a nested shell, remember to exit when you're done.")
    _run_interactive([shell], cwd=target.path)


def edit_command(
    project: str | None = typer.Argument(None, help="Project (partial name is fine)"),
) -> None:
    """Edit project in your favorite editor."""
    state = _load_state()
    target = _resolve_single_project(state, project)
    editor = shlex.split(state.config.editor)
    _run_interactive([*editor, str(target.path)])


# -h belongs to the task, only --help shows bonk's help for run
_RUN_SETTINGS = {
    "allow_extra_args": True,
    "ignore_unknown_options": True,
    "help_option_names": ["--help"],
}

app.command(name="ls")(ls_command)
app.command(name="list", hidden=True)(ls_command)
app.command(name="l", hidden=True)(ls_command)
app.command(name="run", context_settings=_RUN_SETTINGS)(run_command)
app.command(name="r", hidden=True, context_settings=_RUN_SETTINGS)(run_command)
app.command(name="stop")(stop_command)
app.command(name="s", hidden=True)(stop_command)
app.command(name="cd")(cd_command)
app.command(name="c", hidden=True)(cd_command)
app.command(name="edit")(edit_command)
app.command(name="e", hidden=True)(edit_command)


def main() -> None:
    """Console script entry point."""
    app()


__all__ = ["app", "main"]
