"""Shared CLI helpers: consoles, exit codes, message helpers, logging setup."""

import logging
import random

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_USAGE_ERROR = 2  # click's code for argument validation errors
EXIT_INTERRUPTED = 130

console = Console(soft_wrap=True)
err_console = Console(stderr=True, soft_wrap=True)

SIGIL = "[black on bright_yellow] bonk [/black on bright_yellow]"
ARROW = "[bright_yellow]→[/bright_yellow]"
BADGE_UP = "[black on bright_green]  UP  [/black on bright_green]"
BADGE_DOWN = "[black on bright_red] DOWN [/black on bright_red]"
BADGE_OOPS = "[black on bright_red] OOPS [/black on bright_red]"
BADGE_DAMN = "[black on bright_red] DAMN [/black on bright_red]"
BADGE_HEY = "[black on yellow] HEY! [/black on yellow]"

RAGE_EMOTICONS = (
    "(╯°□°)╯︵ ┻━┻",
    "(ノಠ益ಠ)ノ彡┻━┻",
    "(ಠ_ಠ)",
    "╮(╯▽╰)╭",
    "(｀д´)",
)

_log_handler: logging.Handler | None = None


def rage_emoticon() -> str:
    return random.choice(RAGE_EMOTICONS)


def _error(message: str) -> None:
    """Print a fatal error message to stderr."""
    err_console.print(f"{SIGIL} {rage_emoticon()}", highlight=False)
    err_console.print(f"{BADGE_DAMN} [bright_red]{escape(message)}[/bright_red]")


def _info(message: str) -> None:
    console.print(f"[dim]{escape(message)}[/dim]")


def _warning(message: str) -> None:
    console.print(f"{BADGE_HEY} [bright_yellow]{escape(message)}[/bright_yellow]")


def _success(message: str) -> None:
    console.print(f"{BADGE_UP} {escape(message)}")


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Route log records to stderr through rich.

    Args:
        verbose: Enable DEBUG level.
        quiet: Only show errors.

    """
    global _log_handler

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    root = logging.getLogger()
    if _log_handler is not None:
        root.removeHandler(_log_handler)

    _log_handler = RichHandler(
        console=err_console,
        show_time=False,
        show_path=verbose,
        rich_tracebacks=verbose,
    )
    _log_handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(_log_handler)
    root.setLevel(level)
