"""Choosing one name out of several candidates.

Resolution asks a Disambiguator whenever user input matches more than one
project or task. The interactive implementation prompts with questionary.
The non-interactive one picks deterministically or fails, for scripts and
tests.
"""

import logging
import sys
from collections.abc import Sequence
from typing import Protocol

from bonk.core.exceptions import AmbiguousMatchError, SelectionAbortedError

logger = logging.getLogger(__name__)


class Disambiguator(Protocol):
    """Capability to choose one of N candidates."""

    def choose(self, message: str, candidates: Sequence[str]) -> str:
        """Return one of ``candidates``.

        Args:
            message: Prompt label shown to the user.
            candidates: Names to choose from, never empty.

        Returns:
            The chosen candidate.

        Raises:
            ResolutionError: If no choice can be made.

        """
        ...


class InteractiveDisambiguator:
    """Arrow-key selection prompt on the controlling terminal."""

    def choose(self, message: str, candidates: Sequence[str]) -> str:
        import questionary

        answer = questionary.select(message, choices=list(candidates)).ask()
        # questionary returns None on Ctrl+C
        if answer is None:
            raise SelectionAbortedError("Selection cancelled")
        return str(answer)


class NonInteractiveDisambiguator:
    """Deterministic stand-in for the interactive prompt.

    With ``pick=None`` every request fails with AmbiguousMatchError listing
    the candidates. With an index, that candidate is returned. Every request
    is kept in ``requests`` for inspection.
    """

    def __init__(self, pick: int | None = None) -> None:
        self.pick = pick
        self.requests: list[tuple[str, list[str]]] = []

    def choose(self, message: str, candidates: Sequence[str]) -> str:
        self.requests.append((message, list(candidates)))
        if self.pick is None:
            raise AmbiguousMatchError(
                f"{message} Candidates: {', '.join(candidates)}",
                candidates,
            )
        return candidates[self.pick]


def _is_interactive() -> bool:
    return sys.stdin.isatty() and sys.stdout.isatty()


def default_disambiguator() -> Disambiguator:
    """Interactive prompt on a terminal, failing stand-in otherwise."""
    if _is_interactive():
        return InteractiveDisambiguator()
    logger.debug("Not a terminal, ambiguous input will fail instead of prompting")
    return NonInteractiveDisambiguator()


__all__ = [
    "Disambiguator",
    "InteractiveDisambiguator",
    "NonInteractiveDisambiguator",
    "default_disambiguator",
]
