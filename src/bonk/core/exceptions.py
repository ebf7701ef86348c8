"""Exception hierarchy for bonk.

All errors raised by core modules derive from BonkError so the CLI layer
can turn them into a single message and exit code.
"""

from collections.abc import Sequence

__all__ = [
    "AmbiguousMatchError",
    "BonkError",
    "ConfigError",
    "DiscoveryError",
    "LaunchError",
    "ResolutionError",
    "SelectionAbortedError",
]


class BonkError(Exception):
    """Base class for all bonk errors."""


class ConfigError(BonkError):
    """Configuration file is missing data, unreadable or invalid."""


class DiscoveryError(BonkError):
    """A candidate project directory could not be analyzed.

    Raised by the project analyzer and caught by the scanner, which logs
    it and moves on to the next directory.
    """


class ResolutionError(BonkError):
    """User input could not be mapped to a project or task."""


class AmbiguousMatchError(ResolutionError):
    """Several candidates matched and no choice could be made.

    Attributes:
        candidates: The names that matched the user input.

    """

    def __init__(self, message: str, candidates: Sequence[str] = ()) -> None:
        """Initialize with message and matching candidates.

        Args:
            message: Human readable description.
            candidates: The names that matched.

        """
        super().__init__(message)
        self.candidates = list(candidates)


class SelectionAbortedError(ResolutionError):
    """The user cancelled an interactive selection prompt."""


class LaunchError(BonkError):
    """A task process could not be started."""
