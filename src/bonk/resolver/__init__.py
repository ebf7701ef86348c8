"""Resolution of user-typed project and task names.

Public API:
    Resolver: Maps partial names to a Resolution
    Disambiguator: Protocol for choosing among several matches
    InteractiveDisambiguator / NonInteractiveDisambiguator: implementations
"""

from .disambiguator import (
    Disambiguator,
    InteractiveDisambiguator,
    NonInteractiveDisambiguator,
    default_disambiguator,
)
from .resolver import Resolution, Resolver

__all__ = [
    "Disambiguator",
    "InteractiveDisambiguator",
    "NonInteractiveDisambiguator",
    "Resolution",
    "Resolver",
    "default_disambiguator",
]
