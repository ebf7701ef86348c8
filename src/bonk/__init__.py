"""bonk - your chaotic-good JS project companion.

Discovers Node and Deno projects under configured root directories, shows
their git and task state, and runs or stops their tasks as managed
foreground or background processes.
"""

__version__ = "0.4.0"

__all__ = ["__version__"]
