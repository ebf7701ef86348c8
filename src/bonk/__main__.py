"""Allow running bonk as ``python -m bonk``."""

from bonk.cli import main

if __name__ == "__main__":
    main()
