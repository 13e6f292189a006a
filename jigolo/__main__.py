"""Module entrypoint for ``python -m jigolo``.

All argument parsing and runtime setup happen in ``jigolo.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
