from __future__ import annotations

"""Console entry point for a2quiz."""

import sys

from . import __version__
from .app.cli import main


def cli() -> None:
    if "--version" in sys.argv[1:]:
        print(f"a2quiz {__version__}")
        sys.exit(0)
    sys.exit(main())


if __name__ == "__main__":
    cli()
