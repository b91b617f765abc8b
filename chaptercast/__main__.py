"""Module entrypoint for running chaptercast as ``python -m chaptercast``."""

from __future__ import annotations

from chaptercast.cli import main


if __name__ == "__main__":
    main()
