"""Entry point for `python -m diff_cli` and the `version-diff` console script."""

from __future__ import annotations

from diff_cli.app import app


def main() -> None:
    app()


if __name__ == "__main__":
    main()
