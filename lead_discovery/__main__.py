"""Package entry point for ``python -m lead_discovery``."""
from __future__ import annotations

import sys

from . import cli


def main(argv: list[str] | None = None) -> int:
    """Invoke the discovery CLI, printing usage when called without arguments."""

    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        parser = cli.build_parser(prog="python -m lead_discovery")
        parser.print_help()
        return cli.EXIT_USAGE

    return cli.main(argv)


if __name__ == "__main__":  # pragma: no cover - module entry point
    sys.exit(main())
