"""Command line interface for running a lead discovery pass."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .config import ConfigurationError, load_settings
from .io import export_leads
from .orchestrator import DiscoveryOrchestrator
from .persistence import build_gateway

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_STOPPED = 3


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Discover local businesses with weak web presence from map listings",
    )
    subparsers = parser.add_subparsers(dest="command")

    run = subparsers.add_parser("run", help="Search, qualify and store new leads")
    run.add_argument("--config", help="Path to a pipeline configuration file (YAML or JSON)")
    run.add_argument("--workers", type=int, default=None, help="Number of parallel browser workers")
    run.add_argument("--target", type=int, default=None, help="Stop once this many leads have been added")
    run.add_argument(
        "--location",
        action="append",
        dest="locations",
        help="Location to search (repeatable; defaults to the configured list)",
    )
    run.add_argument(
        "--category",
        action="append",
        dest="categories",
        help="Business category to search (repeatable; defaults to the configured list)",
    )
    run.add_argument(
        "--strategy",
        choices=["pagespeed", "heuristic"],
        default=None,
        help="Website quality strategy",
    )
    run.add_argument("--database-url", default=None, help="SQLAlchemy database URL for stored leads")
    run.add_argument(
        "--memory",
        action="store_true",
        help="Keep leads in memory only (combine with --export to keep them)",
    )
    run.add_argument("--export", default=None, help="Write the stored leads to a CSV, TSV or XLSX file")
    run.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command != "run":
        parser.print_help()
        return EXIT_USAGE

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = load_settings(args.config).with_overrides(
            workers=args.workers,
            target_leads=args.target,
            quality_strategy=args.strategy,
            database_url=args.database_url,
        )
    except ConfigurationError as exc:
        logging.error("Invalid configuration: %s", exc)
        return EXIT_USAGE

    gateway = build_gateway(settings.database_url, in_memory=args.memory)
    orchestrator = DiscoveryOrchestrator(settings, gateway)
    summary = orchestrator.run(args.locations, args.categories)

    if args.export:
        path = export_leads(args.export, gateway.all())
        logging.info("Leads written to %s", Path(path).resolve())

    print(json.dumps(summary.as_dict(), indent=2))
    if summary.stopped and not (orchestrator.control and orchestrator.control.cancelled):
        return EXIT_STOPPED
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
