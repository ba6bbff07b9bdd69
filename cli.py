#!/usr/bin/env python3
"""
Command-line interface for Thai Election 69 ballot forensics.

Usage:
    python cli.py --help
    python cli.py build --out data/bundle.json
    python cli.py report --out reports/forensics.md
    python cli.py snapshot --out data/ect_snapshots
    python cli.py --version
"""

import argparse
import copy
import sys
from pathlib import Path
from typing import Optional

from version import __version__


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser."""
    parser = argparse.ArgumentParser(
        prog="election-forensics",
        description="""
Thai Election 69 ballot forensics - reconcile ECT result feeds with
constituency boundaries and score turnout anomalies.

Examples:
  %(prog)s build --out data/bundle.json                 # Dashboard bundle (JSON)
  %(prog)s report --out reports/forensics.md            # Markdown forensics report
  %(prog)s snapshot --out data/ect_snapshots            # Archive every ECT feed
  %(prog)s --snapshot-dir data/ect_snapshots/ect_snapshot_latest report  # Offline
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version", "-V",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "--snapshot-dir",
        help="Read ECT feeds from a local snapshot directory instead of the network"
    )
    parser.add_argument(
        "--degraded",
        action="store_true",
        help="Build whichever lookups succeeded instead of failing all of them"
    )
    parser.add_argument(
        "--boundaries",
        help="Constituency boundary GeoJSON (default: BOUNDARY_PATH or data/constituencies.json)"
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    build_parser = subparsers.add_parser(
        "build",
        help="Build the dashboard data bundle",
        description="Match boundaries, fetch ECT feeds and write the JSON bundle."
    )
    build_parser.add_argument(
        "--out", "-o",
        default="data/bundle.json",
        help="Output JSON file (default: data/bundle.json)"
    )

    report_parser = subparsers.add_parser(
        "report",
        help="Generate the markdown forensics report",
        description="Run the pipeline and write a markdown forensics report."
    )
    report_parser.add_argument(
        "--out", "-o",
        help="Output markdown file (default: <REPORT_DIR>/forensics_report.md)"
    )
    report_parser.add_argument(
        "--top",
        type=int,
        default=20,
        help="Rows in the composite anomaly table (default: 20)"
    )

    snapshot_parser = subparsers.add_parser(
        "snapshot",
        help="Download every ECT feed to disk",
        description="Archive all ECT feeds with a checksum manifest."
    )
    snapshot_parser.add_argument(
        "--out", "-o",
        default="data/ect_snapshots",
        help="Base output directory for snapshots (default: data/ect_snapshots)"
    )

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    from config import get_config
    from logging_config import get_logger, setup_logging

    config = copy.copy(get_config())
    setup_logging("DEBUG" if args.verbose else config.log_level)
    logger = get_logger("cli")

    if args.snapshot_dir:
        config.snapshot_dir = args.snapshot_dir
    if args.degraded:
        config.allow_degraded = True
    if args.boundaries:
        config.boundary_path = args.boundaries

    for issue in config.validate():
        logger.warning(f"Config: {issue}")

    if args.command == "snapshot":
        from ect_api import snapshot_sources
        from requests import RequestException

        try:
            out_dir = snapshot_sources(Path(args.out).resolve(), config)
        except RequestException as e:
            logger.error(f"Snapshot failed: {e}")
            return 1
        print(f"Snapshot saved to: {out_dir}")
        return 0

    from dashboard_data import build_dashboard_bundle, write_bundle

    try:
        bundle = build_dashboard_bundle(config)
    except FileNotFoundError as e:
        logger.error(f"Boundary file not found: {e.filename or config.boundary_path}")
        return 1

    if args.command == "build":
        path = write_bundle(bundle, args.out)
        print(f"Bundle written to: {path}")

    elif args.command == "report":
        from election_reporting import generate_forensics_report, save_report

        out = args.out or str(Path(config.report_dir) / "forensics_report.md")
        path = save_report(generate_forensics_report(bundle, top_n=args.top), out)
        print(f"Report saved to: {path}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
