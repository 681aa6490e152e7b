"""
Command-line interface for runit.

Usage:
    runit run tests/unit                 # Discover and run tests under a directory
    runit run mypkg.tests --colors       # Discover under a package, colorized report
    runit run --config runit.yaml        # Roots and options from a config file
    runit run tests --json               # Print a JSON report instead of text
    runit run tests --report out.json    # Also write a JSON report to a file
    runit list tests                     # Show what would run, without running
    runit --version                      # Show version
"""

import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import RunnerConfig, find_config_file, load_config
from .errors import RunitError
from .reporter import ReportGenerator
from .runner import TestRunner

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ERROR = 2


def resolve_config(args: argparse.Namespace) -> RunnerConfig:
    """Merge the config file (explicit or found) with command-line overrides."""
    if args.config:
        config = load_config(args.config)
    else:
        found = find_config_file()
        if found:
            logger.debug("Using config file %s", found)
        config = load_config(found) if found else RunnerConfig()

    if args.roots:
        config.roots = list(args.roots)
    if args.pattern:
        config.pattern = args.pattern
    if getattr(args, "colors", False):
        config.colors = True
    if getattr(args, "report", None):
        config.report_path = args.report
    return config


def _build_runner(config: RunnerConfig) -> TestRunner:
    if not config.roots:
        raise RunitError("No test roots given. Pass a directory or package, or use --config.")
    # Dotted roots are imported relative to the working directory.
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    return TestRunner(*config.roots, pattern=config.pattern)


def cmd_run(args: argparse.Namespace) -> int:
    """Run tests and print the report."""
    try:
        config = resolve_config(args)
        runner = _build_runner(config)
        reporter = (lambda text: None) if args.json else print
        aggregate = runner.run_sync({"reporter": reporter, "colors": config.colors})
    except RunitError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.json:
        print(ReportGenerator(aggregate).to_json())

    if config.report_path:
        path = ReportGenerator(aggregate).write_json(config.report_path)
        if not args.json:
            print(f"\nReport written to: {path}")

    return EXIT_OK if aggregate.ok else EXIT_FAILED


def cmd_list(args: argparse.Namespace) -> int:
    """Show the execution plan."""
    try:
        config = resolve_config(args)
        plan = _build_runner(config).plan()
    except RunitError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.json:
        print(json.dumps(plan, indent=2))
        return EXIT_OK

    for i, cls in enumerate(plan["classes"], 1):
        order = "-" if cls["order"] is None else cls["order"]
        print(f"[{i}] {cls['name']} (order: {order}) {cls['module']}")
        for test in cls["tests"]:
            print(f"    {test['name']:30s} [{test['kind'].upper():6s}] {test['cases']} case(s)")
    summary = plan["summary"]
    print()
    print(f"Total classes: {summary['classes']}")
    print(f"Total tests:   {summary['tests']} ({summary['by_kind']['fact']} facts, {summary['by_kind']['theory']} theories)")
    print(f"Total cases:   {summary['cases']}")
    return EXIT_OK


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "roots",
        nargs="*",
        help="Directories or package names to discover tests under",
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        help="Path to configuration file",
    )
    parser.add_argument(
        "--pattern", "-p",
        type=str,
        help="File name pattern for test modules (default: test_*.py)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output JSON",
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        prog="runit",
        description="Discover and run runit test classes",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"runit {__version__}",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Run tests")
    _add_common_arguments(run_parser)
    run_parser.add_argument(
        "--colors",
        action="store_true",
        help="Colorize the report",
    )
    run_parser.add_argument(
        "--report",
        type=str,
        help="Write JSON report to file",
    )

    list_parser = subparsers.add_parser("list", help="List discovered tests without running them")
    _add_common_arguments(list_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "run":
        return cmd_run(args)
    elif args.command == "list":
        return cmd_list(args)
    else:
        parser.print_help()
        return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
