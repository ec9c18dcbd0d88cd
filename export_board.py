#!/usr/bin/env python3
"""
Trello Board Attachments Exporter - Main CLI Entry Point

Two entry points, one per mode:
  download  Save every file attachment of a board as <idShort>-<fileName>
            next to a sorted 00-cards.json manifest.
  export    Save the board JSON export with every file attachment inlined
            as base64 in cards[].attachments[].file.
"""

import argparse
import logging
import sys
from typing import List, Optional

import yaml

from config_loader import ConfigLoader, get_nested
from logger import setup_logging, log_section, log_config
from models import RunMode
from orchestrator import ExportOrchestrator, RunReportFormatter

__version__ = "1.0.0"

DEFAULT_CONFIG_PATH = 'config.yaml'


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        description="Download or export all attachments of a Trello board",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Download every attachment plus the cards manifest
  python export_board.py --mode download --board-url https://trello.com/b/AbCdEfGh/my-board

  # Export board JSON with attachments inlined
  python export_board.py --mode export --board-url https://trello.com/b/AbCdEfGh/my-board

  # Use an explicit export link
  python export_board.py --mode export --board-url URL --export-url https://trello.com/b/AbCdEfGh.json

  # Verbose logging
  python export_board.py --mode download --board-url URL -vv
        """
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'%(prog)s {__version__}'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help=f'Path to configuration YAML file (default: {DEFAULT_CONFIG_PATH} if present)'
    )

    parser.add_argument(
        '--mode',
        choices=[m.value for m in RunMode],
        help='download: save attachment files; export: board JSON with attachments inlined'
    )

    parser.add_argument(
        '--board-url',
        type=str,
        help='URL of the board page (e.g., https://trello.com/b/AbCdEfGh/board-name)'
    )

    parser.add_argument(
        '--export-url',
        type=str,
        help='Board JSON export link; derived from --board-url when missing or malformed'
    )

    parser.add_argument(
        '--output-dir',
        type=str,
        help='Directory receiving the exported files'
    )

    parser.add_argument(
        '--max-workers',
        type=int,
        help='Maximum concurrent API requests'
    )

    parser.add_argument(
        '--manifest-after-settle',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Write the cards manifest only after every download has settled'
    )

    parser.add_argument(
        '--progress',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='Show progress bars for attachment jobs'
    )

    parser.add_argument(
        '--report-path',
        type=str,
        help='Write a JSON run report to this path'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='count',
        default=0,
        help='Increase verbosity (-v for INFO, -vv for DEBUG)'
    )

    return parser


def run_export(config: dict, logger: logging.Logger) -> int:
    """Execute one run and print its report."""
    mode = RunMode(get_nested(config, 'export.mode'))
    logger.info(f"Mode: {mode.value}, Board: {get_nested(config, 'trello.board_url')}")

    orchestrator = ExportOrchestrator(config)
    report = orchestrator.run(mode)

    formatter = RunReportFormatter(logger)
    print("\n" + formatter.format_console_report(report))

    report_path = get_nested(config, 'export.report_path')
    if report_path:
        formatter.export_json_report(report, report_path)

    return 0 if report.succeeded else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    try:
        logger = setup_logging(verbosity=args.verbose)

        config_path = args.config or DEFAULT_CONFIG_PATH
        config = ConfigLoader.load(config_path, required=args.config is not None)
        config = ConfigLoader.merge_with_args(config, args)
        ConfigLoader.validate(config)

        # Reconfigure logging with config file settings
        logger = setup_logging(
            verbosity=args.verbose,
            log_file=get_nested(config, 'logging.file'),
            level=get_nested(config, 'logging.level')
        )

        log_section("Trello Board Attachments Exporter")
        logger.info(f"Version: {__version__}")
        log_config(config)

        return run_export(config, logger)

    except FileNotFoundError as e:
        print(f"ERROR: File not found: {e}", file=sys.stderr)
        return 2
    except (ValueError, yaml.YAMLError) as e:
        print(f"ERROR: Configuration error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nExport interrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
