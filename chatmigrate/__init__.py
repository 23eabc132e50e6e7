"""Chatbot export format migration tool."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import ijson
from rich.console import Console
from rich.table import Table

from chatmigrate.batch import import_files, migrate_files, write_json
from chatmigrate.sniff import open_source, sniff_version
from chatmigrate.storage import JsonFileStore, export_data

logger = logging.getLogger(__name__)


def main(argv: Optional[list[str]] = None) -> int:
    """
    main entry point for chatmigrate CLI.

    Args:
        argv: command line arguments (defaults to sys.argv[1:])

    Returns:
        exit code (0 success, 1 partial failure, 2 fatal error)
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # configures logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(message)s",
    )

    source_path = getattr(args, "source", None)
    if source_path is not None and not Path(source_path).exists():
        logger.error("Source not found: %s", source_path)
        return 2

    try:
        if args.command == "migrate":
            return migrate_files(
                source=Path(args.source),
                output_dir=Path(args.output),
                dry_run=args.dry_run,
                quiet=args.quiet,
                progress=args.progress,
            )
        if args.command == "import":
            return import_files(
                source=Path(args.source),
                store=JsonFileStore(Path(args.store)),
                dry_run=args.dry_run,
                quiet=args.quiet,
                progress=args.progress,
            )
        if args.command == "export":
            return _export(Path(args.store), args.output)
        return _inspect(Path(args.source))
    except Exception as e:
        logger.error("Fatal error: %s", e)
        return 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Migrate chatbot exports to the current data format"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="enable debug logging",
    )
    common.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="suppress non-error output",
    )
    common.add_argument(
        "--progress",
        action="store_true",
        help="show progress bar",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    migrate_parser = subparsers.add_parser(
        "migrate", parents=[common], help="convert export files to the current format"
    )
    migrate_parser.add_argument(
        "source",
        help="JSON file, directory of JSON files, or ZIP archive",
    )
    migrate_parser.add_argument(
        "-o",
        "--output",
        default="migrated",
        help="output directory (default: migrated)",
    )
    migrate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="migrate files but don't write output",
    )

    import_parser = subparsers.add_parser(
        "import", parents=[common], help="merge export files into a store"
    )
    import_parser.add_argument(
        "source",
        help="JSON file, directory of JSON files, or ZIP archive",
    )
    import_parser.add_argument(
        "--store",
        required=True,
        help="JSON store file to merge into",
    )
    import_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="migrate and merge without writing the store",
    )

    export_parser = subparsers.add_parser(
        "export", parents=[common], help="write the store as a current-format export"
    )
    export_parser.add_argument(
        "--store",
        required=True,
        help="JSON store file to export",
    )
    export_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="output file (default: stdout)",
    )

    inspect_parser = subparsers.add_parser(
        "inspect", parents=[common], help="report the detected format of export files"
    )
    inspect_parser.add_argument(
        "source",
        help="JSON file, directory of JSON files, or ZIP archive",
    )

    return parser


def _export(store_path: Path, output: Optional[str]) -> int:
    """writes the store contents as a current-version export."""
    data = export_data(JsonFileStore(store_path))
    if output is None:
        json.dump(data, sys.stdout, indent=2)
        sys.stdout.write("\n")
    else:
        write_json(Path(output), data)
    return 0


def _inspect(source: Path) -> int:
    """prints a table of detected versions; returns 1 if any file is unknown."""
    table = Table(title="Export formats")
    table.add_column("File")
    table.add_column("Version")

    unknown = 0
    with open_source(source) as files:
        for path in files:
            try:
                version = sniff_version(path)
            except ijson.JSONError as e:
                logger.debug("Could not parse %s: %s", path, e)
                table.add_row(path.name, "[red]invalid JSON[/red]")
                unknown += 1
                continue
            if version is None:
                table.add_row(path.name, "[yellow]unsupported[/yellow]")
                unknown += 1
            else:
                table.add_row(path.name, f"v{version}")

    Console().print(table)
    return 1 if unknown else 0
