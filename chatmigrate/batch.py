"""Batch migration and import of export files."""

import json
import logging
from pathlib import Path
from typing import Any, Callable

from chatmigrate.core.migrate import migrate
from chatmigrate.core.models import MigrationResult
from chatmigrate.progress import ProgressHandler
from chatmigrate.sniff import open_source
from chatmigrate.storage import KeyValueStore, MemoryStore, import_data

logger = logging.getLogger(__name__)


def load_json(path: Path) -> Any:
    """reads and decodes a JSON file."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def write_json(path: Path, data: Any) -> None:
    """writes data as indented JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
        f.write("\n")


def migrate_files(
    source: Path,
    output_dir: Path,
    dry_run: bool = False,
    quiet: bool = False,
    progress: bool = False,
) -> int:
    """
    migrates every export file under source to the current version.

    Args:
        source: path to JSON file, directory, or ZIP archive
        output_dir: directory receiving one ``<stem>.json`` per input file
        dry_run: if True, migrate but don't write anything
        quiet: if True, suppress non-error output
        progress: if True, show progress bar

    Returns:
        exit code (0 success, 1 partial failure)
    """

    def process(path: Path, data: Any) -> MigrationResult:
        result = migrate(data)
        if not dry_run:
            write_json(output_dir / f"{path.stem}.json", result.data)
        return result

    return _run_batch(source, process, "migrated", quiet, progress)


def import_files(
    source: Path,
    store: KeyValueStore,
    dry_run: bool = False,
    quiet: bool = False,
    progress: bool = False,
) -> int:
    """
    imports every export file under source into the store, in discovery order.

    Records already present in the store keep precedence over imported
    records with the same id.

    Args:
        source: path to JSON file, directory, or ZIP archive
        store: destination store
        dry_run: if True, import into a throwaway in-memory store instead
        quiet: if True, suppress non-error output
        progress: if True, show progress bar

    Returns:
        exit code (0 success, 1 partial failure)
    """
    target: KeyValueStore = MemoryStore() if dry_run else store

    def process(_path: Path, data: Any) -> MigrationResult:
        return import_data(target, data)

    return _run_batch(source, process, "imported", quiet, progress)


def _run_batch(
    source: Path,
    process: Callable[[Path, Any], MigrationResult],
    verb: str,
    quiet: bool,
    progress: bool,
) -> int:
    """runs process over each discovered file, counting failures."""
    with ProgressHandler(quiet=quiet, show_progress=progress, verb=verb) as handler:
        handler.start_discovery()

        with open_source(source) as files:
            if not files:
                handler.log_info(f"No JSON files found in {source}")
                return 0

            handler.log_info(f"Found {len(files)} file(s) to process")
            handler.set_total(len(files))

            processed = 0
            failed = 0
            for path in files:
                try:
                    result = process(path, load_json(path))
                except Exception as e:
                    handler.log_error(f"Failed: {path.name}: {e}")
                    failed += 1
                else:
                    logger.debug(
                        "%s: started at v%s", path.name, result.original_version
                    )
                    handler.log_info(
                        f"{path.name}: v{result.original_version}, {verb}"
                    )
                    processed += 1
                handler.update(path.name)

        handler.finish(processed, failed)

        return 1 if failed else 0
