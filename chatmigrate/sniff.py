"""Discovery of export files and streaming format detection."""

import logging
import tempfile
import zipfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import ijson

from chatmigrate.core.models import CURRENT_VERSION

logger = logging.getLogger(__name__)

# first version carrying an explicit version tag
FIRST_TAGGED_VERSION = 3


@contextmanager
def open_source(source: Path) -> Iterator[list[Path]]:
    """
    yields the export files found at source.

    Archive members are extracted into a temporary directory that is removed
    when the context exits.

    Raises:
        FileNotFoundError: if source doesn't exist
    """
    with tempfile.TemporaryDirectory(prefix="chatmigrate_") as temp_dir:
        yield discover_files(source, extract_dir=Path(temp_dir))


def discover_files(source: Path, extract_dir: Optional[Path] = None) -> list[Path]:
    """
    discovers export files from source path.

    Args:
        source: path to JSON file, directory, or ZIP archive
        extract_dir: where ZIP members go (defaults to a new temp directory
            the caller must clean up; prefer open_source)

    Returns:
        list of paths to JSON files

    Raises:
        FileNotFoundError: if source doesn't exist
    """
    if not source.exists():
        raise FileNotFoundError(f"Source not found: {source}")

    if source.is_dir():
        return sorted(source.glob("*.json"))

    if source.suffix == ".zip":
        if extract_dir is None:
            extract_dir = Path(tempfile.mkdtemp(prefix="chatmigrate_"))
        return _extract_zip(source, extract_dir)

    return [source] if source.suffix == ".json" else []


def _extract_zip(zip_path: Path, target_dir: Path) -> list[Path]:
    """
    extracts the archive's export files into target_dir.

    Members are flattened to their filename so nothing escapes target_dir.
    Colliding names from different archive folders get a numeric suffix.
    """
    extracted = []
    with zipfile.ZipFile(zip_path, "r") as zf:
        for info in zf.infolist():
            if info.is_dir() or not info.filename.endswith(".json"):
                continue
            target_path = _unique_path(target_dir, Path(info.filename).name)
            if target_path.name != Path(info.filename).name:
                logger.warning(
                    "Archive member %s collides with an earlier file, saved as %s",
                    info.filename,
                    target_path.name,
                )
            target_path.write_bytes(zf.read(info))
            extracted.append(target_path)

    return sorted(extracted)


def _unique_path(directory: Path, name: str) -> Path:
    candidate = directory / name
    counter = 2
    while candidate.exists():
        candidate = directory / f"{Path(name).stem}_{counter}.json"
        counter += 1
    return candidate


def sniff_version(path: Path) -> Optional[int]:
    """
    detects the export version of a file without loading it.

    Streams parser events and only looks at the top level of the document,
    so large histories are never held in memory.

    Args:
        path: JSON file to inspect

    Returns:
        detected version 1..5, or None if the shape is not a known export

    Raises:
        ijson.JSONError: if the file is not valid JSON
    """
    with open(path, "rb") as f:
        return _sniff_stream(f)


def _sniff_stream(f: Any) -> Optional[int]:
    keys: set[str] = set()
    for prefix, event, value in ijson.parse(f):
        if prefix == "" and event == "start_array":
            return 1
        if prefix == "" and event == "map_key":
            keys.add(value)
        elif prefix == "version":
            # the version tag decides on its own; floats arrive as Decimal
            if event == "number" and value == int(value):
                if FIRST_TAGGED_VERSION <= value <= CURRENT_VERSION:
                    return int(value)
            return None

    if "folders" in keys and "history" in keys:
        return 2
    return None
