"""Structural detection of export format versions."""

from typing import Any, Optional


def is_export_format_v1(data: Any) -> bool:
    """v1 is a bare list of conversations."""
    return isinstance(data, list)


def is_export_format_v2(data: Any) -> bool:
    """v2 wraps folders and history without a version tag."""
    return (
        isinstance(data, dict)
        and "version" not in data
        and "folders" in data
        and "history" in data
    )


def is_export_format_v3(data: Any) -> bool:
    return _has_version(data, 3)


def is_export_format_v4(data: Any) -> bool:
    return _has_version(data, 4)


def is_export_format_v5(data: Any) -> bool:
    return _has_version(data, 5)


is_latest_export_format = is_export_format_v5

VERSION_PREDICATES = (
    (1, is_export_format_v1),
    (2, is_export_format_v2),
    (3, is_export_format_v3),
    (4, is_export_format_v4),
    (5, is_export_format_v5),
)


def detect_version(data: Any) -> Optional[int]:
    """
    returns the lowest version whose shape matches data.

    Args:
        data: decoded JSON payload

    Returns:
        version number 1..5, or None when no known shape matches
    """
    for version, matches in VERSION_PREDICATES:
        if matches(data):
            return version
    return None


def _has_version(data: Any, version: int) -> bool:
    # bools are ints in Python, but never valid version tags; 3.0 is 3
    if not isinstance(data, dict):
        return False
    tag = data.get("version")
    return (
        isinstance(tag, (int, float)) and not isinstance(tag, bool) and tag == version
    )
