"""Key-value store access and import/export of chatbot data."""

import json
import logging
from pathlib import Path
from typing import Any, Optional, Protocol

from chatmigrate.core.clean import (
    clean_conversation_history,
    clean_selected_conversation,
)
from chatmigrate.core.migrate import migrate
from chatmigrate.core.models import CURRENT_VERSION, MigrationResult

logger = logging.getLogger(__name__)

HISTORY_KEY = "conversationHistory"
FOLDERS_KEY = "folders"
PROMPTS_KEY = "prompts"
SELECTED_CONVERSATION_KEY = "selectedConversation"


class KeyValueStore(Protocol):
    """protocol for string key-value stores."""

    def get(self, key: str) -> Optional[str]:
        """returns the stored string, or None if absent."""

    def set(self, key: str, value: str) -> None:
        """stores value under key."""

    def remove(self, key: str) -> None:
        """deletes key if present."""


class MemoryStore:
    """dict-backed store."""

    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """
    store persisted as a single JSON object mapping keys to string values.

    The file is read on every access and rewritten on every change. A missing
    file is an empty store.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if key in data:
            del data[key]
            self._save(data)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store file is not a JSON object: {self.path}")
        return data

    def _save(self, data: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)


def merge_by_id(
    existing: list[dict[str, Any]], incoming: list[dict[str, Any]]
) -> list[dict[str, Any]]:
    """
    concatenates two record lists, keeping the first record seen for each id.

    Existing records win over incoming ones with the same id; order is stable.
    """
    seen: set[Any] = set()
    merged = []
    for record in [*existing, *incoming]:
        if not isinstance(record, dict):
            logger.warning("Dropping malformed record during merge: %r", record)
            continue
        key = _id_key(record.get("id"))
        if key in seen:
            continue
        seen.add(key)
        merged.append(record)
    return merged


def import_data(store: KeyValueStore, data: Any) -> MigrationResult:
    """
    migrates data and merges it into the store.

    Migration and all store reads happen before the first write, so an
    unsupported payload or a corrupt store value leaves the store untouched.

    Args:
        store: destination store
        data: decoded export payload of any supported version

    Returns:
        MigrationResult of the imported payload

    Raises:
        UnsupportedFormatError: if data matches no known export version
        json.JSONDecodeError: if a stored collection is not valid JSON
    """
    result = migrate(data)
    cleaned = result.data

    old_history = _read_list(store, HISTORY_KEY)
    old_folders = _read_list(store, FOLDERS_KEY)
    old_prompts = _read_list(store, PROMPTS_KEY)

    new_history = _as_list(cleaned.get("history"))
    new_folders = _as_list(cleaned.get("folders"))
    new_prompts = _as_list(cleaned.get("prompts"))

    history = merge_by_id(old_history, new_history)
    folders = merge_by_id(old_folders, new_folders)
    prompts = merge_by_id(old_prompts, new_prompts)

    store.set(HISTORY_KEY, json.dumps(history))
    if history:
        store.set(SELECTED_CONVERSATION_KEY, json.dumps(history[-1]))
    else:
        store.remove(SELECTED_CONVERSATION_KEY)
    store.set(FOLDERS_KEY, json.dumps(folders))
    store.set(PROMPTS_KEY, json.dumps(prompts))

    logger.info(
        "Imported v%s data: %d conversation(s), %d folder(s), %d prompt(s)",
        result.original_version,
        len(new_history),
        len(new_folders),
        len(new_prompts),
    )
    return result


def export_data(store: KeyValueStore) -> dict[str, Any]:
    """returns the store contents as a current-version export payload."""
    return {
        "version": CURRENT_VERSION,
        "history": _read_list(store, HISTORY_KEY),
        "folders": _read_list(store, FOLDERS_KEY),
        "prompts": _read_list(store, PROMPTS_KEY),
    }


def load_conversation_history(store: KeyValueStore) -> list[dict[str, Any]]:
    """reads the stored history, repairing legacy records."""
    raw = store.get(HISTORY_KEY)
    if not raw:
        return []
    return clean_conversation_history(json.loads(raw))


def load_selected_conversation(store: KeyValueStore) -> Optional[dict[str, Any]]:
    """reads the selected conversation, repairing it if it is a legacy record."""
    raw = store.get(SELECTED_CONVERSATION_KEY)
    if not raw:
        return None
    conversation = json.loads(raw)
    if not isinstance(conversation, dict):
        logger.warning("Ignoring malformed selected conversation")
        return None
    return clean_selected_conversation(conversation)


def _read_list(store: KeyValueStore, key: str) -> list[Any]:
    raw = store.get(key)
    if not raw:
        return []
    return _as_list(json.loads(raw))


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _id_key(record_id: Any) -> Any:
    """returns a hashable dedupe key; unhashable ids compare by JSON value."""
    try:
        hash(record_id)
    except TypeError:
        return ("json", json.dumps(record_id, sort_keys=True, default=str))
    return record_id
