"""tests for store access, import and export."""

import json
from pathlib import Path

import pytest

from chatmigrate.core.migrate import UnsupportedFormatError
from chatmigrate.storage import (
    FOLDERS_KEY,
    HISTORY_KEY,
    PROMPTS_KEY,
    SELECTED_CONVERSATION_KEY,
    JsonFileStore,
    MemoryStore,
    export_data,
    import_data,
    load_conversation_history,
    load_selected_conversation,
    merge_by_id,
)


def test_merge_keeps_first_occurrence() -> None:
    """colliding ids keep the earlier record."""
    existing = [{"id": "a", "name": "old"}, {"id": "b"}]
    incoming = [{"id": "a", "name": "new"}, {"id": "c"}]

    merged = merge_by_id(existing, incoming)

    assert merged == [{"id": "a", "name": "old"}, {"id": "b"}, {"id": "c"}]


def test_merge_dedupes_within_one_list() -> None:
    """duplicates inside a single list are collapsed too."""
    assert merge_by_id([], [{"id": "a", "n": 1}, {"id": "a", "n": 2}]) == [
        {"id": "a", "n": 1}
    ]


def test_memory_store_get_set_remove() -> None:
    """MemoryStore behaves like a string map."""
    store = MemoryStore()

    assert store.get("k") is None
    store.set("k", "v")
    assert store.get("k") == "v"
    store.remove("k")
    store.remove("k")
    assert store.get("k") is None


def test_json_file_store_persists(tmp_path: Path) -> None:
    """JsonFileStore writes through to disk."""
    path = tmp_path / "store" / "data.json"
    store = JsonFileStore(path)

    assert store.get("k") is None
    store.set("k", "v")

    assert JsonFileStore(path).get("k") == "v"
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": "v"}

    store.remove("k")
    assert JsonFileStore(path).get("k") is None


def test_json_file_store_rejects_non_object(tmp_path: Path) -> None:
    """a store file that isn't a JSON object is an error."""
    path = tmp_path / "data.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError):
        JsonFileStore(path).get("k")


def test_import_into_empty_store() -> None:
    """importing a v1 export fills all collections and selects the last chat."""
    store = MemoryStore()

    result = import_data(store, [{"id": "a", "messages": []}, {"id": "b"}])

    assert result.original_version == "1"
    history = json.loads(store.get(HISTORY_KEY) or "")
    assert [c["id"] for c in history] == ["a", "b"]
    assert json.loads(store.get(FOLDERS_KEY) or "") == []
    assert json.loads(store.get(PROMPTS_KEY) or "") == []
    assert json.loads(store.get(SELECTED_CONVERSATION_KEY) or "")["id"] == "b"


def test_import_existing_records_win() -> None:
    """records already in the store are not overwritten by the import."""
    store = MemoryStore(
        {
            HISTORY_KEY: json.dumps([{"id": "a", "name": "mine"}]),
            FOLDERS_KEY: json.dumps([{"id": "f1", "name": "Mine", "type": "chat"}]),
        }
    )

    import_data(
        store,
        {
            "version": 5,
            "history": [{"id": "a", "name": "theirs"}, {"id": "b", "name": "new"}],
            "folders": [{"id": "f1", "name": "Theirs", "type": "chat"}],
            "prompts": [{"id": "p1", "name": "P", "content": "", "folderId": None}],
        },
    )

    history = json.loads(store.get(HISTORY_KEY) or "")
    assert [(c["id"], c["name"]) for c in history] == [("a", "mine"), ("b", "new")]
    folders = json.loads(store.get(FOLDERS_KEY) or "")
    assert folders == [{"id": "f1", "name": "Mine", "type": "chat"}]
    assert [p["id"] for p in json.loads(store.get(PROMPTS_KEY) or "")] == ["p1"]


def test_import_empty_history_clears_selection() -> None:
    """with no conversations at all the selection is removed."""
    store = MemoryStore({SELECTED_CONVERSATION_KEY: json.dumps({"id": "gone"})})

    import_data(store, {"version": 5, "history": [], "folders": [], "prompts": []})

    assert store.get(SELECTED_CONVERSATION_KEY) is None


def test_import_unsupported_leaves_store_untouched() -> None:
    """a rejected payload never reaches the store."""
    store = MemoryStore({HISTORY_KEY: json.dumps([{"id": "a"}])})

    with pytest.raises(UnsupportedFormatError):
        import_data(store, {"foo": 1})

    assert store.keys() == [HISTORY_KEY]
    assert json.loads(store.get(HISTORY_KEY) or "") == [{"id": "a"}]


def test_import_corrupt_store_fails_before_writing() -> None:
    """a corrupt stored collection aborts the import before any write."""
    store = MemoryStore({HISTORY_KEY: "[]", FOLDERS_KEY: "{not json"})

    with pytest.raises(json.JSONDecodeError):
        import_data(store, [{"id": "a"}])

    assert store.get(HISTORY_KEY) == "[]"
    assert store.get(PROMPTS_KEY) is None


def test_export_data_from_store() -> None:
    """export wraps stored collections in a v5 payload."""
    store = MemoryStore({HISTORY_KEY: json.dumps([{"id": "a"}])})

    assert export_data(store) == {
        "version": 5,
        "history": [{"id": "a"}],
        "folders": [],
        "prompts": [],
    }


def test_load_conversation_history_repairs_records() -> None:
    """legacy stored history is cleaned on read."""
    store = MemoryStore({HISTORY_KEY: json.dumps([{"id": 1}, "junk"])})

    history = load_conversation_history(store)

    assert len(history) == 1
    assert history[0]["id"] == "1"
    assert history[0]["folderId"] is None


def test_load_selected_conversation() -> None:
    """selected conversation is repaired, absent or malformed values give None."""
    store = MemoryStore()
    assert load_selected_conversation(store) is None

    store.set(SELECTED_CONVERSATION_KEY, json.dumps([1, 2]))
    assert load_selected_conversation(store) is None

    store.set(SELECTED_CONVERSATION_KEY, json.dumps({"id": 3}))
    selected = load_selected_conversation(store)
    assert selected is not None
    assert selected["id"] == "3"
    assert selected["messages"] == []


def test_import_current_format_without_collections() -> None:
    """a bare v5 payload imports as empty collections."""
    store = MemoryStore({HISTORY_KEY: json.dumps([{"id": "a"}])})

    result = import_data(store, {"version": 5})

    assert result.original_version == "5"
    assert json.loads(store.get(HISTORY_KEY) or "") == [{"id": "a"}]
    assert json.loads(store.get(FOLDERS_KEY) or "") == []
    assert json.loads(store.get(PROMPTS_KEY) or "") == []
    assert json.loads(store.get(SELECTED_CONVERSATION_KEY) or "")["id"] == "a"


def test_import_current_format_with_null_collections() -> None:
    """null collections in a v5 payload are treated as empty."""
    store = MemoryStore()

    import_data(store, {"version": 5, "history": None, "folders": None, "prompts": 3})

    assert json.loads(store.get(HISTORY_KEY) or "") == []
    assert store.get(SELECTED_CONVERSATION_KEY) is None


def test_merge_handles_unhashable_ids() -> None:
    """dict and list ids are compared by value instead of failing."""
    existing = [{"id": {"a": 1, "b": 2}, "name": "old"}]
    incoming = [
        {"id": {"b": 2, "a": 1}, "name": "new"},
        {"id": ["x"], "name": "list"},
        {"id": ["x"], "name": "list again"},
        {"id": '{"a": 1, "b": 2}', "name": "string"},
    ]

    merged = merge_by_id(existing, incoming)

    assert [r["name"] for r in merged] == ["old", "list", "string"]
