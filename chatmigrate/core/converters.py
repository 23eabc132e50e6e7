"""Single-step converters between adjacent export format versions."""

import logging
from typing import Any

from chatmigrate.core.clean import (
    clean_conversation_history,
    ensure_id,
    normalize_id,
)
from chatmigrate.core.models import DEFAULT_MODEL, FOLDER_TYPE_CHAT, FOLDER_TYPES

logger = logging.getLogger(__name__)


def convert_v1_to_v2(data: list[Any]) -> dict[str, Any]:
    """wraps a bare v1 conversation list into the v2 folders/history shape."""
    return {"folders": [], "history": clean_conversation_history(data)}


def convert_v2_to_v3(data: dict[str, Any]) -> dict[str, Any]:
    """
    adds the version tag and normalizes legacy folder records.

    v2 folders carried numeric ids; from v3 on every id is a string.
    """
    return {
        **data,
        "version": 3,
        "history": clean_conversation_history(data.get("history") or []),
        "folders": _clean_folders(data.get("folders")),
    }


def convert_v3_to_v4(data: dict[str, Any]) -> dict[str, Any]:
    """
    introduces the prompts collection.

    Conversations that still carry the single ``selectedFolder`` reference
    get it moved to ``folderId`` so chat and prompt folders can coexist.
    """
    history = []
    for conversation in data.get("history") or []:
        if not isinstance(conversation, dict):
            continue
        if "selectedFolder" in conversation:
            conversation = dict(conversation)
            selected = conversation.pop("selectedFolder")
            if conversation.get("folderId") is None:
                conversation["folderId"] = normalize_id(selected)
        history.append(conversation)

    return {
        **data,
        "version": 4,
        "history": history,
        "folders": list(data.get("folders") or []),
        "prompts": _clean_prompts(data.get("prompts")),
    }


def convert_v4_to_v5(data: dict[str, Any]) -> dict[str, Any]:
    """backfills the folder type discriminator and fills absent collections."""
    folders = []
    for folder in data.get("folders") or []:
        if not isinstance(folder, dict):
            continue
        fixed = dict(folder)
        if fixed.get("type") not in FOLDER_TYPES:
            fixed["type"] = FOLDER_TYPE_CHAT
        folders.append(fixed)

    return {
        **data,
        "version": 5,
        "history": list(data.get("history") or []),
        "folders": folders,
        "prompts": list(data.get("prompts") or []),
    }


def _clean_folders(folders: Any) -> list[dict[str, Any]]:
    if not isinstance(folders, list):
        return []

    cleaned = []
    for folder in folders:
        if not isinstance(folder, dict):
            logger.warning("Dropping malformed folder: %r", folder)
            continue
        fixed = dict(folder)
        fixed["id"] = ensure_id(fixed.get("id"))
        if not isinstance(fixed.get("name"), str):
            fixed["name"] = ""
        cleaned.append(fixed)
    return cleaned


def _clean_prompts(prompts: Any) -> list[dict[str, Any]]:
    if not isinstance(prompts, list):
        return []

    cleaned = []
    for prompt in prompts:
        if not isinstance(prompt, dict):
            logger.warning("Dropping malformed prompt: %r", prompt)
            continue
        fixed = dict(prompt)
        fixed["id"] = ensure_id(fixed.get("id"))
        for key in ("name", "description", "content"):
            if not isinstance(fixed.get(key), str):
                fixed[key] = ""
        if not fixed.get("model"):
            fixed["model"] = dict(DEFAULT_MODEL)
        fixed["folderId"] = normalize_id(fixed.get("folderId"))
        cleaned.append(fixed)
    return cleaned
