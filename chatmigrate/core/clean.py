"""Repair of legacy conversation records."""

import logging
import uuid
from typing import Any, Optional

from chatmigrate.core.models import (
    DEFAULT_CONVERSATION_NAME,
    DEFAULT_MODEL,
    DEFAULT_SYSTEM_PROMPT,
    DEFAULT_TEMPERATURE,
    MESSAGE_ROLES,
)

logger = logging.getLogger(__name__)


def clean_conversation_history(history: Any) -> list[dict[str, Any]]:
    """
    normalizes a raw conversation history.

    Malformed conversations are dropped, missing fields get neutral defaults.
    The input is never mutated.

    Args:
        history: raw history value, expected to be a list of conversation dicts

    Returns:
        list of cleaned conversation dicts
    """
    if not isinstance(history, list):
        logger.warning("History is not a list, returning an empty history")
        return []

    cleaned = []
    for index, conversation in enumerate(history):
        if not isinstance(conversation, dict):
            logger.warning(
                "Dropping malformed conversation at index %d: %r", index, conversation
            )
            continue
        cleaned.append(clean_selected_conversation(conversation))

    return cleaned


def clean_selected_conversation(conversation: dict[str, Any]) -> dict[str, Any]:
    """
    repairs a single conversation record.

    Args:
        conversation: conversation dict in any legacy shape

    Returns:
        new conversation dict with id, name, messages, model, prompt,
        temperature and folderId populated
    """
    cleaned = dict(conversation)

    cleaned["id"] = ensure_id(cleaned.get("id"))

    if not isinstance(cleaned.get("name"), str):
        cleaned["name"] = DEFAULT_CONVERSATION_NAME

    cleaned["messages"] = _clean_messages(cleaned.get("messages"))

    if not cleaned.get("model"):
        cleaned["model"] = dict(DEFAULT_MODEL)

    if not cleaned.get("prompt"):
        cleaned["prompt"] = DEFAULT_SYSTEM_PROMPT

    if not isinstance(cleaned.get("temperature"), (int, float)):
        cleaned["temperature"] = DEFAULT_TEMPERATURE

    cleaned["folderId"] = normalize_id(cleaned.get("folderId"))

    return cleaned


def ensure_id(value: Any) -> str:
    """stringifies an id, generating a fresh one when it is missing."""
    return str(uuid.uuid4()) if value is None else str(value)


def normalize_id(value: Any) -> Optional[str]:
    """stringifies a legacy numeric id, keeping None (and empty values) as None."""
    if value is None or value == "":
        return None
    return str(value)


def _clean_messages(messages: Any) -> list[dict[str, Any]]:
    """drops non-dict messages and coerces role and content."""
    if not isinstance(messages, list):
        return []

    cleaned = []
    for message in messages:
        if not isinstance(message, dict):
            logger.warning("Dropping malformed message: %r", message)
            continue

        fixed = dict(message)
        if fixed.get("role") not in MESSAGE_ROLES:
            fixed["role"] = "user"

        content = fixed.get("content")
        fixed["content"] = "" if content is None else str(content)
        cleaned.append(fixed)

    return cleaned
