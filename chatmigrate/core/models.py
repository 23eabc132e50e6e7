"""Constants and result types for the chatbot export schema."""

from dataclasses import dataclass
from typing import Any

CURRENT_VERSION = 5

FOLDER_TYPE_CHAT = "chat"
FOLDER_TYPE_PROMPT = "prompt"
FOLDER_TYPES = (FOLDER_TYPE_CHAT, FOLDER_TYPE_PROMPT)

MESSAGE_ROLES = ("user", "assistant", "system")

DEFAULT_MODEL: dict[str, Any] = {
    "id": "gpt-3.5-turbo",
    "name": "GPT-3.5",
    "maxLength": 12000,
    "tokenLimit": 4000,
}
DEFAULT_SYSTEM_PROMPT = (
    "You are ChatGPT, a large language model trained by OpenAI. "
    "Follow the user's instructions carefully. Respond using markdown."
)
DEFAULT_TEMPERATURE = 1.0
DEFAULT_CONVERSATION_NAME = "New Conversation"


@dataclass
class MigrationResult:
    """Outcome of a migration pass."""

    data: dict[str, Any]
    original_version: str  # "1".."5", the version the input started at
