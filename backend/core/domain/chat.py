"""Chat history domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

TITLE_MAX_WORDS = 6
DEFAULT_TITLE = "New Chat"


class MessageRole(StrEnum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


def _new_id() -> str:
    return uuid4().hex


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as written by browser clients
        return datetime.fromtimestamp(value / 1000, tz=UTC)
    return datetime.fromisoformat(str(value))


def generate_title(text: str) -> str:
    """First six words of *text*, with an ellipsis when anything was cut."""
    words = text.split()
    if len(words) <= TITLE_MAX_WORDS:
        return text
    return " ".join(words[:TITLE_MAX_WORDS]) + "..."


@dataclass
class ChatMessage:
    """A single message in a conversation."""

    role: MessageRole
    content: str
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self):
        if isinstance(self.role, str):
            self.role = MessageRole(self.role)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        return cls(
            id=str(data["id"]),
            role=MessageRole(data["role"]),
            content=data.get("content", ""),
            timestamp=_parse_timestamp(data["timestamp"]),
        )


@dataclass
class ChatSession:
    """A persisted conversation, most recent activity in updated_at."""

    title: str
    messages: list[ChatMessage] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @classmethod
    def from_messages(cls, messages: list[ChatMessage]) -> "ChatSession":
        """Start a session titled after its first user message."""
        first_user = next((m for m in messages if m.role == MessageRole.USER), None)
        title = generate_title(first_user.content.strip()) if first_user else DEFAULT_TITLE
        now = datetime.now(UTC)
        return cls(title=title, messages=list(messages), created_at=now, updated_at=now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "messageCount": self.message_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatSession":
        return cls(
            id=str(data["id"]),
            title=data.get("title") or DEFAULT_TITLE,
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
            created_at=_parse_timestamp(data["createdAt"]),
            updated_at=_parse_timestamp(data["updatedAt"]),
        )
