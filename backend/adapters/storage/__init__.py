"""Storage adapters for client-side chat history."""

from .chat_history_storage import (
    KeyValueStorage,
    LocalFileKeyValueStorage,
    MemoryKeyValueStorage,
)

__all__ = [
    "KeyValueStorage",
    "MemoryKeyValueStorage",
    "LocalFileKeyValueStorage",
]
