"""
Chat history store.

Persists conversations as one JSON list under a single key of a
KeyValueStorage, most recently saved session first, capped at a fixed number
of sessions.  With no storage available every operation is a no-op that
returns an empty result, so callers in non-interactive contexts never fail.

Usage::

    from adapters.storage import MemoryKeyValueStorage
    from services.chat_storage import ChatSessionStore

    store = ChatSessionStore(MemoryKeyValueStorage())
    session = store.create_session(messages)
    store.save_session(session)
"""

import json
import logging
from datetime import UTC, datetime
from typing import Optional

from adapters.storage import KeyValueStorage
from core.domain.chat import ChatMessage, ChatSession, generate_title
from infrastructure.config.settings import settings

logger = logging.getLogger(__name__)

STORAGE_KEY = "yawlai_chat_history"


class SessionNotFoundError(Exception):
    """Raised when exporting a session id that is not stored."""


class ChatSessionStore:
    """Ordered, capped collection of chat sessions."""

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        max_sessions: Optional[int] = None,
    ):
        self._storage = storage
        self.max_sessions = (
            max_sessions if max_sessions is not None else settings.chat_history_max_sessions
        )

    @property
    def available(self) -> bool:
        return self._storage is not None

    # ── Reads ──────────────────────────────────────────────────────────────

    def get_sessions(self) -> list[ChatSession]:
        """All stored sessions, most recent first."""
        if self._storage is None:
            return []
        raw = self._storage.get_item(STORAGE_KEY)
        if not raw:
            return []
        try:
            return [ChatSession.from_dict(item) for item in json.loads(raw)]
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.error("Error loading chat sessions: %s", e)
            return []

    def get_session(self, session_id: str) -> Optional[ChatSession]:
        return next((s for s in self.get_sessions() if s.id == session_id), None)

    # ── Writes ─────────────────────────────────────────────────────────────

    def create_session(self, messages: list[ChatMessage]) -> ChatSession:
        """Build (without saving) a session titled after its first user message."""
        return ChatSession.from_messages(messages)

    def generate_title(self, text: str) -> str:
        return generate_title(text)

    def save_session(self, session: ChatSession) -> str:
        """
        Upsert *session* by id.

        A new session is prepended; an existing one is replaced in place and
        keeps its original created_at.  The collection is then truncated to
        max_sessions, dropping the oldest entries from the tail.
        """
        if self._storage is None:
            return ""

        sessions = self.get_sessions()
        session.updated_at = datetime.now(UTC)

        index = next((i for i, s in enumerate(sessions) if s.id == session.id), None)
        if index is None:
            sessions.insert(0, session)
        else:
            session.created_at = sessions[index].created_at
            sessions[index] = session

        if len(sessions) > self.max_sessions:
            evicted = len(sessions) - self.max_sessions
            sessions = sessions[: self.max_sessions]
            logger.debug("Evicted %d old chat sessions", evicted)

        self._write(sessions)
        return session.id

    def delete_session(self, session_id: str) -> None:
        if self._storage is None:
            return
        sessions = [s for s in self.get_sessions() if s.id != session_id]
        self._write(sessions)

    def clear_all_sessions(self) -> None:
        if self._storage is None:
            return
        self._storage.remove_item(STORAGE_KEY)

    # ── Export ─────────────────────────────────────────────────────────────

    def export_session(self, session_id: str) -> str:
        """Pretty-printed JSON of one session."""
        if self._storage is None:
            return ""
        session = self.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return json.dumps(session.to_dict(), indent=2)

    def export_all_sessions(self) -> str:
        return json.dumps([s.to_dict() for s in self.get_sessions()], indent=2)

    def _write(self, sessions: list[ChatSession]) -> None:
        self._storage.set_item(STORAGE_KEY, json.dumps([s.to_dict() for s in sessions]))
