# Domain Entities
# Pure business objects with no external dependencies
from .chat import ChatMessage, ChatSession, MessageRole, generate_title
from .keyword import CachedKeyword, is_valid_url, normalize_keyword

__all__ = [
    "CachedKeyword",
    "ChatMessage",
    "ChatSession",
    "MessageRole",
    "generate_title",
    "is_valid_url",
    "normalize_keyword",
]
