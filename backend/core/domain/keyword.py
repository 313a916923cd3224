"""Keyword link domain objects and validation."""

from dataclasses import dataclass
from urllib.parse import urlparse

ALLOWED_URL_SCHEMES = ("http", "https")

# Column widths of keywords.keyword and keywords.target_url
KEYWORD_MAX_LENGTH = 255
TARGET_URL_MAX_LENGTH = 2000

# Characters that would break out of the href attribute the link is written into
_UNSAFE_URL_CHARS = frozenset('"<>\'` \t\r\n')


@dataclass(frozen=True)
class CachedKeyword:
    """Snapshot of an active keyword as held by the keyword cache."""

    id: int | None
    keyword: str
    target_url: str

    def to_dict(self) -> dict:
        return {"id": self.id, "keyword": self.keyword, "target_url": self.target_url}


def is_valid_url(value: str | None) -> bool:
    """Return True if *value* is a well-formed absolute http(s) URL."""
    if not value:
        return False
    if any(ch in _UNSAFE_URL_CHARS for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme.lower() in ALLOWED_URL_SCHEMES and bool(parsed.netloc)


def normalize_keyword(value: str) -> str:
    """Key used for case-insensitive duplicate detection."""
    return value.strip().casefold()
