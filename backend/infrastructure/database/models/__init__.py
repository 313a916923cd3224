"""
SQLAlchemy database models.
"""

from .analytics import (
    ALL_KEYWORDS,
    AnalyticsSummary,
    Click,
    Impression,
    Search,
    TokenUsage,
)
from .base import Base, TimestampMixin
from .keyword import Keyword

__all__ = [
    "Base",
    "TimestampMixin",
    "Keyword",
    "Impression",
    "Click",
    "Search",
    "TokenUsage",
    "AnalyticsSummary",
    "ALL_KEYWORDS",
]
