"""Keyword link model."""
from sqlalchemy import Boolean, Integer, String, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from core.domain.keyword import KEYWORD_MAX_LENGTH, TARGET_URL_MAX_LENGTH

from .base import Base, TimestampMixin


class Keyword(Base, TimestampMixin):
    """A keyword whose mentions in assistant replies are turned into links.

    Keyword text is unique case-insensitively; the services enforce this at
    write time rather than the database.
    """

    __tablename__ = "keywords"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    keyword: Mapped[str] = mapped_column(String(KEYWORD_MAX_LENGTH), nullable=False)
    target_url: Mapped[str] = mapped_column(String(TARGET_URL_MAX_LENGTH), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<Keyword(id={self.id}, keyword={self.keyword!r}, active={self.active})>"


# Case-insensitive keyword lookups
Index("ix_keywords_keyword_lower", func.lower(Keyword.keyword))
