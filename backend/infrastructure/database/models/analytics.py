"""
Analytics database models for keyword link tracking.

Event tables (impressions, clicks, searches, token_usage) are append-only:
rows are written once and never updated.  Daily roll-ups live in
analytics_summary and are maintained by counter increments.
"""

from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, utc_now

# analytics_summary.keyword value for the whole-day row
ALL_KEYWORDS = ""


class _EventMixin:
    """Primary key and creation time shared by every event table."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        index=True,
    )


class Impression(Base, _EventMixin):
    """A keyword link shown to a user."""

    __tablename__ = "impressions"

    keyword_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("keywords.id", ondelete="SET NULL"),
        nullable=True,
    )
    keyword: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_session: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Impression(keyword={self.keyword!r}, session={self.user_session})>"


class Click(Base, _EventMixin):
    """A keyword link activated by a user."""

    __tablename__ = "clicks"

    keyword_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("keywords.id", ondelete="SET NULL"),
        nullable=True,
    )
    keyword: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    target_url: Mapped[str] = mapped_column(String(2000), nullable=False)
    user_session: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Click(keyword={self.keyword!r}, session={self.user_session})>"


class Search(Base, _EventMixin):
    """A question asked in the chat."""

    __tablename__ = "searches"

    session_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_session: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    query_text: Mapped[str] = mapped_column(Text, nullable=False)
    has_files: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    file_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class TokenUsage(Base, _EventMixin):
    """Token consumption of one chat completion."""

    __tablename__ = "token_usage"

    session_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    user_session: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    input_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    output_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    model_used: Mapped[str] = mapped_column(String(100), nullable=False)

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


class AnalyticsSummary(Base, TimestampMixin):
    """Daily counters, either for the whole day or for a single keyword."""

    __tablename__ = "analytics_summary"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    keyword: Mapped[str] = mapped_column(String(255), nullable=False, default=ALL_KEYWORDS)

    total_searches: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_impressions: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_clicks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_input_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_output_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_revenue: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)

    __table_args__ = (
        UniqueConstraint("date", "keyword", name="uq_analytics_summary_date_keyword"),
        Index("ix_analytics_summary_keyword_date", "keyword", "date"),
    )

    def __repr__(self) -> str:
        return (
            f"<AnalyticsSummary(date={self.date}, keyword={self.keyword!r}, "
            f"impressions={self.total_impressions}, clicks={self.total_clicks})>"
        )
