"""
Analytics API schemas for keyword link tracking and the admin dashboard.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Tracking Schemas
# ============================================================================


class TrackImpressionRequest(BaseModel):
    """A keyword link was shown."""

    keyword: str = Field(..., min_length=1, max_length=255)
    keyword_id: Optional[int] = None
    user_session: str = Field(..., min_length=1, max_length=255)


class TrackClickRequest(BaseModel):
    """A keyword link was clicked."""

    keyword: str = Field(..., min_length=1, max_length=255)
    keyword_id: Optional[int] = None
    target_url: str = Field(..., min_length=1, max_length=2000)
    user_session: str = Field(..., min_length=1, max_length=255)


class TrackSearchRequest(BaseModel):
    """A question was asked in the chat."""

    session_id: str = Field(..., min_length=1, max_length=255)
    user_session: Optional[str] = Field(None, max_length=255)
    query_text: str = Field(..., description="Truncated to 1000 characters when stored")
    has_files: bool = False
    file_count: int = Field(0, ge=0)


class TrackTokensRequest(BaseModel):
    """Token usage of one completion."""

    session_id: str = Field(..., min_length=1, max_length=255)
    user_session: Optional[str] = Field(None, max_length=255)
    input_tokens: int = Field(..., ge=0)
    output_tokens: int = Field(..., ge=0)
    model_used: Optional[str] = Field(None, max_length=100)


class TrackResponse(BaseModel):
    """Tracking always succeeds from the caller's point of view."""

    success: bool = True
    warning: Optional[str] = None


# ============================================================================
# Dashboard Schemas
# ============================================================================


class DashboardTotals(BaseModel):
    chat_questions: int = 0
    keywords_shown: int = 0
    keyword_clicks: int = 0
    ctr: float = 0.0
    revenue: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0


class DailyStat(BaseModel):
    date: str
    searches: int = 0
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    revenue: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0


class KeywordStat(BaseModel):
    keyword: str
    impressions: int = 0
    clicks: int = 0
    ctr: float = 0.0
    revenue: float = 0.0


class ActivityItem(BaseModel):
    type: str
    detail: str
    session: Optional[str] = None
    created_at: datetime


class TokenSessionStat(BaseModel):
    session_id: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    requests: int


class AnalyticsDashboardResponse(BaseModel):
    """Admin dashboard data."""

    period_days: int
    totals: DashboardTotals
    daily_stats: List[DailyStat] = Field(default_factory=list)
    top_keywords: List[KeywordStat] = Field(default_factory=list)
    recent_activity: List[ActivityItem] = Field(default_factory=list)
    top_token_sessions: List[TokenSessionStat] = Field(default_factory=list)
