"""
Analytics API routes for keyword link tracking and the admin dashboard.

Tracking endpoints never fail once the payload validates: a write error is
logged by the service and reported back as a warning.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.analytics import (
    AnalyticsDashboardResponse,
    TrackClickRequest,
    TrackImpressionRequest,
    TrackResponse,
    TrackSearchRequest,
    TrackTokensRequest,
)
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from services.analytics import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _track_response(ok: bool, what: str) -> TrackResponse:
    if ok:
        return TrackResponse(success=True)
    return TrackResponse(success=True, warning=f"{what} could not be recorded")


# ============================================================================
# Tracking
# ============================================================================


@router.post("/track-impression", response_model=TrackResponse)
@limiter.limit(get_rate_limit("tracking"))
async def track_impression(
    request: Request,
    body: TrackImpressionRequest,
    db: AsyncSession = Depends(get_db),
):
    ok = await AnalyticsService(db).track_impression(
        keyword=body.keyword,
        user_session=body.user_session,
        keyword_id=body.keyword_id,
    )
    return _track_response(ok, "Impression")


@router.post("/track-click", response_model=TrackResponse)
@limiter.limit(get_rate_limit("tracking"))
async def track_click(
    request: Request,
    body: TrackClickRequest,
    db: AsyncSession = Depends(get_db),
):
    ok = await AnalyticsService(db).track_click(
        keyword=body.keyword,
        target_url=body.target_url,
        user_session=body.user_session,
        keyword_id=body.keyword_id,
    )
    return _track_response(ok, "Click")


@router.post("/track-search", response_model=TrackResponse)
@limiter.limit(get_rate_limit("tracking"))
async def track_search(
    request: Request,
    body: TrackSearchRequest,
    db: AsyncSession = Depends(get_db),
):
    ok = await AnalyticsService(db).track_search(
        session_id=body.session_id,
        query_text=body.query_text,
        user_session=body.user_session,
        has_files=body.has_files,
        file_count=body.file_count,
    )
    return _track_response(ok, "Search")


@router.post("/track-tokens", response_model=TrackResponse)
@limiter.limit(get_rate_limit("tracking"))
async def track_tokens(
    request: Request,
    body: TrackTokensRequest,
    db: AsyncSession = Depends(get_db),
):
    ok = await AnalyticsService(db).track_tokens(
        session_id=body.session_id,
        input_tokens=body.input_tokens,
        output_tokens=body.output_tokens,
        model_used=body.model_used or settings.anthropic_model,
        user_session=body.user_session,
    )
    return _track_response(ok, "Token usage")


# ============================================================================
# Dashboard
# ============================================================================


@router.get("", response_model=AnalyticsDashboardResponse)
async def get_dashboard(
    days: int = Query(7, ge=1, le=90, description="Number of days of daily stats"),
    db: AsyncSession = Depends(get_db),
):
    """Admin dashboard: today's totals and recent trends."""
    return await AnalyticsService(db).get_dashboard(days=days)
