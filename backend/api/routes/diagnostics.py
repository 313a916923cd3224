"""
Diagnostics endpoints for the admin keyword debugger and API checks.
"""

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.ai.anthropic_adapter import chat_service
from infrastructure.database.connection import get_db
from infrastructure.database.models import (
    AnalyticsSummary,
    Click,
    Impression,
    Keyword,
    Search,
    TokenUsage,
)
from services.ad_processor import ad_processor
from services.keyword_cache import keyword_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/diagnostics", tags=["diagnostics"])

_TABLES = (Keyword, Impression, Click, Search, TokenUsage, AnalyticsSummary)


class KeywordMatchRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=200000)


@router.get("/keyword-cache")
async def keyword_cache_status():
    """Current cache snapshot without triggering a reload."""
    return keyword_cache.status()


@router.post("/keyword-cache/clear")
async def clear_keyword_cache():
    keyword_cache.clear()
    return {"success": True, "message": "Keyword cache cleared"}


@router.post("/keyword-match")
async def keyword_match(body: KeywordMatchRequest):
    """Per-keyword match report plus the processed output for *content*."""
    return await ad_processor.match_report(body.content)


@router.get("/database")
async def database_diagnostics(db: AsyncSession = Depends(get_db)):
    """Row counts per table; unreachable tables report their error."""
    tables = {}
    for model in _TABLES:
        try:
            count = (await db.execute(select(func.count()).select_from(model))).scalar() or 0
            tables[model.__tablename__] = {"ok": True, "rows": count}
        except Exception as e:
            logger.error("Diagnostics query on %s failed: %s", model.__tablename__, e)
            await db.rollback()
            tables[model.__tablename__] = {"ok": False, "error": str(e)}

    active = 0
    if tables["keywords"]["ok"]:
        active = (
            await db.execute(select(func.count(Keyword.id)).where(Keyword.active.is_(True)))
        ).scalar() or 0

    return {
        "status": "healthy" if all(t["ok"] for t in tables.values()) else "degraded",
        "tables": tables,
        "active_keywords": active,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/ai")
async def ai_diagnostics():
    """One-token completion against the configured model."""
    report = await chat_service.check_connection()
    report["timestamp"] = datetime.now(UTC).isoformat()
    return report
