"""
Keyword link analytics.

Tracking calls append an event row and bump the matching daily counters in
analytics_summary (one whole-day row plus one row per keyword).  Tracking is
best-effort: a failure is logged and reported as False, never raised, so it
cannot break the chat flow that triggered it.
"""

import logging
from datetime import UTC, date, datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.keyword import CachedKeyword
from infrastructure.config.settings import settings
from infrastructure.database.models import (
    ALL_KEYWORDS,
    AnalyticsSummary,
    Click,
    Impression,
    Search,
    TokenUsage,
)
from infrastructure.database.models.base import utc_now

logger = logging.getLogger(__name__)

QUERY_TEXT_MAX_LENGTH = 1000
RECENT_ACTIVITY_LIMIT = 20
TOP_KEYWORDS_LIMIT = 10
TOP_TOKEN_SESSIONS_LIMIT = 10

_COUNTER_COLUMNS = frozenset(
    {
        "total_searches",
        "total_impressions",
        "total_clicks",
        "total_input_tokens",
        "total_output_tokens",
        "total_revenue",
    }
)


def today() -> date:
    return datetime.now(UTC).date()


def click_through_rate(clicks: int, impressions: int) -> float:
    """Clicks per impression as a percentage, 0 when nothing was shown."""
    if not impressions:
        return 0.0
    return round(clicks / impressions * 100, 2)


class AnalyticsService:
    """Event tracking and dashboard aggregation bound to one session."""

    def __init__(self, db: AsyncSession, revenue_per_click: Optional[float] = None):
        self.db = db
        self.revenue_per_click = (
            revenue_per_click if revenue_per_click is not None else settings.revenue_per_click
        )

    # ========================================================================
    # Counters
    # ========================================================================

    async def increment_counters(
        self, day: date, keyword: str = ALL_KEYWORDS, **deltas: float
    ) -> None:
        """Add *deltas* to the (day, keyword) summary row, creating it if absent."""
        unknown = set(deltas) - _COUNTER_COLUMNS
        if unknown:
            raise ValueError(f"Unknown analytics counters: {sorted(unknown)}")
        if not deltas:
            return

        if await self._apply_increment(day, keyword, deltas):
            return

        self.db.add(AnalyticsSummary(date=day, keyword=keyword, **deltas))
        await self.db.flush()

    async def _apply_increment(self, day: date, keyword: str, deltas: dict[str, float]) -> bool:
        values: dict[str, Any] = {
            name: getattr(AnalyticsSummary, name) + delta for name, delta in deltas.items()
        }
        values["updated_at"] = utc_now()
        result = await self.db.execute(
            update(AnalyticsSummary)
            .where(AnalyticsSummary.date == day, AnalyticsSummary.keyword == keyword)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0

    async def _record(self, description: str, events: list, counters: list[tuple[str, dict]]) -> bool:
        day = today()
        try:
            self.db.add_all(events)
            for keyword, deltas in counters:
                await self.increment_counters(day, keyword, **deltas)
            await self.db.commit()
            return True
        except Exception as e:
            await self.db.rollback()
            logger.warning("Failed to track %s: %s", description, e)
            return False

    # ========================================================================
    # Tracking
    # ========================================================================

    async def track_impression(
        self, keyword: str, user_session: Optional[str] = None, keyword_id: Optional[int] = None
    ) -> bool:
        return await self._record(
            "impression",
            [Impression(keyword_id=keyword_id, keyword=keyword, user_session=user_session)],
            [(ALL_KEYWORDS, {"total_impressions": 1}), (keyword, {"total_impressions": 1})],
        )

    async def track_impressions(
        self, keywords: Iterable[CachedKeyword], user_session: Optional[str] = None
    ) -> bool:
        """One impression per matched keyword of a processed message."""
        keywords = list(keywords)
        if not keywords:
            return True
        counters: list[tuple[str, dict]] = [(ALL_KEYWORDS, {"total_impressions": len(keywords)})]
        counters.extend((k.keyword, {"total_impressions": 1}) for k in keywords)
        return await self._record(
            "impressions",
            [Impression(keyword_id=k.id, keyword=k.keyword, user_session=user_session) for k in keywords],
            counters,
        )

    async def track_click(
        self,
        keyword: str,
        target_url: str,
        user_session: Optional[str] = None,
        keyword_id: Optional[int] = None,
    ) -> bool:
        deltas = {"total_clicks": 1, "total_revenue": self.revenue_per_click}
        return await self._record(
            "click",
            [
                Click(
                    keyword_id=keyword_id,
                    keyword=keyword,
                    target_url=target_url,
                    user_session=user_session,
                )
            ],
            [(ALL_KEYWORDS, deltas), (keyword, dict(deltas))],
        )

    async def track_search(
        self,
        session_id: str,
        query_text: str,
        user_session: Optional[str] = None,
        has_files: bool = False,
        file_count: int = 0,
    ) -> bool:
        return await self._record(
            "search",
            [
                Search(
                    session_id=session_id,
                    user_session=user_session,
                    query_text=(query_text or "")[:QUERY_TEXT_MAX_LENGTH],
                    has_files=has_files,
                    file_count=file_count,
                )
            ],
            [(ALL_KEYWORDS, {"total_searches": 1})],
        )

    async def track_tokens(
        self,
        session_id: str,
        input_tokens: int,
        output_tokens: int,
        model_used: str,
        user_session: Optional[str] = None,
    ) -> bool:
        return await self._record(
            "token usage",
            [
                TokenUsage(
                    session_id=session_id,
                    user_session=user_session,
                    input_tokens=input_tokens,
                    output_tokens=output_tokens,
                    model_used=model_used,
                )
            ],
            [
                (
                    ALL_KEYWORDS,
                    {"total_input_tokens": input_tokens, "total_output_tokens": output_tokens},
                )
            ],
        )

    # ========================================================================
    # Dashboard
    # ========================================================================

    async def get_dashboard(self, days: int = 7) -> dict[str, Any]:
        """Totals for today plus daily, per-keyword, activity and token breakdowns."""
        end = today()
        start = end - timedelta(days=days - 1)

        result = await self.db.execute(
            select(AnalyticsSummary)
            .where(
                AnalyticsSummary.keyword == ALL_KEYWORDS,
                AnalyticsSummary.date >= start,
                AnalyticsSummary.date <= end,
            )
            .order_by(AnalyticsSummary.date)
            .execution_options(populate_existing=True)
        )
        by_day = {row.date: row for row in result.scalars().all()}

        daily_stats = []
        for offset in range(days):
            day = start + timedelta(days=offset)
            row = by_day.get(day)
            impressions = row.total_impressions if row else 0
            clicks = row.total_clicks if row else 0
            daily_stats.append(
                {
                    "date": day.isoformat(),
                    "searches": row.total_searches if row else 0,
                    "impressions": impressions,
                    "clicks": clicks,
                    "ctr": click_through_rate(clicks, impressions),
                    "revenue": round(row.total_revenue, 2) if row else 0.0,
                    "input_tokens": row.total_input_tokens if row else 0,
                    "output_tokens": row.total_output_tokens if row else 0,
                }
            )

        today_row = by_day.get(end)
        totals_impressions = today_row.total_impressions if today_row else 0
        totals_clicks = today_row.total_clicks if today_row else 0
        totals = {
            "chat_questions": today_row.total_searches if today_row else 0,
            "keywords_shown": totals_impressions,
            "keyword_clicks": totals_clicks,
            "ctr": click_through_rate(totals_clicks, totals_impressions),
            "revenue": round(today_row.total_revenue, 2) if today_row else 0.0,
            "input_tokens": today_row.total_input_tokens if today_row else 0,
            "output_tokens": today_row.total_output_tokens if today_row else 0,
        }

        return {
            "period_days": days,
            "totals": totals,
            "daily_stats": daily_stats,
            "top_keywords": await self._top_keywords(start, end),
            "recent_activity": await self._recent_activity(),
            "top_token_sessions": await self._top_token_sessions(),
        }

    async def _top_keywords(self, start: date, end: date) -> list[dict[str, Any]]:
        impressions = func.sum(AnalyticsSummary.total_impressions)
        clicks = func.sum(AnalyticsSummary.total_clicks)
        revenue = func.sum(AnalyticsSummary.total_revenue)
        result = await self.db.execute(
            select(
                AnalyticsSummary.keyword,
                impressions.label("impressions"),
                clicks.label("clicks"),
                revenue.label("revenue"),
            )
            .where(
                AnalyticsSummary.keyword != ALL_KEYWORDS,
                AnalyticsSummary.date >= start,
                AnalyticsSummary.date <= end,
            )
            .group_by(AnalyticsSummary.keyword)
            .order_by(impressions.desc(), clicks.desc())
            .limit(TOP_KEYWORDS_LIMIT)
        )
        return [
            {
                "keyword": row.keyword,
                "impressions": row.impressions or 0,
                "clicks": row.clicks or 0,
                "ctr": click_through_rate(row.clicks or 0, row.impressions or 0),
                "revenue": round(row.revenue or 0.0, 2),
            }
            for row in result.all()
        ]

    async def _recent_activity(self) -> list[dict[str, Any]]:
        activity: list[dict[str, Any]] = []

        searches = await self.db.execute(
            select(Search).order_by(Search.created_at.desc(), Search.id.desc()).limit(RECENT_ACTIVITY_LIMIT)
        )
        for s in searches.scalars().all():
            activity.append(
                {"type": "search", "detail": s.query_text[:100], "session": s.session_id, "created_at": s.created_at}
            )

        impressions = await self.db.execute(
            select(Impression)
            .order_by(Impression.created_at.desc(), Impression.id.desc())
            .limit(RECENT_ACTIVITY_LIMIT)
        )
        for i in impressions.scalars().all():
            activity.append(
                {"type": "impression", "detail": i.keyword, "session": i.user_session, "created_at": i.created_at}
            )

        clicks = await self.db.execute(
            select(Click).order_by(Click.created_at.desc(), Click.id.desc()).limit(RECENT_ACTIVITY_LIMIT)
        )
        for c in clicks.scalars().all():
            activity.append(
                {"type": "click", "detail": c.keyword, "session": c.user_session, "created_at": c.created_at}
            )

        activity.sort(key=lambda item: item["created_at"], reverse=True)
        return activity[:RECENT_ACTIVITY_LIMIT]

    async def _top_token_sessions(self) -> list[dict[str, Any]]:
        input_sum = func.sum(TokenUsage.input_tokens)
        output_sum = func.sum(TokenUsage.output_tokens)
        total = input_sum + output_sum
        result = await self.db.execute(
            select(
                TokenUsage.session_id,
                input_sum.label("input_tokens"),
                output_sum.label("output_tokens"),
                func.count(TokenUsage.id).label("requests"),
            )
            .group_by(TokenUsage.session_id)
            .order_by(total.desc())
            .limit(TOP_TOKEN_SESSIONS_LIMIT)
        )
        sessions = []
        for row in result.all():
            input_tokens = row.input_tokens or 0
            output_tokens = row.output_tokens or 0
            sessions.append(
                {
                    "session_id": row.session_id,
                    "input_tokens": input_tokens,
                    "output_tokens": output_tokens,
                    "total_tokens": input_tokens + output_tokens,
                    "requests": row.requests,
                }
            )
        return sessions

