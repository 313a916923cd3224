"""
Process-wide cache of active keyword links.

The cache is read-through and time-bounded: it serves its snapshot while it
holds at least one keyword and is younger than the refresh interval, and
otherwise reloads every active keyword from the database, replacing the
snapshot wholesale.  Keyword writes never touch the cache; staleness is
bounded only by the interval.  A failed reload logs and yields an empty list,
which callers treat as "nothing to link".

Concurrent callers that find the cache stale share a single reload.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.domain.keyword import CachedKeyword
from infrastructure.config.settings import settings
from infrastructure.database.connection import async_session_maker
from infrastructure.database.models import Keyword

logger = logging.getLogger(__name__)


class KeywordCache:
    """Snapshot of active keywords with a fixed refresh interval."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory or async_session_maker
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.keyword_cache_ttl_seconds
        self._clock = clock
        self._keywords: list[CachedKeyword] = []
        self._last_update: Optional[float] = None
        self._updated_at: Optional[datetime] = None
        self._refresh_lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None

    def _lock(self) -> asyncio.Lock:
        """Refresh lock for the running event loop."""
        loop = asyncio.get_running_loop()
        if self._refresh_lock is None or self._lock_loop is not loop:
            self._refresh_lock = asyncio.Lock()
            self._lock_loop = loop
        return self._refresh_lock

    def _is_fresh(self) -> bool:
        return (
            bool(self._keywords)
            and self._last_update is not None
            and self._clock() - self._last_update < self.ttl_seconds
        )

    async def get_active_keywords(self) -> list[CachedKeyword]:
        """Return active keywords in query order, reloading when stale or empty."""
        if self._is_fresh():
            return self._keywords

        async with self._lock():
            # Another caller may have refreshed while we waited
            if self._is_fresh():
                return self._keywords

            try:
                keywords = await self._fetch()
            except Exception as e:
                logger.error("Failed to load active keywords: %s", e)
                return []

            self._keywords = keywords
            self._last_update = self._clock()
            self._updated_at = datetime.now(UTC)
            logger.info(
                "Loaded %d active keywords", len(keywords), extra={"keyword_count": len(keywords)}
            )
            return keywords

    async def _fetch(self) -> list[CachedKeyword]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(Keyword.id, Keyword.keyword, Keyword.target_url)
                .where(Keyword.active.is_(True))
                .order_by(Keyword.id)
            )
            return [
                CachedKeyword(id=row.id, keyword=row.keyword, target_url=row.target_url)
                for row in result.all()
            ]

    def clear(self) -> None:
        """Drop the snapshot so the next read reloads."""
        self._keywords = []
        self._last_update = None
        self._updated_at = None
        logger.info("Keyword cache cleared - next request will fetch fresh data")

    def status(self) -> dict[str, Any]:
        """Diagnostic snapshot of the cache."""
        age = None if self._last_update is None else self._clock() - self._last_update
        return {
            "keyword_count": len(self._keywords),
            "last_updated_at": self._updated_at.isoformat() if self._updated_at else None,
            "age_seconds": round(age, 3) if age is not None else None,
            "ttl_seconds": self.ttl_seconds,
            "is_fresh": self._is_fresh(),
            "keywords": [k.to_dict() for k in self._keywords],
        }


keyword_cache = KeywordCache()
