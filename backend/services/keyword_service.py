"""
Keyword administration service.

Create, edit, toggle and delete keyword links.  Keyword text must be unique
case-insensitively across active and inactive records; the check runs here,
at write time, not in the database.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.keyword import (
    KEYWORD_MAX_LENGTH,
    TARGET_URL_MAX_LENGTH,
    is_valid_url,
    normalize_keyword,
)
from infrastructure.database.models import Keyword

logger = logging.getLogger(__name__)


class KeywordError(Exception):
    """Base exception for keyword administration errors."""


class KeywordValidationError(KeywordError):
    """Missing field or malformed URL."""


class KeywordNotFoundError(KeywordError):
    """No keyword with the requested id."""


class KeywordConflictError(KeywordError):
    """Another record already uses this keyword text."""


def validate_keyword_fields(keyword: Optional[str], target_url: Optional[str]) -> tuple[str, str]:
    """Trim and validate keyword text and URL, returning the cleaned pair."""
    keyword = (keyword or "").strip()
    target_url = (target_url or "").strip()
    if not keyword or not target_url:
        raise KeywordValidationError("Keyword and target URL are required")
    if len(keyword) > KEYWORD_MAX_LENGTH:
        raise KeywordValidationError(f"Keyword must be at most {KEYWORD_MAX_LENGTH} characters")
    if len(target_url) > TARGET_URL_MAX_LENGTH:
        raise KeywordValidationError(f"Target URL must be at most {TARGET_URL_MAX_LENGTH} characters")
    if not is_valid_url(target_url):
        raise KeywordValidationError("Invalid URL format")
    return keyword, target_url


class KeywordService:
    """Keyword CRUD bound to one database session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_keywords(self) -> list[Keyword]:
        """All keywords, newest first."""
        result = await self.db.execute(
            select(Keyword).order_by(Keyword.created_at.desc(), Keyword.id.desc())
        )
        return list(result.scalars().all())

    async def get_keyword(self, keyword_id: int) -> Keyword:
        keyword = await self.db.get(Keyword, keyword_id)
        if keyword is None:
            raise KeywordNotFoundError(f"Keyword {keyword_id} not found")
        return keyword

    async def existing_keyword_keys(self) -> set[str]:
        """Normalized text of every stored keyword, for duplicate detection."""
        result = await self.db.execute(select(Keyword.keyword))
        return {normalize_keyword(k) for k in result.scalars().all()}

    async def _ensure_unique(self, keyword: str, exclude_id: Optional[int] = None) -> None:
        # Same folding as the bulk importer's duplicate check
        key = normalize_keyword(keyword)
        query = select(Keyword.id, Keyword.keyword)
        if exclude_id is not None:
            query = query.where(Keyword.id != exclude_id)
        for row in (await self.db.execute(query)).all():
            if normalize_keyword(row.keyword) == key:
                raise KeywordConflictError("Keyword already exists")

    async def create_keyword(
        self, keyword: Optional[str], target_url: Optional[str], active: bool = True
    ) -> Keyword:
        keyword, target_url = validate_keyword_fields(keyword, target_url)
        await self._ensure_unique(keyword)

        record = Keyword(keyword=keyword, target_url=target_url, active=active)
        self.db.add(record)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info("Keyword created id=%s keyword=%r", record.id, record.keyword)
        return record

    async def update_keyword(
        self,
        keyword_id: int,
        keyword: Optional[str],
        target_url: Optional[str],
        active: Optional[bool] = None,
    ) -> Keyword:
        keyword, target_url = validate_keyword_fields(keyword, target_url)
        record = await self.get_keyword(keyword_id)
        await self._ensure_unique(keyword, exclude_id=keyword_id)

        record.keyword = keyword
        record.target_url = target_url
        if active is not None:
            record.active = bool(active)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info("Keyword updated id=%s keyword=%r", record.id, record.keyword)
        return record

    async def toggle_keyword(self, keyword_id: int) -> Keyword:
        record = await self.get_keyword(keyword_id)
        record.active = not record.active
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def delete_keyword(self, keyword_id: int) -> None:
        record = await self.get_keyword(keyword_id)
        await self.db.delete(record)
        await self.db.commit()
        logger.info("Keyword deleted id=%s", keyword_id)

    async def count_keywords(self, active_only: bool = False) -> int:
        query = select(func.count(Keyword.id))
        if active_only:
            query = query.where(Keyword.active.is_(True))
        return (await self.db.execute(query)).scalar() or 0
