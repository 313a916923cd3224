"""
Keyword administration API schemas.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.domain.keyword import KEYWORD_MAX_LENGTH, TARGET_URL_MAX_LENGTH


# ============================================================================
# Keyword CRUD
# ============================================================================


class KeywordCreateRequest(BaseModel):
    """Create a keyword link."""

    keyword: str = Field(..., max_length=KEYWORD_MAX_LENGTH, description="Word or phrase to link")
    target_url: str = Field(..., max_length=TARGET_URL_MAX_LENGTH, description="Absolute http(s) destination")
    active: bool = Field(True, description="Whether the keyword is linked in chat replies")


class KeywordUpdateRequest(BaseModel):
    """Replace a keyword's text and URL, optionally its active flag."""

    keyword: str = Field(..., max_length=KEYWORD_MAX_LENGTH)
    target_url: str = Field(..., max_length=TARGET_URL_MAX_LENGTH)
    active: Optional[bool] = None


class KeywordResponse(BaseModel):
    """Stored keyword link."""

    id: int
    keyword: str
    target_url: str
    active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class KeywordListResponse(BaseModel):
    """All keywords, newest first."""

    items: List[KeywordResponse] = Field(default_factory=list)
    total: int
    active: int


# ============================================================================
# Bulk import
# ============================================================================


class BulkKeywordItem(BaseModel):
    keyword: str = Field(..., max_length=KEYWORD_MAX_LENGTH)
    target_url: str = Field(..., max_length=TARGET_URL_MAX_LENGTH)
    active: bool = True


class BulkKeywordJSONRequest(BaseModel):
    """Pre-parsed keyword records for bulk insertion."""

    keywords: List[BulkKeywordItem] = Field(..., min_length=1, max_length=10000)


class InvalidRowResponse(BaseModel):
    row: int
    keyword: str
    url: str
    reason: str


class BulkImportResponse(BaseModel):
    """Outcome of a bulk import."""

    inserted: int
    skipped: int
    failed: int
    total: int
    invalid_rows: List[InvalidRowResponse] = Field(default_factory=list)
    message: str
