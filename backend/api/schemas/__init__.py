"""
API request and response schemas.
"""

from .analytics import (
    AnalyticsDashboardResponse,
    TrackClickRequest,
    TrackImpressionRequest,
    TrackResponse,
    TrackSearchRequest,
    TrackTokensRequest,
)
from .chat import (
    ChatRequest,
    ProcessBatchRequest,
    ProcessBatchResponse,
    ProcessRequest,
    ProcessResponse,
)
from .keywords import (
    BulkImportResponse,
    BulkKeywordJSONRequest,
    KeywordCreateRequest,
    KeywordListResponse,
    KeywordResponse,
    KeywordUpdateRequest,
)

__all__ = [
    "AnalyticsDashboardResponse",
    "TrackClickRequest",
    "TrackImpressionRequest",
    "TrackResponse",
    "TrackSearchRequest",
    "TrackTokensRequest",
    "ChatRequest",
    "ProcessBatchRequest",
    "ProcessBatchResponse",
    "ProcessRequest",
    "ProcessResponse",
    "BulkImportResponse",
    "BulkKeywordJSONRequest",
    "KeywordCreateRequest",
    "KeywordListResponse",
    "KeywordResponse",
    "KeywordUpdateRequest",
]
