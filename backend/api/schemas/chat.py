"""
Chat API schemas.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ChatMessageIn(BaseModel):
    """One turn of the conversation."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Conversation to complete."""

    messages: List[ChatMessageIn] = Field(..., min_length=1, max_length=200)
    session_id: Optional[str] = Field(None, max_length=255)


class ProcessRequest(BaseModel):
    """Assistant text to run through keyword linking."""

    content: str = Field(..., max_length=200000)
    session_id: Optional[str] = Field(None, max_length=255)


class LinkedKeyword(BaseModel):
    id: Optional[int] = None
    keyword: str
    target_url: str
    occurrences: int = 1


class ProcessResponse(BaseModel):
    content: str
    keywords: List[LinkedKeyword] = Field(default_factory=list)


class ProcessBatchRequest(BaseModel):
    """Messages whose assistant turns should be linked."""

    messages: List[ChatMessageIn] = Field(..., min_length=1, max_length=200)
    session_id: Optional[str] = Field(None, max_length=255)


class ProcessBatchResponse(BaseModel):
    messages: List[ChatMessageIn]
    keywords: List[LinkedKeyword] = Field(default_factory=list)


class ChatErrorResponse(BaseModel):
    """Body returned for chat provider failures."""

    error: str
    details: str
