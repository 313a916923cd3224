"""
Chat API routes.

POST /chat streams the assistant reply as plain text.  The first chunk is
pulled before the response starts so provider failures (bad key, quota, rate
limit) still produce a JSON error with the matching status code.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.background import BackgroundTask

from adapters.ai.anthropic_adapter import ChatServiceError, ChatUsage, chat_service
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.chat import (
    ChatRequest,
    LinkedKeyword,
    ProcessBatchRequest,
    ProcessBatchResponse,
    ProcessRequest,
    ProcessResponse,
)
from infrastructure.database.connection import get_db, get_db_context
from services.ad_processor import AdResult, ad_processor
from services.analytics import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


async def _track_token_usage(session_id: str, usage: ChatUsage) -> None:
    """Record final token counts once the stream has been fully sent."""
    if not usage.completed:
        return
    try:
        async with get_db_context() as db:
            await AnalyticsService(db).track_tokens(
                session_id=session_id,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                model_used=usage.model,
                user_session=session_id,
            )
    except Exception as e:
        logger.warning("Token usage tracking failed for session %s: %s", session_id, e)


def _linked_keywords(result: AdResult) -> list[LinkedKeyword]:
    return [
        LinkedKeyword(
            id=k.id,
            keyword=k.keyword,
            target_url=k.target_url,
            occurrences=result.occurrences.get(k.keyword, 1),
        )
        for k in result.matched
    ]


# ============================================================================
# Streaming completion
# ============================================================================


@router.post("")
@limiter.limit(get_rate_limit("chat"))
async def chat(
    request: Request,
    body: ChatRequest,
    db: AsyncSession = Depends(get_db),
):
    """Stream a reply to the conversation in *body*."""
    messages = [m.model_dump() for m in body.messages]
    logger.info(
        "Processing chat request with %d messages",
        len(messages),
        extra={"session_id": body.session_id},
    )

    if body.session_id:
        last_user: Optional[str] = next(
            (m.content for m in reversed(body.messages) if m.role == "user"), None
        )
        if last_user:
            await AnalyticsService(db).track_search(
                session_id=body.session_id,
                query_text=last_user,
                user_session=body.session_id,
            )

    usage = ChatUsage(model=chat_service.model)
    stream = chat_service.stream_chat(messages, usage=usage)
    try:
        first_chunk = await anext(stream)
    except StopAsyncIteration:
        first_chunk = ""
    except ChatServiceError as e:
        logger.warning("Chat request failed: %s (%s)", e.error, e.details)
        return JSONResponse(status_code=e.status_code, content=e.to_dict())

    async def reply():
        if first_chunk:
            yield first_chunk
        try:
            async for chunk in stream:
                yield chunk
        except ChatServiceError as e:
            logger.error("Chat stream interrupted: %s (%s)", e.error, e.details)

    background = BackgroundTask(_track_token_usage, body.session_id, usage) if body.session_id else None
    return StreamingResponse(reply(), media_type="text/plain; charset=utf-8", background=background)


# ============================================================================
# Keyword linking
# ============================================================================


@router.post("/process", response_model=ProcessResponse)
async def process_message(body: ProcessRequest, db: AsyncSession = Depends(get_db)):
    """Link keywords in one assistant message and record their impressions."""
    result = await ad_processor.process(body.content, body.session_id)
    if result.matched:
        await AnalyticsService(db).track_impressions(result.matched, user_session=body.session_id)
    return ProcessResponse(content=result.content, keywords=_linked_keywords(result))


@router.post("/process-batch", response_model=ProcessBatchResponse)
async def process_batch(body: ProcessBatchRequest, db: AsyncSession = Depends(get_db)):
    """Link keywords in every assistant message; user messages pass through."""
    assistant_indexes = [i for i, m in enumerate(body.messages) if m.role == "assistant"]
    results = await asyncio.gather(
        *(ad_processor.process(body.messages[i].content, body.session_id) for i in assistant_indexes)
    )

    messages = list(body.messages)
    keywords: dict[str, LinkedKeyword] = {}
    matched = []
    for index, result in zip(assistant_indexes, results):
        messages[index] = messages[index].model_copy(update={"content": result.content})
        matched.extend(result.matched)
        for linked in _linked_keywords(result):
            if linked.keyword in keywords:
                keywords[linked.keyword].occurrences += linked.occurrences
            else:
                keywords[linked.keyword] = linked

    if matched:
        await AnalyticsService(db).track_impressions(matched, user_session=body.session_id)
    return ProcessBatchResponse(messages=messages, keywords=list(keywords.values()))
