"""
Keyword administration API routes.
"""

import io
import logging
from typing import Literal

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
    status,
)
from openpyxl import Workbook
from sqlalchemy.ext.asyncio import AsyncSession

from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.keywords import (
    BulkImportResponse,
    BulkKeywordJSONRequest,
    KeywordCreateRequest,
    KeywordListResponse,
    KeywordResponse,
    KeywordUpdateRequest,
)
from infrastructure.database.connection import get_db
from services.keyword_importer import (
    KeywordCandidate,
    KeywordImporter,
    KeywordImportError,
    detect_file_kind,
    screen_candidates,
)
from services.keyword_service import (
    KeywordConflictError,
    KeywordError,
    KeywordNotFoundError,
    KeywordService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/keywords", tags=["keywords"])

MAX_UPLOAD_SIZE = 5 * 1024 * 1024  # 5 MB

TEMPLATE_ROWS = [
    ("keyword", "url"),
    ("Nike", "https://www.nike.com"),
    ("Apple", "https://www.apple.com"),
    ("Tesla", "https://www.tesla.com"),
    ("Amazon", "https://www.amazon.com"),
    ("Google", "https://www.google.com"),
]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _http_error(e: KeywordError) -> HTTPException:
    if isinstance(e, KeywordNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(e, KeywordConflictError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(e))


# ============================================================================
# Bulk import
# ============================================================================


@router.get("/template")
async def download_template(format: Literal["csv", "xlsx"] = Query("csv")):
    """Downloadable import template with sample rows."""
    if format == "xlsx":
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "Keywords"
        for row in TEMPLATE_ROWS:
            sheet.append(row)
        buffer = io.BytesIO()
        workbook.save(buffer)
        return Response(
            content=buffer.getvalue(),
            media_type=XLSX_MEDIA_TYPE,
            headers={"Content-Disposition": 'attachment; filename="keywords_template.xlsx"'},
        )

    body = "\n".join(",".join(row) for row in TEMPLATE_ROWS) + "\n"
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="keywords_template.csv"'},
    )


@router.post("/bulk", response_model=BulkImportResponse)
@limiter.limit(get_rate_limit("bulk_upload"))
async def bulk_upload(
    request: Request,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Import keywords from a CSV or Excel file.

    Column 0 is the keyword and column 1 the URL; a header row is detected
    and skipped.  Existing keywords are skipped, invalid rows reported.
    """
    try:
        kind = detect_file_kind(file.filename)
    except KeywordImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    content = await file.read()
    if len(content) > MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File too large. Maximum size is 5 MB",
        )

    logger.info("Bulk keyword upload: %s (%d bytes)", file.filename, len(content))
    try:
        result = await KeywordImporter(db).import_keywords(content, kind)
    except KeywordImportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return result.to_dict()


@router.post("/bulk/json", response_model=BulkImportResponse)
@limiter.limit(get_rate_limit("bulk_upload"))
async def bulk_upload_json(
    request: Request,
    body: BulkKeywordJSONRequest,
    db: AsyncSession = Depends(get_db),
):
    """Import pre-parsed keyword records with the same dedupe and batching."""
    candidates = [
        KeywordCandidate(keyword=k.keyword, target_url=k.target_url, active=k.active, row=i + 1)
        for i, k in enumerate(body.keywords)
    ]
    parsed = screen_candidates(candidates)
    result = await KeywordImporter(db).import_records(parsed.candidates, parsed.invalid_rows)
    return result.to_dict()


# ============================================================================
# CRUD
# ============================================================================


@router.get("", response_model=KeywordListResponse)
async def list_keywords(db: AsyncSession = Depends(get_db)):
    """All keywords, newest first."""
    keywords = await KeywordService(db).list_keywords()
    return KeywordListResponse(
        items=[KeywordResponse.model_validate(k) for k in keywords],
        total=len(keywords),
        active=sum(1 for k in keywords if k.active),
    )


@router.post("", response_model=KeywordResponse, status_code=status.HTTP_201_CREATED)
async def create_keyword(body: KeywordCreateRequest, db: AsyncSession = Depends(get_db)):
    try:
        keyword = await KeywordService(db).create_keyword(body.keyword, body.target_url, body.active)
    except KeywordError as e:
        raise _http_error(e)
    return KeywordResponse.model_validate(keyword)


@router.get("/{keyword_id}", response_model=KeywordResponse)
async def get_keyword(keyword_id: int, db: AsyncSession = Depends(get_db)):
    try:
        keyword = await KeywordService(db).get_keyword(keyword_id)
    except KeywordError as e:
        raise _http_error(e)
    return KeywordResponse.model_validate(keyword)


@router.put("/{keyword_id}", response_model=KeywordResponse)
async def update_keyword(
    keyword_id: int,
    body: KeywordUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    try:
        keyword = await KeywordService(db).update_keyword(
            keyword_id, body.keyword, body.target_url, body.active
        )
    except KeywordError as e:
        raise _http_error(e)
    return KeywordResponse.model_validate(keyword)


@router.patch("/{keyword_id}/toggle", response_model=KeywordResponse)
async def toggle_keyword(keyword_id: int, db: AsyncSession = Depends(get_db)):
    """Flip the active flag."""
    try:
        keyword = await KeywordService(db).toggle_keyword(keyword_id)
    except KeywordError as e:
        raise _http_error(e)
    return KeywordResponse.model_validate(keyword)


@router.delete("/{keyword_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_keyword(keyword_id: int, db: AsyncSession = Depends(get_db)):
    try:
        await KeywordService(db).delete_keyword(keyword_id)
    except KeywordError as e:
        raise _http_error(e)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
