"""
Bulk keyword import from CSV or Excel files.

Rows become keyword/URL candidates (column 0 and column 1).  A first row
whose first cell mentions "keyword" is a header and is skipped.  Rows with a
missing field or a malformed URL are dropped and reported, never inserted or
counted as skipped.  Candidates whose text already exists (case-insensitive,
including earlier rows of the same file) are skipped.  New keywords are
inserted sequentially in fixed-size batches; a failing batch is rolled back,
logged, and counted as failed while later batches still run.
"""

import io
import logging
import zipfile
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from pathlib import PurePath
from typing import Any, Iterable, Optional

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.keyword import (
    KEYWORD_MAX_LENGTH,
    TARGET_URL_MAX_LENGTH,
    is_valid_url,
    normalize_keyword,
)
from infrastructure.config.settings import settings
from infrastructure.database.models import Keyword
from services.keyword_service import KeywordService

logger = logging.getLogger(__name__)


class KeywordImportError(Exception):
    """The uploaded file cannot be imported at all."""


class FileKind(StrEnum):
    """Supported upload formats."""

    CSV = "csv"
    XLSX = "xlsx"


@dataclass
class KeywordCandidate:
    keyword: str
    target_url: str
    active: bool = True
    row: Optional[int] = None


@dataclass
class InvalidRow:
    row: int
    keyword: str
    url: str
    reason: str


@dataclass
class ParsedKeywords:
    candidates: list[KeywordCandidate] = field(default_factory=list)
    invalid_rows: list[InvalidRow] = field(default_factory=list)


@dataclass
class ImportResult:
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    invalid_rows: list[InvalidRow] = field(default_factory=list)

    @property
    def total(self) -> int:
        """Valid candidates considered; invalid rows are not part of it."""
        return self.inserted + self.skipped + self.failed

    @property
    def message(self) -> str:
        return (
            f"Processed {self.total} keywords: {self.inserted} added, "
            f"{self.skipped} skipped (duplicates), {self.failed} failed, "
            f"{len(self.invalid_rows)} invalid rows."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
            "invalid_rows": [asdict(r) for r in self.invalid_rows],
            "message": self.message,
        }


# ============================================================================
# Parsing
# ============================================================================


def detect_file_kind(filename: Optional[str]) -> FileKind:
    """Map an upload's file extension to a FileKind."""
    suffix = PurePath(filename or "").suffix.lower().lstrip(".")
    try:
        return FileKind(suffix)
    except ValueError:
        raise KeywordImportError("Please upload a CSV or Excel file (.csv, .xlsx)")


def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line on commas outside double quotes.

    Quotes framing a field are dropped; a doubled quote inside a quoted field
    yields one literal quote.  Fields are trimmed.
    """
    fields: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    fields.append("".join(current).strip())
    return fields


def parse_csv(data: bytes) -> list[list[str]]:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise KeywordImportError("CSV file must be UTF-8 encoded")
    return [split_csv_line(line.rstrip("\r")) for line in text.split("\n") if line.strip()]


def parse_xlsx(data: bytes) -> list[list[str]]:
    """Rows of the first worksheet as trimmed strings."""
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        logger.warning("Unreadable spreadsheet upload: %s", e)
        raise KeywordImportError("Failed to read Excel file. Please check the format and try again.")

    try:
        sheet = workbook.worksheets[0]
        rows = []
        for values in sheet.iter_rows(values_only=True):
            cells = ["" if v is None else str(v).strip() for v in values]
            if any(cells):
                rows.append(cells)
        return rows
    finally:
        workbook.close()


def parse_rows(data: bytes, kind: FileKind) -> list[list[str]]:
    if kind == FileKind.XLSX:
        return parse_xlsx(data)
    return parse_csv(data)


def extract_candidates(rows: list[list[str]]) -> ParsedKeywords:
    """Turn raw rows into validated candidates, recording rejected rows."""
    parsed = ParsedKeywords()
    start = 0
    if rows and rows[0] and "keyword" in rows[0][0].lower():
        start = 1

    for index in range(start, len(rows)):
        row = rows[index]
        keyword = row[0].strip() if len(row) > 0 else ""
        url = row[1].strip() if len(row) > 1 else ""
        _screen(parsed, KeywordCandidate(keyword=keyword, target_url=url, row=index + 1))

    return parsed


def screen_candidates(candidates: Iterable[KeywordCandidate]) -> ParsedKeywords:
    """Apply the file import row checks to pre-parsed records."""
    parsed = ParsedKeywords()
    for candidate in candidates:
        candidate.keyword = candidate.keyword.strip()
        candidate.target_url = candidate.target_url.strip()
        _screen(parsed, candidate)
    return parsed


def _screen(parsed: ParsedKeywords, candidate: KeywordCandidate) -> None:
    keyword, url, row_number = candidate.keyword, candidate.target_url, candidate.row or 0
    if not keyword or not url:
        reason = "Missing keyword or URL"
    elif len(keyword) > KEYWORD_MAX_LENGTH:
        reason = "Keyword too long"
    elif len(url) > TARGET_URL_MAX_LENGTH:
        reason = "URL too long"
    elif not is_valid_url(url):
        logger.warning("Row %d dropped: invalid URL %r for keyword %r", row_number, url, keyword)
        reason = "Invalid URL format"
    else:
        parsed.candidates.append(candidate)
        return
    parsed.invalid_rows.append(InvalidRow(row_number, keyword, url, reason))


# ============================================================================
# Import
# ============================================================================


class KeywordImporter:
    """Deduplicating, batched keyword insertion."""

    def __init__(self, db: AsyncSession, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = batch_size or settings.keyword_import_batch_size

    async def import_keywords(self, file_bytes: bytes, file_kind: FileKind | str) -> ImportResult:
        """Parse an uploaded file and insert its new keywords."""
        kind = FileKind(file_kind)
        rows = parse_rows(file_bytes, kind)
        if not rows:
            raise KeywordImportError("File must contain at least one data row")

        parsed = extract_candidates(rows)
        if parsed.invalid_rows:
            logger.warning("Keyword import dropped %d invalid rows", len(parsed.invalid_rows))
        return await self.import_records(parsed.candidates, parsed.invalid_rows)

    async def import_records(
        self,
        candidates: Iterable[KeywordCandidate],
        invalid_rows: Optional[list[InvalidRow]] = None,
    ) -> ImportResult:
        result = ImportResult(invalid_rows=list(invalid_rows or []))

        seen = await KeywordService(self.db).existing_keyword_keys()
        pending: list[KeywordCandidate] = []
        for candidate in candidates:
            key = normalize_keyword(candidate.keyword)
            if key in seen:
                result.skipped += 1
                continue
            seen.add(key)
            pending.append(candidate)

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start:start + self.batch_size]
            try:
                self.db.add_all(
                    [
                        Keyword(
                            keyword=c.keyword.strip(),
                            target_url=c.target_url.strip(),
                            active=c.active,
                        )
                        for c in batch
                    ]
                )
                await self.db.commit()
                result.inserted += len(batch)
            except SQLAlchemyError as e:
                await self.db.rollback()
                result.failed += len(batch)
                logger.error(
                    "Keyword import batch %d failed (%d rows): %s",
                    start // self.batch_size + 1,
                    len(batch),
                    e,
                )

        logger.info(
            "Keyword import finished: %d inserted, %d skipped, %d failed, %d invalid",
            result.inserted,
            result.skipped,
            result.failed,
            len(result.invalid_rows),
        )
        return result
