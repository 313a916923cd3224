"""
Keyword link injection for assistant messages.

Every active keyword found in a message as a whole word (case-insensitive) is
wrapped in an anchor pointing at the keyword's target URL.  Keywords are
applied one after another in cache order.  Text inside existing anchors and
HTML tags is never rescanned, so a keyword that also appears in an earlier
keyword's link text is not wrapped twice.

Processing never breaks a chat reply: any failure returns the original text.
"""

import html
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

from core.domain.keyword import CachedKeyword
from services.keyword_cache import KeywordCache, keyword_cache

logger = logging.getLogger(__name__)

# Spans left untouched: complete anchor elements first, then any other tag
_PROTECTED_SPAN = re.compile(r"<a\b[^>]*>.*?</a\s*>|<[A-Za-z/!][^>]*>", re.IGNORECASE | re.DOTALL)

LINK_TEMPLATE = (
    '<a href="{url}" target="_blank" rel="noopener noreferrer" '
    'class="ad-link" data-keyword="{keyword}">{text}</a>'
)


def compile_keyword_pattern(keyword: str) -> re.Pattern:
    """Case-insensitive whole-word pattern for the literal keyword text."""
    return re.compile(rf"(?<!\w){re.escape(keyword)}(?!\w)", re.IGNORECASE)


def build_link(keyword: CachedKeyword, text: str) -> str:
    return LINK_TEMPLATE.format(
        url=keyword.target_url,
        keyword=html.escape(keyword.keyword.strip(), quote=True),
        text=text,
    )


def link_keyword(content: str, keyword: CachedKeyword) -> tuple[str, int]:
    """Wrap every unlinked occurrence of *keyword*; return (content, count)."""
    keyword_text = keyword.keyword.strip()
    if not keyword_text:
        return content, 0

    pattern = compile_keyword_pattern(keyword_text)

    def replace(match: re.Match) -> str:
        return build_link(keyword, match.group(0))

    pieces: list[str] = []
    total = 0
    pos = 0
    for span in _PROTECTED_SPAN.finditer(content):
        text, count = pattern.subn(replace, content[pos:span.start()])
        pieces.append(text)
        pieces.append(span.group(0))
        total += count
        pos = span.end()
    text, count = pattern.subn(replace, content[pos:])
    pieces.append(text)
    total += count

    return "".join(pieces), total


@dataclass
class AdResult:
    """Outcome of processing one message."""

    content: str
    matched: list[CachedKeyword] = field(default_factory=list)
    occurrences: dict[str, int] = field(default_factory=dict)

    @property
    def modified(self) -> bool:
        return bool(self.matched)


class AdProcessor:
    """Rewrites keyword mentions in assistant text into links."""

    def __init__(self, cache: Optional[KeywordCache] = None):
        self.cache = cache if cache is not None else keyword_cache

    async def process(self, content: str, session_id: Optional[str] = None) -> AdResult:
        """Link all cached keywords in *content*, failing open to the input."""
        try:
            keywords = await self.cache.get_active_keywords()
            if not keywords or not content:
                return AdResult(content=content)

            processed = content
            result = AdResult(content=content)
            for keyword in keywords:
                try:
                    processed, count = link_keyword(processed, keyword)
                except Exception as e:
                    logger.warning("Skipping keyword %r: %s", keyword.keyword, e)
                    continue
                if count:
                    result.matched.append(keyword)
                    result.occurrences[keyword.keyword] = count

            result.content = processed
            if result.matched:
                logger.debug(
                    "Linked %d keywords",
                    len(result.matched),
                    extra={"session_id": session_id, "keyword_count": len(result.matched)},
                )
            return result
        except Exception as e:
            logger.error("Ad processing failed, returning original content: %s", e, exc_info=True)
            return AdResult(content=content)

    async def process_message_with_ads(
        self, content: str, session_id: Optional[str] = None
    ) -> str:
        return (await self.process(content, session_id)).content

    async def match_report(self, content: str) -> dict[str, Any]:
        """Per-keyword diagnostics for the keyword debugger."""
        keywords = await self.cache.get_active_keywords()
        lowered = content.lower()
        entries = []
        for keyword in keywords:
            keyword_text = keyword.keyword.strip()
            matches = compile_keyword_pattern(keyword_text).findall(content) if keyword_text else []
            entries.append(
                {
                    "keyword": keyword.keyword,
                    "target_url": keyword.target_url,
                    "matches": len(matches),
                    "substring_found": bool(keyword_text) and keyword_text.lower() in lowered,
                }
            )

        processed = await self.process(content)
        return {
            "keyword_count": len(keywords),
            "keywords": entries,
            "processed": processed.content,
            "modified": processed.content != content,
        }


ad_processor = AdProcessor()


async def process_message_with_ads(content: str, session_id: Optional[str] = None) -> str:
    """Module-level entry point using the shared keyword cache."""
    return await ad_processor.process_message_with_ads(content, session_id)
