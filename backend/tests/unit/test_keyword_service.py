"""
Unit tests for KeywordService.
"""

import pytest

from core.domain.keyword import KEYWORD_MAX_LENGTH, TARGET_URL_MAX_LENGTH, normalize_keyword
from services.keyword_service import (
    KeywordConflictError,
    KeywordNotFoundError,
    KeywordService,
    KeywordValidationError,
    validate_keyword_fields,
)

pytestmark = pytest.mark.asyncio


class TestValidation:
    async def test_fields_are_trimmed(self):
        assert validate_keyword_fields("  Nike ", " https://nike.com ") == ("Nike", "https://nike.com")

    @pytest.mark.parametrize("keyword,url", [("", "https://nike.com"), ("Nike", ""), (None, None), ("   ", "https://x.com")])
    async def test_missing_fields(self, keyword, url):
        with pytest.raises(KeywordValidationError, match="required"):
            validate_keyword_fields(keyword, url)

    @pytest.mark.parametrize("url", ["nike.com", "ftp://nike.com", "javascript:alert(1)", 'https://x.com/"onmouseover'])
    async def test_invalid_urls(self, url):
        with pytest.raises(KeywordValidationError, match="Invalid URL"):
            validate_keyword_fields("Nike", url)

    async def test_overlong_fields(self):
        with pytest.raises(KeywordValidationError, match="Keyword must be at most"):
            validate_keyword_fields("x" * (KEYWORD_MAX_LENGTH + 1), "https://nike.com")
        with pytest.raises(KeywordValidationError, match="Target URL must be at most"):
            validate_keyword_fields("Nike", "https://nike.com/" + "p" * TARGET_URL_MAX_LENGTH)


class TestCreate:
    async def test_create_defaults_to_active(self, db_session):
        record = await KeywordService(db_session).create_keyword("Nike", "https://nike.com")

        assert record.id is not None
        assert record.active is True
        assert record.created_at is not None

    async def test_create_inactive(self, db_session):
        record = await KeywordService(db_session).create_keyword("Nike", "https://nike.com", active=False)

        assert record.active is False

    async def test_duplicate_is_case_insensitive(self, db_session, keywords):
        with pytest.raises(KeywordConflictError):
            await KeywordService(db_session).create_keyword("NIKE", "https://nike.de")

    async def test_duplicate_of_inactive_keyword_conflicts(self, db_session, keywords):
        with pytest.raises(KeywordConflictError):
            await KeywordService(db_session).create_keyword("netflix", "https://netflix.com")

    @pytest.mark.parametrize("existing,new", [("Straße", "STRASSE"), ("École", "ÉCOLE")])
    async def test_duplicate_check_uses_unicode_case_folding(self, db_session, existing, new):
        service = KeywordService(db_session)
        await service.create_keyword(existing, "https://example.com")

        with pytest.raises(KeywordConflictError):
            await service.create_keyword(new, "https://example.org")
        assert normalize_keyword(new) in await service.existing_keyword_keys()

    async def test_invalid_url_is_rejected(self, db_session):
        with pytest.raises(KeywordValidationError):
            await KeywordService(db_session).create_keyword("Nike", "not-a-url")


class TestReadAndCount:
    async def test_list_is_newest_first(self, db_session, keywords):
        service = KeywordService(db_session)
        newest = await service.create_keyword("Adidas", "https://adidas.com")

        records = await service.list_keywords()

        assert len(records) == 5
        assert records[0].id == newest.id

    async def test_get_missing_keyword(self, db_session):
        with pytest.raises(KeywordNotFoundError):
            await KeywordService(db_session).get_keyword(999)

    async def test_counts(self, db_session, keywords):
        service = KeywordService(db_session)

        assert await service.count_keywords() == 4
        assert await service.count_keywords(active_only=True) == 3

    async def test_existing_keys_are_normalized(self, db_session, keywords):
        keys = await KeywordService(db_session).existing_keyword_keys()

        assert keys == {"nike", "apple", "tesla", "netflix"}


class TestUpdate:
    async def test_update_fields(self, db_session, keywords):
        nike = keywords[0]

        record = await KeywordService(db_session).update_keyword(
            nike.id, "Nike Air", "https://nike.com/air", active=False
        )

        assert record.keyword == "Nike Air"
        assert record.target_url == "https://nike.com/air"
        assert record.active is False

    async def test_update_keeps_active_when_not_given(self, db_session, keywords):
        nike = keywords[0]

        record = await KeywordService(db_session).update_keyword(nike.id, "Nike", "https://nike.de")

        assert record.active is True

    async def test_changing_case_of_own_keyword_is_allowed(self, db_session, keywords):
        nike = keywords[0]

        record = await KeywordService(db_session).update_keyword(nike.id, "NIKE", nike.target_url)

        assert record.keyword == "NIKE"

    async def test_renaming_onto_another_keyword_conflicts(self, db_session, keywords):
        nike = keywords[0]

        with pytest.raises(KeywordConflictError):
            await KeywordService(db_session).update_keyword(nike.id, "apple", "https://apple.com")

    async def test_update_missing_keyword(self, db_session):
        with pytest.raises(KeywordNotFoundError):
            await KeywordService(db_session).update_keyword(999, "Nike", "https://nike.com")


class TestToggleAndDelete:
    async def test_toggle_flips_active(self, db_session, keywords):
        service = KeywordService(db_session)
        netflix = keywords[3]

        assert (await service.toggle_keyword(netflix.id)).active is True
        assert (await service.toggle_keyword(netflix.id)).active is False

    async def test_delete(self, db_session, keywords):
        service = KeywordService(db_session)

        await service.delete_keyword(keywords[0].id)

        assert await service.count_keywords() == 3
        with pytest.raises(KeywordNotFoundError):
            await service.get_keyword(keywords[0].id)

    async def test_delete_missing_keyword(self, db_session):
        with pytest.raises(KeywordNotFoundError):
            await KeywordService(db_session).delete_keyword(999)
