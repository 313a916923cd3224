"""
Unit tests for domain helpers.
"""

import pytest

from core.domain.chat import ChatMessage, MessageRole
from core.domain.keyword import CachedKeyword, is_valid_url, normalize_keyword


class TestIsValidUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://nike.com",
            "http://example.org/path?q=1#frag",
            "HTTPS://APPLE.COM",
            "https://sub.domain.co.uk:8443/a/b",
        ],
    )
    def test_valid(self, url):
        assert is_valid_url(url) is True

    @pytest.mark.parametrize(
        "url",
        [
            None,
            "",
            "nike.com",
            "https://",
            "mailto:someone@example.com",
            "javascript:alert(1)",
            "https://nike.com/<script>",
            "https://nike.com/a b",
        ],
    )
    def test_invalid(self, url):
        assert is_valid_url(url) is False


class TestNormalizeKeyword:
    def test_trims_and_folds_case(self):
        assert normalize_keyword("  NiKe ") == "nike"

    def test_cached_keyword_to_dict(self):
        kw = CachedKeyword(id=3, keyword="Tesla", target_url="https://tesla.com")

        assert kw.to_dict() == {"id": 3, "keyword": "Tesla", "target_url": "https://tesla.com"}


class TestChatMessage:
    def test_string_role_is_coerced(self):
        message = ChatMessage(role="assistant", content="Hi")

        assert message.role is MessageRole.ASSISTANT
        assert message.id
        assert message.timestamp.tzinfo is not None

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            ChatMessage(role="system", content="nope")

    def test_to_dict_round_trip(self):
        message = ChatMessage(role="user", content="Hello")

        restored = ChatMessage.from_dict(message.to_dict())

        assert restored == message
