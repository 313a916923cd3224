"""
Unit tests for log formatting and secret redaction.
"""

import json
import logging

from infrastructure.logging_config import JSONFormatter, SensitiveDataFilter


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord("services.test", logging.INFO, __file__, 1, msg, args, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestSensitiveDataFilter:
    def test_api_key_in_message_is_redacted(self):
        record = _record("Using key sk-ant-REDACTED")

        SensitiveDataFilter().filter(record)

        assert "abcdefghij" not in record.getMessage()
        assert "[REDACTED_API_KEY]" in record.getMessage()

    def test_bearer_token_in_args_is_redacted(self):
        record = _record("Header was %s", "Authorization: Bearer secret-token")

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == "Header was Authorization: Bearer [REDACTED]"

    def test_plain_messages_pass_through(self):
        record = _record("Loaded %d active keywords", 3)

        assert SensitiveDataFilter().filter(record) is True
        assert record.getMessage() == "Loaded 3 active keywords"


class TestJSONFormatter:
    def test_includes_known_extra_fields(self):
        record = _record("GET /api/v1/keywords 200", request_id="abc", status_code=200, ignored="x")

        entry = json.loads(JSONFormatter().format(record))

        assert entry["level"] == "INFO"
        assert entry["logger"] == "services.test"
        assert entry["message"] == "GET /api/v1/keywords 200"
        assert entry["request_id"] == "abc"
        assert entry["status_code"] == 200
        assert "ignored" not in entry
