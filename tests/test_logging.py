# tests/test_logging.py
"""
Test structured log output.
"""

import json
import logging

from fuelogic.logging import PlainLogFormatter, StructuredLogFormatter, StructuredLogger, scrub


def make_record(**fields) -> logging.LogRecord:
    record = logging.LogRecord("fuelogic.test", logging.INFO, __file__, 1, "webhook_registered", None, None)
    record.structured_data = fields
    return record


class TestStructuredLogging:
    """Tests for the JSON formatter and logger."""

    def test_json_line(self):
        line = StructuredLogFormatter().format(make_record(webhook_id="w-1", integration="slingflow"))
        data = json.loads(line)

        assert data["message"] == "webhook_registered"
        assert data["webhook_id"] == "w-1"
        assert data["integration"] == "slingflow"
        assert "thread" in data

    def test_credentials_masked(self):
        assert scrub({"token": "abc", "Authorization": "Bearer x", "url": "https://x"}) == {
            "token": "***",
            "Authorization": "***",
            "url": "https://x",
        }

    def test_plain_format_keeps_fields(self):
        line = PlainLogFormatter().format(make_record(status_code=200))
        assert "webhook_registered status_code=200" in line

    def test_bind_adds_context(self, caplog):
        logger = StructuredLogger("fuelogic.test").bind(owner_id="owner-a")

        with caplog.at_level(logging.INFO, logger="fuelogic.test"):
            logger.info("threshold_updated", threshold_critico=10)

        record = caplog.records[-1]
        assert record.structured_data == {"owner_id": "owner-a", "threshold_critico": 10}
