"""
Unit tests for access logging.
"""

import json
import logging
import time

from tinyhttpd.access_log import RequestLog, log_request


def make_entry(**overrides) -> RequestLog:
    fields = dict(
        connection_id="abcd1234",
        client_ip="127.0.0.1",
        request_line="GET / HTTP/1.0",
        status=200,
        bytes_sent=120,
        duration_ms=1.23456,
        timestamp="19/Oct/2026:10:00:00 +0000",
    )
    fields.update(overrides)
    return RequestLog(**fields)


class TestRequestLog:
    """Tests for RequestLog formatting."""

    def test_to_text(self):
        """Test the common log style line."""
        assert make_entry().to_text() == (
            '127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET / HTTP/1.0" 200 120 1.23ms'
        )

    def test_to_text_abandoned(self):
        """Test that a request with no response logs '-' for the status."""
        assert '"GET / HTTP/1.0" - 0 ' in make_entry(status=None, bytes_sent=0).to_text()

    def test_to_dict_rounds_duration(self):
        entry = make_entry().to_dict()

        assert entry["duration_ms"] == 1.23
        assert entry["status"] == 200
        assert entry["connection_id"] == "abcd1234"


class TestLogRequest:
    """Tests for log_request()."""

    def test_text_format(self, caplog):
        """Test that one INFO record goes to tinyhttpd.access."""
        with caplog.at_level(logging.INFO, logger="tinyhttpd.access"):
            entry = log_request("c1", "10.0.0.1", "GET /x HTTP/1.0", 404, 300, time.time())

        records = [r for r in caplog.records if r.name == "tinyhttpd.access"]
        assert len(records) == 1
        assert records[0].levelno == logging.INFO
        assert records[0].getMessage() == entry.to_text()
        assert '"GET /x HTTP/1.0" 404 300' in records[0].getMessage()

    def test_json_format(self, caplog):
        """Test that the json format emits a parseable object."""
        with caplog.at_level(logging.INFO, logger="tinyhttpd.access"):
            log_request("c1", "10.0.0.1", "GET / HTTP/1.0", 200, 10, time.time(), log_format="json")

        record = [r for r in caplog.records if r.name == "tinyhttpd.access"][0]
        payload = json.loads(record.getMessage())
        assert payload["client_ip"] == "10.0.0.1"
        assert payload["status"] == 200
        assert payload["bytes_sent"] == 10

    def test_duration(self):
        """Test that the duration is measured from started_at."""
        entry = log_request("c1", "10.0.0.1", "", None, 0, time.time() - 0.5)

        assert entry.duration_ms >= 500
