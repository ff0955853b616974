"""
Unit tests for audit events and sinks.
"""

import json
import logging

import pytest

from secure_browser.governance.audit import (
    AuditEvent,
    JsonlAuditSink,
    LoggingAuditSink,
    MultiAuditSink,
    create_audit_sink,
)


class TestAuditEvent:
    def test_record_shape(self):
        event = AuditEvent(
            action="session_created",
            session_id="session-" + "a" * 32,
            details={"headless": True},
            timestamp=1_700_000_000.0,
        )

        assert event.to_record() == {
            "level": "info",
            "action": "session_created",
            "sessionId": "session-" + "a" * 32,
            "details": {"headless": True},
            "timestamp": 1_700_000_000.0,
        }

    def test_session_id_omitted_when_absent(self):
        record = AuditEvent(action="rate_limited", level="warn").to_record()
        assert "sessionId" not in record
        assert record["level"] == "warn"


class TestSinks:
    def test_logging_sink_uses_level(self, caplog):
        sink = LoggingAuditSink()

        with caplog.at_level(logging.DEBUG, logger="secure_browser.audit"):
            sink.emit(AuditEvent(action="session_close_failed", level="error"))

        assert caplog.records[0].levelno == logging.ERROR
        assert "session_close_failed" in caplog.records[0].getMessage()

    @pytest.mark.asyncio
    async def test_jsonl_sink_writes_on_close(self, tmp_path):
        sink = JsonlAuditSink(tmp_path / "audit")
        sink.emit(AuditEvent(action="cookie_saved", timestamp=0.0, details={"count": 2}))
        sink.emit(AuditEvent(action="cookie_loaded", timestamp=0.0))

        await sink.close()

        lines = (tmp_path / "audit" / "audit-1970-01-01.jsonl").read_text().splitlines()
        assert [json.loads(line)["action"] for line in lines] == ["cookie_saved", "cookie_loaded"]
        assert json.loads(lines[0])["details"] == {"count": 2}

    @pytest.mark.asyncio
    async def test_jsonl_sink_flushes_when_buffer_full(self, tmp_path):
        sink = JsonlAuditSink(tmp_path, max_buffer=2)
        sink.emit(AuditEvent(action="a", timestamp=0.0))
        sink.emit(AuditEvent(action="b", timestamp=0.0))

        await sink.close()

        assert len((tmp_path / "audit-1970-01-01.jsonl").read_text().splitlines()) == 2

    @pytest.mark.asyncio
    async def test_multi_sink_fans_out(self, audit_sink):
        other = type(audit_sink)()
        sink = MultiAuditSink(audit_sink, other)

        sink.emit(AuditEvent(action="session_closed"))
        await sink.close()

        assert audit_sink.actions() == other.actions() == ["session_closed"]
        assert audit_sink.closed and other.closed

    def test_factory(self, tmp_path):
        assert isinstance(create_audit_sink(), LoggingAuditSink)
        assert isinstance(create_audit_sink(tmp_path), MultiAuditSink)
