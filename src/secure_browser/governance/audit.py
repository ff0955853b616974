"""
Audit Sink

Structured security events emitted by the governor and the tool layer:
session_created, session_closed, rate_limited, cookie_saved,
cookie_load_failed, and so on. The governor only guarantees a stable event
shape; where the events end up is decided by the sink passed in.
"""

import asyncio
import json
import logging
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal, Optional, Protocol

import aiofiles
from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

AuditLevel = Literal["error", "warn", "info", "debug"]

_LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


class AuditEvent(BaseModel):
    """One audit record: ``{level, sessionId?, action, details, timestamp}``."""

    model_config = ConfigDict(frozen=True)

    action: str
    level: AuditLevel = "info"
    session_id: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "level": self.level,
            "action": self.action,
            "details": self.details,
            "timestamp": self.timestamp,
        }
        if self.session_id is not None:
            record["sessionId"] = self.session_id
        return record


class AuditSink(Protocol):
    """Destination for audit events."""

    def emit(self, event: AuditEvent) -> None: ...

    async def flush(self) -> None: ...

    async def close(self) -> None: ...


class LoggingAuditSink:
    """Forward audit events to the ``secure_browser.audit`` logger."""

    def __init__(self, logger_name: str = "secure_browser.audit"):
        self._logger = logging.getLogger(logger_name)

    def emit(self, event: AuditEvent) -> None:
        self._logger.log(
            _LOG_LEVELS[event.level],
            "%s %s",
            event.action,
            json.dumps(event.to_record(), default=str),
        )

    async def flush(self) -> None:
        return None

    async def close(self) -> None:
        return None


class JsonlAuditSink:
    """
    Buffer events and append them to ``audit-YYYY-MM-DD.jsonl`` files.

    The directory is created owner-only. A full buffer schedules a flush on
    the running loop; ``close`` drains whatever is left.
    """

    def __init__(self, log_dir: Path, max_buffer: int = 50):
        self.log_dir = Path(log_dir)
        self.max_buffer = max_buffer
        self._buffer: list[dict[str, Any]] = []
        self._lock = asyncio.Lock()
        self._pending: set[asyncio.Task] = set()

    def emit(self, event: AuditEvent) -> None:
        self._buffer.append(event.to_record())
        if len(self._buffer) < self.max_buffer:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        task = loop.create_task(self.flush())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _file_for(self, timestamp: float) -> Path:
        day = datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d")
        return self.log_dir / f"audit-{day}.jsonl"

    async def flush(self) -> None:
        async with self._lock:
            if not self._buffer:
                return
            records, self._buffer = self._buffer, []

            by_file: dict[Path, list[str]] = {}
            for record in records:
                path = self._file_for(record["timestamp"])
                by_file.setdefault(path, []).append(json.dumps(record, default=str))

            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                os.chmod(self.log_dir, 0o700)
                for path, lines in by_file.items():
                    async with aiofiles.open(path, "a", encoding="utf-8") as f:
                        await f.write("\n".join(lines) + "\n")
            except OSError as e:
                logger.error(f"Failed to flush {len(records)} audit events: {e}")

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await self.flush()


class MultiAuditSink:
    """Fan events out to several sinks."""

    def __init__(self, *sinks: AuditSink):
        self.sinks = list(sinks)

    def emit(self, event: AuditEvent) -> None:
        for sink in self.sinks:
            sink.emit(event)

    async def flush(self) -> None:
        for sink in self.sinks:
            await sink.flush()

    async def close(self) -> None:
        for sink in self.sinks:
            await sink.close()


def create_audit_sink(log_dir: Optional[Path] = None) -> AuditSink:
    """
    Factory for the default sink: logging, plus JSONL files when a
    directory is configured.
    """
    if log_dir is None:
        return LoggingAuditSink()
    return MultiAuditSink(LoggingAuditSink(), JsonlAuditSink(log_dir))
