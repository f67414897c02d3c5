"""
AuditLogger - records every relay decision.

Each record is written twice:
- to the console through loguru's standard handler
- to an append-only JSON-lines file, one object per line:
  {"timestamp": ..., "level": ..., "message": ..., "context": {...}}

The file sink is enqueued, so concurrent writers never interleave partial
lines and a failing write is reported by loguru instead of raised into the
request being logged.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from loguru import logger

FATAL_LEVEL_NO = 60


class AuditLevel(str, Enum):
    """Audit record severities."""

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"  # Alert-worthy, above CRITICAL

    @property
    def loguru_level(self) -> str:
        return "WARNING" if self is AuditLevel.WARN else self.value


@dataclass
class AuditRecord:
    """A single audit entry."""

    level: AuditLevel
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.value,
            "message": self.message,
            "context": self.context,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, ensure_ascii=False)


class AuditLogger(ABC):
    """
    Interface for recording relay decisions.

    Implementations must tolerate concurrent callers and must never raise
    from record(); a logging failure may not abort the caller.
    """

    @abstractmethod
    def record(
        self,
        level: AuditLevel | str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None: ...

    def info(self, message: str, **context: Any) -> None:
        self.record(AuditLevel.INFO, message, context)

    def warn(self, message: str, **context: Any) -> None:
        self.record(AuditLevel.WARN, message, context)

    def error(self, message: str, **context: Any) -> None:
        self.record(AuditLevel.ERROR, message, context)

    def fatal(self, message: str, **context: Any) -> None:
        self.record(AuditLevel.FATAL, message, context)


def _ensure_fatal_level() -> None:
    try:
        logger.level("FATAL")
    except ValueError:
        logger.level("FATAL", no=FATAL_LEVEL_NO, color="<RED><bold>")


def _audit_file_format(record: dict[str, Any]) -> str:
    return "{extra[audit_line]}\n"


def _is_audit_record(record: dict[str, Any]) -> bool:
    return "audit_line" in record["extra"]


class LoguruAuditLogger(AuditLogger):
    """
    AuditLogger backed by loguru.

    Usage:
        audit = LoguruAuditLogger()
        audit.configure("logs/system.log")
        audit.warn("Upstream attempt 1/3 failed", error="HTTP 503")
    """

    def __init__(self) -> None:
        _ensure_fatal_level()
        self._sink_id: int | None = None
        self._log_path: str | None = None

    @property
    def log_path(self) -> str | None:
        return self._log_path

    def configure(self, log_path: str) -> None:
        """Attach the JSON-lines file sink, creating its directory."""
        if self._sink_id is not None:
            self.shutdown()

        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        self._sink_id = logger.add(
            log_path,
            level="INFO",
            format=_audit_file_format,
            filter=_is_audit_record,
            enqueue=True,
            catch=True,
            encoding="utf-8",
        )
        self._log_path = log_path
        logger.debug(f"Audit log sink attached: {log_path}")

    def record(
        self,
        level: AuditLevel | str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditRecord(
            level=AuditLevel(level), message=message, context=dict(context or {})
        )
        try:
            logger.bind(audit_line=entry.to_json()).log(
                entry.level.loguru_level,
                "{} | context: {}",
                entry.message,
                json.dumps(entry.context, default=str, ensure_ascii=False),
            )
        except Exception as e:
            logger.error(f"Failed to write audit record: {e}")

    def shutdown(self) -> None:
        """Flush and detach the file sink."""
        if self._sink_id is None:
            return
        try:
            logger.remove(self._sink_id)
        except ValueError:
            pass
        self._sink_id = None
        logger.debug("Audit log sink detached")


class MemoryAuditLogger(AuditLogger):
    """AuditLogger that keeps records in memory."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    def record(
        self,
        level: AuditLevel | str,
        message: str,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.records.append(
            AuditRecord(level=AuditLevel(level), message=message, context=dict(context or {}))
        )

    def by_level(self, level: AuditLevel | str) -> list[AuditRecord]:
        level = AuditLevel(level)
        return [r for r in self.records if r.level is level]

    def clear(self) -> None:
        self.records.clear()
