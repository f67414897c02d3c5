"""
Audit logging for relay decisions.
"""

from relay.audit.logger import (
    AuditLevel,
    AuditLogger,
    AuditRecord,
    LoguruAuditLogger,
    MemoryAuditLogger,
)

__all__ = [
    "AuditLevel",
    "AuditLogger",
    "AuditRecord",
    "LoguruAuditLogger",
    "MemoryAuditLogger",
]
