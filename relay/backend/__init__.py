"""
Upstream backend contract.
"""

from relay.backend.adapter import LOG_BATCH_ACTION, BackendAdapter

__all__ = [
    "BackendAdapter",
    "LOG_BATCH_ACTION",
]
