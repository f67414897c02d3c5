"""
Backend health monitoring.
"""

from relay.health.monitor import HEALTH_JOB_ID, HealthMonitor, HealthStatus

__all__ = [
    "HEALTH_JOB_ID",
    "HealthMonitor",
    "HealthStatus",
]
