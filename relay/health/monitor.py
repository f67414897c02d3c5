"""
Backend health monitor
Periodically calls a known-good action through the same retrying transport
used by real traffic, using APScheduler.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from relay.audit import AuditLogger
from relay.backend import BackendAdapter
from relay.services import (
    HttpMethod,
    RelayOutcome,
    RelayRequest,
    RetryingTransport,
    Success,
    TransportExhausted,
)
from relay.services.retry import is_success_status

HEALTH_JOB_ID = "backend_health_check"


@dataclass
class HealthStatus:
    """Result of the most recent backend health check."""

    ok: bool = False
    detail: str = "not checked yet"
    last_checked_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "detail": self.detail,
            "last_checked_at": (
                self.last_checked_at.isoformat() if self.last_checked_at else None
            ),
        }


@dataclass
class _Evaluation:
    ok: bool
    detail: str
    context: dict[str, Any] = field(default_factory=dict)


class HealthMonitor:
    """Hourly backend liveness check"""

    def __init__(
        self,
        adapter: BackendAdapter,
        transport: RetryingTransport,
        audit: AuditLogger,
        action: str = "getDrivers",
        interval_minutes: int = 60,
        run_on_start: bool = False,
    ):
        self.adapter = adapter
        self.transport = transport
        self.audit = audit
        self.action = action
        self.interval_minutes = interval_minutes
        self.run_on_start = run_on_start

        self.scheduler: AsyncIOScheduler | None = None
        self.status = HealthStatus()
        self._is_running = False
        self._stopping = False

    async def check_now(self) -> HealthStatus:
        """Run one health check and record the result. Never raises."""
        self.audit.info("Running scheduled backend health check", action=self.action)
        try:
            call = self.adapter.shape_request(
                RelayRequest(action=self.action, method=HttpMethod.GET)
            )
            outcome = await self.transport.attempt(call)
            evaluation = self.evaluate(outcome)
        except Exception as e:
            logger.exception("Health check raised unexpectedly")
            evaluation = _Evaluation(ok=False, detail=str(e), context={"error": str(e)})

        # A check cut short by shutdown says nothing about the backend
        if not evaluation.ok and self._stopping:
            logger.info(f"Health check interrupted by shutdown: {evaluation.detail}")
            return self.status

        self.status = HealthStatus(
            ok=evaluation.ok,
            detail=evaluation.detail,
            last_checked_at=datetime.now(timezone.utc),
        )

        if evaluation.ok:
            self.audit.info(
                "Health check OK. Backend is responsive.", **evaluation.context
            )
        else:
            self.audit.fatal(
                "HEALTH CHECK FAILED. Backend may be down or misconfigured.",
                detail=evaluation.detail,
                **evaluation.context,
            )
        return self.status

    @staticmethod
    def evaluate(outcome: RelayOutcome) -> _Evaluation:
        """Judge an outcome by the backend's own `status` field."""
        if isinstance(outcome, TransportExhausted):
            return _Evaluation(
                ok=False,
                detail=f"Backend unreachable: {outcome.last_error}",
                context={"attempts": outcome.attempts},
            )
        if not isinstance(outcome, Success):
            return _Evaluation(
                ok=False,
                detail=outcome.detail,
                context={"status_code": outcome.status_code},
            )
        if not is_success_status(outcome.status_code):
            return _Evaluation(
                ok=False,
                detail=f"Health check failed with status: {outcome.status_code}",
                context={"status_code": outcome.status_code},
            )

        payload = outcome.payload if isinstance(outcome.payload, dict) else {}
        backend_status = payload.get("status")
        if backend_status == "success":
            return _Evaluation(ok=True, detail="ok", context={"status": backend_status})
        return _Evaluation(
            ok=False,
            detail=f"Health check failed: {payload.get('data', outcome.payload)}",
            context={"status": backend_status},
        )

    async def _health_job(self) -> None:
        """Scheduler entry point."""
        try:
            await self.check_now()
        except Exception as e:
            logger.error(f"Error in scheduled health check: {e}")

    def start(self) -> None:
        """Start the periodic check. Must be called with a running event loop."""
        if self._is_running:
            logger.warning("Health monitor is already running")
            return

        self._stopping = False
        self.scheduler = AsyncIOScheduler()
        job_kwargs: dict[str, Any] = {}
        if self.run_on_start:
            job_kwargs["next_run_time"] = datetime.now(timezone.utc)

        self.scheduler.add_job(
            self._health_job,
            trigger="interval",
            minutes=self.interval_minutes,
            id=HEALTH_JOB_ID,
            name="Backend Health Check",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            **job_kwargs,
        )
        self.scheduler.start()
        self._is_running = True

        logger.info(
            f"Health monitor started: checking '{self.action}' every {self.interval_minutes} minutes"
        )

    def stop(self) -> None:
        """Stop the periodic check."""
        if not self._is_running or self.scheduler is None:
            logger.warning("Health monitor is not running")
            return

        self._stopping = True
        self.scheduler.shutdown(wait=False)
        self.scheduler = None
        self._is_running = False
        logger.info("Health monitor stopped")

    def is_running(self) -> bool:
        return self._is_running
