"""FastAPI server exposing the relay to client apps."""

import json
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from loguru import logger

from relay.audit import AuditLogger, LoguruAuditLogger
from relay.backend import BackendAdapter
from relay.exceptions import ClientRequestError, InvalidActionError, InvalidBodyError
from relay.health import HealthMonitor
from relay.proxy.router import RequestRouter
from relay.services import ClientResponse, HttpMethod, RetryingTransport, RetryPolicy
from relay.settings import Settings, global_settings


class RelayServer:
    """HTTP server relaying client calls to the Apps Script backend."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: RetryingTransport | None = None,
        audit: AuditLogger | None = None,
    ):
        self.settings = settings or global_settings
        self.audit = audit or LoguruAuditLogger()
        self.adapter = BackendAdapter(self.settings.upstream_url)
        self.transport = transport or RetryingTransport(
            audit=self.audit,
            policy=RetryPolicy(
                max_attempts=self.settings.retry_attempts,
                backoff_unit_ms=self.settings.backoff_unit_ms,
            ),
            timeout=self.settings.attempt_timeout_seconds,
            decode=self.adapter.unwrap_response,
        )
        self.router = RequestRouter(self.adapter, self.transport, self.audit)
        self.health_monitor = HealthMonitor(
            self.adapter,
            self.transport,
            self.audit,
            action=self.settings.health_check_action,
            interval_minutes=self.settings.health_check_interval_minutes,
            run_on_start=self.settings.health_check_on_startup,
        )

        self.app = FastAPI(title="DeliveryMaster Relay", lifespan=self.lifespan)
        self.app.add_middleware(
            CORSMiddleware,
            allow_origins=self.settings.allowed_origins,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )
        self.app.add_exception_handler(ClientRequestError, self.handle_client_error)

        # Register routes
        self.app.get("/health")(self.health_check)
        self.app.get("/api")(self.missing_action)
        self.app.post("/api")(self.missing_action)
        self.app.get("/api/")(self.missing_action)
        self.app.post("/api/")(self.missing_action)
        self.app.get("/api/{action}")(self.proxy_get)
        self.app.post("/api/{action}")(self.proxy_post)

    @asynccontextmanager
    async def lifespan(self, app: FastAPI) -> AsyncIterator[None]:
        """Attach the audit sink and own the health check for the app's lifetime."""
        if isinstance(self.audit, LoguruAuditLogger):
            self.audit.configure(self.settings.log_path)
        self.audit.info(
            "Relay starting",
            upstream=self.settings.upstream_url,
            retry_attempts=self.settings.retry_attempts,
        )
        self.health_monitor.start()
        try:
            yield
        finally:
            self.health_monitor.stop()
            await self.transport.close()
            self.audit.info("Relay stopped")
            if isinstance(self.audit, LoguruAuditLogger):
                self.audit.shutdown()

    async def proxy_get(self, action: str, request: Request) -> Response:
        """Handle GET requests (e.g. /api/getDashboardData?driverId=42)."""
        result = await self.router.handle(
            HttpMethod.GET, action, request.query_params
        )
        return self._render(result)

    async def proxy_post(self, action: str, request: Request) -> Response:
        """Handle POST requests (e.g. /api/createNewOrder)."""
        raw = await request.body()
        if raw.strip():
            try:
                body = json.loads(raw)
            except ValueError as e:
                self.audit.warn("Rejected POST with invalid JSON body", action=action)
                raise InvalidBodyError(f"Request body is not valid JSON: {e}") from e
            has_body = True
        else:
            body, has_body = None, False

        result = await self.router.handle(HttpMethod.POST, action, body, has_body)
        return self._render(result)

    async def missing_action(self) -> JSONResponse:
        raise InvalidActionError(None)

    async def health_check(self) -> dict:
        """Relay liveness plus the last backend check."""
        return {
            "status": "ok",
            "service": "deliverymaster-relay",
            "backend": self.health_monitor.status.to_dict(),
        }

    async def handle_client_error(
        self, request: Request, exc: ClientRequestError
    ) -> JSONResponse:
        logger.debug(f"Client error on {request.url.path}: {exc.detail}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())

    @staticmethod
    def _render(result: ClientResponse) -> Response:
        if result.raw_body is not None:
            return Response(
                content=result.raw_body,
                status_code=result.status_code,
                media_type=result.media_type,
            )
        return JSONResponse(status_code=result.status_code, content=result.body)


def create_app(
    settings: Settings | None = None,
    transport: RetryingTransport | None = None,
    audit: AuditLogger | None = None,
) -> FastAPI:
    """Create FastAPI app for the relay.

    Args:
        settings: Relay settings (defaults to global settings)
        transport: Pre-built transport, mainly for tests
        audit: Audit logger (defaults to loguru-backed)

    Returns:
        FastAPI app
    """
    server = RelayServer(settings, transport, audit)
    return server.app
