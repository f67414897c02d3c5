"""
Request router - maps inbound client calls onto the upstream backend.
"""

import re
from typing import Any, Mapping, Sequence

from loguru import logger

from relay.audit import AuditLogger
from relay.backend import BackendAdapter
from relay.exceptions import InvalidActionError, error_envelope
from relay.services import (
    ClientResponse,
    HttpMethod,
    RelayOutcome,
    RelayRequest,
    RetryingTransport,
    Success,
    TransportExhausted,
    UpstreamError,
)

ACTION_PATTERN = re.compile(r"^[A-Za-z0-9_.~-]+$")
BAD_GATEWAY = 502


def is_valid_action(action: str | None) -> bool:
    """Non-empty and safe to use as a single path segment."""
    return bool(action) and ACTION_PATTERN.match(action) is not None


class RequestRouter:
    """Validates, shapes, forwards and maps one client call."""

    def __init__(
        self,
        adapter: BackendAdapter,
        transport: RetryingTransport,
        audit: AuditLogger,
    ):
        self.adapter = adapter
        self.transport = transport
        self.audit = audit

    def build_request(
        self,
        method: HttpMethod | str,
        action: str | None,
        query_or_body: Any = None,
        has_body: bool | None = None,
    ) -> RelayRequest:
        """
        Build an immutable RelayRequest.

        Args:
            method: GET or POST
            action: Action name from the path
            query_or_body: Query pairs (GET) or parsed JSON body (POST)
            has_body: Whether a POST carried a body; inferred when omitted

        Raises:
            InvalidActionError: If the action is missing or malformed
        """
        if not is_valid_action(action):
            raise InvalidActionError(action)

        method = HttpMethod(method)
        if method is HttpMethod.GET:
            return RelayRequest(
                action=action,
                method=method,
                query_params=_query_pairs(query_or_body),
            )

        return RelayRequest(
            action=action,
            method=method,
            body=query_or_body,
            has_body=query_or_body is not None if has_body is None else has_body,
        )

    async def handle(
        self,
        method: HttpMethod | str,
        action: str | None,
        query_or_body: Any = None,
        has_body: bool | None = None,
    ) -> ClientResponse:
        """
        Relay one client call and produce the client-facing response.

        Raises:
            InvalidActionError: Before any upstream call, if the action is invalid
        """
        try:
            request = self.build_request(method, action, query_or_body, has_body)
        except InvalidActionError:
            self.audit.warn("Rejected request with invalid action", action=action)
            raise

        stage = request.method.value
        self.audit.info(f"Proxying {stage} request", action=request.action)

        try:
            call = self.adapter.shape_request(request)
            outcome = await self.transport.attempt(call)
        except Exception as e:
            logger.exception(f"Unexpected relay failure for {request.action}")
            outcome = UpstreamError(status_code=BAD_GATEWAY, detail=str(e))

        return self.to_client_response(request, outcome)

    def to_client_response(
        self, request: RelayRequest, outcome: RelayOutcome
    ) -> ClientResponse:
        """Map a RelayOutcome to status code and body."""
        if isinstance(outcome, Success):
            return ClientResponse(
                status_code=outcome.status_code,
                body=outcome.payload,
                raw_body=outcome.raw_body,
                media_type=outcome.media_type,
            )

        stage = request.method.value
        if isinstance(outcome, TransportExhausted):
            details = outcome.last_error
        else:
            details = outcome.detail

        self.audit.error(
            f"Proxy {stage} request failed",
            action=request.action,
            error=details,
            attempts=outcome.attempts,
        )
        return ClientResponse(
            status_code=BAD_GATEWAY,
            body=error_envelope(f"Proxy {stage} failed", details),
        )


def _query_pairs(query: Any) -> tuple[tuple[str, str], ...]:
    """Normalize query input to ordered (key, value) pairs."""
    if query is None:
        return ()
    if hasattr(query, "multi_items"):
        return tuple((str(k), str(v)) for k, v in query.multi_items())
    if isinstance(query, Mapping):
        return tuple((str(k), str(v)) for k, v in query.items())
    if isinstance(query, Sequence) and not isinstance(query, (str, bytes)):
        return tuple((str(k), str(v)) for k, v in query)
    raise TypeError(f"Unsupported query parameters: {type(query).__name__}")
