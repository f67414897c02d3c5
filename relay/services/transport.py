"""
RetryingTransport - executes a shaped upstream call with bounded retry.

Every failed attempt is audited before the backoff sleep, so the trail
exists even if the process dies mid-retry. Attempts for one call are
strictly sequential; the sleep is an asyncio suspension and does not
block other requests.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from relay.audit import AuditLogger
from relay.services.errors import (
    InvalidResponseError,
    RequestTimeoutError,
    ServiceError,
    UpstreamStatusError,
)
from relay.services.retry import AttemptVerdict, RetryPolicy, classify_status
from relay.services.types import (
    RelayOutcome,
    Success,
    TransportExhausted,
    UpstreamCall,
    UpstreamError,
)

SERVICE_ID = "apps_script"


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant {name}")


def decode_json(raw_body: str) -> Any:
    """Strict JSON: NaN and Infinity cannot be re-encoded for the client."""
    return json.loads(raw_body, parse_constant=_reject_constant)


class RetryingTransport:
    """
    Async HTTP transport with retry, linear backoff and per-attempt timeout.

    Usage:
        transport = RetryingTransport(audit, RetryPolicy(max_attempts=3))
        outcome = await transport.attempt(
            UpstreamCall(method=HttpMethod.GET, url="https://.../exec?action=getDrivers")
        )
    """

    def __init__(
        self,
        audit: AuditLogger,
        policy: RetryPolicy | None = None,
        timeout: float = 30.0,
        decode: Callable[[str], Any] = decode_json,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        http_client: httpx.AsyncClient | None = None,
        service_id: str = SERVICE_ID,
    ):
        self.audit = audit
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self.service_id = service_id
        self._decode = decode
        self._sleep = sleep

        # HTTP client (lazy initialization)
        self._http_client = http_client
        self._owns_client = http_client is None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._http_client

    async def attempt(self, call: UpstreamCall) -> RelayOutcome:
        """
        Execute the call, retrying retryable failures.

        Args:
            call: Shaped upstream call

        Returns:
            Success, UpstreamError or TransportExhausted. Never raises for
            network or HTTP failures.
        """
        last_error: ServiceError | None = None
        attempt = 0

        for attempt in range(1, self.policy.max_attempts + 1):
            try:
                response = await self._send(call)
            except ServiceError as e:
                last_error = e
                status_code = None
            else:
                verdict = classify_status(response.status_code)
                if verdict.is_terminal:
                    return self._finish(response, verdict, attempt)
                last_error = UpstreamStatusError(self.service_id, response.status_code)
                status_code = response.status_code

            retrying = self.policy.has_attempts_left(attempt)
            delay = self.policy.delay_after(attempt) if retrying else None
            self.audit.warn(
                f"Upstream attempt {attempt}/{self.policy.max_attempts} failed",
                url=call.url,
                method=call.method.value,
                attempt=attempt,
                status=status_code,
                error=str(last_error),
                retry_in_ms=int(delay * 1000) if delay is not None else None,
            )
            if not retrying:
                break
            await self._sleep(delay)

        message = str(last_error) if last_error else "no attempt was made"
        self.audit.error(
            f"All upstream attempts failed for {call.url}",
            method=call.method.value,
            attempts=attempt,
            error=message,
        )
        return TransportExhausted(last_error=message, attempts=attempt)

    async def _send(self, call: UpstreamCall) -> httpx.Response:
        """Issue one attempt, translating httpx failures to ServiceError."""
        client = await self._get_http_client()
        kwargs: dict[str, Any] = {"timeout": self.timeout}
        if call.json_body is not None:
            kwargs["json"] = call.json_body

        # httpx timeouts are per socket operation; wait_for bounds the whole attempt
        try:
            return await asyncio.wait_for(
                client.request(call.method.value, call.url, **kwargs),
                timeout=self.timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            raise RequestTimeoutError(self.service_id, self.timeout) from e
        except httpx.RequestError as e:
            raise ServiceError(
                str(e) or type(e).__name__, service_id=self.service_id
            ) from e

    def _finish(
        self, response: httpx.Response, verdict: AttemptVerdict, attempt: int
    ) -> RelayOutcome:
        """Decode a terminal response into an outcome."""
        if verdict is AttemptVerdict.PASS_THROUGH:
            logger.debug(
                f"Passing through HTTP {response.status_code} from {self.service_id}"
            )
        try:
            payload = self._decode(response.text)
        except ValueError as e:
            if verdict is AttemptVerdict.PASS_THROUGH:
                # The backend's own error page goes back to the client untouched
                return Success(
                    payload=None,
                    status_code=response.status_code,
                    attempts=attempt,
                    raw_body=response.text,
                    media_type=response.headers.get("content-type", "text/plain"),
                )
            error = InvalidResponseError(self.service_id, response.status_code, str(e))
            self.audit.error(
                "Upstream returned an unreadable body",
                status=response.status_code,
                attempt=attempt,
                error=str(error),
            )
            return UpstreamError(
                status_code=response.status_code, detail=str(error), attempts=attempt
            )
        return Success(payload=payload, status_code=response.status_code, attempts=attempt)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._http_client and self._owns_client:
            await self._http_client.aclose()
        self._http_client = None
        logger.debug("RetryingTransport closed")

    async def __aenter__(self) -> "RetryingTransport":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
