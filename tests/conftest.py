"""
Shared fixtures for relay tests.
"""

import json
from typing import Any, Callable

import httpx
import pytest

from relay.audit import MemoryAuditLogger
from relay.backend import BackendAdapter
from relay.services import RetryingTransport, RetryPolicy

UPSTREAM_URL = "https://backend.test/macros/s/script-id/exec"


class FakeUpstream:
    """
    Scripted upstream for httpx.MockTransport.

    Each queued reply is either an httpx.Response, an exception to raise,
    or a (status, json_body) tuple. The last reply repeats once the queue
    is drained.
    """

    def __init__(self, *replies: Any):
        self.replies = list(replies) or [(200, {"status": "success", "data": []})]
        self.requests: list[httpx.Request] = []
        self.events: list[tuple[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.events.append(("request", len(self.requests)))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, httpx.Response):
            return reply
        status, body = reply
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, json=body)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def json_bodies(self) -> list[Any]:
        return [json.loads(r.content) for r in self.requests if r.content]


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self, upstream: FakeUpstream | None = None):
        self.delays: list[float] = []
        self.upstream = upstream

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        if self.upstream is not None:
            self.upstream.events.append(("sleep", delay))


@pytest.fixture
def audit() -> MemoryAuditLogger:
    return MemoryAuditLogger()


@pytest.fixture
def adapter() -> BackendAdapter:
    return BackendAdapter(UPSTREAM_URL)


@pytest.fixture
def make_transport(audit, adapter) -> Callable[..., tuple[RetryingTransport, SleepRecorder]]:
    """Build a RetryingTransport wired to a FakeUpstream."""

    def _make(
        upstream: FakeUpstream, policy: RetryPolicy | None = None, timeout: float = 5.0
    ) -> tuple[RetryingTransport, SleepRecorder]:
        sleep = SleepRecorder(upstream)
        transport = RetryingTransport(
            audit=audit,
            policy=policy or RetryPolicy(max_attempts=3, backoff_unit_ms=1000),
            timeout=timeout,
            decode=adapter.unwrap_response,
            sleep=sleep,
            http_client=httpx.AsyncClient(
                transport=httpx.MockTransport(upstream), follow_redirects=True
            ),
        )
        return transport, sleep

    return _make
