"""
Unit tests for RequestRouter.
"""

from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import UPSTREAM_URL, FakeUpstream
from relay.audit import AuditLevel
from relay.exceptions import InvalidActionError
from relay.proxy.router import RequestRouter, is_valid_action
from relay.services import HttpMethod


@pytest.fixture
def make_router(make_transport, adapter, audit):
    def _make(upstream: FakeUpstream) -> RequestRouter:
        transport, _ = make_transport(upstream)
        return RequestRouter(adapter, transport, audit)

    return _make


class TestActionValidation:
    """Test cases for action validation."""

    @pytest.mark.parametrize("action", ["getDrivers", "logToServerBatch", "v2.orders", "a-b_c"])
    def test_valid_actions(self, action):
        assert is_valid_action(action)

    @pytest.mark.parametrize("action", [None, "", "a/b", "a b", "a?b", "a#b"])
    def test_invalid_actions(self, action):
        assert not is_valid_action(action)

    @pytest.mark.asyncio
    async def test_invalid_action_never_reaches_upstream(self, make_router, audit):
        upstream = FakeUpstream()
        router = make_router(upstream)

        with pytest.raises(InvalidActionError) as exc_info:
            await router.handle(HttpMethod.GET, "", {})

        assert exc_info.value.status_code == 400
        assert upstream.call_count == 0
        assert audit.by_level(AuditLevel.INFO) == []


class TestRequestRouter:
    """Test cases for RequestRouter.handle."""

    @pytest.mark.asyncio
    async def test_get_success_passes_payload_verbatim(self, make_router, audit):
        payload = {"status": "success", "data": {"orders": 12}}
        upstream = FakeUpstream((200, payload))
        router = make_router(upstream)

        response = await router.handle(
            HttpMethod.GET, "getDashboardData", [("driverId", "42")]
        )

        assert response.status_code == 200
        assert response.body == payload
        assert str(upstream.requests[0].url) == (
            f"{UPSTREAM_URL}?action=getDashboardData&driverId=42"
        )

        infos = audit.by_level(AuditLevel.INFO)
        assert len(infos) == 1
        assert infos[0].message == "Proxying GET request"
        assert infos[0].context == {"action": "getDashboardData"}

    @pytest.mark.asyncio
    async def test_post_log_batch(self, make_router):
        upstream = FakeUpstream((200, {"status": "success"}))
        router = make_router(upstream)

        response = await router.handle(
            HttpMethod.POST, "logToServerBatch", [{"msg": "a"}, {"msg": "b"}]
        )

        assert response.status_code == 200
        assert upstream.json_bodies() == [
            {"action": "logToServerBatch", "data": {"logs": [{"msg": "a"}, {"msg": "b"}]}}
        ]

    @pytest.mark.asyncio
    async def test_exhaustion_maps_to_502(self, make_router, audit):
        upstream = FakeUpstream((503, {}), (503, {}), httpx.ConnectError("no route to host"))
        router = make_router(upstream)

        response = await router.handle(HttpMethod.POST, "createNewOrder", {"orderData": {}})

        assert response.status_code == 502
        assert response.body == {
            "status": "error",
            "data": "Proxy POST failed",
            "details": "no route to host",
        }
        assert upstream.call_count == 3

        errors = audit.by_level(AuditLevel.ERROR)
        assert errors[-1].message == "Proxy POST request failed"
        assert errors[-1].context["attempts"] == 3

    @pytest.mark.asyncio
    async def test_get_failure_names_stage(self, make_router):
        upstream = FakeUpstream((404, {}))
        router = make_router(upstream)

        response = await router.handle(HttpMethod.GET, "getDrivers", None)

        assert response.status_code == 502
        assert response.body["data"] == "Proxy GET failed"
        assert response.body["details"] == "HTTP error 404"

    @pytest.mark.asyncio
    async def test_status_500_passed_through(self, make_router, audit):
        payload = {"status": "error", "data": "TypeError: Cannot read property"}
        upstream = FakeUpstream((500, payload))
        router = make_router(upstream)

        response = await router.handle(HttpMethod.GET, "getDrivers", None)

        assert response.status_code == 500
        assert response.body == payload
        assert upstream.call_count == 1
        assert audit.by_level(AuditLevel.WARN) == []

    @pytest.mark.asyncio
    async def test_unreadable_body_maps_to_502(self, make_router):
        upstream = FakeUpstream((200, "not json"))
        router = make_router(upstream)

        response = await router.handle(HttpMethod.GET, "getDrivers", None)

        assert response.status_code == 502
        assert "Invalid JSON from upstream" in response.body["details"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, adapter, audit):
        transport = AsyncMock()
        transport.attempt.side_effect = RuntimeError("boom")
        router = RequestRouter(adapter, transport, audit)

        response = await router.handle(HttpMethod.GET, "getDrivers", None)

        assert response.status_code == 502
        assert response.body == {
            "status": "error",
            "data": "Proxy GET failed",
            "details": "boom",
        }


class TestBuildRequest:
    """Test cases for RelayRequest construction."""

    def test_get_query_mapping(self, make_router):
        router = make_router(FakeUpstream())
        request = router.build_request("GET", "getOrders", {"a": "1", "b": "2"})
        assert request.query_params == (("a", "1"), ("b", "2"))

    def test_post_body_presence_is_inferred(self, make_router):
        router = make_router(FakeUpstream())
        assert router.build_request("POST", "assignDriver", {"x": 1}).has_body
        assert not router.build_request("POST", "assignDriver", None).has_body
