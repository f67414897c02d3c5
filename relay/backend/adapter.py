"""
Apps Script backend adapter.

The backend exposes a single `/exec` endpoint that multiplexes on an
`action` field:
- GET actions read `action` and their arguments from the query string
- POST actions read a JSON envelope {"action": ..., "data": ...}

`logToServerBatch` is the one POST action whose handler expects its
payload under `data.logs`; every other action takes the client body as
`data` unchanged. Both shapes are part of the backend contract.
"""

from typing import Any

import httpx

from relay.services.transport import decode_json
from relay.services.types import HttpMethod, RelayRequest, UpstreamCall

LOG_BATCH_ACTION = "logToServerBatch"


class BackendAdapter:
    """
    Shapes relay requests for the Apps Script endpoint.

    Usage:
        adapter = BackendAdapter("https://script.google.com/macros/s/.../exec")
        call = adapter.shape_request(
            RelayRequest(action="getDashboardData", method=HttpMethod.GET,
                         query_params=(("driverId", "42"),))
        )
        # call.url == ".../exec?action=getDashboardData&driverId=42"
    """

    def __init__(self, endpoint: str):
        self.endpoint = endpoint

    def shape_request(self, request: RelayRequest) -> UpstreamCall:
        """Build the upstream call for a relay request."""
        if request.method is HttpMethod.GET:
            return UpstreamCall(method=HttpMethod.GET, url=self.build_query_url(request))

        # A POST without a body is sent as an empty object
        body = request.body if request.has_body else {}
        return UpstreamCall(
            method=HttpMethod.POST,
            url=self.endpoint,
            json_body=self.build_envelope(request.action, body),
        )

    def build_query_url(self, request: RelayRequest) -> str:
        """Endpoint + action + client query parameters, in received order."""
        params = httpx.QueryParams([("action", request.action), *request.query_params])
        separator = "&" if "?" in self.endpoint else "?"
        return f"{self.endpoint}{separator}{params}"

    @staticmethod
    def build_envelope(action: str, body: Any) -> dict[str, Any]:
        """Wrap a client body in the {action, data} envelope."""
        if action == LOG_BATCH_ACTION:
            return {"action": action, "data": {"logs": body}}
        return {"action": action, "data": body}

    @staticmethod
    def unwrap_response(raw_body: str) -> Any:
        """Parse the upstream body; the backend's envelope is passed through as-is."""
        return decode_json(raw_body)
