"""
Client-facing exceptions and error envelope
"""

from typing import Any

from fastapi import HTTPException, status


def error_envelope(data: str, details: Any) -> dict[str, Any]:
    """Build the JSON body returned to clients on failure."""
    return {"status": "error", "data": data, "details": details}


class ClientRequestError(HTTPException):
    """Request rejected before reaching the backend"""

    summary = "Invalid request"

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    def to_envelope(self) -> dict[str, Any]:
        return error_envelope(self.summary, self.detail)


class InvalidActionError(ClientRequestError):
    """Missing or malformed action name"""

    summary = "Invalid action"

    def __init__(self, action: str | None):
        super().__init__(detail=f"Action {action!r} is missing or not a valid path segment")
        self.action = action


class InvalidBodyError(ClientRequestError):
    """POST body is not valid JSON"""

    summary = "Invalid body"
