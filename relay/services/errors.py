"""
Service layer exceptions.

These never escape the transport; their messages become the `last_error`
or `detail` of a RelayOutcome.
"""


class ServiceError(Exception):
    """Base exception for upstream call errors."""

    def __init__(self, message: str, service_id: str | None = None):
        self.service_id = service_id
        super().__init__(message)


class RequestTimeoutError(ServiceError):
    """A single attempt exceeded its timeout."""

    def __init__(self, service_id: str, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Request to service '{service_id}' timed out after {timeout}s",
            service_id=service_id,
        )


class UpstreamStatusError(ServiceError):
    """Upstream answered with a retryable failure status."""

    def __init__(self, service_id: str, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP error {status_code}", service_id=service_id)


class InvalidResponseError(ServiceError):
    """Upstream answered but the body is not JSON."""

    def __init__(self, service_id: str, status_code: int, reason: str):
        self.status_code = status_code
        super().__init__(
            f"Invalid JSON from upstream (HTTP {status_code}): {reason}",
            service_id=service_id,
        )
