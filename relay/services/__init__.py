"""
Service layer - resilient calls to the upstream backend.

Provides:
- RetryPolicy / classify_status: retry budget and response classification
- RetryingTransport: executes a shaped call with retry and backoff
- RelayRequest / RelayOutcome types
"""

from relay.services.errors import (
    InvalidResponseError,
    RequestTimeoutError,
    ServiceError,
    UpstreamStatusError,
)
from relay.services.retry import (
    AttemptVerdict,
    RetryPolicy,
    classify_status,
    is_script_error_passthrough,
)
from relay.services.transport import RetryingTransport
from relay.services.types import (
    ClientResponse,
    HttpMethod,
    RelayOutcome,
    RelayRequest,
    Success,
    TransportExhausted,
    UpstreamCall,
    UpstreamError,
)

__all__ = [
    # Errors
    "ServiceError",
    "RequestTimeoutError",
    "UpstreamStatusError",
    "InvalidResponseError",
    # Retry
    "AttemptVerdict",
    "RetryPolicy",
    "classify_status",
    "is_script_error_passthrough",
    # Transport
    "RetryingTransport",
    # Types
    "ClientResponse",
    "HttpMethod",
    "RelayOutcome",
    "RelayRequest",
    "Success",
    "TransportExhausted",
    "UpstreamCall",
    "UpstreamError",
]
