"""
Relay request and outcome types.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


class HttpMethod(str, Enum):
    GET = "GET"
    POST = "POST"


@dataclass(frozen=True)
class RelayRequest:
    """An inbound client call, immutable once built."""

    action: str
    method: HttpMethod
    query_params: tuple[tuple[str, str], ...] = ()
    body: Any = None
    has_body: bool = False


@dataclass(frozen=True)
class UpstreamCall:
    """A shaped outbound call to the backend."""

    method: HttpMethod
    url: str
    json_body: dict[str, Any] | None = None


@dataclass(frozen=True)
class Success:
    """
    Upstream answered (2xx, or the 500 pass-through).

    A 500 whose body is not JSON keeps its raw text in `raw_body`.
    """

    payload: Any
    status_code: int = 200
    attempts: int = 1
    raw_body: str | None = None
    media_type: str | None = None


@dataclass(frozen=True)
class UpstreamError:
    """Upstream answered but the answer could not be used."""

    status_code: int
    detail: str
    attempts: int = 1


@dataclass(frozen=True)
class TransportExhausted:
    """Every attempt failed with a retryable error."""

    last_error: str
    attempts: int


RelayOutcome = Union[Success, UpstreamError, TransportExhausted]


@dataclass
class ClientResponse:
    """Status code and body returned to the client."""

    status_code: int
    body: Any = field(default=None)
    raw_body: str | None = None
    media_type: str | None = None
