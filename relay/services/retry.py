"""
Retry policy and response classification for upstream attempts.

Classification rules, in order:
- transport failure (connect/read error, timeout) -> RETRYABLE
- HTTP 500 -> PASS_THROUGH; the Apps Script backend reports its own
  application errors with 500 and a JSON body, so the answer is
  authoritative and is handed to the caller untouched
- any other status outside 2xx -> RETRYABLE
- 2xx -> SUCCESS
"""

from dataclasses import dataclass
from enum import Enum

SCRIPT_ERROR_STATUS = 500


class AttemptVerdict(str, Enum):
    """Result of classifying a single attempt."""

    SUCCESS = "SUCCESS"
    PASS_THROUGH = "PASS_THROUGH"
    RETRYABLE = "RETRYABLE"

    @property
    def is_terminal(self) -> bool:
        return self is not AttemptVerdict.RETRYABLE


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with linear backoff."""

    max_attempts: int = 3
    backoff_unit_ms: int = 1000

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        if self.backoff_unit_ms < 1:
            raise ValueError("backoff_unit_ms must be positive")

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after `attempt` fails, before attempt + 1."""
        return self.backoff_unit_ms * attempt / 1000

    def has_attempts_left(self, attempt: int) -> bool:
        return attempt < self.max_attempts


def is_script_error_passthrough(status_code: int) -> bool:
    """The upstream's 500 carries a backend error payload; never retry it."""
    return status_code == SCRIPT_ERROR_STATUS


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


def classify_status(status_code: int) -> AttemptVerdict:
    """Classify an HTTP status returned by the upstream."""
    if is_script_error_passthrough(status_code):
        return AttemptVerdict.PASS_THROUGH
    if is_success_status(status_code):
        return AttemptVerdict.SUCCESS
    return AttemptVerdict.RETRYABLE
