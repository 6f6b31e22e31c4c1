"""Models for the Retry Tracker bounded context.

A tracked operation moves through these phases::

    NEW -> EXECUTING -> (PENDING_DELAY -> READY -> EXECUTING)* -> SUCCEEDED | EXHAUSTED

Only EXECUTING, SUCCEEDED and EXHAUSTED are stored. NEW is the absence of a
record; PENDING_DELAY and READY are derived from the stored record and the clock.
"""

import enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from utiltools.domain.models.common import OperationId


class RetryPhase(str, enum.Enum):
    NEW = "new"
    PENDING_DELAY = "pending_delay"
    READY = "ready"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"

    @property
    def is_terminal(self) -> bool:
        return self in (RetryPhase.SUCCEEDED, RetryPhase.EXHAUSTED)


class RetryStatus(str, enum.Enum):
    """Decision returned by a retry check."""
    ALREADY_SUCCEEDED = "already_succeeded"
    MAX_RETRIES_EXCEEDED = "max_retries_exceeded"
    RETRY_DELAYED = "retry_delayed"
    READY_TO_EXECUTE = "ready_to_execute"
    EXECUTE_ATTEMPT = "execute_attempt"


@dataclass
class RetryState:
    """Stored attempt history for one operation id. Attempts only ever increase."""
    operation_id: OperationId
    attempts: int = 0
    last_attempt_at: float = 0.0
    phase: RetryPhase = RetryPhase.EXECUTING

    @property
    def succeeded(self) -> bool:
        return self.phase is RetryPhase.SUCCEEDED


@dataclass(frozen=True)
class RetryPolicy:
    """Backoff parameters supplied with each check."""
    max_retries: int = 3
    initial_delay_ms: int = 1000
    max_delay_ms: Optional[int] = None

    def required_delay_ms(self, attempts: int) -> int:
        """Exponential backoff: initial_delay_ms * 2**attempts, optionally clamped."""
        delay = self.initial_delay_ms * (2 ** attempts)
        if self.max_delay_ms is not None:
            delay = min(delay, self.max_delay_ms)
        return delay


@dataclass(frozen=True)
class RetryDecision:
    operation_id: OperationId
    status: RetryStatus
    attempts: int
    wait_ms: Optional[int] = None
    next_delay_ms: Optional[int] = None

    @property
    def message(self) -> str:
        if self.status is RetryStatus.ALREADY_SUCCEEDED:
            return "Operation already completed successfully"
        if self.status is RetryStatus.MAX_RETRIES_EXCEEDED:
            return "Maximum retry attempts reached"
        if self.status is RetryStatus.RETRY_DELAYED:
            return f"Retry delayed. Wait {self.wait_ms}ms before next attempt"
        if self.status is RetryStatus.READY_TO_EXECUTE:
            return "Operation may be attempted now"
        return "Execute the operation and call retry_operation again with the result"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "operation_id": self.operation_id,
            "status": self.status.value,
            "attempts": self.attempts,
            "message": self.message,
        }
        if self.wait_ms is not None:
            payload["wait_ms"] = self.wait_ms
        if self.next_delay_ms is not None:
            payload["next_delay_ms"] = self.next_delay_ms
        return payload
