"""Domain Events emitted by the retry, batch and rate-limit components.

Components accept an optional listener callable; when none is given the
events are logged at DEBUG level.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


EventListener = Callable[[DomainEvent], None]


# --- Retry Events ---

@dataclass
class RetryAttemptGranted(DomainEvent):
    """A check allowed the caller to perform attempt number `attempt_number`."""
    operation_id: str
    attempt_number: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryDeferred(DomainEvent):
    """A check arrived before the backoff delay elapsed."""
    operation_id: str
    wait_ms: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryExhausted(DomainEvent):
    """The retry budget for an operation id was used up."""
    operation_id: str
    attempts: int
    timestamp: float = field(default_factory=time.time)


# --- Batch Events ---

@dataclass
class BatchOperationStarted(DomainEvent):
    operation_id: str
    in_flight: int  # including this one
    timestamp: float = field(default_factory=time.time)


@dataclass
class BatchOperationCompleted(DomainEvent):
    operation_id: str
    cached: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class BatchOperationFailed(DomainEvent):
    operation_id: str
    error_message: str
    timed_out: bool = False
    timestamp: float = field(default_factory=time.time)


@dataclass
class BatchDrained(DomainEvent):
    """Queued operations were dropped after a failure with continue_on_error off."""
    failed_operation_id: str
    drained_count: int
    timestamp: float = field(default_factory=time.time)


# --- Rate Limit Events ---

@dataclass
class RateLimitExceeded(DomainEvent):
    resource: str
    max_requests: int
    reset_in_seconds: int
    timestamp: float = field(default_factory=time.time)


def log_event(event: DomainEvent) -> None:
    """Default listener: records the event in the debug log."""
    logger.debug(f"EVENT: {event}")


def resolve_listener(listener: Optional[EventListener]) -> EventListener:
    return listener if listener is not None else log_event
