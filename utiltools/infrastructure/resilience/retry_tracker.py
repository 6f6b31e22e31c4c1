"""Per-operation retry/backoff tracker.

The tracker never performs the operation itself. Each `check` answers
"may I attempt now, and if not, how long should I wait?" from the stored
attempt history and the clock; the caller performs the work and either
reports success or simply checks again.
"""

import logging
import math
from typing import Dict, Optional

from utiltools.domain.events.utility_events import (
    EventListener, RetryAttemptGranted, RetryDeferred, RetryExhausted, resolve_listener,
)
from utiltools.domain.interfaces.clock import Clock
from utiltools.domain.models.common import OperationId
from utiltools.domain.models.retry import (
    RetryDecision, RetryPhase, RetryPolicy, RetryState, RetryStatus,
)
from utiltools.infrastructure.scheduling.clock import SystemClock
from utiltools.infrastructure.scheduling.periodic_task import PeriodicTask

logger = logging.getLogger(__name__)

DEFAULT_GC_HORIZON_SECONDS = 60 * 60  # 1 hour
DEFAULT_GC_INTERVAL_SECONDS = 60


class RetryTransitionError(Exception):
    """Raised when a requested transition is not allowed from the current phase."""


class RetryTracker:
    """Stores RetryState per operation id and decides on each check."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        gc_horizon_seconds: float = DEFAULT_GC_HORIZON_SECONDS,
        gc_interval_seconds: float = DEFAULT_GC_INTERVAL_SECONDS,
        listener: Optional[EventListener] = None,
    ):
        """Initializes the tracker.

        Args:
            clock: Time source; defaults to the system clock.
            gc_horizon_seconds: Records whose last attempt is older than this are purged.
            gc_interval_seconds: How often the purge runs once started.
            listener: Receives domain events; events are logged when omitted.
        """
        self.clock = clock or SystemClock()
        self.gc_horizon_seconds = gc_horizon_seconds
        self._states: Dict[OperationId, RetryState] = {}
        self._emit = resolve_listener(listener)
        self._collector = PeriodicTask("retry-gc", gc_interval_seconds, self.purge_stale)
        logger.info(
            f"RetryTracker initialized: gc_horizon={gc_horizon_seconds}s, gc_interval={gc_interval_seconds}s"
        )

    # --- Lifecycle ---

    def start_collector(self) -> None:
        self._collector.start()

    async def stop_collector(self) -> None:
        await self._collector.stop()

    @property
    def collector_running(self) -> bool:
        return self._collector.running

    # --- Decisions ---

    def check(
        self,
        operation_id: OperationId,
        policy: RetryPolicy,
        should_execute: bool = True,
    ) -> RetryDecision:
        """Decides whether `operation_id` may be attempted now.

        With should_execute=False this is a pure inspection: no record is
        created or changed.
        """
        state = self._states.get(operation_id)
        attempts = state.attempts if state else 0

        if state is not None and state.phase is RetryPhase.SUCCEEDED:
            return RetryDecision(operation_id, RetryStatus.ALREADY_SUCCEEDED, attempts)

        if state is not None and (state.phase is RetryPhase.EXHAUSTED or attempts >= policy.max_retries):
            if state.phase is not RetryPhase.EXHAUSTED:
                state.phase = RetryPhase.EXHAUSTED
                logger.info(f"Retry budget exhausted for '{operation_id}' after {attempts} attempts")
                self._emit(RetryExhausted(operation_id=operation_id, attempts=attempts))
            return RetryDecision(operation_id, RetryStatus.MAX_RETRIES_EXCEEDED, attempts)

        now = self.clock.now()
        required_delay_ms = policy.required_delay_ms(attempts)

        if state is not None and attempts > 0:
            elapsed_ms = (now - state.last_attempt_at) * 1000
            if elapsed_ms < required_delay_ms:
                wait_ms = max(1, math.ceil(required_delay_ms - elapsed_ms))
                logger.debug(f"Retry for '{operation_id}' delayed by {wait_ms}ms")
                self._emit(RetryDeferred(operation_id=operation_id, wait_ms=wait_ms))
                return RetryDecision(operation_id, RetryStatus.RETRY_DELAYED, attempts, wait_ms=wait_ms)

        if not should_execute:
            return RetryDecision(
                operation_id, RetryStatus.READY_TO_EXECUTE, attempts, next_delay_ms=required_delay_ms,
            )

        if state is None:
            state = RetryState(operation_id=operation_id)
            self._states[operation_id] = state
        state.attempts += 1
        state.last_attempt_at = now
        state.phase = RetryPhase.EXECUTING
        logger.debug(f"Granting attempt {state.attempts}/{policy.max_retries} for '{operation_id}'")
        self._emit(RetryAttemptGranted(operation_id=operation_id, attempt_number=state.attempts))
        return RetryDecision(operation_id, RetryStatus.EXECUTE_ATTEMPT, state.attempts)

    def mark_succeeded(self, operation_id: OperationId) -> RetryState:
        """Records that the caller's attempt succeeded. Idempotent once succeeded.

        Raises:
            KeyError: The id has never been attempted.
            RetryTransitionError: The id is already exhausted.
        """
        state = self._states.get(operation_id)
        if state is None:
            raise KeyError(operation_id)
        if state.phase is RetryPhase.EXHAUSTED:
            raise RetryTransitionError(f"Operation '{operation_id}' is exhausted and cannot succeed")
        if state.phase is not RetryPhase.SUCCEEDED:
            state.phase = RetryPhase.SUCCEEDED
            logger.info(f"Operation '{operation_id}' succeeded after {state.attempts} attempt(s)")
        return state

    def phase(self, operation_id: OperationId, policy: RetryPolicy) -> RetryPhase:
        """Derives the current phase, including PENDING_DELAY and READY."""
        state = self._states.get(operation_id)
        if state is None:
            return RetryPhase.NEW
        if state.phase.is_terminal:
            return state.phase
        if state.attempts >= policy.max_retries:
            return RetryPhase.EXHAUSTED
        elapsed_ms = (self.clock.now() - state.last_attempt_at) * 1000
        if elapsed_ms < policy.required_delay_ms(state.attempts):
            return RetryPhase.PENDING_DELAY
        return RetryPhase.READY

    def get_state(self, operation_id: OperationId) -> Optional[RetryState]:
        return self._states.get(operation_id)

    def purge_stale(self) -> int:
        """Drops records whose last attempt is older than the GC horizon, terminal or not."""
        cutoff = self.clock.now() - self.gc_horizon_seconds
        stale = [op_id for op_id, s in self._states.items() if s.last_attempt_at < cutoff]
        for op_id in stale:
            del self._states[op_id]
        if stale:
            logger.info(f"Retry GC removed {len(stale)} stale records.")
        return len(stale)

    def __len__(self) -> int:
        return len(self._states)
