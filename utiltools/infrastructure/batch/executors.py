"""Operation executors for the batch runner.

SimulatedExecutor fabricates a result after a random delay; it is what the
CLI uses, since real side effects are the caller's business. HandlerExecutor
dispatches on the operation type to caller-registered coroutines.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Optional

from utiltools.domain.interfaces.clock import Clock
from utiltools.domain.interfaces.executor import OperationExecutor
from utiltools.domain.models.batch import BatchOperation
from utiltools.domain.models.common import to_iso
from utiltools.infrastructure.scheduling.clock import SystemClock

logger = logging.getLogger(__name__)

DEFAULT_SIMULATED_MAX_DELAY_MS = 1000

OperationHandler = Callable[[Dict[str, Any]], Awaitable[Any]]


class SimulatedExecutor(OperationExecutor):
    """Sleeps up to `max_delay_ms` and echoes the operation back."""

    def __init__(
        self,
        max_delay_ms: int = DEFAULT_SIMULATED_MAX_DELAY_MS,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.max_delay_ms = max_delay_ms
        self.clock = clock or SystemClock()
        self._rng = rng or random.Random()

    async def execute(self, operation: BatchOperation) -> Any:
        await asyncio.sleep(self._rng.uniform(0, self.max_delay_ms) / 1000)
        return {
            "id": operation.id,
            "type": operation.type,
            "data": operation.data,
            "processed_at": to_iso(self.clock.now()),
        }


class HandlerExecutor(OperationExecutor):
    """Routes each operation to the handler registered for its type."""

    def __init__(self, handlers: Optional[Dict[str, OperationHandler]] = None):
        self._handlers: Dict[str, OperationHandler] = dict(handlers or {})

    def register(self, operation_type: str, handler: OperationHandler) -> None:
        if operation_type in self._handlers:
            logger.warning(f"Replacing handler for operation type '{operation_type}'")
        self._handlers[operation_type] = handler

    async def execute(self, operation: BatchOperation) -> Any:
        handler = self._handlers.get(operation.type)
        if handler is None:
            raise LookupError(f"No handler registered for operation type '{operation.type}'")
        return await handler(operation.data)
