"""Bounded-concurrency batch runner.

Keeps a pending queue and an in-flight set no larger than `concurrency`.
Each operation races its executor call against a per-operation timeout;
on timeout the executor call is cancelled and the item fails on its own.
Results are returned in the caller's input order regardless of the order
in which operations settle.
"""

import asyncio
import json
import logging
from collections import deque
from typing import Deque, Dict, Optional, Sequence

from utiltools.domain.errors import OperationTimeoutError
from utiltools.domain.events.utility_events import (
    BatchDrained, BatchOperationCompleted, BatchOperationFailed, BatchOperationStarted,
    EventListener, resolve_listener,
)
from utiltools.domain.interfaces.cache import CacheService
from utiltools.domain.interfaces.executor import OperationExecutor
from utiltools.domain.models.batch import BatchOperation, BatchOptions, BatchResult, BatchSummary
from utiltools.domain.models.common import BATCH_NAMESPACE, CacheKey

logger = logging.getLogger(__name__)

SKIPPED_ERROR = "Operation not started: batch aborted after an earlier failure"


def batch_cache_key(operation: BatchOperation) -> CacheKey:
    """Cache key for an operation's result: its type plus canonical JSON of its data."""
    return CacheKey(f"{operation.type}:{json.dumps(operation.data, sort_keys=True, default=str)}")


class BatchRunner:
    """Schedules a static list of operations over a pluggable executor."""

    def __init__(
        self,
        executor: OperationExecutor,
        cache_service: Optional[CacheService] = None,
        listener: Optional[EventListener] = None,
    ):
        """Initializes the runner.

        Args:
            executor: Performs individual operations.
            cache_service: Consulted and populated when a run enables use_cache.
            listener: Receives domain events; events are logged when omitted.
        """
        self.executor = executor
        self.cache_service = cache_service
        self._emit = resolve_listener(listener)

    async def run(self, operations: Sequence[BatchOperation], options: BatchOptions) -> BatchSummary:
        use_cache = options.use_cache and self.cache_service is not None
        results: Dict[str, BatchResult] = {}
        queue: Deque[BatchOperation] = deque(operations)
        in_flight: Dict["asyncio.Task[BatchResult]", BatchOperation] = {}

        logger.info(
            f"Running batch of {len(operations)} operations "
            f"(concurrency={options.concurrency}, timeout={options.timeout_ms}ms, "
            f"continue_on_error={options.continue_on_error}, use_cache={use_cache})"
        )

        try:
            while queue or in_flight:
                while queue and len(in_flight) < options.concurrency:
                    operation = queue.popleft()

                    if use_cache:
                        lookup = self.cache_service.get(batch_cache_key(operation), BATCH_NAMESPACE)
                        if lookup.found:
                            results[operation.id] = BatchResult(
                                id=operation.id, success=True, result=lookup.value, cached=True,
                            )
                            self._emit(BatchOperationCompleted(operation_id=operation.id, cached=True))
                            continue

                    task = asyncio.create_task(
                        self._execute(operation, options, use_cache), name=f"batch-op-{operation.id}",
                    )
                    in_flight[task] = operation
                    self._emit(BatchOperationStarted(operation_id=operation.id, in_flight=len(in_flight)))

                if not in_flight:
                    continue

                done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    operation = in_flight.pop(task)
                    result = task.result()
                    results[operation.id] = result

                    if result.success:
                        self._emit(BatchOperationCompleted(operation_id=operation.id))
                        continue

                    self._emit(BatchOperationFailed(
                        operation_id=operation.id, error_message=result.error or "", timed_out=result.timed_out,
                    ))
                    if not options.continue_on_error and queue:
                        self._drain(queue, results, failed_operation_id=operation.id)
        finally:
            # Only reached with work in flight if run() itself was cancelled.
            for task in in_flight:
                task.cancel()

        summary = BatchSummary(results=[results[op.id] for op in operations])
        logger.info(
            f"Batch finished: {summary.successful} succeeded, {summary.failed} failed, "
            f"{summary.skipped} skipped (of {summary.total})"
        )
        return summary

    async def _execute(self, operation: BatchOperation, options: BatchOptions, use_cache: bool) -> BatchResult:
        """Runs one operation under its timeout. Never raises except on cancellation."""
        try:
            value = await asyncio.wait_for(
                self.executor.execute(operation), timeout=options.timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            error = OperationTimeoutError(operation.id, options.timeout_ms)
            logger.warning(str(error))
            return BatchResult(id=operation.id, success=False, error=str(error), timed_out=True)
        except Exception as e:
            logger.warning(f"Batch operation '{operation.id}' failed: {type(e).__name__}: {e}")
            return BatchResult(id=operation.id, success=False, error=str(e) or type(e).__name__)

        if use_cache:
            self.cache_service.put(
                batch_cache_key(operation), value, options.cache_ttl_seconds, BATCH_NAMESPACE,
            )
        return BatchResult(id=operation.id, success=True, result=value)

    def _drain(
        self,
        queue: Deque[BatchOperation],
        results: Dict[str, BatchResult],
        failed_operation_id: str,
    ) -> None:
        drained = list(queue)
        queue.clear()
        for operation in drained:
            results[operation.id] = BatchResult(
                id=operation.id, success=False, error=SKIPPED_ERROR, skipped=True,
            )
        logger.warning(
            f"Operation '{failed_operation_id}' failed with continue_on_error disabled; "
            f"{len(drained)} queued operations will not be started."
        )
        self._emit(BatchDrained(failed_operation_id=failed_operation_id, drained_count=len(drained)))
