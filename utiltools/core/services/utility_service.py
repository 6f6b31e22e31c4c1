"""UtilityService: owns the cache, retry, rate-limit and batch state.

One instance holds every store for its lifetime::

    service = await UtilityService.create()
    service.cache_put("k", {"v": 1})
    ...
    await service.shutdown()   # stops the cache sweep and retry GC

Each operation validates its arguments first (raising InputError without
touching state), then performs its read-check-mutate sequence in a single
synchronous step, and returns a JSON-serializable dict.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from utiltools.core import validation
from utiltools.domain.errors import InputError
from utiltools.domain.events.utility_events import EventListener
from utiltools.domain.interfaces.cache import CacheService
from utiltools.domain.interfaces.clock import Clock
from utiltools.domain.interfaces.executor import OperationExecutor
from utiltools.domain.models.batch import BatchOperation, BatchOptions
from utiltools.domain.models.common import (
    CacheKey, Namespace, OperationId, ResourceId, DEFAULT_NAMESPACE, to_iso,
)
from utiltools.domain.models.retry import RetryPolicy, RetryStatus
from utiltools.infrastructure.batch.batch_runner import BatchRunner
from utiltools.infrastructure.batch.executors import SimulatedExecutor
from utiltools.infrastructure.cache.caching_service import (
    CachingServiceImpl, MAX_TTL_SECONDS, MIN_TTL_SECONDS,
)
from utiltools.infrastructure.config.settings import UtilitySettings
from utiltools.infrastructure.resilience.rate_limiter import (
    DEFAULT_MAX_REQUESTS, DEFAULT_WINDOW_SECONDS, RateLimiter,
)
from utiltools.infrastructure.resilience.retry_tracker import RetryTracker, RetryTransitionError
from utiltools.infrastructure.scheduling.clock import SystemClock

logger = logging.getLogger(__name__)

MAX_RETRIES_RANGE = (1, 10)
INITIAL_DELAY_MS_RANGE = (100, 60000)
MAX_DELAY_MS_RANGE = (100, 60 * 60 * 1000)
CONCURRENCY_RANGE = (1, 20)
TIMEOUT_MS_RANGE = (1000, 300000)
MAX_REQUESTS_RANGE = (1, 1_000_000)
MAX_WINDOW_SECONDS = 24 * 60 * 60

EXECUTE_INSTRUCTIONS = "Execute the operation and call retry_operation again with the result"


class UtilityService:
    """Facade over the four primitives with an explicit lifecycle."""

    def __init__(
        self,
        cache_service: CacheService,
        retry_tracker: RetryTracker,
        rate_limiter: RateLimiter,
        batch_runner: BatchRunner,
        default_ttl_seconds: int = 300,
        clock: Optional[Clock] = None,
    ):
        self.clock = clock or SystemClock()
        self.cache_service = cache_service
        self.retry_tracker = retry_tracker
        self.rate_limiter = rate_limiter
        self.batch_runner = batch_runner
        self.default_ttl_seconds = default_ttl_seconds
        self._running = False

    @classmethod
    def build(
        cls,
        settings: Optional[UtilitySettings] = None,
        clock: Optional[Clock] = None,
        executor: Optional[OperationExecutor] = None,
        listener: Optional[EventListener] = None,
    ) -> "UtilityService":
        """Wires the components together without starting background tasks."""
        settings = settings or UtilitySettings()
        clock = clock or SystemClock()
        cache_service = CachingServiceImpl(
            clock=clock, sweep_interval_seconds=settings.cache_sweep_interval_seconds,
        )
        retry_tracker = RetryTracker(
            clock=clock,
            gc_horizon_seconds=settings.retry_gc_horizon_seconds,
            gc_interval_seconds=settings.retry_gc_interval_seconds,
            listener=listener,
        )
        rate_limiter = RateLimiter(clock=clock, listener=listener)
        executor = executor or SimulatedExecutor(
            max_delay_ms=settings.batch_simulated_max_delay_ms, clock=clock,
        )
        batch_runner = BatchRunner(executor=executor, cache_service=cache_service, listener=listener)
        return cls(
            cache_service=cache_service,
            retry_tracker=retry_tracker,
            rate_limiter=rate_limiter,
            batch_runner=batch_runner,
            default_ttl_seconds=settings.cache_default_ttl_seconds,
            clock=clock,
        )

    @classmethod
    async def create(
        cls,
        settings: Optional[UtilitySettings] = None,
        clock: Optional[Clock] = None,
        executor: Optional[OperationExecutor] = None,
        listener: Optional[EventListener] = None,
    ) -> "UtilityService":
        """Builds a service and starts its background maintenance tasks."""
        service = cls.build(settings=settings, clock=clock, executor=executor, listener=listener)
        service.start()
        return service

    def start(self) -> None:
        """Starts the cache sweep and retry GC. Requires a running event loop."""
        self.cache_service.start_sweeper()
        self.retry_tracker.start_collector()
        self._running = True
        logger.info("UtilityService started.")

    async def shutdown(self) -> None:
        """Stops all background tasks. Stored state is discarded with the instance."""
        await self.cache_service.stop_sweeper()
        await self.retry_tracker.stop_collector()
        if self._running:
            logger.info("UtilityService shut down.")
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def __aenter__(self) -> "UtilityService":
        if not self._running:
            self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.shutdown()

    # --- TTL Cache ---

    def cache_get(self, key: str, namespace: str = DEFAULT_NAMESPACE) -> Dict[str, Any]:
        validation.ensure_string("key", key)
        validation.ensure_string("namespace", namespace)

        lookup = self.cache_service.get(CacheKey(key), Namespace(namespace))
        result: Dict[str, Any] = {"found": lookup.found, "key": key, "namespace": namespace}
        if lookup.found:
            result["value"] = lookup.value
            result["expires_in_seconds"] = max(0, int(lookup.expires_at - self.clock.now()))
        elif lookup.expired:
            result["reason"] = "expired"
        return result

    def cache_put(
        self,
        key: str,
        value: Any,
        ttl_seconds: Optional[int] = None,
        namespace: str = DEFAULT_NAMESPACE,
    ) -> Dict[str, Any]:
        validation.ensure_string("key", key)
        validation.ensure_string("namespace", namespace)
        ttl = validation.ensure_int(
            "ttl_seconds",
            self.default_ttl_seconds if ttl_seconds is None else ttl_seconds,
            MIN_TTL_SECONDS,
            MAX_TTL_SECONDS,
        )

        expires_at = self.cache_service.put(CacheKey(key), value, ttl, Namespace(namespace))
        return {
            "success": True,
            "key": key,
            "namespace": namespace,
            "ttl_seconds": ttl,
            "expires_at": to_iso(expires_at),
            "cache_size": self.cache_service.size(),
        }

    def cache_delete(self, key: str, namespace: str = DEFAULT_NAMESPACE) -> Dict[str, Any]:
        validation.ensure_string("key", key)
        validation.ensure_string("namespace", namespace)

        existed = self.cache_service.delete(CacheKey(key), Namespace(namespace))
        return {"success": True, "key": key, "namespace": namespace, "existed": existed}

    def cache_clear(self, namespace: Optional[str] = None) -> Dict[str, Any]:
        if namespace is not None:
            validation.ensure_string("namespace", namespace)

        cleared = self.cache_service.clear(Namespace(namespace) if namespace is not None else None)
        result: Dict[str, Any] = {"success": True, "cleared_entries": cleared}
        if namespace is not None:
            result["namespace"] = namespace
        return result

    # --- Retry Tracker ---

    def retry_operation(
        self,
        operation_id: str,
        operation_type: str,
        operation_data: Dict[str, Any],
        max_retries: int = 3,
        initial_delay_ms: int = 1000,
        should_execute: bool = True,
        max_delay_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        validation.ensure_string("operation_id", operation_id)
        validation.ensure_string("operation_type", operation_type)
        validation.ensure_object("operation_data", operation_data)
        policy = RetryPolicy(
            max_retries=validation.ensure_int("max_retries", max_retries, *MAX_RETRIES_RANGE),
            initial_delay_ms=validation.ensure_int("initial_delay_ms", initial_delay_ms, *INITIAL_DELAY_MS_RANGE),
            max_delay_ms=(
                None if max_delay_ms is None
                else validation.ensure_int("max_delay_ms", max_delay_ms, *MAX_DELAY_MS_RANGE)
            ),
        )
        validation.ensure_bool("should_execute", should_execute)

        decision = self.retry_tracker.check(OperationId(operation_id), policy, should_execute=should_execute)
        result = decision.to_dict()
        if decision.status is RetryStatus.READY_TO_EXECUTE:
            result["operation_type"] = operation_type
            result["operation_data"] = operation_data
        elif decision.status is RetryStatus.EXECUTE_ATTEMPT:
            result["attempt_number"] = decision.attempts
            result["operation_type"] = operation_type
            result["operation_data"] = operation_data
            result["instructions"] = EXECUTE_INSTRUCTIONS
        return result

    def retry_mark_succeeded(self, operation_id: str) -> Dict[str, Any]:
        validation.ensure_string("operation_id", operation_id)
        try:
            state = self.retry_tracker.mark_succeeded(OperationId(operation_id))
        except KeyError:
            raise InputError("operation_id", f"no attempts recorded for '{operation_id}'") from None
        except RetryTransitionError as e:
            raise InputError("operation_id", str(e)) from e
        return {
            "operation_id": operation_id,
            "success": True,
            "status": state.phase.value,
            "attempts": state.attempts,
        }

    # --- Batch Runner ---

    async def batch_operation(
        self,
        operations: Sequence[Union[BatchOperation, Dict[str, Any]]],
        concurrency: int = 5,
        timeout_ms: int = 30000,
        continue_on_error: bool = True,
        use_cache: bool = False,
        cache_ttl_seconds: int = 300,
    ) -> Dict[str, Any]:
        parsed: List[BatchOperation] = validation.ensure_operations(operations)
        options = BatchOptions(
            concurrency=validation.ensure_int("concurrency", concurrency, *CONCURRENCY_RANGE),
            timeout_ms=validation.ensure_int("timeout_ms", timeout_ms, *TIMEOUT_MS_RANGE),
            continue_on_error=validation.ensure_bool("continue_on_error", continue_on_error),
            use_cache=validation.ensure_bool("use_cache", use_cache),
            cache_ttl_seconds=validation.ensure_int(
                "cache_ttl_seconds", cache_ttl_seconds, MIN_TTL_SECONDS, MAX_TTL_SECONDS,
            ),
        )

        summary = await self.batch_runner.run(parsed, options)
        return summary.to_dict()

    # --- Rate Limiter ---

    def rate_limit_check(
        self,
        resource: str,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        increment: bool = True,
    ) -> Dict[str, Any]:
        validation.ensure_string("resource", resource)
        max_requests = validation.ensure_int("max_requests", max_requests, *MAX_REQUESTS_RANGE)
        window_seconds = validation.ensure_positive_number("window_seconds", window_seconds, MAX_WINDOW_SECONDS)
        validation.ensure_bool("increment", increment)

        decision = self.rate_limiter.check(
            ResourceId(resource), max_requests=max_requests, window_seconds=window_seconds, increment=increment,
        )
        return decision.to_dict()
