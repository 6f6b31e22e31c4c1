"""Command Handler: dispatches named operations to the UtilityService.

Receives an operation name plus a JSON-style argument mapping (from the CLI
or any other caller), checks required arguments, and delegates to the
service. Expected errors (UtilityToolsError) propagate unchanged; anything
else is an internal fault and is wrapped in InternalError.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Union

from utiltools.core.services.utility_service import UtilityService
from utiltools.core.validation import ensure_arguments, pick, require
from utiltools.domain.errors import InternalError, UnknownOperationError, UtilityToolsError

logger = logging.getLogger(__name__)

OperationResult = Dict[str, Any]
Handler = Callable[[Dict[str, Any]], Union[OperationResult, Awaitable[OperationResult]]]


class CommandHandler:
    """Maps operation names onto UtilityService calls."""

    def __init__(self, service: UtilityService):
        self.service = service
        self._handlers: Dict[str, Handler] = {
            "cache_get": self._cache_get,
            "cache_put": self._cache_put,
            "cache_delete": self._cache_delete,
            "cache_clear": self._cache_clear,
            "retry_operation": self._retry_operation,
            "retry_mark_succeeded": self._retry_mark_succeeded,
            "batch_operation": self._batch_operation,
            "rate_limit_check": self._rate_limit_check,
        }

    @property
    def operation_names(self) -> List[str]:
        return list(self._handlers)

    async def execute(self, name: str, args: Any = None) -> OperationResult:
        """Runs one named operation.

        Raises:
            UnknownOperationError: No operation with that name.
            InputError: Arguments are missing or invalid.
            InternalError: Anything unexpected went wrong inside the operation.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownOperationError(name)

        logger.debug(f"Handling operation '{name}'")
        try:
            result = handler(ensure_arguments(args))
            if inspect.isawaitable(result):
                result = await result
            return result
        except UtilityToolsError:
            raise
        except Exception as e:
            logger.error(f"Operation '{name}' failed unexpectedly: {e}", exc_info=True)
            raise InternalError(f"Tool execution failed: {e}") from e

    # --- Handlers ---

    def _cache_get(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "key")
        return self.service.cache_get(args["key"], **pick(args, "namespace"))

    def _cache_put(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "key", "value")
        return self.service.cache_put(args["key"], args["value"], **pick(args, "ttl_seconds", "namespace"))

    def _cache_delete(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "key")
        return self.service.cache_delete(args["key"], **pick(args, "namespace"))

    def _cache_clear(self, args: Dict[str, Any]) -> OperationResult:
        return self.service.cache_clear(**pick(args, "namespace"))

    def _retry_operation(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "operation_id", "operation_type", "operation_data")
        return self.service.retry_operation(
            args["operation_id"],
            args["operation_type"],
            args["operation_data"],
            **pick(args, "max_retries", "initial_delay_ms", "should_execute", "max_delay_ms"),
        )

    def _retry_mark_succeeded(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "operation_id")
        return self.service.retry_mark_succeeded(args["operation_id"])

    async def _batch_operation(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "operations")
        return await self.service.batch_operation(
            args["operations"],
            **pick(args, "concurrency", "timeout_ms", "continue_on_error", "use_cache", "cache_ttl_seconds"),
        )

    def _rate_limit_check(self, args: Dict[str, Any]) -> OperationResult:
        require(args, "resource")
        return self.service.rate_limit_check(
            args["resource"], **pick(args, "max_requests", "window_seconds", "increment"),
        )
