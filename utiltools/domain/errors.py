"""Exception taxonomy for the utility primitives.

Expected negative outcomes (cache miss, retry budget exhausted, rate limit
exceeded) are *results*, not exceptions. Only malformed input, unknown
operations, per-item timeouts and genuine internal faults are raised.
"""

from typing import Any, Dict, Optional


class UtilityToolsError(Exception):
    """Base class for all errors raised by utiltools."""

    code = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Converts the error into a JSON-serializable payload."""
        payload: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InputError(UtilityToolsError):
    """Raised when an argument is missing, malformed or out of range.

    Raised before any state is mutated.
    """

    code = "invalid_params"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid '{field}': {message}", details={"field": field})


class UnknownOperationError(UtilityToolsError):
    """Raised when an operation name has no handler."""

    code = "method_not_found"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Unknown tool: {operation}", details={"operation": operation})


class OperationTimeoutError(UtilityToolsError):
    """A single batch operation did not settle within its timeout."""

    code = "timeout"

    def __init__(self, operation_id: str, timeout_ms: int):
        self.operation_id = operation_id
        self.timeout_ms = timeout_ms
        super().__init__(f"Operation {operation_id} timed out after {timeout_ms}ms")


class InternalError(UtilityToolsError):
    """Wraps an unexpected fault inside the core so callers can tell it apart."""

    code = "internal_error"
