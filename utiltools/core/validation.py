"""Argument validation for the named operations.

Every check raises InputError naming the offending field. Out-of-range
numbers are rejected, never clamped. Values arrive either from Python
callers or decoded JSON, so integral floats (3.0) count as integers while
booleans never do.
"""

import math
from typing import Any, Dict, List, Optional, Union

from utiltools.domain.errors import InputError
from utiltools.domain.models.batch import BatchOperation

MIN_BATCH_OPERATIONS = 1
MAX_BATCH_OPERATIONS = 100


def require(args: Dict[str, Any], *fields: str) -> None:
    for field in fields:
        if field not in args:
            raise InputError(field, "is required")


def pick(args: Dict[str, Any], *fields: str) -> Dict[str, Any]:
    """Returns only the given fields that are present in args."""
    return {f: args[f] for f in fields if f in args}


def ensure_arguments(args: Any) -> Dict[str, Any]:
    if args is None:
        return {}
    if not isinstance(args, dict):
        raise InputError("arguments", "must be an object")
    return args


def ensure_string(field: str, value: Any, allow_empty: bool = False) -> str:
    if not isinstance(value, str):
        raise InputError(field, f"must be a string, got {type(value).__name__}")
    if not allow_empty and not value:
        raise InputError(field, "must not be empty")
    return value


def ensure_bool(field: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise InputError(field, f"must be a boolean, got {type(value).__name__}")
    return value


def ensure_int(field: str, value: Any, minimum: Optional[int] = None, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputError(field, f"must be an integer, got {type(value).__name__}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InputError(field, f"must be an integer, got {value}")
        value = int(value)
    if minimum is not None and value < minimum:
        raise InputError(field, f"must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise InputError(field, f"must be <= {maximum}, got {value}")
    return value


def ensure_positive_number(field: str, value: Any, maximum: Optional[float] = None) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputError(field, f"must be a number, got {type(value).__name__}")
    if not math.isfinite(value):
        raise InputError(field, f"must be a finite number, got {value}")
    if value <= 0:
        raise InputError(field, f"must be > 0, got {value}")
    if maximum is not None and value > maximum:
        raise InputError(field, f"must be <= {maximum}, got {value}")
    return value


def ensure_object(field: str, value: Any) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise InputError(field, f"must be an object, got {type(value).__name__}")
    return value


def ensure_operations(value: Any) -> List[BatchOperation]:
    """Validates a batch's operation list and converts it to BatchOperation objects."""
    if not isinstance(value, (list, tuple)):
        raise InputError("operations", "must be an array")
    if not MIN_BATCH_OPERATIONS <= len(value) <= MAX_BATCH_OPERATIONS:
        raise InputError(
            "operations",
            f"must contain between {MIN_BATCH_OPERATIONS} and {MAX_BATCH_OPERATIONS} items, got {len(value)}",
        )

    operations: List[BatchOperation] = []
    seen = set()
    for index, raw in enumerate(value):
        operation = _ensure_operation(index, raw)
        if operation.id in seen:
            raise InputError(f"operations[{index}].id", f"duplicate id '{operation.id}'")
        seen.add(operation.id)
        operations.append(operation)
    return operations


def _ensure_operation(index: int, raw: Union[BatchOperation, Dict[str, Any]]) -> BatchOperation:
    if isinstance(raw, BatchOperation):
        return raw
    prefix = f"operations[{index}]"
    item = ensure_object(prefix, raw)
    for part in ("id", "type", "data"):
        if part not in item:
            raise InputError(f"{prefix}.{part}", "is required")
    ensure_string(f"{prefix}.id", item["id"])
    ensure_string(f"{prefix}.type", item["type"])
    ensure_object(f"{prefix}.data", item["data"])
    return BatchOperation.from_dict(item)
