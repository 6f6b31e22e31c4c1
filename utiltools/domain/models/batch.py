"""Models for the Batch Runner bounded context.

A batch lives only for the duration of one run() call; nothing here is persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class BatchOperation:
    """Caller-supplied unit of work. `id` is unique within one batch."""
    id: str
    type: str
    data: Dict[str, Any]

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BatchOperation":
        return cls(id=raw["id"], type=raw["type"], data=raw["data"])


@dataclass(frozen=True)
class BatchOptions:
    concurrency: int = 5
    timeout_ms: int = 30000
    continue_on_error: bool = True
    use_cache: bool = False
    cache_ttl_seconds: int = 300


@dataclass
class BatchResult:
    id: str
    success: bool
    result: Any = None
    error: Optional[str] = None
    cached: bool = False
    timed_out: bool = False
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"id": self.id, "success": self.success}
        if self.success:
            payload["result"] = self.result
        else:
            payload["error"] = self.error
        if self.cached:
            payload["cached"] = True
        if self.timed_out:
            payload["timed_out"] = True
        if self.skipped:
            payload["skipped"] = True
        return payload


@dataclass
class BatchSummary:
    results: List[BatchResult] = field(default_factory=list)  # input order

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success and not r.skipped)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "results": [r.to_dict() for r in self.results],
        }
