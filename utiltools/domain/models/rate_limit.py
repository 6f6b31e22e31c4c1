"""Models for the Rate Limiter bounded context."""

import math
from dataclasses import dataclass
from typing import Any, Dict

from utiltools.domain.models.common import ResourceId, to_iso


@dataclass
class RateWindow:
    """The single live fixed window for a resource."""
    resource: ResourceId
    count: int
    reset_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.reset_at


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    resource: ResourceId
    current_count: int
    max_requests: int
    remaining: int
    reset_at: float
    checked_at: float

    @property
    def reset_in_seconds(self) -> int:
        return max(0, math.ceil(self.reset_at - self.checked_at))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "resource": self.resource,
            "current_count": self.current_count,
            "max_requests": self.max_requests,
            "remaining": self.remaining,
            "reset_in_seconds": self.reset_in_seconds,
            "reset_at": to_iso(self.reset_at),
        }
