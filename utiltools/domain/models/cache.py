"""Models for the TTL Cache bounded context."""

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class CacheEntry:
    """Internal representation of a cache entry with expiry."""
    value: Any
    expires_at: float  # Unix timestamp when the entry expires

    def is_live(self, now: float) -> bool:
        """An entry is visible only while now < expires_at."""
        return now < self.expires_at


@dataclass(frozen=True)
class CacheLookup:
    """Outcome of a cache read. A miss is a normal result, not an error."""
    found: bool
    value: Any = None
    expires_at: Optional[float] = None
    expired: bool = False  # True when the miss was caused by a lazily removed entry
