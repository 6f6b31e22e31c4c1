"""Interface for the namespaced TTL cache.

Defines the contract for storing, retrieving, and expiring cached data.
Every method is a single synchronous step so callers on the event loop
never observe a half-applied mutation.
"""

import abc
from typing import Any, Optional

from utiltools.domain.models.cache import CacheLookup
from utiltools.domain.models.common import CacheKey, Namespace, DEFAULT_NAMESPACE


class CacheService(abc.ABC):
    """Abstract Base Class for caching operations."""

    @abc.abstractmethod
    def get(self, key: CacheKey, namespace: Namespace = DEFAULT_NAMESPACE) -> CacheLookup:
        """Retrieves an item from the cache.

        An entry found past its expiry is deleted as a side effect and
        reported as a miss.

        Args:
            key: The cache key to retrieve.
            namespace: Partition the key lives in.

        Returns:
            A CacheLookup describing the hit or miss.
        """
        pass

    @abc.abstractmethod
    def put(
        self,
        key: CacheKey,
        value: Any,
        ttl_seconds: int,
        namespace: Namespace = DEFAULT_NAMESPACE,
    ) -> float:
        """Stores an item, unconditionally replacing any existing entry.

        Args:
            key: The cache key to store the item under.
            value: The item to store.
            ttl_seconds: Time-to-live in seconds.
            namespace: Partition the key lives in.

        Returns:
            The absolute expiry timestamp of the stored entry.
        """
        pass

    @abc.abstractmethod
    def delete(self, key: CacheKey, namespace: Namespace = DEFAULT_NAMESPACE) -> bool:
        """Deletes an item. Returns True if an entry existed."""
        pass

    @abc.abstractmethod
    def clear(self, namespace: Optional[Namespace] = None) -> int:
        """Clears one namespace, or everything when namespace is None.

        Returns:
            The number of entries removed.
        """
        pass

    @abc.abstractmethod
    def sweep_expired(self) -> int:
        """Removes every entry whose expiry has passed. Returns the count removed."""
        pass

    @abc.abstractmethod
    def size(self) -> int:
        """Number of entries currently stored (live or not yet swept)."""
        pass

    @abc.abstractmethod
    def start_sweeper(self) -> None:
        """Starts periodic removal of expired entries. Requires a running event loop."""
        pass

    @abc.abstractmethod
    async def stop_sweeper(self) -> None:
        """Stops the periodic removal; safe to call when it never started."""
        pass
