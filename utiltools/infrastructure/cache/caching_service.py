"""Concrete implementation of the namespaced TTL Caching Service.

Entries live in a single in-memory dict keyed by "<namespace>:<key>".
Expiration is enforced lazily on read and actively by a periodic sweep;
the sweep is only an optimization, reads never trust it.
"""

import logging
from typing import Any, Dict, Optional

from utiltools.domain.interfaces.cache import CacheService
from utiltools.domain.interfaces.clock import Clock
from utiltools.domain.models.cache import CacheEntry, CacheLookup
from utiltools.domain.models.common import (
    CacheKey, Namespace, StoreKey, DEFAULT_NAMESPACE, make_store_key,
)
from utiltools.infrastructure.scheduling.clock import SystemClock
from utiltools.infrastructure.scheduling.periodic_task import PeriodicTask

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_SECONDS = 60
MIN_TTL_SECONDS = 1
MAX_TTL_SECONDS = 24 * 60 * 60  # 24 hours


class CachingServiceImpl(CacheService):
    """In-memory TTL cache with a cancellable background sweep."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
    ):
        """Initializes the caching service.

        Args:
            clock: Time source; defaults to the system clock.
            sweep_interval_seconds: How often the background sweep runs.
        """
        self.clock = clock or SystemClock()
        self._store: Dict[StoreKey, CacheEntry] = {}
        self._sweeper = PeriodicTask("cache-sweep", sweep_interval_seconds, self.sweep_expired)
        logger.info(f"CachingService initialized (sweep every {sweep_interval_seconds}s)")

    # --- Lifecycle ---

    def start_sweeper(self) -> None:
        """Starts the periodic sweep. Requires a running event loop."""
        self._sweeper.start()

    async def stop_sweeper(self) -> None:
        await self._sweeper.stop()

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper.running

    # --- CacheService Interface Implementation ---

    def get(self, key: CacheKey, namespace: Namespace = DEFAULT_NAMESPACE) -> CacheLookup:
        store_key = make_store_key(key, namespace)
        entry = self._store.get(store_key)
        if entry is None:
            logger.debug(f"Cache miss for key: {store_key}")
            return CacheLookup(found=False)

        if not entry.is_live(self.clock.now()):
            del self._store[store_key]
            logger.debug(f"Cache entry expired on read, removed: {store_key}")
            return CacheLookup(found=False, expired=True)

        logger.debug(f"Cache hit for key: {store_key}")
        return CacheLookup(found=True, value=entry.value, expires_at=entry.expires_at)

    def put(
        self,
        key: CacheKey,
        value: Any,
        ttl_seconds: int,
        namespace: Namespace = DEFAULT_NAMESPACE,
    ) -> float:
        if not MIN_TTL_SECONDS <= ttl_seconds <= MAX_TTL_SECONDS:
            # Validation normally happens upstream; the store refuses bad TTLs too.
            raise ValueError(
                f"ttl_seconds must be between {MIN_TTL_SECONDS} and {MAX_TTL_SECONDS}, got {ttl_seconds}"
            )
        store_key = make_store_key(key, namespace)
        expires_at = self.clock.now() + ttl_seconds
        self._store[store_key] = CacheEntry(value=value, expires_at=expires_at)
        logger.debug(f"Stored item in cache: key={store_key}, ttl={ttl_seconds}s")
        return expires_at

    def delete(self, key: CacheKey, namespace: Namespace = DEFAULT_NAMESPACE) -> bool:
        store_key = make_store_key(key, namespace)
        existed = self._store.pop(store_key, None) is not None
        if existed:
            logger.debug(f"Deleted item from cache: key={store_key}")
        return existed

    def clear(self, namespace: Optional[Namespace] = None) -> int:
        if namespace is None:
            cleared = len(self._store)
            self._store.clear()
            logger.info(f"Cleared entire cache ({cleared} entries).")
            return cleared

        prefix = f"{namespace}:"
        doomed = [k for k in self._store if k.startswith(prefix)]
        for k in doomed:
            del self._store[k]
        logger.info(f"Cleared cache namespace '{namespace}' ({len(doomed)} entries).")
        return len(doomed)

    def sweep_expired(self) -> int:
        now = self.clock.now()
        expired_keys = [k for k, v in self._store.items() if v.expires_at <= now]
        for k in expired_keys:
            del self._store[k]
        if expired_keys:
            logger.info(f"Cache sweep removed {len(expired_keys)} expired entries.")
        return len(expired_keys)

    def size(self) -> int:
        return len(self._store)
