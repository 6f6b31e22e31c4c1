"""Defines common Value Objects used across the utility primitives.

These objects represent simple values like cache keys, namespaces
and operation identifiers, ensuring consistency and type safety.
"""

from datetime import datetime, timezone
from typing import NewType

# === Caching Context ===
CacheKey = NewType("CacheKey", str)              # Caller-supplied key inside a namespace
Namespace = NewType("Namespace", str)            # Partition of the cache keyspace
StoreKey = NewType("StoreKey", str)              # Composite "<namespace>:<key>" used by the store

DEFAULT_NAMESPACE = Namespace("default")
BATCH_NAMESPACE = Namespace("batch")

# === Retry Context ===
OperationId = NewType("OperationId", str)        # Caller-supplied, opaque retry identifier

# === Rate Limit Context ===
ResourceId = NewType("ResourceId", str)          # e.g. 'api.github.com'


def make_store_key(key: CacheKey, namespace: Namespace = DEFAULT_NAMESPACE) -> StoreKey:
    """Builds the composite store key for a namespaced cache key."""
    return StoreKey(f"{namespace}:{key}")


def to_iso(ts: float) -> str:
    """Formats an epoch timestamp as an ISO-8601 UTC string (millisecond precision)."""
    moment = datetime.fromtimestamp(ts, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
