"""Caching Service Implementation.

Provides the in-memory, namespaced TTL implementation of the CacheService
interface together with its background expiry sweep.
Bounded Context: Cache Management
"""
