"""utiltools: in-process utility primitives.

TTL keyed cache, retry/backoff tracker, concurrency-bounded batch runner
and fixed-window rate limiter, exposed as named operations.
"""

__version__ = "1.0.0"
