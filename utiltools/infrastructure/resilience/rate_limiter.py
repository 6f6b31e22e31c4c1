"""Implementation of a fixed-window rate limiter.

Each resource has exactly one live window holding a counter and a reset
time. Once the reset time passes the window is replaced wholesale, so a
caller can get up to 2 x max_requests through across a window boundary.
That burst is the accepted price of O(1) state per resource.
"""

import logging
import math
from typing import Dict, Optional

from utiltools.domain.events.utility_events import (
    EventListener, RateLimitExceeded, resolve_listener,
)
from utiltools.domain.interfaces.clock import Clock
from utiltools.domain.models.common import ResourceId
from utiltools.domain.models.rate_limit import RateLimitDecision, RateWindow
from utiltools.infrastructure.scheduling.clock import SystemClock

logger = logging.getLogger(__name__)

DEFAULT_MAX_REQUESTS = 60
DEFAULT_WINDOW_SECONDS = 60


class RateLimiter:
    """Fixed-window request counter keyed by resource."""

    def __init__(self, clock: Optional[Clock] = None, listener: Optional[EventListener] = None):
        self.clock = clock or SystemClock()
        self._windows: Dict[ResourceId, RateWindow] = {}
        self._emit = resolve_listener(listener)
        logger.info("RateLimiter initialized (fixed window)")

    def check(
        self,
        resource: ResourceId,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        increment: bool = True,
    ) -> RateLimitDecision:
        """Checks (and by default consumes) one request against `resource`.

        Args:
            resource: Resource identifier, e.g. 'api.github.com'.
            max_requests: Requests allowed per window.
            window_seconds: Window length; only applied when a new window opens.
            increment: Count this request when it is allowed.

        Returns:
            The decision; `remaining` and `current_count` reflect any increment.
        """
        if max_requests <= 0 or window_seconds <= 0:
            raise ValueError("Max requests and window must be positive.")
        if not math.isfinite(window_seconds):
            raise ValueError("Window must be finite.")

        now = self.clock.now()
        window = self._windows.get(resource)
        if window is None or window.is_expired(now):
            window = RateWindow(resource=resource, count=0, reset_at=now + window_seconds)
            self._windows[resource] = window
            logger.debug(f"Opened new rate window for '{resource}' until {window.reset_at:.3f}")

        allowed = window.count < max_requests
        if allowed and increment:
            window.count += 1

        decision = RateLimitDecision(
            allowed=allowed,
            resource=resource,
            current_count=window.count,
            max_requests=max_requests,
            remaining=max(0, max_requests - window.count),
            reset_at=window.reset_at,
            checked_at=now,
        )
        if not allowed:
            logger.warning(
                f"Rate limit exceeded for '{resource}': {window.count}/{max_requests}, "
                f"resets in {decision.reset_in_seconds}s"
            )
            self._emit(RateLimitExceeded(
                resource=resource, max_requests=max_requests, reset_in_seconds=decision.reset_in_seconds,
            ))
        return decision

    def get_window(self, resource: ResourceId) -> Optional[RateWindow]:
        return self._windows.get(resource)

    def __len__(self) -> int:
        return len(self._windows)
