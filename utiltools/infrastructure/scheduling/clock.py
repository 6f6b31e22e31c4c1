import time

from utiltools.domain.interfaces.clock import Clock


class SystemClock(Clock):
    """Wall-clock time from time.time()."""

    def now(self) -> float:
        return time.time()
