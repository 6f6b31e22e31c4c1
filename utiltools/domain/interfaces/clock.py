"""Interface for the clock shared by all four primitives."""

import abc


class Clock(abc.ABC):
    """Abstract Base Class for reading wall-clock time."""

    @abc.abstractmethod
    def now(self) -> float:
        """Returns the current time as seconds since the epoch."""
        pass
