"""Interface for executing a single batch operation.

The batch runner owns scheduling, ordering, timeouts and caching; actually
performing the work is delegated to an implementation of this port.
"""

import abc
from typing import Any

from utiltools.domain.models.batch import BatchOperation


class OperationExecutor(abc.ABC):
    """Abstract Base Class for batch operation execution."""

    @abc.abstractmethod
    async def execute(self, operation: BatchOperation) -> Any:
        """Performs the operation and returns a JSON-serializable result.

        Implementations signal failure by raising. They must tolerate
        cancellation: the runner cancels the call when its timeout elapses.

        Args:
            operation: The operation to perform.

        Returns:
            The operation's result payload.
        """
        pass
