"""Interface for interacting with the user (input/output).

Defines the contract for displaying operation results, errors, warnings,
and getting input from the user, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, NewType

PromptInput = NewType("PromptInput", str)


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_result(self, result: Dict[str, Any], **kwargs: Any) -> None:
        """Displays a structured operation result.

        Args:
            result: The JSON-serializable result payload.
            **kwargs: Additional arguments for formatting (e.g., title).
        """
        pass

    @abc.abstractmethod
    def display_batch_summary(self, summary: Dict[str, Any]) -> None:
        """Displays a batch result, one line per operation in input order."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass

    @abc.abstractmethod
    def get_prompt(self, prompt_message: str = "> ") -> PromptInput:
        """Gets a line of input from the user synchronously.

        Note: For async contexts, the caller should wrap this in asyncio.to_thread.
        """
        pass
