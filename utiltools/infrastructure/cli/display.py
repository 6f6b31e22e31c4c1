"""Rich console rendering of operation results.

Results are shown as highlighted JSON inside a panel whose border tells a
positive outcome (green) from an expected negative one such as a miss, a
denial or a retry delay (yellow). Faults get a red panel.
"""

import json
import logging
from typing import Any, Dict, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE, Box
from rich.console import Console
from rich.json import JSON
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from utiltools.domain.interfaces.user_interface import PromptInput, UserInterface

logger = logging.getLogger(__name__)

NEGATIVE_STATUSES = ("max_retries_exceeded", "retry_delayed")


class ConsoleDisplay(UserInterface):
    """UserInterface backed by a rich Console."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        return self._console

    @console.setter
    def console(self, value: Console) -> None:
        self._console = value

    def display_result(self, result: Dict[str, Any], **kwargs: Any) -> None:
        """Prints one operation result.

        Args:
            result: The JSON-serializable result payload.
            **kwargs: `title` names the panel, usually the operation (default: "Result").
        """
        title = kwargs.get("title", "Result")
        self.console.print(Panel(
            JSON(json.dumps(result, default=str), indent=2),
            title=f"[bold white]{title}[/bold white]",
            title_align="left",
            border_style="green" if self._looks_successful(result) else "yellow",
            box=ROUNDED,
            padding=(0, 1),
        ))

    def display_batch_summary(self, summary: Dict[str, Any]) -> None:
        table = Table(
            title=f"Batch: {summary['successful']} ok / {summary['failed']} failed / {summary['skipped']} skipped",
            box=SIMPLE,
        )
        table.add_column("id", style="bold")
        table.add_column("status")
        table.add_column("detail", overflow="fold")
        for item in summary["results"]:
            table.add_row(str(item["id"]), *self._batch_row(item))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        self.console.print(self._message_panel(error_message, "Error", "red", HEAVY))

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.console.print(self._message_panel(info_message, "Info", "blue", SIMPLE))

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        self.console.print(self._message_panel(warning_message, "Warning", "yellow", HEAVY))

    def get_prompt(self, prompt_message: str = "> ") -> PromptInput:
        """Reads one line from the console (blocking)."""
        return PromptInput(self.console.input(f"[bold green]{prompt_message}[/bold green]"))

    @staticmethod
    def _message_panel(message: str, label: str, colour: str, box: Box) -> Panel:
        return Panel(
            Text(message, style="white"),
            title=f"[bold {colour}]{label}[/bold {colour}]",
            border_style=colour,
            box=box,
            padding=(0, 1),
        )

    @staticmethod
    def _batch_row(item: Dict[str, Any]) -> tuple:
        if item["success"]:
            status = "[green]cached[/green]" if item.get("cached") else "[green]ok[/green]"
            return status, json.dumps(item.get("result"), default=str)
        if item.get("skipped"):
            return "[dim]skipped[/dim]", item.get("error", "")
        status = "[red]timeout[/red]" if item.get("timed_out") else "[red]failed[/red]"
        return status, item.get("error", "")

    @staticmethod
    def _looks_successful(result: Dict[str, Any]) -> bool:
        for flag in ("success", "found", "allowed"):
            if flag in result:
                return bool(result[flag])
        return result.get("status") not in NEGATIVE_STATUSES
