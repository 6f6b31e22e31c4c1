"""Main entry point for the utiltools application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, Optional, TypeVar

import typer

from utiltools.core.command_handler import CommandHandler
from utiltools.core.services.utility_service import UtilityService
from utiltools.domain.errors import InputError, UtilityToolsError
from utiltools.domain.interfaces.user_interface import UserInterface
from utiltools.infrastructure.cli.display import ConsoleDisplay
from utiltools.infrastructure.config.settings import UtilitySettings, load_settings
from utiltools.infrastructure.monitoring.logger_setup import setup_logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXIT_COMMANDS = {"exit", "quit"}

# --- Dependency Injection Container (Manual) ---

def create_dependencies(log_level: Optional[str] = None) -> Dict[str, Any]:
    """Loads settings, configures logging and builds the UI.

    The UtilityService itself is created per run, inside the event loop,
    because its background tasks need a running loop.
    """
    settings = load_settings()
    setup_logging(
        log_level=log_level or settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
    )
    logger.debug(f"Settings loaded: {settings}")
    return {"settings": settings, "ui": ConsoleDisplay()}


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Runs a coroutine from a synchronous Typer command."""
    return asyncio.run(coro)


def parse_arguments(raw: Optional[str]) -> Dict[str, Any]:
    """Decodes a JSON object given on the command line."""
    if raw is None or not raw.strip():
        return {}
    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError("arguments", f"not valid JSON: {e.msg}") from e
    if not isinstance(decoded, dict):
        raise InputError("arguments", "must be a JSON object")
    return decoded


def _report_error(ui: UserInterface, error: UtilityToolsError) -> None:
    ui.display_error(f"[{error.code}] {error.message}")


async def call_operation(
    settings: UtilitySettings,
    ui: UserInterface,
    operation: str,
    args: Dict[str, Any],
    as_json: bool = False,
) -> bool:
    """Runs a single operation against a fresh service. Returns False on error."""
    async with await UtilityService.create(settings=settings) as service:
        handler = CommandHandler(service)
        try:
            result = await handler.execute(operation, args)
        except UtilityToolsError as e:
            _report_error(ui, e)
            return False
    if as_json:
        typer.echo(json.dumps(result, default=str))
    elif operation == "batch_operation":
        ui.display_batch_summary(result)
    else:
        ui.display_result(result, title=operation)
    return True


async def run_session(settings: UtilitySettings, ui: UserInterface) -> None:
    """Interactive session; state persists until the user exits.

    Each line is `OPERATION [JSON-ARGS]`, e.g. `cache_put {"key": "a", "value": 1}`.
    """
    async with await UtilityService.create(settings=settings) as service:
        handler = CommandHandler(service)
        ui.display_info(
            "Interactive session. Enter 'OPERATION {json-args}', 'help' or 'exit'.\n"
            f"Operations: {', '.join(handler.operation_names)}"
        )
        while True:
            try:
                line = (await asyncio.to_thread(ui.get_prompt, "utiltools> ")).strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not line:
                continue
            if line.lower() in EXIT_COMMANDS:
                break
            if line.lower() == "help":
                ui.display_info(f"Operations: {', '.join(handler.operation_names)}")
                continue

            operation, _, raw_args = line.partition(" ")
            try:
                result = await handler.execute(operation, parse_arguments(raw_args))
            except UtilityToolsError as e:
                _report_error(ui, e)
                continue
            ui.display_result(result, title=operation)
    logger.info("Interactive session ended.")


# --- Typer App Definition ---
app = typer.Typer(
    name="utiltools",
    help="utiltools: TTL cache, retry tracking, batch running and rate limiting as named operations.",
    add_completion=False,
)


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    log_level: Annotated[
        Optional[str],
        typer.Option("--log-level", "-l", help="Override the configured log level (DEBUG, INFO, ...)."),
    ] = None,
):
    """Starts an interactive session if no command is given."""
    ctx.obj = create_dependencies(log_level)
    if ctx.invoked_subcommand is None:
        logger.info("No command invoked, starting interactive session.")
        run_async(run_session(ctx.obj["settings"], ctx.obj["ui"]))


@app.command()
def call(
    ctx: typer.Context,
    operation: Annotated[str, typer.Argument(help="Operation name, e.g. cache_put or rate_limit_check.")],
    args: Annotated[
        Optional[str],
        typer.Option("--args", "-a", help="Operation arguments as a JSON object."),
    ] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw JSON result.")] = False,
):
    """Run a single operation and print its result."""
    ui: UserInterface = ctx.obj["ui"]
    try:
        payload = parse_arguments(args)
    except InputError as e:
        _report_error(ui, e)
        raise typer.Exit(code=2)
    if not run_async(call_operation(ctx.obj["settings"], ui, operation, payload, as_json)):
        raise typer.Exit(code=1)


@app.command()
def batch(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(
        exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
        help="JSON file holding an array of {id, type, data} operations.",
    )],
    concurrency: Annotated[int, typer.Option(help="Maximum operations in flight (1-20).")] = 5,
    timeout_ms: Annotated[int, typer.Option(help="Per-operation timeout in ms (1000-300000).")] = 30000,
    stop_on_error: Annotated[bool, typer.Option("--stop-on-error", help="Do not start queued operations after a failure.")] = False,
    use_cache: Annotated[bool, typer.Option("--use-cache", help="Reuse results for identical operations.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw JSON result.")] = False,
):
    """Run a batch of simulated operations from a JSON file."""
    ui: UserInterface = ctx.obj["ui"]
    try:
        operations = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        ui.display_error(f"Could not read operations from {file}: {e}")
        raise typer.Exit(code=2)

    payload = {
        "operations": operations,
        "concurrency": concurrency,
        "timeout_ms": timeout_ms,
        "continue_on_error": not stop_on_error,
        "use_cache": use_cache,
    }
    if not run_async(call_operation(ctx.obj["settings"], ui, "batch_operation", payload, as_json)):
        raise typer.Exit(code=1)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
