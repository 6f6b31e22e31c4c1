import pytest
from unittest.mock import AsyncMock, MagicMock

from utiltools.core.command_handler import CommandHandler
from utiltools.core.services.utility_service import UtilityService
from utiltools.domain.errors import InputError, InternalError, UnknownOperationError

@pytest.fixture
def mock_service():
    service = MagicMock(spec=UtilityService)
    service.batch_operation = AsyncMock(return_value={"success": True, "total": 1})
    return service

@pytest.fixture
def command_handler(mock_service):
    """Fixture to create CommandHandler with a mocked service."""
    return CommandHandler(mock_service)

def test_operation_names(command_handler: CommandHandler):
    assert command_handler.operation_names == [
        "cache_get", "cache_put", "cache_delete", "cache_clear",
        "retry_operation", "retry_mark_succeeded", "batch_operation", "rate_limit_check",
    ]

@pytest.mark.asyncio
async def test_cache_put_passes_optional_args(command_handler: CommandHandler, mock_service: MagicMock):
    """Only the optional arguments the caller supplied reach the service."""
    mock_service.cache_put.return_value = {"success": True}

    result = await command_handler.execute("cache_put", {"key": "k", "value": [1], "ttl_seconds": 5})

    assert result == {"success": True}
    mock_service.cache_put.assert_called_once_with("k", [1], ttl_seconds=5)

@pytest.mark.asyncio
async def test_cache_clear_without_arguments(command_handler: CommandHandler, mock_service: MagicMock):
    await command_handler.execute("cache_clear", None)
    mock_service.cache_clear.assert_called_once_with()

@pytest.mark.asyncio
async def test_retry_operation_dispatch(command_handler: CommandHandler, mock_service: MagicMock):
    await command_handler.execute("retry_operation", {
        "operation_id": "op", "operation_type": "t", "operation_data": {}, "should_execute": False,
        "ignored": "extra",
    })
    mock_service.retry_operation.assert_called_once_with("op", "t", {}, should_execute=False)

@pytest.mark.asyncio
async def test_batch_operation_is_awaited(command_handler: CommandHandler, mock_service: MagicMock):
    operations = [{"id": "a", "type": "t", "data": {}}]

    result = await command_handler.execute("batch_operation", {"operations": operations, "concurrency": 2})

    assert result == {"success": True, "total": 1}
    mock_service.batch_operation.assert_awaited_once_with(operations, concurrency=2)

@pytest.mark.asyncio
async def test_rate_limit_dispatch(command_handler: CommandHandler, mock_service: MagicMock):
    await command_handler.execute("rate_limit_check", {"resource": "api", "max_requests": 10})
    mock_service.rate_limit_check.assert_called_once_with("api", max_requests=10)

@pytest.mark.asyncio
async def test_unknown_operation(command_handler: CommandHandler):
    with pytest.raises(UnknownOperationError) as exc_info:
        await command_handler.execute("cache_explode", {})
    assert exc_info.value.message == "Unknown tool: cache_explode"
    assert exc_info.value.code == "method_not_found"

@pytest.mark.asyncio
@pytest.mark.parametrize("operation, args, field", [
    ("cache_get", {}, "key"),
    ("cache_put", {"key": "k"}, "value"),
    ("retry_operation", {"operation_id": "op", "operation_type": "t"}, "operation_data"),
    ("retry_mark_succeeded", {}, "operation_id"),
    ("batch_operation", {}, "operations"),
    ("rate_limit_check", {}, "resource"),
])
async def test_missing_required_argument(command_handler: CommandHandler, mock_service: MagicMock, operation, args, field):
    with pytest.raises(InputError) as exc_info:
        await command_handler.execute(operation, args)
    assert exc_info.value.field == field

@pytest.mark.asyncio
async def test_arguments_must_be_an_object(command_handler: CommandHandler):
    with pytest.raises(InputError):
        await command_handler.execute("cache_get", ["key"])

@pytest.mark.asyncio
async def test_input_errors_pass_through(command_handler: CommandHandler, mock_service: MagicMock):
    error = InputError("ttl_seconds", "must be >= 1, got 0")
    mock_service.cache_put.side_effect = error

    with pytest.raises(InputError) as exc_info:
        await command_handler.execute("cache_put", {"key": "k", "value": 1, "ttl_seconds": 0})
    assert exc_info.value is error

@pytest.mark.asyncio
async def test_unexpected_errors_are_wrapped(command_handler: CommandHandler, mock_service: MagicMock):
    """Errors that are not part of the taxonomy surface as InternalError."""
    cause = RuntimeError("disk on fire")
    mock_service.cache_get.side_effect = cause

    with pytest.raises(InternalError) as exc_info:
        await command_handler.execute("cache_get", {"key": "k"})
    assert exc_info.value.message == "Tool execution failed: disk on fire"
    assert exc_info.value.__cause__ is cause
