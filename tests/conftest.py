import asyncio
import logging
from typing import Any, List

import pytest
from typer.testing import CliRunner

from utiltools.core.services.utility_service import UtilityService
from utiltools.domain.events.utility_events import DomainEvent
from utiltools.domain.interfaces.clock import Clock
from utiltools.domain.interfaces.executor import OperationExecutor
from utiltools.domain.models.batch import BatchOperation
from utiltools.infrastructure.cache.caching_service import CachingServiceImpl
from utiltools.infrastructure.config.settings import clear_test_config, reset_configuration
from utiltools.infrastructure.resilience.rate_limiter import RateLimiter
from utiltools.infrastructure.resilience.retry_tracker import RetryTracker


class FakeClock(Clock):
    """Manually advanced clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.current = start

    def now(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class RecordingExecutor(OperationExecutor):
    """Executor whose behaviour is driven by each operation's data.

    data keys understood:
        delay: seconds to sleep before settling (default 0)
        fail:  error message to raise after the delay
    """

    def __init__(self):
        self.started: List[str] = []
        self.finished: List[str] = []
        self.cancelled: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, operation: BatchOperation) -> Any:
        self.started.append(operation.id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(operation.data.get("delay", 0))
            if "fail" in operation.data:
                raise RuntimeError(operation.data["fail"])
            self.finished.append(operation.id)
            return {"echo": operation.id}
        except asyncio.CancelledError:
            self.cancelled.append(operation.id)
            raise
        finally:
            self.in_flight -= 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def events() -> List[DomainEvent]:
    return []


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture
def cache_service(clock: FakeClock) -> CachingServiceImpl:
    return CachingServiceImpl(clock=clock)


@pytest.fixture
def retry_tracker(clock: FakeClock, events: List[DomainEvent]) -> RetryTracker:
    return RetryTracker(clock=clock, listener=events.append)


@pytest.fixture
def rate_limiter(clock: FakeClock, events: List[DomainEvent]) -> RateLimiter:
    return RateLimiter(clock=clock, listener=events.append)


@pytest.fixture
def service(clock: FakeClock, executor: RecordingExecutor, events: List[DomainEvent]) -> UtilityService:
    """Fully wired service without background tasks."""
    return UtilityService.build(clock=clock, executor=executor, listener=events.append)


@pytest.fixture(scope="session")
def runner() -> CliRunner:
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests independent of the developer's ~/.utiltools and .env files."""
    monkeypatch.setattr(
        "utiltools.infrastructure.config.settings.DEFAULT_CONFIG_FILE", tmp_path / "missing.yaml",
    )
    monkeypatch.chdir(tmp_path)
    reset_configuration()
    yield
    clear_test_config()
    reset_configuration()


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging() replaces root handlers; put the originals back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
