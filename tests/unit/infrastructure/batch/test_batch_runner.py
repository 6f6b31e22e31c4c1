import asyncio
from typing import Any, Dict, List

import pytest

from utiltools.domain.events.utility_events import BatchDrained, BatchOperationFailed
from utiltools.domain.models.batch import BatchOperation, BatchOptions, BatchResult, BatchSummary
from utiltools.domain.models.common import BATCH_NAMESPACE
from utiltools.infrastructure.batch.batch_runner import SKIPPED_ERROR, BatchRunner, batch_cache_key


def ops(*specs: Dict[str, Any]) -> List[BatchOperation]:
    """Builds operations named op-0, op-1, ... from per-item data dicts."""
    return [BatchOperation(id=f"op-{i}", type="test", data=data) for i, data in enumerate(specs)]


@pytest.fixture
def batch_runner(executor, cache_service, events) -> BatchRunner:
    return BatchRunner(executor=executor, cache_service=cache_service, listener=events.append)


@pytest.mark.asyncio
async def test_concurrency_is_bounded(batch_runner: BatchRunner, executor):
    operations = ops(*[{"delay": 0.02} for _ in range(5)])

    summary = await batch_runner.run(operations, BatchOptions(concurrency=2))

    assert executor.max_in_flight == 2
    assert summary.total == 5
    assert summary.successful == 5
    assert summary.failed == 0


@pytest.mark.asyncio
async def test_results_follow_input_order(batch_runner: BatchRunner, executor):
    operations = ops({"delay": 0.06}, {"delay": 0.01}, {"delay": 0.03})

    summary = await batch_runner.run(operations, BatchOptions(concurrency=3))

    assert executor.finished == ["op-1", "op-2", "op-0"]
    assert [r.id for r in summary.results] == ["op-0", "op-1", "op-2"]
    assert summary.results[0].result == {"echo": "op-0"}


@pytest.mark.asyncio
async def test_failures_do_not_stop_batch_by_default(batch_runner: BatchRunner, executor):
    operations = ops({}, {"fail": "boom"}, {}, {})

    summary = await batch_runner.run(operations, BatchOptions(concurrency=1))

    assert executor.started == ["op-0", "op-1", "op-2", "op-3"]
    assert summary.successful == 3
    assert summary.failed == 1
    assert summary.results[1].error == "boom"


@pytest.mark.asyncio
async def test_stop_on_error_drains_queue(batch_runner: BatchRunner, executor, events):
    operations = ops({}, {"fail": "boom"}, {}, {})

    summary = await batch_runner.run(operations, BatchOptions(concurrency=1, continue_on_error=False))

    assert executor.started == ["op-0", "op-1"]
    assert summary.successful == 1
    assert summary.failed == 1
    assert summary.skipped == 2
    assert [r.skipped for r in summary.results] == [False, False, True, True]
    assert summary.results[3].error == SKIPPED_ERROR
    drained = [e for e in events if isinstance(e, BatchDrained)]
    assert len(drained) == 1
    assert drained[0].failed_operation_id == "op-1"
    assert drained[0].drained_count == 2


@pytest.mark.asyncio
async def test_stop_on_error_lets_in_flight_work_finish(batch_runner: BatchRunner, executor):
    operations = ops({"fail": "early"}, {"delay": 0.03}, {})

    summary = await batch_runner.run(operations, BatchOptions(concurrency=2, continue_on_error=False))

    assert summary.results[1].success is True
    assert summary.results[2].skipped is True
    assert executor.cancelled == []


@pytest.mark.asyncio
async def test_timeout_cancels_the_operation(batch_runner: BatchRunner, executor, events):
    operations = ops({"delay": 5}, {})

    summary = await batch_runner.run(operations, BatchOptions(concurrency=2, timeout_ms=50))

    slow = summary.results[0]
    assert slow.success is False
    assert slow.timed_out is True
    assert slow.error == "Operation op-0 timed out after 50ms"
    assert executor.cancelled == ["op-0"]
    assert summary.results[1].success is True
    failed = [e for e in events if isinstance(e, BatchOperationFailed)]
    assert failed[0].timed_out is True


@pytest.mark.asyncio
async def test_use_cache_reuses_results_across_runs(batch_runner: BatchRunner, executor, cache_service):
    operations = ops({"n": 1}, {"n": 2})
    options = BatchOptions(concurrency=2, use_cache=True)

    first = await batch_runner.run(operations, options)
    second = await batch_runner.run(operations, options)

    assert executor.started == ["op-0", "op-1"]
    assert [r.cached for r in first.results] == [False, False]
    assert [r.cached for r in second.results] == [True, True]
    assert second.results[0].result == {"echo": "op-0"}
    assert cache_service.get(batch_cache_key(operations[1]), BATCH_NAMESPACE).found is True


@pytest.mark.asyncio
async def test_identical_operations_hit_cache_within_one_batch(batch_runner: BatchRunner, executor):
    operations = [
        BatchOperation(id="a", type="fetch", data={"url": "x"}),
        BatchOperation(id="b", type="fetch", data={"url": "x"}),
    ]

    summary = await batch_runner.run(operations, BatchOptions(concurrency=1, use_cache=True))

    assert executor.started == ["a"]
    assert summary.results[1].cached is True
    assert summary.results[1].result == {"echo": "a"}


@pytest.mark.asyncio
async def test_failures_are_not_cached(batch_runner: BatchRunner, executor, cache_service):
    operations = ops({"fail": "nope"})

    await batch_runner.run(operations, BatchOptions(use_cache=True))

    assert cache_service.size() == 0


@pytest.mark.asyncio
async def test_use_cache_without_cache_service_is_ignored(executor):
    runner = BatchRunner(executor=executor)

    summary = await runner.run(ops({}), BatchOptions(use_cache=True))

    assert summary.successful == 1
    assert summary.results[0].cached is False


@pytest.mark.asyncio
async def test_cancelling_run_cancels_in_flight_work(batch_runner: BatchRunner, executor):
    task = asyncio.create_task(batch_runner.run(ops({"delay": 5}, {"delay": 5}), BatchOptions(concurrency=2)))
    await asyncio.sleep(0.02)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    await asyncio.sleep(0.01)

    assert sorted(executor.cancelled) == ["op-0", "op-1"]


def test_cache_key_is_independent_of_data_key_order():
    a = BatchOperation(id="1", type="t", data={"x": 1, "y": 2})
    b = BatchOperation(id="2", type="t", data={"y": 2, "x": 1})

    assert batch_cache_key(a) == batch_cache_key(b) == 't:{"x": 1, "y": 2}'


def test_summary_payload_shape():
    summary = BatchSummary(results=[
        BatchResult(id="a", success=True, result=1),
        BatchResult(id="b", success=False, error="x", timed_out=True),
        BatchResult(id="c", success=False, error=SKIPPED_ERROR, skipped=True),
    ])

    assert summary.to_dict() == {
        "success": True,
        "total": 3,
        "successful": 1,
        "failed": 1,
        "skipped": 1,
        "results": [
            {"id": "a", "success": True, "result": 1},
            {"id": "b", "success": False, "error": "x", "timed_out": True},
            {"id": "c", "success": False, "error": SKIPPED_ERROR, "skipped": True},
        ],
    }
