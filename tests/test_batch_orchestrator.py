from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from qa_casegen.models.batch_models import ProcessorOutcome, TaskStatus
from qa_casegen.models.event_models import CompletedEvent, ErrorEvent, StepEvent
from qa_casegen.services.batch_orchestrator import BatchOrchestrator, run_batch
from qa_casegen.services.progress_channel import CallbackProgressChannel, RecordingProgressChannel
from qa_casegen.utils.exceptions import InvalidRequestError


def _summary(events) -> list[tuple]:
    out = []
    for event in events:
        if isinstance(event, StepEvent):
            out.append(("step", event.task_id, event.status.value))
        elif isinstance(event, CompletedEvent):
            out.append(("completed", event.completed, event.failed))
        else:
            out.append(("error", event.error))
    return out


def _run(task_ids: Any, processor, **kwargs):
    channel = RecordingProgressChannel()
    result = asyncio.run(run_batch(task_ids, processor, channel, **kwargs))
    return result, channel.events


def test_t2_failure_sequence() -> None:
    def processor(task_id: str) -> bool:
        if task_id == "T2":
            raise RuntimeError("Jira unavailable")
        return True

    result, events = _run(["T1", "T2", "T3"], processor)

    assert _summary(events) == [
        ("step", "T1", "in-progress"),
        ("step", "T1", "completed"),
        ("step", "T2", "in-progress"),
        ("step", "T2", "failed"),
        ("step", "T3", "in-progress"),
        ("step", "T3", "completed"),
        ("completed", 2, 1),
    ]
    assert events[3].message == "Jira unavailable"
    assert result.completed == 2
    assert result.failed == 1
    assert result.statuses == (
        ("T1", TaskStatus.COMPLETED),
        ("T2", TaskStatus.FAILED),
        ("T3", TaskStatus.COMPLETED),
    )


@pytest.mark.parametrize("outcomes", [
    [True],
    [False],
    [True, True, True, True],
    [False, True, False, True, False],
])
def test_event_count_is_two_per_task_plus_one(outcomes: list[bool]) -> None:
    task_ids = [f"PA-{i}" for i in range(len(outcomes))]
    planned = dict(zip(task_ids, outcomes))

    _, events = _run(task_ids, lambda task_id: planned[task_id])

    steps = [e for e in events if isinstance(e, StepEvent)]
    assert len(steps) == 2 * len(task_ids)
    assert isinstance(events[-1], CompletedEvent)
    assert len(events) == 2 * len(task_ids) + 1
    completed = events[-1]
    assert completed.completed + completed.failed == len(task_ids)
    assert completed.completed == sum(outcomes)


def test_step_numbers_and_totals() -> None:
    _, events = _run(["A", "B"], lambda task_id: True)

    steps = [e for e in events if isinstance(e, StepEvent)]
    assert [(s.step, s.total) for s in steps] == [(1, 2), (1, 2), (2, 2), (2, 2)]


def test_processor_outcome_message_is_forwarded() -> None:
    def processor(task_id: str) -> ProcessorOutcome:
        if task_id == "bad":
            return ProcessorOutcome(succeeded=False, message="No test cases generated")
        return ProcessorOutcome(succeeded=True, message="Created 3 test case(s)")

    _, events = _run(["good", "bad"], processor)

    assert events[1].message == "Created 3 test case(s)"
    assert events[3].status == TaskStatus.FAILED
    assert events[3].message == "No test cases generated"


def test_async_processor_is_awaited() -> None:
    async def processor(task_id: str) -> bool:
        await asyncio.sleep(0)
        return task_id != "T2"

    result, events = _run(["T1", "T2"], processor)

    assert result.completed == 1
    assert _summary(events)[-1] == ("completed", 1, 1)


def test_unsupported_outcome_counts_as_failure() -> None:
    result, events = _run(["T1"], lambda task_id: None)

    assert result.failed == 1
    assert "unsupported outcome" in events[1].message


def test_next_task_waits_for_event_acceptance() -> None:
    log: list[str] = []

    class SlowChannel:
        async def emit(self, event) -> None:
            await asyncio.sleep(0)
            if isinstance(event, StepEvent):
                log.append(f"emit {event.task_id} {event.status.value}")
            else:
                log.append(f"emit {event.event}")

    def processor(task_id: str) -> bool:
        log.append(f"process {task_id}")
        return True

    asyncio.run(run_batch(["T1", "T2"], processor, SlowChannel()))

    assert log == [
        "emit T1 in-progress",
        "process T1",
        "emit T1 completed",
        "emit T2 in-progress",
        "process T2",
        "emit T2 completed",
        "emit completed",
    ]


@pytest.mark.parametrize("task_ids", [[], None, "T1", ["T1", ""], ["T1", 5]])
def test_invalid_batch_emits_single_error(task_ids: Any) -> None:
    calls: list[str] = []
    channel = RecordingProgressChannel()

    with pytest.raises(InvalidRequestError):
        asyncio.run(run_batch(task_ids, calls.append, channel))

    assert len(channel.events) == 1
    assert isinstance(channel.events[0], ErrorEvent)
    assert channel.events[0].success is False
    assert calls == []


def test_empty_batch_error_message() -> None:
    channel = RecordingProgressChannel()
    with pytest.raises(InvalidRequestError):
        asyncio.run(run_batch([], lambda task_id: True, channel))
    assert channel.events[0].error == "No task IDs provided"


def test_cancellation_is_checked_between_tasks() -> None:
    async def scenario():
        cancel = asyncio.Event()
        channel = RecordingProgressChannel()

        def processor(task_id: str) -> bool:
            if task_id == "T1":
                cancel.set()
            return True

        result = await run_batch(["T1", "T2", "T3"], processor, channel, cancel_event=cancel)
        return result, channel.events

    result, events = asyncio.run(scenario())

    assert _summary(events) == [
        ("step", "T1", "in-progress"),
        ("step", "T1", "completed"),
        ("completed", 1, 2),
    ]
    completed = events[-1]
    assert completed.cancelled
    assert completed.success is False
    assert completed.task_ids == ["T1", "T2", "T3"]
    assert "cancelled after 1 of 3" in completed.message
    assert result.cancelled
    assert result.statuses[1] == ("T2", TaskStatus.PENDING)


def test_cancel_before_start_processes_nothing() -> None:
    async def scenario():
        channel = RecordingProgressChannel()
        orchestrator = BatchOrchestrator(lambda task_id: True, channel)
        orchestrator.cancel()
        await orchestrator.run(["T1", "T2"])
        return channel.events

    events = asyncio.run(scenario())

    assert _summary(events) == [("completed", 0, 2)]
    assert events[0].cancelled


def test_timeout_stops_batch_between_tasks() -> None:
    now = [0.0]

    def processor(task_id: str) -> bool:
        now[0] += 10
        return True

    async def scenario():
        channel = RecordingProgressChannel()
        orchestrator = BatchOrchestrator(
            processor, channel, timeout_seconds=5, clock=lambda: now[0]
        )
        result = await orchestrator.run(["T1", "T2"])
        return result, channel.events

    result, events = asyncio.run(scenario())

    assert _summary(events) == [
        ("step", "T1", "in-progress"),
        ("step", "T1", "completed"),
        ("completed", 1, 1),
    ]
    assert events[-1].cancelled
    assert "timed out" in events[-1].message
    assert result.cancelled


def test_all_success_message() -> None:
    _, events = _run(["T1", "T2"], lambda task_id: True)
    completed = events[-1]
    assert completed.success is True
    assert not completed.cancelled
    assert completed.message == "Successfully processed 2 task(s)"


def test_partial_failure_message_reports_counts() -> None:
    _, events = _run(["T1", "T2"], lambda task_id: task_id == "T1")
    assert events[-1].message == "Processed 2 task(s): 1 completed, 1 failed"


def test_concurrent_batches_do_not_share_state() -> None:
    async def scenario():
        first, second = RecordingProgressChannel(), RecordingProgressChannel()

        async def slow(task_id: str) -> bool:
            await asyncio.sleep(0)
            return task_id.startswith("A")

        results = await asyncio.gather(
            run_batch(["A1", "A2", "A3"], slow, first),
            run_batch(["B1", "B2"], slow, second),
        )
        return results, first.events, second.events

    (result_a, result_b), events_a, events_b = asyncio.run(scenario())

    assert (result_a.completed, result_a.failed) == (3, 0)
    assert (result_b.completed, result_b.failed) == (0, 2)
    assert all(e.task_id.startswith("A") for e in events_a if isinstance(e, StepEvent))
    assert all(e.task_id.startswith("B") for e in events_b if isinstance(e, StepEvent))


def test_events_serialise_to_camel_case_wire_format() -> None:
    _, events = _run(["T1"], lambda task_id: True)

    assert events[0].to_wire() == {
        "event": "step",
        "taskId": "T1",
        "step": 1,
        "total": 1,
        "message": "Processing T1...",
        "status": "in-progress",
    }
    assert events[-1].to_wire() == {
        "event": "completed",
        "success": True,
        "taskIds": ["T1"],
        "completed": 1,
        "failed": 0,
        "message": "Successfully processed 1 task(s)",
        "cancelled": False,
    }


def test_channel_failure_stops_batch_and_still_reports_completion() -> None:
    received = []
    processed: list[str] = []

    def deliver(event) -> None:
        if isinstance(event, StepEvent) and event.status is TaskStatus.COMPLETED:
            raise RuntimeError("transport hiccup")
        received.append(event)

    def processor(task_id: str) -> bool:
        processed.append(task_id)
        return True

    result = asyncio.run(run_batch(["T1", "T2"], processor, CallbackProgressChannel(deliver)))

    assert processed == ["T1"]
    assert _summary(received) == [
        ("step", "T1", "in-progress"),
        ("completed", 1, 1),
    ]
    assert received[-1].cancelled
    assert result.cancelled


class _RecordCollector(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_failed_task_is_logged_once_at_error() -> None:
    collector = _RecordCollector()
    orchestrator_logger = logging.getLogger("qa_casegen.services.batch_orchestrator")
    orchestrator_logger.addHandler(collector)

    def processor(task_id: str) -> bool:
        raise RuntimeError("Jira unavailable")

    try:
        _run(["T1"], processor)
    finally:
        orchestrator_logger.removeHandler(collector)

    errors = [record for record in collector.records if record.levelno >= logging.ERROR]
    assert len(errors) == 1
    assert "Task T1 failed after" in errors[0].getMessage()
