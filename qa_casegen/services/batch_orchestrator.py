# ==============================================
# Batch orchestration: sequential ticket processing
# with ordered progress events
# ==============================================

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Optional, Sequence, Union

from qa_casegen.models.batch_models import (
    BatchResult,
    BatchRun,
    BatchTask,
    ProcessorOutcome,
    TaskStatus,
)
from qa_casegen.models.event_models import CompletedEvent, ErrorEvent, StepEvent
from qa_casegen.services.progress_channel import ProgressChannel, ProgressChannelClosed
from qa_casegen.utils.exceptions import (
    ErrorCode,
    InvalidRequestError,
    TaskProcessingError,
    describe_exception,
)
from qa_casegen.utils.logger import (
    PerformanceTimer,
    clear_correlation_id,
    generate_correlation_id,
    get_correlation_id,
    get_logger,
    log_error_with_code,
    set_correlation_id,
)

logger = get_logger(__name__)

ProcessorResult = Union[bool, ProcessorOutcome]
Processor = Callable[[str], Union[ProcessorResult, Awaitable[ProcessorResult]]]


def validate_task_ids(task_ids: Any) -> str:
    """
    Check a submitted batch

    Returns:
        Empty string when valid, otherwise the reason it was rejected
    """
    if not isinstance(task_ids, (list, tuple)):
        return "taskIds must be a list of task IDs"
    if not task_ids:
        return "No task IDs provided"
    if not all(isinstance(task_id, str) and task_id.strip() for task_id in task_ids):
        return "Every task ID must be a non-empty string"
    return ""


def _to_outcome(result: Any, task_id: str) -> ProcessorOutcome:
    if isinstance(result, ProcessorOutcome):
        return result
    if isinstance(result, bool):
        return ProcessorOutcome(succeeded=result)
    raise TaskProcessingError(
        f"Processor returned unsupported outcome {type(result).__name__} for {task_id}",
        context={'task_id': task_id}
    )


class BatchOrchestrator:
    """
    Drives one batch of ticket ids through a processor

    Construct one orchestrator per batch. Tasks run strictly in submission
    order and every event is awaited on the channel before the next task
    starts, so a subscriber sees:

        step(T1, in-progress), step(T1, completed|failed), ..., completed

    Per-task failures, raised or returned, become failed steps and never stop
    the batch. Cancellation and the optional timeout are checked between
    tasks only; an in-flight processor call is never interrupted.
    """

    def __init__(
        self,
        processor: Processor,
        channel: ProgressChannel,
        cancel_event: Optional[asyncio.Event] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._processor = processor
        self._channel = channel
        self._cancel_event = cancel_event or asyncio.Event()
        self._timeout_seconds = timeout_seconds
        self._clock = clock

    def cancel(self) -> None:
        """Request cooperative cancellation before the next task"""
        self._cancel_event.set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    async def run(self, task_ids: Sequence[str]) -> BatchResult:
        """
        Process every task id and emit the event stream

        Raises:
            InvalidRequestError: If task_ids is empty or malformed (after one error event)
        """
        problem = validate_task_ids(task_ids)
        if problem:
            logger.warning(f"Rejected batch: {problem}", extra={'error_code': ErrorCode.INVALID_REQUEST})
            await self._channel.emit(ErrorEvent(error=problem))
            raise InvalidRequestError(problem, context={'task_ids': task_ids})

        previous_correlation_id = get_correlation_id()
        set_correlation_id(generate_correlation_id('batch'))
        try:
            return await self._run(tuple(task_ids))
        finally:
            if previous_correlation_id:
                set_correlation_id(previous_correlation_id)
            else:
                clear_correlation_id()

    async def _run(self, task_ids: Sequence[str]) -> BatchResult:
        batch_id = get_correlation_id()
        run = BatchRun(
            task_ids=tuple(task_ids),
            tasks=[BatchTask(id=task_id, ordinal=i + 1) for i, task_id in enumerate(task_ids)],
        )
        deadline = self._clock() + self._timeout_seconds if self._timeout_seconds else None
        logger.info(f"Starting batch of {run.total} task(s)", extra={'batch_id': batch_id})

        try:
            for task in run.tasks:
                if self._cancel_event.is_set():
                    run.cancelled = True
                    break
                if deadline is not None and self._clock() >= deadline:
                    run.cancelled = run.timed_out = True
                    break
                await self._process_task(run, task)
        except ProgressChannelClosed:
            raise
        except Exception as e:
            # Delivery failed mid-batch: stop, then report what was done
            run.cancelled = True
            for task in run.tasks:
                if task.status is TaskStatus.IN_PROGRESS:
                    task.status = TaskStatus.FAILED
            log_error_with_code(
                logger,
                ErrorCode.INTERNAL_SERVER_ERROR,
                f"Progress delivery failed, stopping batch: {describe_exception(e)}",
                exception=e,
                batch_id=batch_id
            )

        try:
            await self._channel.emit(self._completed_event(run))
        except ProgressChannelClosed:
            raise
        except Exception as e:
            log_error_with_code(
                logger,
                ErrorCode.INTERNAL_SERVER_ERROR,
                f"Could not deliver completed event: {describe_exception(e)}",
                exception=e,
                batch_id=batch_id
            )

        logger.info(
            f"Batch finished: {run.completed_count} completed, {run.failed_count} failed"
            + (" (cancelled)" if run.cancelled else ""),
            extra={'batch_id': batch_id}
        )
        return BatchResult(
            task_ids=run.task_ids,
            completed=run.completed_count,
            failed=run.failed_count,
            cancelled=run.cancelled,
            statuses=tuple((task.id, task.status) for task in run.tasks),
        )

    async def _process_task(self, run: BatchRun, task: BatchTask) -> None:
        task.status = TaskStatus.IN_PROGRESS
        await self._channel.emit(self._step_event(run, task, f"Processing {task.id}..."))

        timer = PerformanceTimer(logger, "process_task", failure_level=logging.DEBUG, task_id=task.id)
        try:
            with timer:
                result = self._processor(task.id)
                if inspect.isawaitable(result):
                    result = await result
                outcome = _to_outcome(result, task.id)
        except Exception as e:
            error = e if isinstance(e, TaskProcessingError) else TaskProcessingError(
                describe_exception(e),
                error_code=getattr(e, 'error_code', None),
                context={'task_id': task.id},
                original_exception=e
            )
            log_error_with_code(
                logger,
                error.error_code,
                f"Task {task.id} failed after {timer.get_duration()}ms: {error.message}",
                exception=e,
                task_id=task.id
            )
            outcome = ProcessorOutcome(succeeded=False, message=error.message)

        if outcome.succeeded:
            task.status = TaskStatus.COMPLETED
            run.completed_count += 1
            message = outcome.message or f"Completed {task.id}"
        else:
            task.status = TaskStatus.FAILED
            message = outcome.message or f"Failed {task.id}"
        task.message = message

        await self._channel.emit(self._step_event(run, task, message))

    @staticmethod
    def _step_event(run: BatchRun, task: BatchTask, message: str) -> StepEvent:
        return StepEvent(
            task_id=task.id,
            step=task.ordinal,
            total=run.total,
            message=message,
            status=task.status,
        )

    @staticmethod
    def _completed_event(run: BatchRun) -> CompletedEvent:
        processed = sum(1 for task in run.tasks if task.status.is_terminal)
        if run.timed_out:
            message = f"Batch timed out after {processed} of {run.total} task(s)"
        elif run.cancelled:
            message = f"Batch cancelled after {processed} of {run.total} task(s)"
        elif run.failed_count:
            message = (
                f"Processed {run.total} task(s): {run.completed_count} completed, "
                f"{run.failed_count} failed"
            )
        else:
            message = f"Successfully processed {run.total} task(s)"

        return CompletedEvent(
            success=not run.cancelled,
            task_ids=list(run.task_ids),
            completed=run.completed_count,
            failed=run.failed_count,
            message=message,
            cancelled=run.cancelled,
        )


async def run_batch(
    task_ids: Sequence[str],
    processor: Processor,
    channel: ProgressChannel,
    cancel_event: Optional[asyncio.Event] = None,
    timeout_seconds: Optional[float] = None
) -> BatchResult:
    """Run one batch with a freshly constructed orchestrator"""
    orchestrator = BatchOrchestrator(
        processor,
        channel,
        cancel_event=cancel_event,
        timeout_seconds=timeout_seconds,
    )
    return await orchestrator.run(task_ids)
