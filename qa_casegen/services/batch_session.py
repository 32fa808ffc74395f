# ==============================================
# Per-connection batch session (run-tasks / cancel)
# ==============================================

import asyncio
import json
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError

from qa_casegen.models.event_models import (
    CancelMessage,
    ErrorEvent,
    RunTasksMessage,
    inbound_message_adapter,
)
from qa_casegen.services.batch_orchestrator import BatchOrchestrator, Processor
from qa_casegen.services.progress_channel import ProgressChannel, ProgressChannelClosed
from qa_casegen.utils.exceptions import ErrorCode, InvalidRequestError, describe_exception
from qa_casegen.utils.logger import get_logger, log_error_with_code

logger = get_logger(__name__)


class BatchSession:
    """
    Inbound command handling for one subscriber connection

    A session runs at most one batch at a time. Every batch gets its own
    orchestrator and cancel event; nothing is shared between sessions.
    """

    def __init__(
        self,
        channel: ProgressChannel,
        processor_provider: Callable[[], Processor],
        timeout_seconds: Optional[float] = None,
        session_id: str = ""
    ):
        """
        Args:
            channel: Event sink of this connection
            processor_provider: Builds the processor when a batch is submitted
            timeout_seconds: Optional batch timeout checked between tasks
            session_id: Label used in log records
        """
        self._channel = channel
        self._processor_provider = processor_provider
        self._timeout_seconds = timeout_seconds
        self._session_id = session_id
        self._orchestrator: Optional[BatchOrchestrator] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def handle_message(self, raw: Union[str, bytes, dict]) -> None:
        """Dispatch one inbound message; malformed input yields one error event"""
        try:
            payload: Any = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            message = inbound_message_adapter.validate_python(payload)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"[{self._session_id}] Malformed message: {e}")
            await self._channel.emit(ErrorEvent(error="Malformed message: expected run-tasks or cancel"))
            return

        if isinstance(message, RunTasksMessage):
            await self.submit(message.task_ids)
        elif isinstance(message, CancelMessage):
            self.cancel()

    async def submit(self, task_ids: Any) -> None:
        """Start a batch in the background unless one is already running"""
        if self.is_running:
            await self._channel.emit(ErrorEvent(error="A batch is already running on this connection"))
            return

        try:
            # building clients may block on network round-trips
            processor = await asyncio.to_thread(self._processor_provider)
        except Exception as e:
            log_error_with_code(
                logger,
                getattr(e, 'error_code', None) or ErrorCode.INTERNAL_SERVER_ERROR,
                f"[{self._session_id}] Cannot start batch: {describe_exception(e)}",
                exception=e
            )
            await self._channel.emit(ErrorEvent(error=describe_exception(e)))
            return

        self._orchestrator = BatchOrchestrator(
            processor,
            self._channel,
            timeout_seconds=self._timeout_seconds,
        )
        self._task = asyncio.create_task(self._run(self._orchestrator, task_ids))

    def cancel(self) -> None:
        """Ask the running batch to stop before its next task"""
        if not self.is_running:
            logger.info(f"[{self._session_id}] Cancel requested with no batch running")
            return
        logger.info(f"[{self._session_id}] Cancelling batch")
        self._orchestrator.cancel()

    async def wait(self) -> None:
        """Wait for the running batch, if any, to finish"""
        if self._task is not None:
            await self._task

    async def close(self) -> None:
        """Subscriber went away: cancel cooperatively and let the batch wind down"""
        if self.is_running:
            self._orchestrator.cancel()
        close = getattr(self._channel, 'close', None)
        if close is not None:
            close()
        await self.wait()

    async def _run(self, orchestrator: BatchOrchestrator, task_ids: Any) -> None:
        try:
            await orchestrator.run(task_ids)
        except InvalidRequestError as e:
            # already reported to the subscriber as an error event
            logger.info(f"[{self._session_id}] Batch rejected: {e.message}")
        except ProgressChannelClosed:
            logger.warning(f"[{self._session_id}] Subscriber disconnected before batch finished")
