# ==============================================
# Ordered delivery of batch events to one subscriber
# ==============================================

import asyncio
import inspect
from typing import Any, Callable, List, Protocol

from fastapi import WebSocket, WebSocketDisconnect

from qa_casegen.models.event_models import BatchEvent
from qa_casegen.utils.exceptions import CaseGenException
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)


class ProgressChannelClosed(CaseGenException):
    """Raised when emitting to a channel whose subscriber is gone"""


class ProgressChannel(Protocol):
    """Event sink for one batch; emit returns once the event is accepted"""

    async def emit(self, event: BatchEvent) -> None:
        ...


class CallbackProgressChannel:
    """Channel wrapping a plain or async callback"""

    def __init__(self, callback: Callable[[BatchEvent], Any]):
        self._callback = callback

    async def emit(self, event: BatchEvent) -> None:
        result = self._callback(event)
        if inspect.isawaitable(result):
            await result


class RecordingProgressChannel:
    """Channel keeping every event in memory, in emission order"""

    def __init__(self) -> None:
        self.events: List[BatchEvent] = []

    async def emit(self, event: BatchEvent) -> None:
        self.events.append(event)


class LoggingProgressChannel:
    """Channel for batches with no live subscriber (HTTP fire-and-forget)"""

    async def emit(self, event: BatchEvent) -> None:
        logger.info(f"Batch event: {event.to_wire()}")


class WebSocketProgressChannel:
    """
    Channel sending events as JSON over a FastAPI WebSocket

    Sends are serialised with a lock so events from the batch and direct
    replies from the session never interleave on the socket.
    """

    def __init__(self, websocket: WebSocket):
        self._websocket = websocket
        self._lock = asyncio.Lock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        self._closed = True

    async def emit(self, event: BatchEvent) -> None:
        async with self._lock:
            if self._closed:
                raise ProgressChannelClosed(
                    f"Cannot emit '{event.event}' event: subscriber disconnected"
                )
            try:
                await self._websocket.send_json(event.to_wire())
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                self._closed = True
                raise ProgressChannelClosed(
                    f"Cannot emit '{event.event}' event: {e}", original_exception=e
                ) from e
