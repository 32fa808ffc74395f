from typing import Callable

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from qa_casegen.config.settings import Config
from qa_casegen.deps import get_config, get_processor_provider
from qa_casegen.services.batch_orchestrator import Processor
from qa_casegen.services.batch_session import BatchSession
from qa_casegen.services.progress_channel import ProgressChannelClosed, WebSocketProgressChannel
from qa_casegen.utils.logger import generate_correlation_id, get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.websocket("/ws/tasks")
async def batch_websocket(
    websocket: WebSocket,
    processor_provider: Callable[[], Processor] = Depends(get_processor_provider),
    config: Config = Depends(get_config)
):
    """
    Live batch processing

    Inbound:  {"type": "run-tasks", "taskIds": [...]} | {"type": "cancel"}
    Outbound: step / completed / error events
    """
    await websocket.accept()
    session_id = generate_correlation_id('ws')
    logger.info(f"Client connected: {session_id}")

    session = BatchSession(
        WebSocketProgressChannel(websocket),
        processor_provider,
        timeout_seconds=config.batch.timeout_seconds,
        session_id=session_id,
    )
    try:
        while True:
            raw = await websocket.receive_text()
            await session.handle_message(raw)
    except WebSocketDisconnect:
        logger.info(f"Client disconnected: {session_id}")
    except ProgressChannelClosed:
        logger.info(f"Client went away mid-reply: {session_id}")
    finally:
        await session.close()
