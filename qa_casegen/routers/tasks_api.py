import asyncio
from typing import Callable

from fastapi import APIRouter, BackgroundTasks, Depends

from qa_casegen.deps import get_config, get_folder_mapper, get_processor_provider, get_rule_resolver
from qa_casegen.config.settings import Config
from qa_casegen.models.api_models import (
    ResolveTitleRequest,
    ResolveTitleResponse,
    RunTasksRequest,
    RunTasksResponse,
)
from qa_casegen.resolvers.folder_mapper import FolderMapper
from qa_casegen.resolvers.rule_resolver import RuleResolver
from qa_casegen.services.batch_orchestrator import Processor, run_batch, validate_task_ids
from qa_casegen.services.progress_channel import LoggingProgressChannel
from qa_casegen.utils.exceptions import InvalidRequestError, UnmappedDomainError
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


@router.post("/run", response_model=RunTasksResponse)
async def run_tasks(
    request: RunTasksRequest,
    background_tasks: BackgroundTasks,
    processor_provider: Callable[[], Processor] = Depends(get_processor_provider),
    config: Config = Depends(get_config)
) -> RunTasksResponse:
    """
    Start processing a batch of Jira tickets

    Progress is not streamed here; use the /ws/tasks WebSocket for live
    events. The batch runs after the response is sent and its events are
    written to the log.

    Raises:
        InvalidRequestError: Empty or malformed taskIds (HTTP 400)
        ConfigurationError: Missing credentials or broken config (HTTP 500)
    """
    problem = validate_task_ids(request.task_ids)
    if problem:
        raise InvalidRequestError(problem)

    processor = await asyncio.to_thread(processor_provider)
    background_tasks.add_task(
        run_batch,
        list(request.task_ids),
        processor,
        LoggingProgressChannel(),
        timeout_seconds=config.batch.timeout_seconds,
    )
    logger.info(f"Accepted batch of {len(request.task_ids)} task(s)")

    return RunTasksResponse(
        success=True,
        message=f"Started processing {len(request.task_ids)} task(s)",
        task_ids=list(request.task_ids),
    )


@router.post("/resolve", response_model=ResolveTitleResponse)
async def resolve_title(
    request: ResolveTitleRequest,
    resolver: RuleResolver = Depends(get_rule_resolver),
    folder_mapper: FolderMapper = Depends(get_folder_mapper)
) -> ResolveTitleResponse:
    """
    Classify a ticket title and show where its test cases would go

    Raises:
        EmptyTitleError: Blank title (HTTP 400)
    """
    classification = resolver.resolve_detailed(request.title)

    folder_id = folder_name = None
    try:
        folder_id = folder_mapper.get_folder_id(classification.domain)
        folder_name = folder_mapper.get_folder_name(classification.domain)
    except UnmappedDomainError:
        # only the fallback domain may be unmapped
        logger.debug(f"No folder for fallback domain '{classification.domain}'")

    return ResolveTitleResponse(
        title=request.title,
        analytics_type=classification.domain,
        has_keyword_match=classification.keyword_match,
        ambiguous=classification.ambiguous,
        folder_id=folder_id,
        folder_name=folder_name,
    )
