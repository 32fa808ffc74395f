from fastapi import APIRouter, Depends

from qa_casegen.deps import get_prompt_workflow
from qa_casegen.models.api_models import (
    GenerateBatchPromptRequest,
    GenerateBatchPromptResponse,
    GeneratePromptRequest,
    GeneratePromptResponse,
    ProcessResponseRequest,
    ProcessResponseResponse,
    UploadSummary,
)
from qa_casegen.services.prompt_workflow import PromptWorkflow
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

# Plain def endpoints: the workflow blocks on Jira and BrowserStack calls,
# so FastAPI runs them in its threadpool.


@router.post("/generate", response_model=GeneratePromptResponse)
def generate_prompt(
    request: GeneratePromptRequest,
    workflow: PromptWorkflow = Depends(get_prompt_workflow)
) -> GeneratePromptResponse:
    """
    Build the test case prompt for one ticket (manual mode)

    Raises:
        JiraClientException: Ticket cannot be fetched
        TaskProcessingError: Missing rule file (HTTP 500)
    """
    generated = workflow.generate_prompt(request.task_id)
    return GeneratePromptResponse(
        task_id=generated.ticket.id,
        task_title=generated.ticket.title,
        analytics_type=generated.analytics_type,
        prompt=generated.prompt,
        prompt_path=str(generated.prompt_path),
    )


@router.post("/generate/batch", response_model=GenerateBatchPromptResponse)
def generate_batch_prompt(
    request: GenerateBatchPromptRequest,
    workflow: PromptWorkflow = Depends(get_prompt_workflow)
) -> GenerateBatchPromptResponse:
    """
    Build one prompt for several tickets; the answer is keyed by task id

    Raises:
        InvalidRequestError: Unknown analytics type (HTTP 400)
    """
    batch = workflow.generate_batch_prompt(
        [(task.task_id, task.analytics_type) for task in request.tasks]
    )
    return GenerateBatchPromptResponse(
        task_ids=list(batch.task_ids),
        prompt=batch.prompt,
        prompt_path=str(batch.prompt_path),
    )


@router.post("/response", response_model=ProcessResponseResponse)
def process_response(
    request: ProcessResponseRequest,
    workflow: PromptWorkflow = Depends(get_prompt_workflow)
) -> ProcessResponseResponse:
    """
    Import a pasted AI response and create its test cases in BrowserStack

    Raises:
        TestCaseImportException: Invalid JSON (HTTP 400) or no usable test cases for the task
        InvalidRequestError: Unknown analytics type (HTTP 400)
    """
    imported = workflow.process_response(
        request.task_id,
        request.response,
        task_title=request.task_title,
        analytics_type=request.analytics_type,
    )
    upload = imported.upload
    logger.info(
        f"Uploaded {len(upload.created)}/{len(imported.test_cases)} test case(s) to '{upload.folder_name}'",
        extra={'task_id': request.task_id}
    )
    return ProcessResponseResponse(
        success=upload.succeeded,
        task_id=imported.task_id,
        test_case_count=len(imported.test_cases),
        browserstack=UploadSummary(
            folder_id=upload.folder_id,
            folder_name=upload.folder_name,
            created_count=len(upload.created),
            failed_count=len(upload.failed_names),
            created_test_case_ids=[tc.identifier for tc in upload.created],
            failed_test_cases=list(upload.failed_names),
        ),
    )
