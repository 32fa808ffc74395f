# ==============================================
# Default per-ticket processor:
# Jira -> classify -> prompt -> Gemini -> BrowserStack
# ==============================================

import asyncio
from typing import Callable, Optional

from qa_casegen.clients.gemini_client import GeminiClient
from qa_casegen.config.settings import Config
from qa_casegen.models.batch_models import ProcessorOutcome
from qa_casegen.services.prompt_workflow import PromptWorkflow
from qa_casegen.utils.logger import get_logger
from qa_casegen.utils.retry import with_retry

logger = get_logger(__name__)


class TicketProcessor:
    """
    Generates and uploads test cases for one Jira ticket

    process() is blocking; awaiting the processor runs it in a worker thread
    so the event loop keeps serving cancel messages.
    """

    def __init__(
        self,
        workflow: PromptWorkflow,
        gemini_client: GeminiClient,
        max_retries: int = 3,
        sleep: Optional[Callable[[float], None]] = None
    ):
        self.workflow = workflow
        self.gemini_client = gemini_client
        self.max_retries = max_retries
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: Config, workflow: PromptWorkflow) -> 'TicketProcessor':
        """
        Build the processor on top of an existing workflow

        Raises:
            MissingConfigError: If any credential is missing
        """
        config.validate()
        return cls(
            workflow=workflow,
            gemini_client=GeminiClient(config),
            max_retries=config.batch.test_case_max_retries,
        )

    async def __call__(self, task_id: str) -> ProcessorOutcome:
        return await asyncio.to_thread(self.process, task_id)

    def process(self, task_id: str) -> ProcessorOutcome:
        """
        Run the full workflow for one ticket

        Raises:
            CaseGenException: When a step before test case creation fails
        """
        generated = self.workflow.generate_prompt(task_id)

        response = with_retry(
            lambda: self.gemini_client.generate(generated.prompt),
            max_retries=self.max_retries,
            sleep=self._sleep,
            operation=f"generate {task_id}"
        )
        response_path = self.workflow.prompt_builder.save_response(task_id, response)
        test_cases = self.workflow.importer.import_for_task(response, task_id, source=str(response_path))

        upload = self.workflow.upload_test_cases(generated.ticket, generated.analytics_type, test_cases)
        failed = len(upload.failed_names)
        if not upload.succeeded:
            return ProcessorOutcome(
                succeeded=False,
                message=f"No test cases created for {task_id} ({failed} failed)",
            )

        message = f"Created {len(upload.created)} test case(s) in '{upload.folder_name}'"
        if failed:
            message += f", {failed} failed"
        return ProcessorOutcome(succeeded=True, message=message, test_cases_created=len(upload.created))
