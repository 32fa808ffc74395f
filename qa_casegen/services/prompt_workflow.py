# ==============================================
# Prompt/response workflow:
# Jira -> classify -> prompt, and AI response -> BrowserStack
# ==============================================

from typing import Callable, List, Optional, Sequence, Tuple

from qa_casegen.clients.browserstack_client import BrowserStackClient
from qa_casegen.clients.jira_client import JiraClient
from qa_casegen.config.settings import Config
from qa_casegen.models.browserstack_models import CreatedTestCase
from qa_casegen.models.classification_models import AnalyticsDomain
from qa_casegen.models.jira_models import Ticket
from qa_casegen.models.testcase_models import QaTestCase
from qa_casegen.models.workflow_models import (
    BatchPrompt,
    BatchPromptEntry,
    GeneratedPrompt,
    ImportedResponse,
    UploadResult,
)
from qa_casegen.resolvers.folder_mapper import FolderMapper
from qa_casegen.resolvers.rule_resolver import RuleResolver
from qa_casegen.services.prompt_builder import PromptBuilder
from qa_casegen.services.testcase_importer import TestCaseImporter
from qa_casegen.utils.exceptions import BrowserStackClientException, ErrorCode, InvalidRequestError
from qa_casegen.utils.logger import get_logger, log_error_with_code
from qa_casegen.utils.retry import with_retry

logger = get_logger(__name__)


class PromptWorkflow:
    """
    Steps shared by the automatic and manual generation modes

    The manual mode hands the prompt to a person, who pastes the AI answer
    back; the automatic mode (TicketProcessor) asks Gemini in between.
    All methods are blocking.
    """

    def __init__(
        self,
        jira_client: JiraClient,
        rule_resolver: RuleResolver,
        folder_mapper: FolderMapper,
        prompt_builder: PromptBuilder,
        importer: TestCaseImporter,
        browserstack_client: BrowserStackClient,
        max_retries: int = 3,
        sleep: Optional[Callable[[float], None]] = None
    ):
        self.jira_client = jira_client
        self.rule_resolver = rule_resolver
        self.folder_mapper = folder_mapper
        self.prompt_builder = prompt_builder
        self.importer = importer
        self.browserstack_client = browserstack_client
        self.max_retries = max_retries
        self._sleep = sleep

    @classmethod
    def from_config(
        cls,
        config: Config,
        rule_resolver: RuleResolver,
        folder_mapper: FolderMapper,
        browserstack_client: Optional[BrowserStackClient] = None
    ) -> 'PromptWorkflow':
        """
        Build the workflow and its clients from configuration

        Raises:
            MissingConfigError: If Jira or BrowserStack credentials are missing
        """
        config.validate(require_gemini=False)
        return cls(
            jira_client=JiraClient(config),
            rule_resolver=rule_resolver,
            folder_mapper=folder_mapper,
            prompt_builder=PromptBuilder(
                config.batch.output_dir,
                min_test_cases=config.batch.min_test_cases,
                max_test_cases=config.batch.max_test_cases,
            ),
            importer=TestCaseImporter(),
            browserstack_client=browserstack_client or BrowserStackClient(config),
            max_retries=config.batch.test_case_max_retries,
        )

    def retry(self, fn, operation: str):
        return with_retry(fn, max_retries=self.max_retries, sleep=self._sleep, operation=operation)

    def fetch_ticket(self, task_id: str) -> Ticket:
        return self.retry(lambda: self.jira_client.get_ticket(task_id), f"fetch {task_id}")

    # --- Prompts ---

    def generate_prompt(self, task_id: str) -> GeneratedPrompt:
        """
        Fetch, classify and build the single-ticket prompt

        Raises:
            CaseGenException: Jira, classification or rule file failures
        """
        ticket = self.fetch_ticket(task_id)

        classification = self.rule_resolver.resolve_detailed(ticket.title)
        analytics_type = classification.domain
        task_logger = get_logger(__name__, task_id=task_id)
        task_logger.info(
            f"Analytics type: {analytics_type}"
            + (f" (matched '{classification.matched_text}')" if classification.keyword_match else " (default)"),
            extra={'analytics_type': analytics_type}
        )

        rule_content = self.prompt_builder.read_rule_file(
            self.rule_resolver.get_rule_file_path(analytics_type)
        )
        prompt = self.prompt_builder.build(ticket, analytics_type, rule_content)
        prompt_path = self.prompt_builder.save_prompt(task_id, prompt)
        return GeneratedPrompt(
            ticket=ticket,
            classification=classification,
            prompt=prompt,
            prompt_path=prompt_path,
        )

    def generate_batch_prompt(self, tasks: Sequence[Tuple[str, Optional[AnalyticsDomain]]]) -> BatchPrompt:
        """
        Build one prompt for several tickets

        Args:
            tasks: (task id, analytics type) pairs; a missing type is resolved
                from the ticket title

        Raises:
            InvalidRequestError: Empty task list or unknown analytics type
        """
        if not tasks:
            raise InvalidRequestError("tasks array is required and must not be empty")

        entries: List[BatchPromptEntry] = []
        for task_id, analytics_type in tasks:
            self._check_analytics_type(analytics_type, task_id)
            ticket = self.fetch_ticket(task_id)
            domain = analytics_type or self.rule_resolver.resolve(ticket.title)
            rule_content = self.prompt_builder.read_rule_file(
                self.rule_resolver.get_rule_file_path(domain)
            )
            entries.append(BatchPromptEntry(ticket=ticket, analytics_type=domain, rule_content=rule_content))

        prompt = self.prompt_builder.build_batch(entries)
        prompt_path = self.prompt_builder.save_batch_prompt(prompt)
        logger.info(f"Generated batch prompt for {len(entries)} task(s)")
        return BatchPrompt(
            prompt=prompt,
            task_ids=tuple(entry.ticket.id for entry in entries),
            prompt_path=prompt_path,
        )

    # --- Responses ---

    def process_response(
        self,
        task_id: str,
        response: str,
        task_title: Optional[str] = None,
        analytics_type: Optional[AnalyticsDomain] = None
    ) -> ImportedResponse:
        """
        Import a pasted AI response and upload its test cases

        The response may be a single array or a batch object keyed by task
        id. Title and analytics type are looked up in Jira when not given.

        Raises:
            TestCaseImportException: Invalid response or no test cases for the task
            InvalidRequestError: Unknown analytics type
        """
        self._check_analytics_type(analytics_type, task_id)
        response_path = self.prompt_builder.save_response(task_id, response)
        test_cases = self.importer.import_file(response_path, task_id)

        ticket = Ticket(id=task_id, title=task_title or "")
        if not task_title or not analytics_type:
            fetched = self.fetch_ticket(task_id)
            ticket = Ticket(id=task_id, title=task_title or fetched.title, sprint_name=fetched.sprint_name)
            analytics_type = analytics_type or self.rule_resolver.resolve(fetched.title)

        upload = self.upload_test_cases(ticket, analytics_type, test_cases)
        return ImportedResponse(
            task_id=task_id,
            response_path=response_path,
            test_cases=test_cases,
            upload=upload,
        )

    def upload_test_cases(
        self,
        ticket: Ticket,
        analytics_type: AnalyticsDomain,
        test_cases: Sequence[QaTestCase]
    ) -> UploadResult:
        """
        Create test cases in the ticket's subfolder and link them to its test run

        A test case that cannot be created is logged and skipped.
        """
        parent_folder_id = self.folder_mapper.get_folder_id(analytics_type)
        subfolder_name = f"{ticket.id} - {ticket.title}"
        subfolder = self.retry(
            lambda: self.browserstack_client.find_or_create_subfolder(parent_folder_id, subfolder_name),
            f"find or create folder '{subfolder_name}'"
        )

        result = UploadResult(folder_id=subfolder.id, folder_name=subfolder_name)
        for test_case in test_cases:
            try:
                result.created.append(self.retry(
                    lambda: self.browserstack_client.create_test_case(subfolder.id, test_case),
                    f"create test case '{test_case.name}'"
                ))
            except BrowserStackClientException as e:
                result.failed_names.append(test_case.name)
                log_error_with_code(
                    logger,
                    ErrorCode.TEST_CASE_CREATION_FAILED,
                    f"Failed to create test case '{test_case.name}': {e.message}",
                    exception=e,
                    task_id=ticket.id
                )

        if result.created:
            self._link_test_run(ticket, result.created)
        return result

    def _link_test_run(self, ticket: Ticket, created: List[CreatedTestCase]) -> None:
        """Attach created test cases to the ticket's test run; failures are logged only"""
        try:
            test_run = self.retry(
                lambda: self.browserstack_client.find_or_create_test_run(ticket.id, ticket.title, ticket.sprint_name),
                f"find or create test run {ticket.id}"
            )
            self.retry(
                lambda: self.browserstack_client.update_test_run_cases(
                    test_run.identifier, [tc.identifier for tc in created]
                ),
                f"update test run {test_run.identifier}"
            )
        except BrowserStackClientException as e:
            log_error_with_code(
                logger,
                e.error_code,
                f"Could not link test cases to test run for {ticket.id}: {e.message}",
                exception=e,
                task_id=ticket.id
            )

    def _check_analytics_type(self, analytics_type: Optional[AnalyticsDomain], task_id: str) -> None:
        if analytics_type and analytics_type not in self.rule_resolver.get_domains():
            raise InvalidRequestError(
                f"Unknown analytics type '{analytics_type}' for {task_id}",
                context={'task_id': task_id, 'analytics_type': analytics_type}
            )
