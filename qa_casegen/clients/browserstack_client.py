"""
BrowserStack Test Management client

Wraps the v2 REST API for the operations the test case workflow needs:
folders, test cases, test runs and test plans of one project.
"""

import json
import requests
from typing import Any, Dict, List, Optional
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from qa_casegen.config.settings import Config
from qa_casegen.models.browserstack_models import (
    BrowserStackFolder,
    CreatedTestCase,
    TestPlan,
    TestRun,
)
from qa_casegen.models.testcase_models import QaTestCase
from qa_casegen.utils.exceptions import BrowserStackClientException, ErrorCode
from qa_casegen.utils.helpers import safe_get
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)


def _json_body(response: requests.Response) -> Any:
    """Parsed JSON body, or None when the body is not JSON"""
    try:
        return response.json()
    except ValueError:
        return None


class BrowserStackClient:
    """Client for BrowserStack Test Management API"""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        """
        Initialize BrowserStack client

        Args:
            config: Application configuration
            session: Pre-built session (default: session with retry logic)
        """
        self.base_url = config.browserstack.api_url.rstrip('/')
        self.project_id = config.browserstack.project_id
        self.timeout = config.browserstack.timeout
        self.session = session or self._create_session()
        self.session.auth = (config.browserstack.username, config.browserstack.access_key)
        self.session.headers.update({'Content-Type': 'application/json'})

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry logic (idempotent methods only)"""
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=2,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD", "OPTIONS"]
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _request(self, method: str, path: str, action: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send a request to the project API

        Raises:
            BrowserStackClientException: Categorized by HTTP status
        """
        url = f"{self.base_url}/projects/{self.project_id}{path}"
        try:
            response = self.session.request(method, url, json=body, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise self._categorize(e.response, action, e) from e
        except requests.exceptions.RequestException as e:
            raise BrowserStackClientException(
                f"{action}: {str(e)}", original_exception=e
            ) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise BrowserStackClientException(
                f"{action}: Invalid JSON in response",
                error_code=ErrorCode.INVALID_RESPONSE,
                original_exception=e
            ) from e

    @staticmethod
    def _categorize(response: requests.Response, action: str, error: Exception) -> BrowserStackClientException:
        status = response.status_code
        context = {'status_code': status}
        logger.error(f"BrowserStack API Error ({action}): {status} - {response.text[:200]}")

        if status in (401, 403):
            return BrowserStackClientException(
                f"{action}: Authentication failed",
                error_code=ErrorCode.AUTH_FAILED, context=context, original_exception=error
            )
        if status == 404:
            return BrowserStackClientException(
                f"{action}: Resource not found", context=context, original_exception=error
            )
        if status == 409:
            return BrowserStackClientException(
                f"{action}: Duplicate resource (conflict)", context=context, original_exception=error
            )
        if status == 429:
            return BrowserStackClientException(
                f"{action}: Rate limit exceeded",
                error_code=ErrorCode.RATE_LIMIT_EXCEEDED, context=context, original_exception=error
            )
        data = _json_body(response)
        if status == 400:
            if data is None:
                data = response.text
            details = data.get('errors', data) if isinstance(data, dict) else data
            return BrowserStackClientException(
                f"{action}: Bad Request - {json.dumps(details) if not isinstance(details, str) else details}",
                error_code=ErrorCode.INVALID_REQUEST, context=context, original_exception=error
            )

        message = response.reason or str(error)
        if isinstance(data, dict) and data.get('message'):
            message = data['message']
        return BrowserStackClientException(f"{action}: {message}", context=context, original_exception=error)

    # --- Folders ---

    def list_folders(self) -> List[BrowserStackFolder]:
        """List all folders in the project"""
        data = self._request("GET", "/folders", "Failed to list folders")
        return [BrowserStackFolder.from_api(folder) for folder in data.get('folders') or []]

    def folder_exists(self, folder_id: int) -> bool:
        """True when the folder id exists in the project"""
        return any(folder.id == folder_id for folder in self.list_folders())

    def find_subfolder(self, parent_id: int, name: str) -> Optional[BrowserStackFolder]:
        """Find a direct child of parent_id by case-insensitive name"""
        for folder in self.list_folders():
            if folder.parent_id == parent_id and folder.name.lower() == name.lower():
                return folder
        return None

    def create_folder(self, name: str, parent_id: int) -> BrowserStackFolder:
        """Create a folder under parent_id"""
        data = self._request(
            "POST", "/folders", f"Failed to create folder '{name}'",
            body={'folder': {'name': name, 'parent_id': parent_id}}
        )
        if not isinstance(data.get('folder'), dict) or 'id' not in data['folder']:
            raise BrowserStackClientException(
                f"Folder '{name}' created without id", error_code=ErrorCode.INVALID_RESPONSE
            )
        folder = BrowserStackFolder.from_api(data['folder'])
        logger.info(f"Created folder: {folder.name} (ID: {folder.id})")
        return folder

    def find_or_create_subfolder(self, parent_id: int, name: str) -> BrowserStackFolder:
        """Reuse the named subfolder of parent_id, creating it when missing"""
        existing = self.find_subfolder(parent_id, name)
        if existing:
            logger.info(f"Using existing subfolder: {name} (ID: {existing.id})")
            return existing
        logger.info(f"Creating new subfolder: {name}")
        return self.create_folder(name, parent_id)

    # --- Test cases ---

    def create_test_case(self, folder_id: int, test_case: QaTestCase) -> CreatedTestCase:
        """Create a test case in a folder"""
        data = self._request(
            "POST", f"/folders/{folder_id}/test-cases",
            f"Failed to create test case '{test_case.name}'",
            body={'test_case': test_case.to_payload()}
        )
        # Response is nested: {"data": {"test_case": {...}}}
        created = safe_get(data, 'data', 'test_case', default={})
        result = CreatedTestCase(
            identifier=str(created.get('identifier') or created.get('id') or ''),
            title=created.get('title') or created.get('name') or test_case.name,
            folder_id=folder_id,
        )
        if not result.identifier:
            raise BrowserStackClientException(
                f"Test case '{test_case.name}' created without identifier",
                error_code=ErrorCode.INVALID_RESPONSE
            )
        logger.info(f"Created test case: {result.identifier} - {result.title}")
        return result

    # --- Test runs and plans ---

    def list_test_runs(self) -> List[TestRun]:
        """List all test runs in the project"""
        data = self._request("GET", "/test-runs", "Failed to list test runs")
        return [TestRun.from_api(run) for run in data.get('test_runs') or []]

    def find_test_run_by_task_id(self, task_id: str) -> Optional[TestRun]:
        """Find the test run whose name is or contains the task id"""
        for run in self.list_test_runs():
            if run.name and (run.name == task_id or task_id in run.name):
                return run
        return None

    def find_test_plan_by_name(self, name: str) -> Optional[TestPlan]:
        """
        Find a test plan by case-insensitive name

        Lookup failures are logged and treated as "no plan"; a missing plan
        never blocks creating the test run.
        """
        try:
            data = self._request("GET", "/test-plans", "Failed to list test plans")
        except BrowserStackClientException as e:
            logger.warning(f"Could not search test plans: {e.message}")
            return None

        for plan in data.get('test_plans') or []:
            if str(plan.get('name', '')).lower() == name.lower():
                return TestPlan(identifier=str(plan['identifier']), name=plan['name'])
        return None

    def create_test_run(
        self,
        name: str,
        description: Optional[str] = None,
        test_plan_id: Optional[str] = None
    ) -> TestRun:
        """Create a test run, optionally linked to a test plan"""
        test_run: Dict[str, Any] = {
            'name': name,
            'description': description or f"Test run for {name}",
        }
        if test_plan_id:
            test_run['test_plan_id'] = test_plan_id

        data = self._request(
            "POST", "/test-runs", f"Failed to create test run '{name}'",
            body={'test_run': test_run}
        )
        run = TestRun.from_api(data.get('test_run') or {})
        plan_info = f" (linked to {test_plan_id})" if test_plan_id else ""
        logger.info(f"Created test run: {run.identifier} - {run.name}{plan_info}")
        return run

    def find_or_create_test_run(
        self,
        task_id: str,
        task_title: Optional[str] = None,
        sprint_name: Optional[str] = None
    ) -> TestRun:
        """Reuse the task's test run or create one linked to the sprint's test plan"""
        existing = self.find_test_run_by_task_id(task_id)
        if existing:
            logger.info(f"Using existing test run: {existing.identifier}", extra={'task_id': task_id})
            return existing

        test_plan_id = None
        if sprint_name:
            plan = self.find_test_plan_by_name(sprint_name)
            if plan:
                test_plan_id = plan.identifier
                logger.info(f"Found matching test plan: {plan.identifier} ({plan.name})")
            else:
                logger.warning(f"No test plan found for sprint: {sprint_name}")

        return self.create_test_run(task_id, task_title, test_plan_id)

    def update_test_run_cases(self, test_run_id: str, test_case_ids: List[str]) -> None:
        """Replace the test case list of a test run"""
        self._request(
            "PATCH", f"/test-runs/{test_run_id}/update",
            f"Failed to update test run {test_run_id}",
            body={'test_run': {'test_cases': list(test_case_ids)}}
        )
        logger.info(f"Linked {len(test_case_ids)} test case(s) to test run {test_run_id}")
