# ==============================================
# AI response -> validated test cases
# ==============================================

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from qa_casegen.models.testcase_models import QaTestCase
from qa_casegen.utils.exceptions import ErrorCode, TestCaseImportException
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code block (```json ... ```) if present"""
    text = text.strip()
    if text.startswith('```'):
        # Remove opening ```json or ```
        text = text.split('\n', 1)[1] if '\n' in text else text[3:]
        # Remove closing ```
        if text.rstrip().endswith('```'):
            text = text.rstrip().rsplit('```', 1)[0]
    return text.strip()


class TestCaseImporter:
    """
    Validates AI-generated test cases

    Two response shapes are accepted:
        single: [ {test case}, ... ]
        batch:  { "PA-1": [ {test case}, ... ], "PA-2": [...] }
    """
    __test__ = False

    def parse(self, text: str, source: str = "response") -> Any:
        """
        Decode JSON from raw response text

        Raises:
            TestCaseImportException: INVALID_JSON when the text is not JSON
        """
        try:
            return json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            raise TestCaseImportException(
                f"Invalid JSON in {source}: {e.msg} (line {e.lineno})",
                error_code=ErrorCode.INVALID_JSON,
                original_exception=e
            ) from e

    def import_single(self, data: Any, source: str = "response") -> List[QaTestCase]:
        """Validate a single-task array of test cases"""
        if not isinstance(data, list):
            raise TestCaseImportException(
                f"Expected JSON array, got {type(data).__name__} in {source}"
            )
        return [self._validate(item, index) for index, item in enumerate(data)]

    def import_batch(self, data: Any, source: str = "response") -> Dict[str, List[QaTestCase]]:
        """Validate a batch object keyed by task id"""
        if not isinstance(data, dict):
            raise TestCaseImportException(
                f"Expected JSON object with task IDs as keys, got {type(data).__name__} in {source}"
            )
        result: Dict[str, List[QaTestCase]] = {}
        for task_id, items in data.items():
            if not isinstance(items, list):
                raise TestCaseImportException(
                    f"Expected array of test cases for task {task_id}, got {type(items).__name__}",
                    context={'task_id': task_id}
                )
            result[task_id] = [self._validate(item, index, task_id) for index, item in enumerate(items)]
        return result

    def import_for_task(self, text: str, task_id: str, source: str = "response") -> List[QaTestCase]:
        """
        Test cases for one task from a response in either shape

        Raises:
            TestCaseImportException: If the response is invalid, has no entry
                for the task, or contains no test cases
        """
        data = self.parse(text, source)
        if isinstance(data, dict):
            batch = self.import_batch(data, source)
            if task_id not in batch:
                raise TestCaseImportException(
                    f"No test cases for task {task_id} in batch {source}",
                    context={'task_id': task_id, 'tasks': list(batch)}
                )
            test_cases = batch[task_id]
        else:
            test_cases = self.import_single(data, source)

        if not test_cases:
            raise TestCaseImportException(
                f"No test cases found in {source}", context={'task_id': task_id}
            )
        logger.info(f"Imported {len(test_cases)} test case(s)", extra={'task_id': task_id})
        return test_cases

    def import_file(self, path: Union[str, Path], task_id: str) -> List[QaTestCase]:
        """Test cases for one task from a response file saved on disk"""
        path = Path(path)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise TestCaseImportException(
                f"Cannot read response file: {path}", original_exception=e
            ) from e

        return self.import_for_task(text, task_id, source=str(path))

    @staticmethod
    def _validate(item: Any, index: int, task_id: Optional[str] = None) -> QaTestCase:
        prefix = f"Task {task_id}, " if task_id else ""
        position = f"{prefix}Test case #{index + 1}"

        if not isinstance(item, dict):
            raise TestCaseImportException(f"{position}: Expected object, got {type(item).__name__}")
        try:
            return QaTestCase.model_validate(item)
        except ValidationError as e:
            problems = "; ".join(
                f"'{'.'.join(str(part) for part in error['loc'])}' {error['msg']}"
                for error in e.errors()
            )
            raise TestCaseImportException(
                f"{position}: {problems}",
                context={'task_id': task_id} if task_id else None,
                original_exception=e
            ) from e
