# ==============================================
# Prompt construction and prompt/response files
# ==============================================

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from qa_casegen.models.classification_models import AnalyticsDomain
from qa_casegen.models.jira_models import Ticket
from qa_casegen.models.workflow_models import BatchPromptEntry
from qa_casegen.utils.exceptions import ErrorCode, TaskProcessingError
from qa_casegen.utils.helpers import slugify_filename
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)


class PromptBuilder:
    """Builds the test case generation prompt and keeps prompt/response artifacts on disk"""

    def __init__(self, output_dir: Path, min_test_cases: int = 2, max_test_cases: int = 5):
        self.output_dir = Path(output_dir)
        self.prompts_dir = self.output_dir / "prompts"
        self.responses_dir = self.output_dir / "responses"
        self.min_test_cases = min_test_cases
        self.max_test_cases = max_test_cases

    def read_rule_file(self, rule_file_path: Path) -> str:
        """
        Read product rules for an analytics domain

        Raises:
            TaskProcessingError: RULE_FILE_NOT_FOUND when the file cannot be read
        """
        try:
            return Path(rule_file_path).read_text(encoding='utf-8')
        except OSError as e:
            raise TaskProcessingError(
                f"Rule file not found: {rule_file_path}",
                error_code=ErrorCode.RULE_FILE_NOT_FOUND,
                context={'path': str(rule_file_path)},
                original_exception=e
            ) from e

    def build(self, ticket: Ticket, analytics_type: AnalyticsDomain, rule_content: str) -> str:
        """Prompt asking for a JSON array of test cases for one ticket"""
        description = ticket.body if ticket.has_body() else "(no description)"
        return f"""# Test Case Generation Request

Generate test cases for BrowserStack Test Management based on the task information below.

## Task Information

**Task ID:** {ticket.id}
**Title:** {ticket.title}
**Analytics Type:** {analytics_type}

**Description:**
{description}

## Product Rules

{rule_content}

## Output Format

Return **ONLY** valid JSON (no markdown, no code blocks, no explanation):

[
  {{
    "name": "Test case name (clear and descriptive)",
    "description": "What this test validates",
    "preconditions": "Optional: Any setup required before test",
    "test_case_steps": [
      {{"step": "Action to perform", "result": "Expected outcome"}}
    ],
    "tags": ["{analytics_type}"]
  }}
]

**Important:**
- Generate {self.min_test_cases}-{self.max_test_cases} comprehensive test cases
- Each test case should cover different scenarios
- Steps should be clear and actionable
- Expected results should be specific and verifiable
"""

    def build_batch(self, entries: Sequence[BatchPromptEntry]) -> str:
        """Prompt asking for a JSON object mapping each task id to its test cases"""
        sections = []
        for index, entry in enumerate(entries, start=1):
            ticket = entry.ticket
            description = ticket.body if ticket.has_body() else "(no description)"
            sections.append(f"""### Task {index}: {ticket.id}

**Title:** {ticket.title}
**Analytics Type:** {entry.analytics_type}

**Description:**
{description}

**Product Rules:**
{entry.rule_content}
""")

        first = entries[0]
        example_keys = ", ".join(f'"{entry.ticket.id}"' for entry in entries)
        task_sections = "\n---\n\n".join(sections)
        return f"""# Batch Test Case Generation Request

Generate test cases for BrowserStack Test Management for **{len(entries)} tasks** below.

## Tasks

{task_sections}

## Output Format

Return **ONLY** valid JSON (no markdown, no code blocks, no explanation).

The JSON must be an object where each key is a task ID, and the value is an array of test cases:

{{
  "{first.ticket.id}": [
    {{
      "name": "Test case name (clear and descriptive)",
      "description": "What this test validates",
      "preconditions": "Optional: Any setup required",
      "test_case_steps": [
        {{"step": "Action to perform", "result": "Expected outcome"}}
      ],
      "tags": ["{first.analytics_type}"]
    }}
  ]
}}

**Important:**
- Generate {self.min_test_cases}-{self.max_test_cases} comprehensive test cases per task
- Keys must be exact task IDs: {example_keys}
- Each test case should cover different scenarios
- Steps should be clear and actionable
- Expected results should be specific and verifiable
"""

    def save_prompt(self, task_id: str, prompt: str, timestamp: Optional[str] = None) -> Path:
        """Write prompt to output/prompts/prompt-<id>-<timestamp>.md"""
        timestamp = timestamp or datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')
        return self._write(self.prompts_dir / f"prompt-{slugify_filename(task_id)}-{timestamp}.md", prompt)

    def save_batch_prompt(self, prompt: str, timestamp: Optional[str] = None) -> Path:
        """Write prompt to output/prompts/prompt-batch-<timestamp>.md"""
        timestamp = timestamp or datetime.now(timezone.utc).strftime('%Y%m%d%H%M%S')
        return self._write(self.prompts_dir / f"prompt-batch-{timestamp}.md", prompt)

    def save_response(self, task_id: str, response: str) -> Path:
        """Write raw AI response to output/responses/response-<id>.json"""
        return self._write(self.responses_dir / f"response-{slugify_filename(task_id)}.json", response)

    @staticmethod
    def _write(path: Path, content: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        logger.debug(f"Saved {path}")
        return path
