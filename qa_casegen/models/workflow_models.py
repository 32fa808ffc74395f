# ==============================================
# Prompt workflow results
# ==============================================

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from qa_casegen.models.browserstack_models import CreatedTestCase
from qa_casegen.models.classification_models import AnalyticsDomain, Classification
from qa_casegen.models.jira_models import Ticket
from qa_casegen.models.testcase_models import QaTestCase


@dataclass(frozen=True)
class GeneratedPrompt:
    """Prompt for one ticket, saved under output/prompts"""
    ticket: Ticket
    classification: Classification
    prompt: str
    prompt_path: Path

    @property
    def analytics_type(self) -> AnalyticsDomain:
        return self.classification.domain


@dataclass(frozen=True)
class BatchPromptEntry:
    ticket: Ticket
    analytics_type: AnalyticsDomain
    rule_content: str


@dataclass(frozen=True)
class BatchPrompt:
    """One prompt covering several tickets; the answer is keyed by task id"""
    prompt: str
    task_ids: Tuple[str, ...]
    prompt_path: Path


@dataclass
class UploadResult:
    """Test cases pushed into a ticket's BrowserStack subfolder"""
    folder_id: int
    folder_name: str
    created: List[CreatedTestCase] = field(default_factory=list)
    failed_names: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.created)


@dataclass(frozen=True)
class ImportedResponse:
    """A pasted AI response after import and upload"""
    task_id: str
    response_path: Path
    test_cases: List[QaTestCase]
    upload: UploadResult
