from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from qa_casegen.models.browserstack_models import BrowserStackFolder, CreatedTestCase, TestRun
from qa_casegen.models.jira_models import Ticket
from qa_casegen.services.prompt_builder import PromptBuilder
from qa_casegen.services.prompt_workflow import PromptWorkflow
from qa_casegen.services.testcase_importer import TestCaseImporter
from qa_casegen.services.ticket_processor import TicketProcessor
from qa_casegen.utils.exceptions import (
    BrowserStackClientException,
    EmptyTitleError,
    ErrorCode,
    JiraTicketNotFoundException,
    TaskProcessingError,
    TestCaseImportException,
)


def _case(name: str) -> dict:
    return {
        "name": name,
        "description": f"{name} description",
        "test_case_steps": [{"step": "Do it", "result": "It is done"}],
    }


class FakeJira:
    def __init__(self, tickets: dict[str, Ticket]) -> None:
        self.tickets = tickets

    def get_ticket(self, task_id: str) -> Ticket:
        if task_id not in self.tickets:
            raise JiraTicketNotFoundException(f"Failed to fetch ticket {task_id}: Task not found")
        return self.tickets[task_id]


class FakeGemini:
    def __init__(self, response: str) -> None:
        self.response = response
        self.prompts: list[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.response


class FakeBrowserStack:
    def __init__(self, failing_cases: tuple[str, ...] = (), fail_test_run: bool = False) -> None:
        self.failing_cases = failing_cases
        self.fail_test_run = fail_test_run
        self.folders: list[tuple[int, str]] = []
        self.created: list[tuple[int, str]] = []
        self.test_runs: list[tuple[str, str, str | None]] = []
        self.linked: list[tuple[str, list[str]]] = []

    def find_or_create_subfolder(self, parent_id: int, name: str) -> BrowserStackFolder:
        self.folders.append((parent_id, name))
        return BrowserStackFolder(id=900, name=name, parent_id=parent_id)

    def create_test_case(self, folder_id: int, test_case) -> CreatedTestCase:
        if test_case.name in self.failing_cases:
            raise BrowserStackClientException(
                f"Failed to create test case '{test_case.name}': Bad Request",
                context={"status_code": 400},
            )
        self.created.append((folder_id, test_case.name))
        return CreatedTestCase(identifier=f"TC-{len(self.created)}", title=test_case.name, folder_id=folder_id)

    def find_or_create_test_run(self, task_id: str, title: str, sprint_name: str | None) -> TestRun:
        if self.fail_test_run:
            raise BrowserStackClientException("Failed to create test run: Authentication failed",
                                              error_code=ErrorCode.AUTH_FAILED)
        self.test_runs.append((task_id, title, sprint_name))
        return TestRun(identifier="TR-1", name=task_id)

    def update_test_run_cases(self, test_run_id: str, test_case_ids: list[str]) -> None:
        self.linked.append((test_run_id, list(test_case_ids)))


TICKET = Ticket(id="PA-1", title="Onsite heatmap export", body="Export heatmaps as PNG", sprint_name="Sprint 42")


def _processor(resolver, folder_mapper, output_dir: Path, response: str,
               browserstack: FakeBrowserStack | None = None, tickets: dict | None = None):
    workflow = PromptWorkflow(
        jira_client=FakeJira(tickets if tickets is not None else {"PA-1": TICKET}),
        rule_resolver=resolver,
        folder_mapper=folder_mapper,
        prompt_builder=PromptBuilder(output_dir),
        importer=TestCaseImporter(),
        browserstack_client=browserstack or FakeBrowserStack(),
        sleep=lambda _: None,
    )
    return TicketProcessor(workflow=workflow, gemini_client=FakeGemini(response), sleep=lambda _: None)


def test_creates_test_cases_in_ticket_subfolder(resolver, folder_mapper, tmp_path) -> None:
    browserstack = FakeBrowserStack()
    response = json.dumps([_case("Export works"), _case("Export denied")])
    processor = _processor(resolver, folder_mapper, tmp_path, response, browserstack)

    outcome = processor.process("PA-1")

    assert outcome.succeeded
    assert outcome.test_cases_created == 2
    assert browserstack.folders == [(103, "PA-1 - Onsite heatmap export")]
    assert browserstack.created == [(900, "Export works"), (900, "Export denied")]
    assert browserstack.test_runs == [("PA-1", "Onsite heatmap export", "Sprint 42")]
    assert browserstack.linked == [("TR-1", ["TC-1", "TC-2"])]


def test_prompt_and_response_are_saved(resolver, folder_mapper, tmp_path) -> None:
    response = json.dumps([_case("Export works")])
    processor = _processor(resolver, folder_mapper, tmp_path, response)

    processor.process("PA-1")

    prompts = list((tmp_path / "prompts").glob("prompt-PA-1-*.md"))
    assert len(prompts) == 1
    prompt = prompts[0].read_text(encoding="utf-8")
    assert "**Analytics Type:** onsite-analytics" in prompt
    assert "# onsite-analytics rules" in prompt
    assert (tmp_path / "responses" / "response-PA-1.json").read_text(encoding="utf-8") == response


def test_single_test_case_failure_is_not_fatal(resolver, folder_mapper, tmp_path) -> None:
    browserstack = FakeBrowserStack(failing_cases=("Broken",))
    response = json.dumps([_case("Works"), _case("Broken")])
    processor = _processor(resolver, folder_mapper, tmp_path, response, browserstack)

    outcome = processor.process("PA-1")

    assert outcome.succeeded
    assert outcome.test_cases_created == 1
    assert outcome.message.endswith("1 failed")
    assert browserstack.linked == [("TR-1", ["TC-1"])]


def test_no_created_test_cases_is_failure(resolver, folder_mapper, tmp_path) -> None:
    browserstack = FakeBrowserStack(failing_cases=("Broken",))
    processor = _processor(resolver, folder_mapper, tmp_path, json.dumps([_case("Broken")]), browserstack)

    outcome = processor.process("PA-1")

    assert not outcome.succeeded
    assert browserstack.test_runs == []


def test_test_run_failure_does_not_fail_ticket(resolver, folder_mapper, tmp_path) -> None:
    browserstack = FakeBrowserStack(fail_test_run=True)
    processor = _processor(resolver, folder_mapper, tmp_path, json.dumps([_case("Works")]), browserstack)

    assert processor.process("PA-1").succeeded


def test_invalid_ai_response_raises(resolver, folder_mapper, tmp_path) -> None:
    processor = _processor(resolver, folder_mapper, tmp_path, "I could not generate tests")

    with pytest.raises(TestCaseImportException):
        processor.process("PA-1")


def test_unknown_ticket_raises(resolver, folder_mapper, tmp_path) -> None:
    processor = _processor(resolver, folder_mapper, tmp_path, "[]", tickets={})

    with pytest.raises(JiraTicketNotFoundException):
        processor.process("PA-404")


def test_empty_title_raises(resolver, folder_mapper, tmp_path) -> None:
    tickets = {"PA-2": Ticket(id="PA-2", title="  ")}
    processor = _processor(resolver, folder_mapper, tmp_path, "[]", tickets=tickets)

    with pytest.raises(EmptyTitleError):
        processor.process("PA-2")


def test_missing_rule_file_raises(resolver, folder_mapper, rule_dir, tmp_path) -> None:
    (rule_dir / "rules" / "onsite-analytics.md").unlink()
    processor = _processor(resolver, folder_mapper, tmp_path / "out", json.dumps([_case("Works")]))

    with pytest.raises(TaskProcessingError) as exc_info:
        processor.process("PA-1")
    assert exc_info.value.error_code == ErrorCode.RULE_FILE_NOT_FOUND


def test_awaiting_processor_runs_in_thread(resolver, folder_mapper, tmp_path) -> None:
    processor = _processor(resolver, folder_mapper, tmp_path, json.dumps([_case("Works")]))

    outcome = asyncio.run(processor("PA-1"))

    assert outcome.succeeded
