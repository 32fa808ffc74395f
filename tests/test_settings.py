from __future__ import annotations

import pytest

from qa_casegen.config.settings import Config
from qa_casegen.utils.exceptions import InvalidConfigError, MissingConfigError

CREDENTIALS = {
    "JIRA_SERVER": "https://example.atlassian.net",
    "JIRA_EMAIL": "qa@example.com",
    "JIRA_API_TOKEN": "jira-secret",
    "BROWSERSTACK_USERNAME": "qa-bot",
    "BROWSERSTACK_ACCESS_KEY": "bs-secret",
    "BROWSERSTACK_PROJECT_ID": "PR-1",
    "GEMINI_API_KEY": "gemini-secret",
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(CREDENTIALS) + ["BATCH_TIMEOUT_SECONDS", "AI_MIN_TEST_CASES", "AI_MAX_TEST_CASES"]:
        monkeypatch.delenv(name, raising=False)


def test_defaults_without_environment() -> None:
    config = Config()

    assert config.batch.timeout_seconds is None
    assert config.batch.min_test_cases == 2
    assert config.batch.max_test_cases == 5
    assert config.resolvers.rules_path.name == "rules.config.json"
    assert config.resolvers.strict_folder_mapping is True


def test_batch_timeout_is_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BATCH_TIMEOUT_SECONDS", "90")

    assert Config().batch.timeout_seconds == 90.0


def test_blank_batch_timeout_means_no_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BATCH_TIMEOUT_SECONDS", " ")

    assert Config().batch.timeout_seconds is None


def test_non_positive_timeout_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BATCH_TIMEOUT_SECONDS", "0")

    with pytest.raises(InvalidConfigError):
        Config()


def test_test_case_bounds_must_be_ordered(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AI_MIN_TEST_CASES", "6")
    monkeypatch.setenv("AI_MAX_TEST_CASES", "3")

    with pytest.raises(InvalidConfigError):
        Config()


def test_jira_server_must_be_https(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_SERVER", "http://example.atlassian.net")

    with pytest.raises(InvalidConfigError, match="https://"):
        Config()


def test_validate_lists_missing_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRA_SERVER", CREDENTIALS["JIRA_SERVER"])

    with pytest.raises(MissingConfigError) as exc_info:
        Config().validate()

    missing = exc_info.value.context["missing"]
    assert "JIRA_SERVER" not in missing
    assert "GEMINI_API_KEY" in missing
    assert "BROWSERSTACK_ACCESS_KEY" in missing


def test_validate_passes_with_all_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in CREDENTIALS.items():
        monkeypatch.setenv(name, value)

    assert Config().validate() is True


def test_manual_mode_does_not_need_gemini(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in CREDENTIALS.items():
        if name != "GEMINI_API_KEY":
            monkeypatch.setenv(name, value)

    assert Config().validate(require_gemini=False) is True
    with pytest.raises(MissingConfigError) as exc_info:
        Config().validate()
    assert exc_info.value.context["missing"] == ["GEMINI_API_KEY"]


def test_browserstack_only_validation(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("BROWSERSTACK_USERNAME", "BROWSERSTACK_ACCESS_KEY", "BROWSERSTACK_PROJECT_ID"):
        monkeypatch.setenv(name, CREDENTIALS[name])

    assert Config().validate(require_jira=False, require_gemini=False) is True


def test_to_dict_leaves_out_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    for name, value in CREDENTIALS.items():
        monkeypatch.setenv(name, value)

    rendered = str(Config().to_dict())

    assert "jira-secret" not in rendered
    assert "bs-secret" not in rendered
    assert "gemini-secret" not in rendered
    assert "qa@example.com" in rendered
