from __future__ import annotations

from pathlib import Path

import pytest

from qa_casegen.models.classification_models import RulesConfigFile
from qa_casegen.models.folder_models import FolderMapping
from qa_casegen.resolvers.folder_mapper import FolderMapper
from qa_casegen.resolvers.rule_resolver import RuleResolver

PROJECT_ROOT = Path(__file__).resolve().parent.parent

DOMAINS = ["event-conversion", "homepage", "onsite-analytics", "usage-analytics"]


def make_rules_config(**overrides) -> RulesConfigFile:
    raw = {
        "defaultDomain": "other",
        "rules": [
            {"domain": "event-conversion", "priority": 20, "keywords": ["conversion event"], "regex": [r"\bfunnel\b"]},
            {"domain": "homepage", "priority": 10, "keywords": ["homepage", "home page"]},
            {"domain": "onsite-analytics", "priority": 10, "keywords": ["onsite", "heatmap"]},
            {"domain": "usage-analytics", "priority": 10, "keywords": ["usage", "usage report"]},
        ],
        "ruleFiles": {domain: f"rules/{domain}.md" for domain in DOMAINS + ["other"]},
    }
    if "rules" in overrides and "ruleFiles" not in overrides:
        enabled = [rule["domain"] for rule in overrides["rules"] if rule.get("enabled", True)]
        overrides["ruleFiles"] = {domain: f"rules/{domain}.md" for domain in enabled + ["other"]}
    raw.update(overrides)
    return RulesConfigFile.model_validate(raw)


def make_mappings() -> list[FolderMapping]:
    return [
        FolderMapping(domain=domain, folder_id=100 + i, folder_name=domain.replace("-", " ").title())
        for i, domain in enumerate(DOMAINS, start=1)
    ]


@pytest.fixture
def rule_dir(tmp_path: Path) -> Path:
    rules = tmp_path / "rules"
    rules.mkdir()
    for domain in DOMAINS + ["other"]:
        (rules / f"{domain}.md").write_text(f"# {domain} rules\n- rule one\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def resolver(rule_dir: Path) -> RuleResolver:
    return RuleResolver(make_rules_config(), base_dir=rule_dir)


@pytest.fixture
def folder_mapper() -> FolderMapper:
    return FolderMapper(make_mappings())
