# ==============================================
# Classification rule models
# ==============================================

import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Analytics domains are plain tags whose closed set is defined by the rules config
AnalyticsDomain = str


class RuleDefinition(BaseModel):
    """One classification rule as written in rules.config.json"""
    domain: AnalyticsDomain = Field(..., min_length=1, description="Analytics domain tag")
    priority: int = Field(0, description="Higher priority wins among matching rules")
    keywords: List[str] = Field(default_factory=list, description="Case-insensitive substrings")
    regex: List[str] = Field(default_factory=list, description="Case-insensitive regex patterns")
    enabled: bool = Field(True, description="Disabled rules are skipped at load time")

    @model_validator(mode='after')
    def check_has_patterns(self) -> 'RuleDefinition':
        if not any(k.strip() for k in self.keywords) and not self.regex:
            raise ValueError(f"Rule for domain '{self.domain}' has no keywords or regex patterns")
        return self


class RulesConfigFile(BaseModel):
    """Top-level shape of rules.config.json"""
    model_config = ConfigDict(populate_by_name=True)

    default_domain: AnalyticsDomain = Field(..., alias="defaultDomain", min_length=1)
    rules: List[RuleDefinition] = Field(default_factory=list)
    rule_files: Dict[AnalyticsDomain, str] = Field(default_factory=dict, alias="ruleFiles")


@dataclass(frozen=True)
class ClassificationRule:
    """Compiled rule; order is the declaration index used as the final tie-break"""
    domain: AnalyticsDomain
    priority: int
    keywords: Tuple[str, ...]
    keyword_patterns: Tuple[re.Pattern, ...]
    regex_patterns: Tuple[re.Pattern, ...]
    order: int


@dataclass(frozen=True)
class Classification:
    """Outcome of resolving one title, with the evidence behind it"""
    domain: AnalyticsDomain
    rule: Optional[ClassificationRule] = None
    matched_text: Optional[str] = None
    keyword_match: bool = False
    # True when another rule tied on priority and match length
    ambiguous: bool = False
    tied_domains: Tuple[AnalyticsDomain, ...] = ()

    @property
    def is_fallback(self) -> bool:
        return self.rule is None
