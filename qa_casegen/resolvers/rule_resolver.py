# ==============================================
# Ticket title -> analytics domain classification
# ==============================================

import json
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import ValidationError

from qa_casegen.models.classification_models import (
    AnalyticsDomain,
    Classification,
    ClassificationRule,
    RulesConfigFile,
)
from qa_casegen.utils.exceptions import ConfigurationError, ClassificationError, EmptyTitleError
from qa_casegen.utils.logger import get_logger

logger = get_logger(__name__)

_Hit = Tuple[ClassificationRule, str]


def build_rules(rules_config: RulesConfigFile) -> List[ClassificationRule]:
    """
    Normalize rule definitions and compile regex patterns

    Keywords compile to escaped case-insensitive patterns, so matched text is
    always a slice of the original title. Disabled rules are dropped;
    declaration order is kept.

    Raises:
        ConfigurationError: If a regex pattern does not compile
    """
    compiled: List[ClassificationRule] = []
    for rule in rules_config.rules:
        if not rule.enabled:
            continue
        keywords = tuple(k.strip() for k in rule.keywords if k.strip())
        try:
            patterns = tuple(re.compile(p, re.IGNORECASE) for p in rule.regex)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid regex in rule for '{rule.domain}': {e}",
                context={'domain': rule.domain},
                original_exception=e
            ) from e
        compiled.append(
            ClassificationRule(
                domain=rule.domain,
                priority=rule.priority,
                keywords=keywords,
                keyword_patterns=tuple(re.compile(re.escape(k), re.IGNORECASE) for k in keywords),
                regex_patterns=patterns,
                order=len(compiled),
            )
        )
    return compiled


class RuleResolver:
    """
    Classifier mapping a ticket title to exactly one analytics domain

    Selection among matching rules:
    1. highest priority
    2. longest matched text (specific keywords beat generic ones)
    3. first rule in configuration declaration order

    A title that matches nothing resolves to the configured default domain.
    The resolver is immutable after construction and safe to share between
    concurrent batches.
    """

    def __init__(self, rules_config: RulesConfigFile, base_dir: Optional[Path] = None):
        """
        Initialize resolver from a parsed rules config

        Args:
            rules_config: Parsed rules.config.json
            base_dir: Directory rule file paths are relative to (default: cwd)
        """
        self._rules: Tuple[ClassificationRule, ...] = tuple(build_rules(rules_config))
        self._default_domain = rules_config.default_domain
        self._base_dir = Path(base_dir) if base_dir else Path.cwd()

        domains: List[AnalyticsDomain] = []
        for rule in self._rules:
            if rule.domain not in domains:
                domains.append(rule.domain)
        if self._default_domain not in domains:
            domains.append(self._default_domain)
        self._domains: Tuple[AnalyticsDomain, ...] = tuple(domains)

        unknown = sorted(set(rules_config.rule_files) - set(self._domains))
        if unknown:
            raise ConfigurationError(
                f"Rule files configured for unknown domains: {', '.join(unknown)}",
                context={'domains': unknown}
            )
        self._rule_files = dict(rules_config.rule_files)

        logger.info(
            f"Loaded {len(self._rules)} classification rules for {len(self._domains)} domains "
            f"(default: {self._default_domain})"
        )

    @classmethod
    def from_file(cls, config_path: Union[str, Path], base_dir: Optional[Path] = None) -> 'RuleResolver':
        """
        Load resolver from a JSON rules config file

        Raises:
            ConfigurationError: If the file is missing, not JSON, or invalid
        """
        config_path = Path(config_path)
        try:
            raw = json.loads(config_path.read_text(encoding='utf-8'))
            rules_config = RulesConfigFile.model_validate(raw)
        except FileNotFoundError as e:
            raise ConfigurationError(
                f"Rules config not found: {config_path}", original_exception=e
            ) from e
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(
                f"Invalid rules config {config_path}: {e}", original_exception=e
            ) from e
        return cls(rules_config, base_dir=base_dir)

    # --- Classification ---

    def resolve(self, title: str) -> AnalyticsDomain:
        """
        Resolve analytics domain from a ticket title

        Args:
            title: Ticket title (non-empty)

        Returns:
            Winning domain, or the default domain when nothing matches

        Raises:
            EmptyTitleError: If the title is empty or whitespace only
        """
        return self.resolve_detailed(title).domain

    def resolve_detailed(self, title: str) -> Classification:
        """Resolve a title and return the winning rule and tie-break evidence"""
        self._check_title(title)

        hits = [hit for hit in (self._longest_hit(rule, title) for rule in self._rules) if hit]
        if not hits:
            return Classification(domain=self._default_domain)

        def rank(hit: _Hit) -> Tuple[int, int]:
            return hit[0].priority, len(hit[1])

        best = max(rank(hit) for hit in hits)
        # hits are in declaration order, so the first top-ranked hit wins
        top = [hit for hit in hits if rank(hit) == best]
        rule, matched_text = top[0]
        tied = tuple(hit[0].domain for hit in top[1:])

        if tied:
            logger.debug(
                f"Tie-break for '{title}': '{rule.domain}' chosen over {', '.join(tied)} "
                f"by declaration order"
            )

        return Classification(
            domain=rule.domain,
            rule=rule,
            matched_text=matched_text,
            keyword_match=True,
            ambiguous=bool(tied),
            tied_domains=tied,
        )

    def has_keyword_match(self, title: str) -> bool:
        """True when the title matches at least one rule (not just the default)"""
        return self.resolve_detailed(title).keyword_match

    @staticmethod
    def _check_title(title: str) -> None:
        if not isinstance(title, str):
            raise ClassificationError(
                f"Ticket title must be a string, got {type(title).__name__}"
            )
        if not title.strip():
            raise EmptyTitleError("Ticket title is empty")

    @staticmethod
    def _longest_hit(rule: ClassificationRule, title: str) -> Optional[_Hit]:
        """Longest text matched by any pattern of the rule, or None"""
        best: Optional[_Hit] = None

        for pattern in rule.keyword_patterns:
            match = pattern.search(title)
            if match and (best is None or len(match.group(0)) > len(best[1])):
                best = (rule, match.group(0))

        for pattern in rule.regex_patterns:
            for match in pattern.finditer(title):
                text = match.group(0)
                # Zero-width matches are not evidence of a keyword
                if text and (best is None or len(text) > len(best[1])):
                    best = (rule, text)

        return best

    # --- Lookups ---

    def get_rule_file_path(self, domain: AnalyticsDomain) -> Path:
        """
        Get rule file path for an analytics domain

        Args:
            domain: Analytics domain

        Returns:
            Absolute path to the rule file

        Raises:
            ConfigurationError: If no rule file is configured for the domain
        """
        relative_path = self._rule_files.get(domain)
        if not relative_path:
            raise ConfigurationError(
                f"No rule file configured for type: {domain}",
                context={'domain': domain}
            )
        return (self._base_dir / relative_path).resolve()

    def get_domains(self) -> Tuple[AnalyticsDomain, ...]:
        """All configured domains in declaration order, default included"""
        return self._domains

    def get_default_domain(self) -> AnalyticsDomain:
        return self._default_domain
