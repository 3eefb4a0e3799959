"""Rule compiler — declarative rules to ready-to-run matchers.

All-or-nothing: one bad pattern or duplicated name fails the whole set.
"""

from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import Iterable

from .errors import DuplicateRuleError, InvalidPatternError
from .types import RuleDefinition, RuleStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CompiledRule:
    """A rule paired with its compiled matcher."""
    definition: RuleDefinition
    regex: re.Pattern[str]
    index: int   # declaration order, the tie-break within a severity

    @property
    def name(self) -> str:
        return self.definition.name


def compile_rules(
    rules: Iterable[RuleDefinition],
    case_sensitive: bool = False,
) -> tuple[list[CompiledRule], dict[str, RuleStats]]:
    """Compile *rules* and create one zeroed ``RuleStats`` per rule.

    Patterns match case-insensitively unless the rule (or, when the rule
    leaves it unset, *case_sensitive*) says otherwise.

    Raises:
        InvalidPatternError: a pattern is not a valid regular expression.
        DuplicateRuleError: two rules share a name.
    """
    compiled: list[CompiledRule] = []
    stats: dict[str, RuleStats] = {}

    for index, rule in enumerate(rules):
        if rule.name in stats:
            raise DuplicateRuleError(rule.name)

        sensitive = case_sensitive if rule.case_sensitive is None else rule.case_sensitive
        flags = 0 if sensitive else re.IGNORECASE
        try:
            regex = re.compile(rule.pattern, flags)
        except re.error as exc:
            raise InvalidPatternError(rule.name, str(exc)) from exc

        compiled.append(CompiledRule(definition=rule, regex=regex, index=index))
        stats[rule.name] = RuleStats(severity_label=rule.severity.label)

    logger.debug("Compiled %d rules", len(compiled))
    return compiled, stats
