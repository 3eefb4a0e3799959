"""Obfuscation engine — the main API.

Usage:
    from pii_obfuscator import ObfuscationEngine, DEFAULT_RULES

    engine = ObfuscationEngine(DEFAULT_RULES)    # one per session
    text, events = engine.trace_and_obfuscate("SSN: 123-45-6789")
    print(text)                                  # "SSN: PHANTOM_…"
    print(engine.report().total_substitutions)   # 1

Rules run one after another in severity order (Critical first, declaration
order within a tier), each scanning the output of the previous one.  A value
obfuscated by a higher-severity rule is therefore out of reach of the rules
after it.

An engine holds per-session state (rule stats, token table) and is not
thread-safe; build one per file, connection or batch.
"""

from __future__ import annotations
import logging
import time
from datetime import datetime, timezone
from typing import Iterable

from .compiler import CompiledRule, compile_rules
from .obfuscate import obfuscate_value
from .types import Method, RuleDefinition, TraceEvent, TraceReport
from .vault import TokenTable

logger = logging.getLogger(__name__)


class ObfuscationEngine:
    """Applies a compiled rule set to text and traces every substitution."""

    def __init__(
        self,
        rules: Iterable[RuleDefinition],
        *,
        case_sensitive: bool = False,
    ) -> None:
        compiled, stats = compile_rules(rules, case_sensitive=case_sensitive)
        self._compiled: tuple[CompiledRule, ...] = tuple(compiled)
        # sorted() is stable, so declaration order breaks severity ties
        self._ordered: tuple[CompiledRule, ...] = tuple(
            sorted(compiled, key=lambda r: r.definition.severity)
        )
        self._stats = stats
        self._tokens = TokenTable()
        self._last_event_ns = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def rules(self) -> list[RuleDefinition]:
        """Rule definitions in declaration order."""
        return [r.definition for r in self._compiled]

    @property
    def rule_names(self) -> list[str]:
        """Rule names in application order."""
        return [r.name for r in self._ordered]

    @property
    def token_count(self) -> int:
        return self._tokens.size

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def trace_and_obfuscate(self, text: str) -> tuple[str, list[TraceEvent]]:
        """Obfuscate *text* with every rule, in severity order.

        Returns the transformed text and one event per substitution, grouped
        by rule in application order.
        """
        events: list[TraceEvent] = []
        for rule in self._ordered:
            before = text
            text = self._apply_rule(rule, before, events)
            if text != before:
                self._record_pass(rule.name, before, text)
        return text, events

    def report(self) -> TraceReport:
        """Aggregate the live rule stats.  Never mutates state."""
        total = 0
        removed = 0
        triggered = 0
        breakdown: dict[str, int] = {}

        for stats in self._stats.values():
            total += stats.matches_applied
            removed += stats.characters_removed
            if stats.matches_applied > 0:
                triggered += 1
            breakdown[stats.severity_label] = (
                breakdown.get(stats.severity_label, 0) + stats.matches_applied
            )

        return TraceReport(
            total_substitutions=total,
            total_characters_removed=removed,
            rules_triggered=triggered,
            severity_breakdown=breakdown,
            rule_stats={name: s.copy() for name, s in self._stats.items()},
            generated_at=datetime.now(timezone.utc),
        )

    def reset(self) -> None:
        """Zero every counter and forget minted tokens.  Rules are kept."""
        for stats in self._stats.values():
            stats.matches_applied = 0
            stats.characters_removed = 0
            stats.first_match_time = None
            stats.last_match_time = None
        self._tokens.clear()
        logger.debug("Engine state reset (%d rules kept)", len(self._compiled))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_rule(
        self,
        rule: CompiledRule,
        text: str,
        events: list[TraceEvent],
    ) -> str:
        """One rule pass: collect spans, then rebuild text and events."""
        spans = [(m.start(), m.end()) for m in rule.regex.finditer(text)]
        if not spans:
            return text

        definition = rule.definition
        parts: list[str] = []
        cursor = 0
        byte_cursor = 0
        for start, end in spans:
            value = text[start:end]
            replacement = self._transform(definition, value)
            gap = text[cursor:start]
            parts.append(gap)
            parts.append(replacement)
            cursor = end
            byte_start = byte_cursor + len(gap.encode("utf-8"))
            byte_cursor = byte_start + len(value.encode("utf-8"))
            events.append(TraceEvent(
                rule_name=definition.name,
                severity=definition.severity,
                original_value=value,
                obfuscated_value=replacement,
                start=byte_start,
                end=byte_cursor,
                event_id=self._next_event_id(),
                char_start=start,
                char_end=end,
            ))
        parts.append(text[cursor:])
        return "".join(parts)

    def _transform(self, rule: RuleDefinition, value: str) -> str:
        if rule.method is Method.TOKENIZE:
            return self._tokens.get_or_create_token(value)
        return obfuscate_value(
            value,
            rule.method,
            preserve_chars=rule.preserve_chars,
            replacement=rule.replacement,
        )

    def _record_pass(self, rule_name: str, before: str, after: str) -> None:
        # One increment per pass that changed the text, however many matches.
        stats = self._stats[rule_name]
        stats.matches_applied += 1
        stats.characters_removed += len(before) - len(after)
        now = datetime.now(timezone.utc)
        if stats.first_match_time is None:
            stats.first_match_time = now
        stats.last_match_time = now

    def _next_event_id(self) -> str:
        ns = time.time_ns()
        if ns <= self._last_event_ns:
            ns = self._last_event_ns + 1
        self._last_event_ns = ns
        return f"TRACE_{ns & 0xFFFFFFFFFFFFFFFF:016X}"
