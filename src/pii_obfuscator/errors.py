"""Exception hierarchy.

Compilation is the only fallible step of the engine itself; once a rule set
compiles, obfuscation never raises.  Configuration problems are reported
separately so callers can tell a bad file from a bad pattern.
"""

from __future__ import annotations


class ObfuscatorError(Exception):
    """Base exception for all package errors."""


class CompileError(ObfuscatorError):
    """Raised when a rule set cannot be compiled into an engine."""

    def __init__(self, rule_name: str, message: str) -> None:
        super().__init__(f"rule {rule_name!r}: {message}")
        self.rule_name = rule_name
        self.message = message


class InvalidPatternError(CompileError):
    """Raised when a rule's pattern is not a valid regular expression."""


class DuplicateRuleError(CompileError):
    """Raised when two rules in one set share a name."""

    def __init__(self, rule_name: str) -> None:
        super().__init__(rule_name, "duplicate rule name")


class ConfigurationError(ObfuscatorError):
    """Raised when configuration loading or validation fails."""
