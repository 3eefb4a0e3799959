"""PII Obfuscator — rule-driven PCI/PII obfuscation for log sanitization."""

__version__ = "0.1.0"

from .types import (
    Method, RuleDefinition, RuleStats, Severity,
    TraceEvent, TraceReport, ProcessingResult, ProcessingStats,
)
from .errors import (
    ObfuscatorError, CompileError, InvalidPatternError, DuplicateRuleError,
    ConfigurationError,
)
from .patterns import DEFAULT_RULES
from .compiler import CompiledRule, compile_rules
from .obfuscate import obfuscate_value
from .vault import TokenTable
from .engine import ObfuscationEngine
from .pipeline import Pipeline
from .writers import OutputFormat, OutputOptions
from .config import (
    ObfuscatorConfig, create_engine, create_pipeline,
    load_config, load_from_file, preset, save_config,
)


def obfuscate_text(text: str, config: ObfuscatorConfig | None = None) -> str:
    """One-shot obfuscation with a throwaway session."""
    pipeline = create_pipeline(config or ObfuscatorConfig())
    return pipeline.process(text).text


__all__ = [
    "Method", "RuleDefinition", "RuleStats", "Severity",
    "TraceEvent", "TraceReport", "ProcessingResult", "ProcessingStats",
    "ObfuscatorError", "CompileError", "InvalidPatternError",
    "DuplicateRuleError", "ConfigurationError",
    "DEFAULT_RULES", "CompiledRule", "compile_rules",
    "obfuscate_value", "TokenTable",
    "ObfuscationEngine", "Pipeline",
    "OutputFormat", "OutputOptions",
    "ObfuscatorConfig", "create_engine", "create_pipeline",
    "load_config", "load_from_file", "preset", "save_config",
    "obfuscate_text",
]
