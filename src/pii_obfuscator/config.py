"""YAML/JSON/dict config loader for pii-obfuscator.

Supports loading from a YAML or JSON file or a plain dict (for embedding in
a larger config, e.g. a log shipper's).

Example YAML:

    pii_obfuscator:
      enabled: true
      case_sensitive: false
      batch_size: 1000
      rules:
        - name: employee_id
          pattern: 'EMP-\\d{6}'
          method: Tokenize
          severity: Medium
        - name: ssn
          pattern: '\\b\\d{3}-\\d{2}-\\d{4}\\b'
          method: Mirror
          severity: High
      output:
        format: json               # text | json | csv | trace-report
        include_trace_report: true
        log_events: false
        create_trace_map: false

Omitting ``rules`` selects the built-in default rule set.
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .engine import ObfuscationEngine
from .errors import ConfigurationError
from .patterns import DEFAULT_RULES
from .pipeline import Pipeline
from .types import RuleDefinition, Severity
from .writers import OutputFormat, OutputOptions

CONFIG_KEY = "pii_obfuscator"
DEFAULT_CONFIG_PATH = os.environ.get("PII_OBFUSCATOR_CONFIG", "")

PRESETS = ("default", "splunk", "elk", "high-performance")


@dataclass
class ObfuscatorConfig:
    """Everything needed to build a processing session."""
    enabled: bool = True
    rules: list[RuleDefinition] = field(default_factory=lambda: list(DEFAULT_RULES))
    case_sensitive: bool = False
    batch_size: int = 1000      # stream mode flush interval, in lines
    output: OutputOptions = field(default_factory=OutputOptions)

    def rules_by_severity(self, severity: str | Severity) -> list[RuleDefinition]:
        wanted = Severity.parse(severity)
        return [r for r in self.rules if r.severity is wanted]

    def to_dict(self) -> dict[str, Any]:
        return {
            CONFIG_KEY: {
                "enabled": self.enabled,
                "case_sensitive": self.case_sensitive,
                "batch_size": self.batch_size,
                "rules": [r.to_dict() for r in self.rules],
                "output": {
                    "format": self.output.format.value,
                    "include_trace_report": self.output.include_trace_report,
                    "log_events": self.output.log_events,
                    "create_trace_map": self.output.create_trace_map,
                },
            }
        }


def load_config(data: dict[str, Any] | None) -> ObfuscatorConfig:
    """Normalize a config dict (from YAML, JSON or inline)."""
    data = data or {}
    if not isinstance(data, dict):
        raise ConfigurationError("config must be a mapping")
    # Support nested under "pii_obfuscator" key or flat
    if CONFIG_KEY in data:
        data = data[CONFIG_KEY] or {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"'{CONFIG_KEY}' must be a mapping")

    raw_rules = data.get("rules")
    if raw_rules is not None and not isinstance(raw_rules, list):
        raise ConfigurationError("'rules' must be a list")
    out = data.get("output") or {}
    if not isinstance(out, dict):
        raise ConfigurationError("'output' must be a mapping")

    try:
        rules = (
            list(DEFAULT_RULES) if raw_rules is None
            else [RuleDefinition.from_dict(r) for r in raw_rules]
        )
        output = OutputOptions(
            format=OutputFormat.parse(out.get("format", "text")),
            include_trace_report=bool(out.get("include_trace_report", True)),
            log_events=bool(out.get("log_events", False)),
            create_trace_map=bool(out.get("create_trace_map", False)),
        )
        batch_size = int(data.get("batch_size", 1000))
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid config: {exc}") from exc

    if batch_size < 1:
        raise ConfigurationError("batch_size must be at least 1")

    return ObfuscatorConfig(
        enabled=bool(data.get("enabled", True)),
        rules=rules,
        case_sensitive=bool(data.get("case_sensitive", False)),
        batch_size=batch_size,
        output=output,
    )


def load_from_file(path: str | Path) -> ObfuscatorConfig:
    """Load config from a JSON (``.json``) or YAML file."""
    path = Path(path)
    with open(path, encoding="utf-8") as f:
        try:
            if path.suffix.lower() == ".json":
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"cannot parse {path}: {exc}") from exc
    return load_config(data)


def save_config(config: ObfuscatorConfig, path: str | Path) -> None:
    """Write *config* as JSON (``.json``) or YAML."""
    path = Path(path)
    data = config.to_dict()
    with open(path, "w", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        else:
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)


def preset(name: str) -> ObfuscatorConfig:
    """Built-in configurations for common log pipelines."""
    config = ObfuscatorConfig()
    if name == "default":
        pass
    elif name == "splunk":
        config.output.format = OutputFormat.JSON
        config.output.include_trace_report = False
    elif name == "elk":
        config.output.format = OutputFormat.JSON
        config.output.log_events = True
        config.output.include_trace_report = False
    elif name == "high-performance":
        config.output.include_trace_report = False
        config.batch_size = 10000
    else:
        raise ConfigurationError(
            f"unknown preset {name!r}; choose from {', '.join(PRESETS)}"
        )
    return config


def create_engine(config: ObfuscatorConfig) -> ObfuscationEngine:
    """Build a fresh engine (one per session) from a shared config."""
    rules = config.rules if config.enabled else []
    return ObfuscationEngine(rules, case_sensitive=config.case_sensitive)


def create_pipeline(config: ObfuscatorConfig) -> Pipeline:
    """Build a fresh pipeline (one per session) from a shared config."""
    return Pipeline(create_engine(config), output=config.output)
