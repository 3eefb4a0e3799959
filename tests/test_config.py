"""Tests for config loading, presets and engine construction."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import json

import pytest

from pii_obfuscator import (
    DEFAULT_RULES, ConfigurationError, InvalidPatternError, Method,
    ObfuscatorConfig, OutputFormat, Severity, create_engine, create_pipeline,
    load_config, load_from_file, preset, save_config,
)

CUSTOM = {
    "pii_obfuscator": {
        "case_sensitive": True,
        "batch_size": 50,
        "rules": [
            {"name": "employee_id", "pattern": r"EMP-\d{6}",
             "method": "Tokenize", "severity": "medium"},
            {"name": "ticket", "pattern": r"T#\d+",
             "method": "mask", "severity": "LOW", "replacement": "[T]"},
        ],
        "output": {"format": "csv", "create_trace_map": True},
    }
}


# ── load_config ──────────────────────────────────────────────────────

def test_empty_config_uses_defaults():
    config = load_config({})
    assert config.enabled
    assert config.rules == list(DEFAULT_RULES)
    assert config.case_sensitive is False
    assert config.output.format is OutputFormat.TEXT


def test_nested_and_flat_configs_agree():
    nested = load_config(CUSTOM)
    flat = load_config(CUSTOM["pii_obfuscator"])
    assert nested == flat


def test_custom_rules_parsed():
    config = load_config(CUSTOM)
    assert [r.name for r in config.rules] == ["employee_id", "ticket"]
    assert config.rules[0].method is Method.TOKENIZE
    assert config.rules[0].severity is Severity.MEDIUM
    assert config.rules[1].replacement == "[T]"
    assert config.case_sensitive is True
    assert config.batch_size == 50
    assert config.output.format is OutputFormat.CSV
    assert config.output.create_trace_map is True


def test_rules_by_severity():
    config = ObfuscatorConfig()
    critical = config.rules_by_severity("critical")
    assert {r.name for r in critical} == {
        "credit_card", "api_key", "aws_access_key", "password",
    }


@pytest.mark.parametrize("bad", [
    {"rules": [{"name": "x", "pattern": "x", "method": "Explode", "severity": "High"}]},
    {"rules": [{"name": "x", "pattern": "x", "method": "Mask", "severity": "Urgent"}]},
    {"rules": [{"pattern": "x", "method": "Mask", "severity": "High"}]},
    {"rules": [{"name": "x", "pattern": "x", "method": "Phantom",
                "severity": "High", "preserve_chars": -2}]},
    {"rules": [{"name": "x", "pattern": "x", "method": "Phantom",
                "severity": "High", "preserve_chars": 2.5}]},
    {"rules": [{"name": "x", "pattern": "x", "method": "Mask",
                "severity": "High", "replacement": 7}]},
    {"output": {"format": "xml"}},
    {"batch_size": 0},
    {"output": "json"},
    {"pii_obfuscator": ["not", "a", "mapping"]},
    {"rules": "ssn"},
    {"rules": ["ssn"]},
])
def test_invalid_config_rejected(bad):
    with pytest.raises(ConfigurationError):
        load_config(bad)


def test_non_mapping_rejected():
    with pytest.raises(ConfigurationError):
        load_config(["not", "a", "dict"])


# ── Files ────────────────────────────────────────────────────────────

def test_load_yaml_file(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "pii_obfuscator:\n"
        "  rules:\n"
        "    - name: order\n"
        "      pattern: 'ORD-\\d+'\n"
        "      method: Vanish\n"
        "      severity: Low\n",
        encoding="utf-8",
    )
    config = load_from_file(path)
    assert config.rules[0].pattern == r"ORD-\d+"
    assert config.rules[0].method is Method.VANISH


def test_load_json_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps(CUSTOM), encoding="utf-8")
    assert load_from_file(path) == load_config(CUSTOM)


def test_unparseable_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_from_file(path)


def test_saved_default_config_loads_back(tmp_path):
    path = tmp_path / "generated.yaml"
    save_config(ObfuscatorConfig(), path)
    assert load_from_file(path) == ObfuscatorConfig()


# ── Presets & factories ──────────────────────────────────────────────

def test_presets():
    assert preset("default") == ObfuscatorConfig()
    splunk = preset("splunk")
    assert splunk.output.format is OutputFormat.JSON
    assert splunk.output.include_trace_report is False
    assert preset("elk").output.log_events is True
    assert preset("high-performance").batch_size == 10000


def test_unknown_preset():
    with pytest.raises(ConfigurationError):
        preset("fastest")


def test_each_session_gets_independent_state():
    config = load_config(CUSTOM)
    a = create_pipeline(config)
    b = create_pipeline(config)
    a.process("EMP-123456")
    assert a.stats().total_events == 1
    assert b.stats().total_events == 0
    assert a.engine.token_count == 1
    assert b.engine.token_count == 0


def test_case_sensitive_config_applies():
    engine = create_engine(load_config(CUSTOM))
    _, events = engine.trace_and_obfuscate("emp-123456 EMP-123456")
    assert [e.original_value for e in events] == ["EMP-123456"]


def test_disabled_config_is_passthrough():
    config = load_config({"enabled": False})
    pipeline = create_pipeline(config)
    assert pipeline.process("SSN: 123-45-6789").text == "SSN: 123-45-6789"


def test_bad_pattern_surfaces_at_construction():
    config = load_config({"rules": [
        {"name": "oops", "pattern": "[a-", "method": "Vanish", "severity": "High"},
    ]})
    with pytest.raises(InvalidPatternError) as exc:
        create_engine(config)
    assert exc.value.rule_name == "oops"
