"""Output writers — serialize processing results to disk.

Formats:
    text          obfuscated text only
    json          {"text": ..., "events": [...], "trace_report": {...}}
    csv           one row per trace event
    trace-report  the session's trace report as JSON

A trace map (``<output>.tracemap``) summarizing events per severity and per
rule can be written next to any of them.
"""

from __future__ import annotations
import csv
import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from .types import ProcessingResult, TraceReport

CSV_COLUMNS = (
    "rule_name", "severity", "original_value", "obfuscated_value",
    "start", "end", "event_id",
)


class OutputFormat(Enum):
    TEXT = "text"
    JSON = "json"
    CSV = "csv"
    TRACE_REPORT = "trace-report"

    @classmethod
    def parse(cls, value: str | OutputFormat) -> OutputFormat:
        if isinstance(value, OutputFormat):
            return value
        normalized = str(value).strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"unknown output format: {value!r}") from None


@dataclass
class OutputOptions:
    """What to write and how much detail to include."""
    format: OutputFormat = OutputFormat.TEXT
    include_trace_report: bool = True    # json only
    log_events: bool = False             # json only
    create_trace_map: bool = False


def render_json(
    result: ProcessingResult,
    report: TraceReport | None,
    *,
    include_events: bool,
) -> dict[str, Any]:
    """Build the JSON envelope for a result."""
    return {
        "text": result.text,
        "events": [e.to_dict() for e in result.events] if include_events else None,
        "trace_report": report.to_dict() if report is not None else None,
    }


def render_trace_map(result: ProcessingResult) -> dict[str, Any]:
    """Summarize a result's events per severity and per rule."""
    by_severity: dict[str, int] = {}
    by_rule: dict[str, int] = {}
    for event in result.events:
        label = event.severity.label
        by_severity[label] = by_severity.get(label, 0) + 1
        by_rule[event.rule_name] = by_rule.get(event.rule_name, 0) + 1
    return {
        "total_events": len(result.events),
        "events_by_severity": by_severity,
        "events_by_rule": by_rule,
        "coverage": result.coverage,
    }


def write_csv(result: ProcessingResult, path: str | Path) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_COLUMNS)
        for e in result.events:
            writer.writerow([
                e.rule_name, e.severity.label, e.original_value,
                e.obfuscated_value, e.start, e.end, e.event_id,
            ])


def _write_json(data: dict[str, Any], path: str | Path) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")


def write_output(
    result: ProcessingResult,
    report: TraceReport,
    path: str | Path,
    options: OutputOptions,
) -> None:
    """Write *result* to *path* in the configured format."""
    fmt = options.format
    if fmt is OutputFormat.TEXT:
        Path(path).write_text(result.text, encoding="utf-8")
    elif fmt is OutputFormat.JSON:
        _write_json(
            render_json(
                result,
                report if options.include_trace_report else None,
                include_events=options.log_events,
            ),
            path,
        )
    elif fmt is OutputFormat.CSV:
        write_csv(result, path)
    elif fmt is OutputFormat.TRACE_REPORT:
        _write_json(report.to_dict(), path)
    else:
        raise ValueError(f"unsupported output format: {fmt!r}")


def write_trace_map(result: ProcessingResult, path: str | Path) -> None:
    _write_json(render_trace_map(result), path)
