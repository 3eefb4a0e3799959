"""Core types."""

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import Any


class Severity(IntEnum):
    """Rule priority tier.  Lower value is applied first."""
    CRITICAL = 0   # PCI data (card numbers, credentials)
    HIGH = 1       # PII (SSN, email)
    MEDIUM = 2     # sensitive (phone, IP)
    LOW = 3        # other identifiable data

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        if isinstance(value, Severity):
            return value
        try:
            return cls[str(value).strip().upper()]
        except KeyError:
            raise ValueError(f"unknown severity: {value!r}") from None


class Method(Enum):
    """Obfuscation method applied to a matched value."""
    PHANTOM = "phantom"     # keep k chars at each end, block out the middle
    VANISH = "vanish"       # delete
    MIRROR = "mirror"       # stable hash token
    MASK = "mask"           # literal replacement
    TOKENIZE = "tokenize"   # per-session memoized hash token

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: str | Method) -> Method:
        if isinstance(value, Method):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"unknown obfuscation method: {value!r}") from None


@dataclass(frozen=True, slots=True)
class RuleDefinition:
    """Declarative description of what to find and how to obscure it."""
    name: str
    pattern: str
    method: Method
    severity: Severity
    preserve_chars: int | None = None    # Phantom only
    replacement: str | None = None       # Mask only
    case_sensitive: bool | None = None   # None = engine default

    def __post_init__(self) -> None:
        if self.replacement is not None and not isinstance(self.replacement, str):
            raise TypeError(f"rule {self.name!r}: replacement must be a string")
        if self.preserve_chars is None:
            return
        # bool is an int subclass
        if (not isinstance(self.preserve_chars, int)
                or isinstance(self.preserve_chars, bool)):
            raise TypeError(
                f"rule {self.name!r}: preserve_chars must be an integer, "
                f"got {self.preserve_chars!r}"
            )
        if self.preserve_chars < 0:
            raise ValueError(
                f"rule {self.name!r}: preserve_chars must be non-negative"
            )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "pattern": self.pattern,
            "method": self.method.label,
            "severity": self.severity.label,
        }
        if self.preserve_chars is not None:
            data["preserve_chars"] = self.preserve_chars
        if self.replacement is not None:
            data["replacement"] = self.replacement
        if self.case_sensitive is not None:
            data["case_sensitive"] = self.case_sensitive
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RuleDefinition:
        return cls(
            name=str(data["name"]),
            pattern=str(data["pattern"]),
            method=Method.parse(data["method"]),
            severity=Severity.parse(data["severity"]),
            preserve_chars=data.get("preserve_chars"),
            replacement=data.get("replacement"),
            case_sensitive=data.get("case_sensitive"),
        )


@dataclass(slots=True)
class RuleStats:
    """Running counters for one rule within a session."""
    severity_label: str
    matches_applied: int = 0      # passes that changed the text, not matches
    characters_removed: int = 0   # signed: expanding methods subtract
    first_match_time: datetime | None = None
    last_match_time: datetime | None = None

    def copy(self) -> RuleStats:
        return RuleStats(
            severity_label=self.severity_label,
            matches_applied=self.matches_applied,
            characters_removed=self.characters_removed,
            first_match_time=self.first_match_time,
            last_match_time=self.last_match_time,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "matches_applied": self.matches_applied,
            "characters_removed": self.characters_removed,
            "severity": self.severity_label,
            "first_match_time": _iso(self.first_match_time),
            "last_match_time": _iso(self.last_match_time),
        }


@dataclass(frozen=True, slots=True)
class TraceEvent:
    """One substitution.

    ``start``/``end`` are UTF-8 byte offsets into the text as it stood when
    this event's rule began its pass, not the original input.
    ``char_start``/``char_end`` are the same span as ``str`` indices.
    """
    rule_name: str
    severity: Severity
    original_value: str
    obfuscated_value: str
    start: int
    end: int
    event_id: str
    char_start: int
    char_end: int

    @property
    def span(self) -> tuple[int, int]:
        return (self.start, self.end)

    @property
    def char_span(self) -> tuple[int, int]:
        return (self.char_start, self.char_end)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["severity"] = self.severity.label
        return data


@dataclass(slots=True)
class TraceReport:
    """Point-in-time aggregate over a session's rule stats."""
    total_substitutions: int
    total_characters_removed: int
    rules_triggered: int
    severity_breakdown: dict[str, int]
    rule_stats: dict[str, RuleStats]
    generated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_substitutions": self.total_substitutions,
            "total_characters_removed": self.total_characters_removed,
            "rules_triggered": self.rules_triggered,
            "severity_breakdown": dict(self.severity_breakdown),
            "rule_stats": {
                name: stats.to_dict() for name, stats in self.rule_stats.items()
            },
            "generated_at": _iso(self.generated_at),
        }


@dataclass(slots=True)
class ProcessingResult:
    """Result of one ``Pipeline.process`` call."""
    text: str
    events: list[TraceEvent] = field(default_factory=list)
    lines_processed: int = 0
    lines_modified: int = 0
    elapsed: float = 0.0   # seconds

    @property
    def event_count(self) -> int:
        return len(self.events)

    @property
    def coverage(self) -> float:
        """Percentage of lines that had at least one substitution."""
        if not self.lines_processed:
            return 0.0
        return self.lines_modified / self.lines_processed * 100.0


@dataclass(slots=True)
class ProcessingStats:
    """Cumulative counters for a pipeline session."""
    lines_processed: int
    lines_modified: int
    total_events: int
    elapsed: float
    trace_report: TraceReport

    def to_dict(self) -> dict[str, Any]:
        return {
            "lines_processed": self.lines_processed,
            "lines_modified": self.lines_modified,
            "total_events": self.total_events,
            "processing_time_ms": round(self.elapsed * 1000),
            "trace_report": self.trace_report.to_dict(),
        }


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
