"""Processing pipeline — drives an engine over text blobs and files.

Text is handled line by line; a pattern never matches across a line break.
Counters accumulate across calls until ``reset()``.

Usage:
    pipeline = Pipeline(ObfuscationEngine(DEFAULT_RULES))
    result = pipeline.process(log_text)
    result.text, result.events, result.lines_modified

    pipeline.process_file("app.log", "app.clean.log")
    pipeline.stats().lines_processed
"""

from __future__ import annotations
import logging
import time
from pathlib import Path

from .engine import ObfuscationEngine
from .types import ProcessingResult, ProcessingStats, TraceEvent, TraceReport
from .writers import OutputOptions, write_output, write_trace_map

logger = logging.getLogger(__name__)


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only, dropping one trailing ``\\r`` per line.

    A final newline does not start an extra empty line.  Other characters
    that ``str.splitlines`` treats as breaks (form feed, U+2028, ...) stay
    inside the line.
    """
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


class Pipeline:
    """One processing session: an engine plus cumulative counters."""

    def __init__(
        self,
        engine: ObfuscationEngine,
        output: OutputOptions | None = None,
    ) -> None:
        self.engine = engine
        self.output = output or OutputOptions()
        self._lines_processed = 0
        self._lines_modified = 0
        self._total_events = 0
        self._elapsed = 0.0

    def process(self, text: str) -> ProcessingResult:
        """Obfuscate every line of *text* and tally the call."""
        started = time.perf_counter()

        out_lines: list[str] = []
        events: list[TraceEvent] = []
        modified = 0
        for line in split_lines(text):
            obfuscated, line_events = self.engine.trace_and_obfuscate(line)
            if line_events:
                modified += 1
                events.extend(line_events)
            out_lines.append(obfuscated)

        elapsed = time.perf_counter() - started

        self._lines_processed += len(out_lines)
        self._lines_modified += modified
        self._total_events += len(events)
        self._elapsed += elapsed

        return ProcessingResult(
            text="\n".join(out_lines),
            events=events,
            lines_processed=len(out_lines),
            lines_modified=modified,
            elapsed=elapsed,
        )

    def process_file(
        self,
        input_path: str | Path,
        output_path: str | Path,
    ) -> ProcessingResult:
        """Obfuscate *input_path* and write it to *output_path*.

        The whole file is read into memory.  Output is written in the
        configured format, plus ``<output_path>.tracemap`` when enabled.
        """
        # newline="" keeps "\r" for split_lines to handle
        with open(input_path, encoding="utf-8", newline="") as f:
            content = f.read()
        result = self.process(content)

        write_output(result, self.report(), output_path, self.output)
        if self.output.create_trace_map:
            write_trace_map(result, f"{output_path}.tracemap")

        logger.info(
            "Processed %s -> %s: %d lines, %d modified, %d events",
            input_path, output_path,
            result.lines_processed, result.lines_modified, result.event_count,
        )
        return result

    def report(self) -> TraceReport:
        return self.engine.report()

    def stats(self) -> ProcessingStats:
        """Snapshot of the session's cumulative counters."""
        return ProcessingStats(
            lines_processed=self._lines_processed,
            lines_modified=self._lines_modified,
            total_events=self._total_events,
            elapsed=self._elapsed,
            trace_report=self.report(),
        )

    def reset(self) -> None:
        """Clear session counters, engine stats and token memory."""
        self._lines_processed = 0
        self._lines_modified = 0
        self._total_events = 0
        self._elapsed = 0.0
        self.engine.reset()
