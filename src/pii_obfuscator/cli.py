"""CLI interface for pii-obfuscator — sanitize logs before they leave the box.

Usage:
    # Batch: file in, file out (summary on stderr)
    pii-obfuscator process -i app.log -o app.clean.log --format json --trace-report

    # Pipe a log stream through
    tail -F app.log | pii-obfuscator stream >> app.clean.log

    # One-shot text from stdin
    echo 'SSN: 123-45-6789' | pii-obfuscator text

    # Network shells
    pii-obfuscator serve-tcp --port 5140
    pii-obfuscator serve-health --port 8080

    # Housekeeping
    pii-obfuscator generate-config rules.yaml
    pii-obfuscator --config rules.yaml health-check
"""

from __future__ import annotations
import argparse
import io
import logging
import signal
import sys
import threading
from pathlib import Path
from typing import TextIO

from . import __version__
from .config import (
    DEFAULT_CONFIG_PATH, PRESETS, ObfuscatorConfig, create_pipeline,
    load_from_file, preset, save_config,
)
from .errors import ObfuscatorError
from .logging_config import DEFAULT_LEVEL, configure_logging
from .server import (
    DEFAULT_HEALTH_PORT, DEFAULT_HOST, DEFAULT_TCP_PORT, health_check,
    serve_health, serve_tcp, stream_lines,
)
from .types import ProcessingResult
from .writers import OutputFormat

logger = logging.getLogger(__name__)

# Set by SIGINT/SIGTERM; polled between lines by the long-running modes.
SHUTDOWN = threading.Event()


def _load_config(args: argparse.Namespace) -> ObfuscatorConfig:
    if args.config:
        config = load_from_file(args.config)
    else:
        config = preset(args.preset)
    if args.case_sensitive:
        config.case_sensitive = True
    return config


def _install_signal_handlers() -> None:
    def _handle(signum: int, frame: object) -> None:
        logger.info("Shutdown signal received (%s)", signal.Signals(signum).name)
        SHUTDOWN.set()

    signal.signal(signal.SIGINT, _handle)
    signal.signal(signal.SIGTERM, _handle)


def _stdin() -> TextIO:
    # Only "\n" ends a line; a lone "\r" stays in the text
    if isinstance(sys.stdin, io.TextIOWrapper):
        sys.stdin.reconfigure(newline="\n")
    return sys.stdin


def _print_summary(result: ProcessingResult, output: str, config: ObfuscatorConfig,
                   severity_breakdown: dict[str, int]) -> None:
    err = sys.stderr
    err.write("Processing completed\n")
    err.write(f"Lines processed: {result.lines_processed}\n")
    err.write(f"Lines modified: {result.lines_modified}\n")
    err.write(f"Events: {result.event_count}\n")
    err.write(f"Processing time: {result.elapsed * 1000:.2f} ms\n")
    err.write(f"Output: {output}\n")
    if result.lines_modified:
        err.write(f"Coverage: {result.coverage:.1f}%\n")
        err.write("Events by severity:\n")
        for label, count in severity_breakdown.items():
            if count:
                err.write(f"  {label}: {count}\n")
    if config.output.create_trace_map:
        err.write(f"Trace map: {output}.tracemap\n")


def cmd_process(args: argparse.Namespace) -> None:
    """Obfuscate a file into another file."""
    config = _load_config(args)
    if args.format:
        config.output.format = OutputFormat.parse(args.format)
    if args.trace_report:
        config.output.include_trace_report = True
    if args.log_events:
        config.output.log_events = True
    if args.trace_map:
        config.output.create_trace_map = True

    if not Path(args.input).exists():
        raise FileNotFoundError(f"Input file '{args.input}' does not exist")

    if not args.quiet:
        sys.stderr.write(f"Processing: {args.input} -> {args.output}\n")

    pipeline = create_pipeline(config)
    result = pipeline.process_file(args.input, args.output)

    if not args.quiet:
        _print_summary(result, args.output, config,
                       pipeline.report().severity_breakdown)


def cmd_text(args: argparse.Namespace) -> None:
    """Obfuscate all of stdin as one blob."""
    pipeline = create_pipeline(_load_config(args))
    result = pipeline.process(_stdin().read())
    sys.stdout.write(result.text)
    sys.stdout.write("\n")


def cmd_stream(args: argparse.Namespace) -> None:
    """Obfuscate stdin to stdout line by line."""
    config = _load_config(args)
    pipeline = create_pipeline(config)
    _install_signal_handlers()
    lines = stream_lines(pipeline, _stdin(), sys.stdout,
                         shutdown=SHUTDOWN, batch_size=config.batch_size)
    logger.info("Stream closed: %d lines, %d events",
                lines, pipeline.stats().total_events)


def cmd_serve_tcp(args: argparse.Namespace) -> None:
    config = _load_config(args)
    _install_signal_handlers()
    serve_tcp(config, host=args.host, port=args.port, shutdown=SHUTDOWN)


def cmd_serve_health(args: argparse.Namespace) -> None:
    config = _load_config(args)
    _install_signal_handlers()
    serve_health(config, host=args.host, port=args.port, shutdown=SHUTDOWN)


def cmd_health_check(args: argparse.Namespace) -> None:
    """Compile the configured rules and exit."""
    config = _load_config(args)
    if not config.rules:
        raise ObfuscatorError("No rules configured")
    count = health_check(config)
    sys.stdout.write("Health check passed\n")
    sys.stdout.write(f"Rules validated: {count}\n")


def cmd_generate_config(args: argparse.Namespace) -> None:
    """Write the selected preset (or loaded config) to a file."""
    save_config(_load_config(args), args.path)
    sys.stderr.write(f"Configuration saved to: {args.path}\n")


def cmd_version(args: argparse.Namespace) -> None:
    sys.stdout.write(f"pii-obfuscator {__version__}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pii-obfuscator",
        description="PCI/PII obfuscation for log preprocessing",
    )
    parser.add_argument("-c", "--config", default=DEFAULT_CONFIG_PATH or None,
                        help="Config file (YAML or JSON)")
    parser.add_argument("--preset", default="default", choices=PRESETS,
                        help="Built-in config when no --config is given")
    parser.add_argument("--case-sensitive", action="store_true",
                        help="Match patterns case-sensitively by default")
    parser.add_argument("--log-level", default=DEFAULT_LEVEL,
                        help="DEBUG, INFO, WARNING, ERROR")
    parser.add_argument("--log-json", action="store_true",
                        help="Emit logs as JSON lines")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("process", help="Obfuscate a file")
    p.add_argument("-i", "--input", required=True, help="Input file")
    p.add_argument("-o", "--output", required=True, help="Output file")
    p.add_argument("-f", "--format", choices=[f.value for f in OutputFormat],
                   help="Output format (default from config)")
    p.add_argument("--trace-report", action="store_true",
                   help="Include the trace report in JSON output")
    p.add_argument("--log-events", action="store_true",
                   help="Include every trace event in JSON output")
    p.add_argument("--trace-map", action="store_true",
                   help="Also write <output>.tracemap")
    p.add_argument("-q", "--quiet", action="store_true",
                   help="No summary on stderr")

    sub.add_parser("text", help="Obfuscate stdin as one blob")
    sub.add_parser("stream", help="Obfuscate stdin to stdout line by line")

    p = sub.add_parser("serve-tcp", help="Run the TCP line server")
    p.add_argument("--host", default=DEFAULT_HOST)
    p.add_argument("--port", type=int, default=DEFAULT_TCP_PORT)

    p = sub.add_parser("serve-health", help="Run the HTTP health server")
    p.add_argument("--host", default=DEFAULT_HOST)
    p.add_argument("--port", type=int, default=DEFAULT_HEALTH_PORT)

    sub.add_parser("health-check", help="Validate rules and exit")

    p = sub.add_parser("generate-config", help="Write a config file")
    p.add_argument("path", help="Destination (.yaml or .json)")

    sub.add_parser("version", help="Show version")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, structured=args.log_json)

    cmds = {
        "process": cmd_process,
        "text": cmd_text,
        "stream": cmd_stream,
        "serve-tcp": cmd_serve_tcp,
        "serve-health": cmd_serve_health,
        "health-check": cmd_health_check,
        "generate-config": cmd_generate_config,
        "version": cmd_version,
    }
    try:
        cmds[args.command](args)
    except (ObfuscatorError, OSError) as e:
        sys.stderr.write(f"Error: {e}\n")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
