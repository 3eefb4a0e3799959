"""Line-forwarding shells around the pipeline.

Modes:
    stream   stdin → stdout, one line in, one line out
    TCP      each connection gets its own pipeline; lines in, lines out
    health   HTTP on localhost:
               GET  /health     — status and rule count
               POST /obfuscate  — {"text": "..."} → text + events

No framing, no backpressure: each input line yields exactly one output
line.  Long-running loops poll a shared ``threading.Event`` between lines
for shutdown; a single line is never interrupted mid-scan.
"""

from __future__ import annotations
import json
import logging
import os
import socketserver
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, TextIO

from .config import ObfuscatorConfig, create_engine, create_pipeline
from .pipeline import Pipeline

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_TCP_PORT = int(os.environ.get("PII_OBFUSCATOR_PORT", "5140"))
DEFAULT_HEALTH_PORT = int(os.environ.get("PII_OBFUSCATOR_HEALTH_PORT", "8080"))


def health_check(config: ObfuscatorConfig) -> int:
    """Compile the configured rules; return how many there are.

    Raises ``CompileError`` if any rule is broken.
    """
    return len(create_engine(config).rules)


# ----------------------------------------------------------------------
# stdin → stdout
# ----------------------------------------------------------------------

def _chomp(line: str) -> str:
    """Drop one trailing ``\\n`` and then one ``\\r``."""
    if line.endswith("\n"):
        line = line[:-1]
    if line.endswith("\r"):
        line = line[:-1]
    return line


def stream_lines(
    pipeline: Pipeline,
    source: TextIO,
    sink: TextIO,
    *,
    shutdown: threading.Event | None = None,
    batch_size: int = 1000,
) -> int:
    """Obfuscate *source* line by line into *sink*.  Returns lines handled."""
    count = 0
    for line in source:
        if shutdown is not None and shutdown.is_set():
            break
        result = pipeline.process(_chomp(line))
        sink.write(result.text + "\n")
        count += 1
        if count % batch_size == 0:
            sink.flush()
    sink.flush()
    return count


# ----------------------------------------------------------------------
# TCP
# ----------------------------------------------------------------------

class LineHandler(socketserver.StreamRequestHandler):
    """One connection = one session with its own pipeline."""

    server: LineServer

    def handle(self) -> None:
        pipeline = create_pipeline(self.server.config)
        peer = "%s:%s" % self.client_address[:2]
        logger.info("Connection from %s", peer)

        lines = 0
        for raw in self.rfile:
            if self.server.shutdown_event.is_set():
                break
            line = _chomp(raw.decode("utf-8", errors="replace"))
            result = pipeline.process(line)
            self.wfile.write((result.text + "\n").encode("utf-8"))
            lines += 1

        stats = pipeline.stats()
        logger.info(
            "Connection %s closed: %d lines, %d events",
            peer, lines, stats.total_events,
        )


class LineServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(
        self,
        address: tuple[str, int],
        config: ObfuscatorConfig,
        shutdown_event: threading.Event,
    ) -> None:
        self.config = config
        self.shutdown_event = shutdown_event
        super().__init__(address, LineHandler)


def make_tcp_server(
    config: ObfuscatorConfig,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_TCP_PORT,
    shutdown: threading.Event | None = None,
) -> LineServer:
    """Bind a TCP line server.  Compiles the rules once to fail fast."""
    health_check(config)
    return LineServer((host, port), config, shutdown or threading.Event())


# ----------------------------------------------------------------------
# HTTP health / obfuscate
# ----------------------------------------------------------------------

class HealthHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the health sidecar."""

    server: HealthServer

    def _content_length(self) -> int:
        length = int(self.headers.get("Content-Length", 0))
        if length < 0:
            raise ValueError(f"negative Content-Length: {length}")
        return length

    def _read_json(self, length: int) -> dict[str, Any]:
        body = self.rfile.read(length).decode("utf-8")
        return json.loads(body) if body else {}

    def _respond(self, status: int, data: Any) -> None:
        body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        logger.debug("%s - %s", self.address_string(), format % args)

    def do_GET(self) -> None:
        if self.path == "/health":
            self._respond(200, {
                "status": "ok",
                "rules": self.server.rule_count,
            })
        else:
            self._respond(404, {"error": "not found"})

    def do_POST(self) -> None:
        if self.path != "/obfuscate":
            self._respond(404, {"error": "not found"})
            return
        try:
            length = self._content_length()
        except ValueError as e:
            self._respond(400, {"error": f"invalid Content-Length: {e}"})
            return
        try:
            body = self._read_json(length)
        except (ValueError, UnicodeDecodeError) as e:
            self._respond(400, {"error": f"invalid JSON body: {e}"})
            return

        text = body.get("text", "") if isinstance(body, dict) else None
        if not isinstance(text, str):
            self._respond(400, {"error": "'text' must be a string"})
            return

        pipeline = create_pipeline(self.server.config)
        result = pipeline.process(text)
        self._respond(200, {
            "text": result.text,
            "events": [e.to_dict() for e in result.events],
            "lines_processed": result.lines_processed,
            "lines_modified": result.lines_modified,
        })


class HealthServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], config: ObfuscatorConfig) -> None:
        self.config = config
        self.rule_count = health_check(config)
        super().__init__(address, HealthHandler)


def make_health_server(
    config: ObfuscatorConfig,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_HEALTH_PORT,
) -> HealthServer:
    return HealthServer((host, port), config)


# ----------------------------------------------------------------------
# Blocking entry points
# ----------------------------------------------------------------------

def _run_until_shutdown(
    server: socketserver.BaseServer,
    shutdown: threading.Event,
) -> None:
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        while not shutdown.wait(1.0):
            pass
    except KeyboardInterrupt:
        shutdown.set()
    finally:
        logger.info("Shutting down...")
        server.shutdown()
        server.server_close()


def serve_tcp(
    config: ObfuscatorConfig,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_TCP_PORT,
    shutdown: threading.Event | None = None,
) -> None:
    """Run the TCP line server until *shutdown* is set."""
    shutdown = shutdown or threading.Event()
    server = make_tcp_server(config, host, port, shutdown)
    logger.info("TCP server listening on %s:%d", *server.server_address[:2])
    _run_until_shutdown(server, shutdown)


def serve_health(
    config: ObfuscatorConfig,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_HEALTH_PORT,
    shutdown: threading.Event | None = None,
) -> None:
    """Run the HTTP health server until *shutdown* is set."""
    shutdown = shutdown or threading.Event()
    server = make_health_server(config, host, port)
    logger.info("Health server listening on http://%s:%d", *server.server_address[:2])
    _run_until_shutdown(server, shutdown)
