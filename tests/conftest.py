"""
Pytest configuration and fixtures for omni-request tests.
"""

import gzip
import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional
from urllib.parse import parse_qs, urlsplit

import pytest
import responses as responses_lib

from omni_request import api
from omni_request.core.abort import AbortRegistry
from omni_request.core.client import RequestClient
from omni_request.core.config import ClientConfig
from omni_request.core.logging.config import LoggingConfig
from omni_request.transports.base import Transport

from helpers import StubTransport


@pytest.fixture
def base_url():
    """Base URL for testing."""
    return "https://api.example.com"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def registry():
    """Isolated abort registry."""
    registry = AbortRegistry()
    yield registry
    registry.cancel_all()


@pytest.fixture(autouse=True)
def reset_default_client():
    """Module-level API state must not leak between tests."""
    api.reset()
    yield
    api.reset()


@pytest.fixture
def logging_config_with_file(tmp_path):
    """LoggingConfig writing JSON to a temporary file."""
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(tmp_path / "requests.log"),
    )


@pytest.fixture
def stub_transport():
    return StubTransport()


@pytest.fixture
def make_client(registry):
    """Factory for RequestClient wired to stub transports."""
    def factory(*transports: Transport, **config_fields):
        transports = transports or (StubTransport(),)
        config = ClientConfig.create(**config_fields)
        return RequestClient(
            config,
            transports={t.kind: t for t in transports},
            registry=registry,
        )

    return factory


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LOCAL HTTP SERVER
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class EchoHandler(BaseHTTPRequestHandler):
    """Small HTTP server for socket/XHR/fetch integration tests."""

    protocol_version = "HTTP/1.1"

    def log_message(self, format, *args):
        pass

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length) if length else b""
        if self.headers.get("Content-Encoding") == "gzip":
            body = gzip.decompress(body)
        return body

    def _send(self, status: int, body: bytes, headers: Optional[dict] = None) -> None:
        self.send_response(status)
        for name, value in (headers or {}).items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _send_json(self, status: int, payload, headers: Optional[dict] = None) -> None:
        merged = {"Content-Type": "application/json; charset=utf-8"}
        merged.update(headers or {})
        self._send(status, json.dumps(payload).encode("utf-8"), merged)

    def _handle(self) -> None:
        parts = urlsplit(self.path)
        path = parts.path
        query = parse_qs(parts.query)
        body = self._read_body()

        if path == "/echo":
            self._send_json(200, {
                "method": self.command,
                "path": path,
                "query": {k: v if len(v) > 1 else v[0] for k, v in query.items()},
                "headers": dict(self.headers.items()),
                "body": body.decode("utf-8", "replace"),
            })
        elif path.startswith("/status/"):
            status = int(path.rsplit("/", 1)[1])
            self._send_json(status, {"message": f"status {status}", "code": status})
        elif path == "/empty-error":
            self._send(500, b"")
        elif path == "/redirect":
            remaining = int(query.get("n", ["1"])[0])
            location = "/echo" if remaining <= 1 else f"/redirect?n={remaining - 1}"
            self._send(302, b"", {"Location": location})
        elif path == "/loop":
            self._send(301, b"", {"Location": "/loop"})
        elif path == "/gzip":
            payload = gzip.compress(json.dumps({"compressed": True}).encode("utf-8"))
            self._send(200, payload, {"Content-Type": "application/json", "Content-Encoding": "gzip"})
        elif path == "/set-cookie":
            self._send_json(200, {"ok": True}, {"Set-Cookie": "sid=abc123; Path=/"})
        elif path == "/download":
            self._send(200, b"a,b\n1,2\n", {
                "Content-Type": "text/csv",
                "Content-Disposition": 'attachment; filename="report.csv"',
            })
        elif path == "/large":
            self._send(200, b"x" * (256 * 1024), {"Content-Type": "application/octet-stream"})
        elif path == "/slow":
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", "1000000")
            self.end_headers()
            try:
                for _ in range(100):
                    self.wfile.write(b"." * 10)
                    self.wfile.flush()
                    time.sleep(0.1)
            except OSError:
                pass
        else:
            self._send_json(404, {"message": "not found"})

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_PATCH = _handle
    do_DELETE = _handle
    do_HEAD = _handle
    do_OPTIONS = _handle


@pytest.fixture(scope="session")
def local_server():
    """Base URL of a threaded HTTP server on localhost."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), EchoHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
