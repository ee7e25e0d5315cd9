from __future__ import annotations

import json
import socket
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Iterator

import pytest


class _FakeHandler(BaseHTTPRequestHandler):
    server: "FakeServer"

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        return

    def _send(self, status: int, body: Any) -> None:
        if body is None:
            raw = b""
            content_type = "text/plain; charset=utf-8"
        elif isinstance(body, (bytes, str)):
            raw = body if isinstance(body, bytes) else body.encode("utf-8")
            content_type = "text/plain; charset=utf-8"
        else:
            raw = json.dumps(body).encode("utf-8")
            content_type = "application/json"
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        if raw:
            self.wfile.write(raw)

    def do_GET(self) -> None:  # noqa: N802
        self.server.gets.append(self.path)
        location = self.server.redirects.get(self.path)
        if location is not None:
            self.send_response(301)
            self.send_header("Location", location)
            self.send_header("Content-Length", "0")
            self.end_headers()
            return
        status, body = self.server.routes.get(self.path, (404, {"error": "not found"}))
        self._send(status, body)

    def do_POST(self) -> None:  # noqa: N802
        n = int(self.headers.get("Content-Length") or "0")
        raw = self.rfile.read(n) if n > 0 else b"{}"
        self.server.posts.append({"path": self.path, "json": json.loads(raw.decode("utf-8"))})
        self._send(self.server.post_status, None)


class FakeServer(HTTPServer):
    """Local HTTP server with configurable GET routes that records every POST body."""

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _FakeHandler)
        self.routes: dict[str, tuple[int, Any]] = {}
        self.redirects: dict[str, str] = {}
        self.gets: list[str] = []
        self.posts: list[dict[str, Any]] = []
        self.post_status = 204

    @property
    def base_url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"

    def route(self, path: str, body: Any, status: int = 200) -> None:
        self.routes[path] = (status, body)

    def redirect(self, path: str, location: str) -> None:
        self.redirects[path] = location

    @property
    def messages(self) -> list[str]:
        return [p["json"].get("content") for p in self.posts]


def _serve() -> Iterator[FakeServer]:
    httpd = FakeServer()
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield httpd
    finally:
        httpd.shutdown()
        thread.join(timeout=5)
        httpd.server_close()


@pytest.fixture
def chain_api() -> Iterator[FakeServer]:
    yield from _serve()


@pytest.fixture
def rpc_node() -> Iterator[FakeServer]:
    yield from _serve()


@pytest.fixture
def webhook() -> Iterator[FakeServer]:
    yield from _serve()


@pytest.fixture
def webhook_url(webhook: FakeServer) -> str:
    return f"{webhook.base_url}/api/webhooks/123/secret-token"


@pytest.fixture
def closed_port_url() -> str:
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return f"http://127.0.0.1:{port}"


class FakeClock:
    def __init__(self, now_ms: int = 1_700_000_000_000) -> None:
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
