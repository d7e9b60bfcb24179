"""共享 fixture — 本地 HTTP 服务与源制品文件"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

import pytest


class _Handler(BaseHTTPRequestHandler):
    """按 server.routes 返回 (status, body)，记录每个请求"""

    def do_GET(self) -> None:  # noqa: N802
        server = self.server
        server.requests.append({  # type: ignore[attr-defined]
            "path": self.path,
            "user_agent": self.headers.get("User-Agent"),
        })
        status, body = server.routes.get(self.path, (404, b"not found"))  # type: ignore[attr-defined]
        self.send_response(status)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: object) -> None:
        pass


class LocalServer:
    def __init__(self, server: ThreadingHTTPServer) -> None:
        self._server = server

    @property
    def routes(self) -> dict[str, tuple[int, bytes]]:
        return self._server.routes  # type: ignore[attr-defined]

    @property
    def requests(self) -> list[dict[str, str | None]]:
        return self._server.requests  # type: ignore[attr-defined]

    @property
    def base_url(self) -> str:
        host, port = self._server.server_address[:2]
        return f"http://{host}:{port}"

    def serve(self, path: str, body: bytes, status: int = 200) -> str:
        self.routes[path] = (status, body)
        return self.base_url + path


@pytest.fixture
def http_server() -> Iterator[LocalServer]:
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    server.routes = {}  # type: ignore[attr-defined]
    server.requests = []  # type: ignore[attr-defined]
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield LocalServer(server)
    server.shutdown()
    server.server_close()


@pytest.fixture
def artifact_file(tmp_path: Path) -> tuple[Path, bytes]:
    content = b"artifact-content-" * 64
    path = tmp_path / "origin" / "jdk-11.0.2.tar.gz"
    path.parent.mkdir()
    path.write_bytes(content)
    return path, content
