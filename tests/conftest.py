"""
pytest configuration and fixtures.
"""

import http.client
import socket
import threading
from pathlib import Path
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from guestbook import GuestbookServer, ServerConfig
from guestbook.storage import StorageGateway


INDEX_HTML = b"<!DOCTYPE html><html><body><div id=\"entries\"></div></body></html>"
STYLE_CSS = b"body { color: #333; }"


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /entries?page=1 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: text/html\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample guestbook submission."""
    body = b"color=%23ff0000&name=ada&domain=ada.dev&message=hello+there"
    return (
        b"POST / HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/x-www-form-urlencoded\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


@pytest.fixture
def static_root(tmp_path: Path) -> Path:
    """A static root with an index page, a stylesheet and a nested file."""
    root = tmp_path / "public"
    (root / "css").mkdir(parents=True)
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "css" / "style.css").write_bytes(STYLE_CSS)
    return root


@pytest.fixture
def storage() -> Generator[StorageGateway, None, None]:
    """An initialized in-memory store."""
    gateway = StorageGateway(":memory:")
    gateway.initialize_schema()
    yield gateway
    gateway.close()


@pytest.fixture
def config(tmp_path: Path, static_root: Path) -> ServerConfig:
    """Test server configuration: ephemeral port, temp files, fast shutdown."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        workers=4,
        db_path=str(tmp_path / "db" / "entries.db"),
        static_root=str(static_root),
        timeout=5.0,
        shutdown_poll_interval=0.1,
        shutdown_polls=50,
        log_level="WARNING",
    )


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # not a test class

    def __init__(self, server: GuestbookServer):
        self.server = server
        self.exit_code: Optional[int] = None
        self._thread: Optional[threading.Thread] = None

    def _run(self):
        self.exit_code = self.server.run()

    def start(self):
        """Start server in background thread and wait until it accepts."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    @property
    def port(self) -> int:
        return self.server.address[1]

    def request(self, method: str, path: str, body: Optional[bytes] = None, headers: Optional[dict] = None):
        """Send one request; returns (status, headers, body)."""
        conn = http.client.HTTPConnection("127.0.0.1", self.port, timeout=5)
        try:
            conn.request(method, path, body=body, headers=headers or {})
            response = conn.getresponse()
            return response.status, dict(response.getheaders()), response.read()
        finally:
            conn.close()

    def submit(self, name: str, message: str, domain: str = "example.com", color: str = "#00ff00"):
        """POST a guestbook entry the way the front-end form does."""
        from urllib.parse import urlencode

        body = urlencode({"color": color, "name": name, "domain": domain, "message": message})
        return self.request(
            "POST", "/", body=body.encode(),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

    def stop(self, timeout: float = 10.0) -> Optional[int]:
        """Stop the server and return its exit code."""
        self.server.shutdown("test teardown")
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        return self.exit_code


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running guestbook server."""
    exit_calls = []
    server = GuestbookServer(config, exit_func=exit_calls.append)

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def server_factory(config: ServerConfig) -> Generator:
    """Build extra servers from ``config``; any still running are stopped at teardown."""
    started = []

    def factory(exit_calls: Optional[list] = None) -> TestServer:
        calls = exit_calls if exit_calls is not None else []
        test_srv = TestServer(GuestbookServer(config, exit_func=calls.append))
        started.append(test_srv)
        return test_srv

    yield factory

    for test_srv in started:
        test_srv.stop()
