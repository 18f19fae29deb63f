"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Generator, Tuple

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tinyhttpd import ServerConfig, TinyHTTPServer
from tinyhttpd.core.connection import Connection


HOME_HTML = b"<html><head><title>test</title></head><body>Tiny home</body></html>\n"
GIF_BYTES = b"GIF89a\x01\x00\x01\x00\x80\x00\x00\xff\xff\xff\x00\x00\x00!\xf9\x04\x00\x00\x00\x00\x00,"

ADDER_SCRIPT = """#!/bin/sh
a=${QUERY_STRING%%&*}
b=${QUERY_STRING#*&}
body="Welcome to add.com: The answer is: $a + $b = $((a + b))"
printf 'Connection: close\\r\\n'
printf 'Content-length: %d\\r\\n' "$(( ${#body} + 1 ))"
printf 'Content-type: text/html\\r\\n\\r\\n'
printf '%s\\n' "$body"
"""

ENV_SCRIPT = """#!/bin/sh
printf 'Content-type: text/plain\\r\\n\\r\\n'
printf 'QUERY_STRING=%s\\n' "$QUERY_STRING"
printf 'ARGC=%d\\n' "$#"
"""

SLOW_SCRIPT = """#!/bin/sh
printf 'Content-type: text/plain\\r\\n\\r\\n'
exec sleep 30
"""


def _write(path: Path, content: bytes, mode: int) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    os.chmod(path, mode)
    return path


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP/1.0 GET request."""
    return (
        b"GET /home.html HTTP/1.0\r\n"
        b"Host: localhost:8000\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """
    A document tree:

        home.html              readable
        godzilla.gif           readable, binary
        notes.txt              readable, no known extension
        secret.html            owner-read bit off
        docs/home.html         default document of a subdirectory
        empty.html             zero bytes
        cgi-bin/adder          executable, adds QUERY_STRING "a&b"
        cgi-bin/env            executable, echoes QUERY_STRING and argc
        cgi-bin/slow           executable, never finishes
        cgi-bin/noexec         owner-execute bit off
    """
    root = tmp_path / "www"
    root.mkdir()

    _write(root / "home.html", HOME_HTML, 0o644)
    _write(root / "godzilla.gif", GIF_BYTES, 0o644)
    _write(root / "notes.txt", b"plain notes\n", 0o644)
    _write(root / "secret.html", b"<p>secret</p>", 0o244)
    _write(root / "docs" / "home.html", b"<p>docs</p>", 0o644)
    _write(root / "empty.html", b"", 0o644)

    _write(root / "cgi-bin" / "adder", ADDER_SCRIPT.encode(), 0o755)
    _write(root / "cgi-bin" / "env", ENV_SCRIPT.encode(), 0o755)
    _write(root / "cgi-bin" / "slow", SLOW_SCRIPT.encode(), 0o755)
    _write(root / "cgi-bin" / "noexec", ENV_SCRIPT.encode(), 0o644)

    return root


@pytest.fixture
def conn_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """
    A server-side Connection wired to a client socket, no network needed.
    """
    server_sock, client_sock = socket.socketpair()
    conn = Connection(socket=server_sock, address=("127.0.0.1", 54321), timeout=5.0)
    client_sock.settimeout(5.0)

    yield conn, client_sock

    conn.close()
    client_sock.close()


def read_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False

    def __init__(self, server: TinyHTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.server_address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_started(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        """Send raw request bytes and return everything the server sends back."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=10.0) as sock:
            sock.sendall(raw)
            return read_all(sock)

    def get(self, target: str) -> bytes:
        return self.request(f"GET {target} HTTP/1.0\r\nHost: localhost\r\n\r\n".encode("iso-8859-1"))


@pytest.fixture
def server_config(docroot: Path) -> ServerConfig:
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        document_root=str(docroot),
        timeout=5.0,
        cgi_timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def test_server(server_config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server over the `docroot` tree."""
    test_srv = TestServer(TinyHTTPServer(server_config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


def split_response(raw: bytes) -> Tuple[str, dict, bytes]:
    """Split a response into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return lines[0], headers, body

