"""
=============================================================================
TINY HTTP SERVER
=============================================================================

Ties the pieces together into the per-connection request pipeline.

=============================================================================
REQUEST STATE MACHINE
=============================================================================

    ┌──────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   read request line ──► method GET? ──no──────────────► Error(501)   │
    │                             │ yes                                    │
    │                             ▼                                        │
    │                        skip headers                                  │
    │                             │                                        │
    │                             ▼                                        │
    │                   classify + resolve target                          │
    │                             │                                        │
    │                             ▼                                        │
    │                          stat() ──── missing ─────────► Error(404)   │
    │                             │                                        │
    │                   inside document root? ──no──────────► Error(403)   │
    │                             │ yes                                    │
    │                 ┌───────────┴───────────┐                            │
    │              static                  dynamic                         │
    │           readable file?          executable file? ──no─► Error(403) │
    │                 │                       │                            │
    │           serve static            serve dynamic                      │
    │                 └───────────┬───────────┘                            │
    │                             ▼                                        │
    │                           Done                                       │
    │                                                                      │
    └──────────────────────────────────────────────────────────────────────┘

Every error state is terminal: an HTTPError raised anywhere in the
pipeline is caught once, at the top, turned into exactly one error
page, and the connection is closed.

A broken or stalled client (ConnectionError / TimeoutError) is a
different thing: nobody is listening for an error page, so the request
is abandoned quietly and the server moves on to the next connection.

=============================================================================
"""

import logging
import socket
import time
from typing import Optional, Tuple

from .access_log import log_request
from .config import ServerConfig
from .core.connection import Connection
from .core.socket_server import SocketServer
from .handlers.dynamic import DynamicContentHandler, SpawnError
from .handlers.metadata import ensure_inside_root, local_path, stat_resource
from .handlers.static import StaticFileHandler
from .http.errors import HTTPError, ResourceError
from .http.request import parse_request_line, skip_headers
from .http.response import error_response
from .http.status_codes import HTTPStatus
from .http.uri import resolve_target


logger = logging.getLogger(__name__)


class TinyHTTPServer:
    """
    Iterative HTTP/1.0 server for static files and CGI programs.

    Usage:
        server = TinyHTTPServer(ServerConfig(port=8000, document_root="www"))
        server.run()  # Blocks until Ctrl+C / SIGTERM
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()

        self._socket_server = SocketServer(self.config)
        self._static = StaticFileHandler(server_name=self.config.server_name)
        self._dynamic = DynamicContentHandler(
            server_name=self.config.server_name,
            cgi_timeout=self.config.cgi_timeout,
        )

    @property
    def server_address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def wait_until_started(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_started(timeout)

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True):
        """
        Start serving (blocking).

        Raises:
            ValueError: The configuration is invalid.
            OSError: The port could not be bound.
        """
        self.config.validate()
        if configure_logging:
            self._setup_logging()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}, "
            f"document root {self.config.document_root!r}"
        )
        try:
            self._socket_server.start(self.handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections; the in-flight request is finished first."""
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("tinyhttpd").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def handle_connection(self, conn: Connection):
        """
        Handle one connection from first byte to close.

        Never raises: whatever goes wrong with this request is logged and
        the server carries on with the next connection.
        """
        host, port = format_peer(conn.address)
        logger.info(f"Accepted connection from ({host}, {port})")

        started_at = time.time()
        request_line = ""
        status: Optional[int] = None

        with conn:
            try:
                line = conn.read_line()
                request_line = line.decode("utf-8", "backslashreplace").strip()
                status = self._process(conn, line)

            except HTTPError as e:
                status = e.status
                self._send_error(conn, e)

            except (ConnectionError, TimeoutError) as e:
                logger.warning(f"[{conn.id}] Request abandoned: {e}")

            except SpawnError as e:
                logger.error(f"[{conn.id}] {e}")

            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error: {e}")

        log_request(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            request_line=request_line,
            status=status,
            bytes_sent=conn.bytes_sent,
            started_at=started_at,
            log_format=self.config.log_format,
        )

    def _process(self, conn: Connection, line: bytes) -> HTTPStatus:
        """
        Run the request pipeline for an already-read request line.

        Returns:
            The status of the response that was sent.

        Raises:
            HTTPError: For the error page the caller should send.
        """
        request = parse_request_line(line)

        headers = skip_headers(conn, self.config.max_header_lines)
        logger.debug(
            f"[{conn.id}] Request headers:\n{request.request_line}\n" + "\n".join(headers)
        )

        resource = resolve_target(
            request.target,
            default_document=self.config.default_document,
            dynamic_marker=self.config.dynamic_marker,
        )

        path = local_path(self.config.document_root, resource.filesystem_path)
        metadata = stat_resource(path)
        if not metadata.exists:
            raise ResourceError(cause=resource.filesystem_path)
        ensure_inside_root(self.config.document_root, path, cause=resource.filesystem_path)

        if resource.is_dynamic:
            self._dynamic.check(resource, metadata)
            self._dynamic.serve(conn, resource, path)
        else:
            self._static.check(resource, metadata)
            self._static.serve(conn, resource, path)

        return HTTPStatus.OK

    def _send_error(self, conn: Connection, error: HTTPError):
        """
        Send the error page for `error`.

        Skipped if part of a response already went out; a second status
        line in the middle of a body would only corrupt it.
        """
        if conn.bytes_sent:
            logger.error(f"[{conn.id}] {error} after the response head was sent")
            return

        response = error_response(error)
        logger.debug(f"[{conn.id}] Response headers:\n{response.head_bytes().decode('iso-8859-1')}")
        try:
            conn.send_all(response.to_bytes())
        except (ConnectionError, TimeoutError) as e:
            logger.warning(f"[{conn.id}] Could not send {int(error.status)} page: {e}")


def format_peer(address: Tuple[str, int]) -> Tuple[str, str]:
    """
    Host name and port of a peer, for logging.

    Falls back to the numeric address when reverse lookup fails.
    """
    try:
        return socket.getnameinfo(address[:2], 0)
    except (OSError, UnicodeError):
        return address[0], str(address[1])
