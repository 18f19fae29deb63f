"""
=============================================================================
DYNAMIC CONTENT (CGI) HANDLER
=============================================================================

Runs an executable from the document tree and lets it write the response
body straight into the client socket.

=============================================================================
THE CONTRACT WITH THE PROGRAM
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    WHAT A CGI PROGRAM GETS                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   argv          just its own path, no arguments                     │
    │   stdin         /dev/null (GET requests have no body)               │
    │   stdout        THE CLIENT SOCKET                                   │
    │   stderr        the server's stderr                                 │
    │   environment   the server's environment + QUERY_STRING             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Before the program starts the server has already written:

    HTTP/1.0 200 OK\\r\\n
    Server: Tiny Web Server\\r\\n

and nothing else. The program finishes the header block itself:

    Content-type: text/html\\r\\n
    Content-length: 42\\r\\n
    \\r\\n
    <body...>

=============================================================================
WHY A PER-SPAWN ENVIRONMENT?
=============================================================================

The classic way to hand QUERY_STRING to a CGI program is to set it in
the server's own environment right before exec. That is process-wide
state; two requests in flight would race on it. Here every spawn gets
its own copy of the environment with QUERY_STRING set, and os.environ
is never written.

=============================================================================
"""

import logging
import os
import subprocess
from typing import Optional

from ..core.connection import Connection
from ..http.errors import AccessDeniedError, EXECUTE_DENIED
from ..http.response import SERVER_NAME, dynamic_response
from ..http.uri import ResolvedResource
from .metadata import FileMetadata


logger = logging.getLogger(__name__)

QUERY_STRING_VAR = "QUERY_STRING"


class SpawnError(Exception):
    """The CGI program could not be started after the response head was sent."""


def build_environment(query_args: str, base: Optional[dict] = None) -> dict:
    """
    Environment for one CGI child: `base` (default: os.environ) plus
    QUERY_STRING, which overwrites any inherited value.
    """
    env = dict(os.environ if base is None else base)
    env[QUERY_STRING_VAR] = query_args
    return env


class DynamicContentHandler:
    """
    Handler for dynamic content.

    Usage:
        handler = DynamicContentHandler(cgi_timeout=10.0)
        handler.check(resource, metadata)              # raises on 403
        handler.serve(conn, resource, "./cgi-bin/adder")
    """

    def __init__(self, server_name: str = SERVER_NAME, cgi_timeout: Optional[float] = None):
        self.server_name = server_name
        self.cgi_timeout = cgi_timeout

    def check(self, resource: ResolvedResource, metadata: FileMetadata) -> None:
        """
        Raises:
            AccessDeniedError: Not a regular file, or the owner-execute bit is off.
        """
        if not metadata.is_regular_file or not metadata.executable:
            raise AccessDeniedError(cause=resource.filesystem_path, long_message=EXECUTE_DENIED)

    def serve(self, conn: Connection, resource: ResolvedResource, path: str) -> int:
        """
        Run the program at `path` with its stdout attached to the client.

        Blocks until the program exits (or is killed on cgi_timeout).

        Returns:
            The program's exit status (negative: killed by that signal).

        Raises:
            AccessDeniedError: The kernel would refuse to execute the file.
                               Checked before anything is written.
            SpawnError: The program failed to start after the head went out.
            ConnectionError: The client went away before the head was sent.
        """
        # Last check before committing to a 200: once the head is on the
        # wire an error page is no longer possible.
        if not os.access(path, os.X_OK):
            raise AccessDeniedError(cause=resource.filesystem_path, long_message=EXECUTE_DENIED)

        head = dynamic_response(self.server_name).head_bytes(terminate=False)
        logger.debug(f"[{conn.id}] Response headers:\n{head.decode('iso-8859-1')}")
        conn.send_all(head)

        program = os.path.abspath(path)
        env = build_environment(resource.query_args)

        with conn.blocking() as client_fd:
            try:
                proc = subprocess.Popen(
                    [program],
                    stdin=subprocess.DEVNULL,
                    stdout=client_fd,
                    env=env,
                )
            except OSError as e:
                raise SpawnError(f"Could not run {resource.filesystem_path}: {e}") from e

            with proc:
                logger.debug(f"[{conn.id}] Started {resource.filesystem_path} (pid {proc.pid})")
                try:
                    returncode = proc.wait(timeout=self.cgi_timeout)
                except subprocess.TimeoutExpired:
                    logger.warning(
                        f"[{conn.id}] {resource.filesystem_path} exceeded "
                        f"{self.cgi_timeout}s, killing pid {proc.pid}"
                    )
                    proc.kill()
                    returncode = proc.wait()

        if returncode != 0:
            logger.warning(f"[{conn.id}] {resource.filesystem_path} exited with status {returncode}")
        return returncode
