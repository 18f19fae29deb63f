"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Serves a file from the document tree byte-for-byte.

=============================================================================
FLOW
=============================================================================

    check()                         serve()
    ───────                         ───────
    regular file?  ──no──► 403      open(path, "rb")   ← authoritative check
    owner-readable? ─no──► 403        │  FileNotFoundError    → 404
                                      │  PermissionError      → 403
                                      ▼
                                    fstat(fd).st_size  → Content-length
                                    send head
                                    sendfile(fd, size) → zero-copy body
                                    close(fd)          ← on every path

=============================================================================
WHY FSTAT THE OPEN FILE?
=============================================================================

The size from the earlier stat() may be stale by the time the file is
opened. Taking Content-length from the descriptor that is actually being
sent keeps the declared length and the transferred length identical. If
the file is truncated DURING the transfer the response can no longer be
completed honestly, so the connection is dropped instead.

=============================================================================
"""

import logging
import os
import stat

from ..core.connection import Connection
from ..http.errors import AccessDeniedError, ResourceError, READ_DENIED
from ..http.mime_types import get_content_type
from ..http.response import HTTPResponse, SERVER_NAME, static_response
from ..http.uri import ResolvedResource
from .metadata import FileMetadata


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Handler for static content.

    Usage:
        handler = StaticFileHandler()
        handler.check(resource, metadata)          # raises on 403
        handler.serve(conn, resource, "./home.html")
    """

    def __init__(self, server_name: str = SERVER_NAME):
        self.server_name = server_name

    def check(self, resource: ResolvedResource, metadata: FileMetadata) -> None:
        """
        Raises:
            AccessDeniedError: Not a regular file, or the owner-read bit is off.
        """
        if not metadata.is_regular_file or not metadata.readable:
            raise AccessDeniedError(cause=resource.filesystem_path, long_message=READ_DENIED)

    def serve(self, conn: Connection, resource: ResolvedResource, path: str) -> HTTPResponse:
        """
        Send the file at `path` to the client.

        Args:
            conn: Client connection.
            resource: The resolved request target (used for the content
                      type and in error pages).
            path: Local path of the file, document root applied.

        Returns:
            The response whose head was sent.

        Raises:
            ResourceError: The file vanished after the metadata check.
            AccessDeniedError: The open itself was refused.
            ConnectionError: The client went away, or the file shrank
                             mid-transfer.
        """
        cause = resource.filesystem_path
        try:
            file = open(path, "rb")
        except FileNotFoundError:
            raise ResourceError(cause=cause) from None
        except (PermissionError, IsADirectoryError):
            raise AccessDeniedError(cause=cause, long_message=READ_DENIED) from None

        with file:
            st = os.fstat(file.fileno())
            if not stat.S_ISREG(st.st_mode):
                raise AccessDeniedError(cause=cause, long_message=READ_DENIED)

            size = st.st_size
            response = static_response(size, get_content_type(resource.filesystem_path), self.server_name)
            head = response.head_bytes()
            logger.debug(f"[{conn.id}] Response headers:\n{head.decode('iso-8859-1')}")

            conn.send_all(head)
            sent = conn.send_file(file, size)
            if sent != size:
                raise ConnectionError(f"{cause} changed during transfer: sent {sent} of {size} bytes")

        return response
