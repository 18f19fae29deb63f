"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the Tiny web server.

Every knob lives in one dataclass. The defaults reproduce the classic
iterative Tiny behavior (serve ./<path>, home.html for directories,
"cgi-bin" marks dynamic content); the hardening knobs (timeouts, header
bounds) can be loosened back to the unbounded classic behavior by setting them
to None.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command-line arguments    python -m tinyhttpd 8000 --root www  │
    │   2. Environment variables     TINYHTTPD_ROOT=www                   │
    │   3. Default values            (this dataclass)                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the Tiny web server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    REQUEST LIMITS
    - max_header_lines, max_line_length

    DOCUMENT TREE
    - document_root, default_document, dynamic_marker, cgi_timeout

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Interface to bind. "0.0.0.0" listens on all interfaces."""

    port: int = 8000
    """Port to listen on. 0 lets the OS pick a free one (handy in tests)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Size of each socket recv() in bytes."""

    timeout: Optional[float] = 30.0
    """
    Per-connection read/write deadline in seconds.

    The classic server blocks forever on a silent client. None restores
    that behavior; anything else turns a stalled client into a
    ConnectionError that abandons the request.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_header_lines: Optional[int] = 100
    """Header lines drained before the request is abandoned. None = unbounded."""

    max_line_length: int = 8192
    """Longest request or header line accepted, terminator included."""

    # ─────────────────────────────────────────────────────────────────────
    # DOCUMENT TREE
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "."
    """Directory that "./<path>" filesystem paths are resolved against."""

    default_document: str = "home.html"
    """Appended to static targets that end in "/"."""

    dynamic_marker: str = "cgi-bin"
    """Substring that classifies a request target as dynamic content."""

    cgi_timeout: Optional[float] = None
    """Kill a dynamic handler that runs longer than this. None = wait forever."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY & LOGGING
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "Tiny Web Server"
    """Value of the Server header."""

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (common log style) or 'json'."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TINYHTTPD_HOST          Bind address (default: 0.0.0.0)
        TINYHTTPD_PORT          Port (default: 8000)
        TINYHTTPD_ROOT          Document root (default: .)
        TINYHTTPD_TIMEOUT       Connection deadline, "none" disables (default: 30)
        TINYHTTPD_CGI_TIMEOUT   Dynamic handler limit (default: unset)
        TINYHTTPD_LOG_LEVEL     Logging level (default: INFO)
        TINYHTTPD_LOG_FORMAT    text or json (default: text)

        =====================================================================
        """
        return cls(
            host=os.getenv("TINYHTTPD_HOST", "0.0.0.0"),
            port=int(os.getenv("TINYHTTPD_PORT", "8000")),
            document_root=os.getenv("TINYHTTPD_ROOT", "."),
            timeout=_optional_float(os.getenv("TINYHTTPD_TIMEOUT", "30")),
            cgi_timeout=_optional_float(os.getenv("TINYHTTPD_CGI_TIMEOUT")),
            log_level=os.getenv("TINYHTTPD_LOG_LEVEL", "INFO"),
            log_format=os.getenv("TINYHTTPD_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called at startup so a bad value fails immediately instead of on
        the first request that touches it.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")
        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")
        if self.buffer_size < 1:
            raise ValueError("buffer_size must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
        if self.cgi_timeout is not None and self.cgi_timeout <= 0:
            raise ValueError("cgi_timeout must be > 0")
        if self.max_header_lines is not None and self.max_header_lines < 1:
            raise ValueError("max_header_lines must be >= 1")
        if self.max_line_length < 2:
            raise ValueError("max_line_length must be >= 2")
        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")
        if not self.dynamic_marker:
            raise ValueError("dynamic_marker must not be empty")
        if not os.path.isdir(self.document_root):
            raise ValueError(f"Document root is not a directory: {self.document_root}")


def _optional_float(value: Optional[str]) -> Optional[float]:
    if value is None or value.strip().lower() in ("", "none"):
        return None
    return float(value)
