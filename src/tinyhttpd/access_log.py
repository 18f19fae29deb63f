"""
=============================================================================
ACCESS LOGGING
=============================================================================

One structured entry per handled request, written to the
"tinyhttpd.access" logger so it can be routed separately from the
server's diagnostic logging:

    logging.getLogger("tinyhttpd.access").addHandler(file_handler)

Two formats:

    text  127.0.0.1 - - [19/Oct/2026:10:00:00 +0000] "GET / HTTP/1.0" 200 2154 0.41ms
    json  {"connection_id": "1f2e3d4c", "client_ip": "127.0.0.1", ...}

=============================================================================
"""

import json
import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional


logger = logging.getLogger("tinyhttpd.access")


@dataclass
class RequestLog:
    """
    Structured log entry for a request.

    status is None when the request was abandoned before any response
    (client hung up, deadline expired).
    """

    connection_id: str
    client_ip: str
    request_line: str
    status: Optional[int]
    bytes_sent: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Common log format, with the duration appended."""
        status = "-" if self.status is None else self.status
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.request_line}" {status} '
            f'{self.bytes_sent} {self.duration_ms:.2f}ms'
        )


def log_request(
    connection_id: str,
    client_ip: str,
    request_line: str,
    status: Optional[int],
    bytes_sent: int,
    started_at: float,
    log_format: str = "text",
) -> RequestLog:
    """Build a RequestLog and emit it at INFO."""
    entry = RequestLog(
        connection_id=connection_id,
        client_ip=client_ip,
        request_line=request_line,
        status=status,
        bytes_sent=bytes_sent,
        duration_ms=(time.time() - started_at) * 1000,
        timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
    )

    if log_format == "json":
        logger.info(json.dumps(entry.to_dict()))
    else:
        logger.info(entry.to_text())
    return entry
