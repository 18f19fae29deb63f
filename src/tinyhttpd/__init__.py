"""
=============================================================================
TINYHTTPD - The Tiny Web Server
=============================================================================

A minimal, iterative HTTP/1.0 origin server. It answers GET requests with
either the bytes of a static file or the output of a CGI program.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         PACKAGE STRUCTURE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   tinyhttpd/                                                        │
    │   ├── __main__.py          CLI (python -m tinyhttpd <port>)        │
    │   ├── config.py            ServerConfig dataclass                  │
    │   ├── server.py            TinyHTTPServer, request pipeline        │
    │   ├── access_log.py        per-request access log entries          │
    │   ├── core/                                                         │
    │   │   ├── connection.py    buffered line reads, sendall, sendfile  │
    │   │   └── socket_server.py listen + iterative accept loop          │
    │   ├── http/                                                         │
    │   │   ├── request.py       request line parsing, header draining   │
    │   │   ├── uri.py           static/dynamic classification           │
    │   │   ├── response.py      header blocks and the error page        │
    │   │   ├── errors.py        501 / 404 / 403 exceptions              │
    │   │   ├── status_codes.py  HTTPStatus                              │
    │   │   └── mime_types.py    ordered Content-type table              │
    │   └── handlers/                                                     │
    │       ├── metadata.py      stat() snapshot, document root join     │
    │       ├── static.py        file transfer                           │
    │       └── dynamic.py       CGI child processes                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from tinyhttpd import TinyHTTPServer, ServerConfig

    server = TinyHTTPServer(ServerConfig(port=8000, document_root="www"))
    server.run()

    $ curl http://localhost:8000/                  # www/home.html
    $ curl http://localhost:8000/cgi-bin/adder?15&20

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import TinyHTTPServer

__all__ = ["TinyHTTPServer", "ServerConfig", "__version__"]
