"""
=============================================================================
TINY WEB SERVER CLI ENTRY POINT
=============================================================================

USAGE
    python -m tinyhttpd <port>
    python -m tinyhttpd 8000 --root ./www
    python -m tinyhttpd 8000 --log-level DEBUG --log-format json
    tinyhttpd 8000                                   (console script)

The port is the one required argument. A missing or extra positional
argument prints the usage line and exits with status 1.

TINYHTTPD_* environment variables (see ServerConfig.from_env) supply the
option defaults; flags given on the command line win. The port always
comes from the command line.

=============================================================================
"""

import argparse
import sys
from dataclasses import replace
from typing import List, NoReturn, Optional

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .server import TinyHTTPServer


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with status 2 on usage errors; Tiny always used 1."""

    def error(self, message: str) -> NoReturn:
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser(defaults: Optional[ServerConfig] = None) -> argparse.ArgumentParser:
    """
    Build the CLI parser. Option defaults come from `defaults`, so a
    ServerConfig.from_env() passed in here sits under the command line.
    """
    defaults = defaults or ServerConfig()
    parser = _ArgumentParser(
        prog="tinyhttpd",
        description="Iterative HTTP/1.0 server for static files and CGI programs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tinyhttpd 8000                       # Serve the current directory
  tinyhttpd 8000 --root ./www          # Serve ./www
  tinyhttpd 8000 --cgi-timeout 10      # Kill CGI programs after 10s
        """,
    )

    parser.add_argument("port", type=int, help="Port to listen on")
    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Address to bind to (default: {defaults.host})",
    )
    parser.add_argument(
        "--root", "-r",
        default=defaults.document_root,
        help="Document root (default: current directory)",
    )
    parser.add_argument(
        "--timeout", "-t",
        type=float,
        default=defaults.timeout,
        help=f"Per-connection read/write deadline in seconds (default: {defaults.timeout})",
    )
    parser.add_argument(
        "--cgi-timeout",
        type=float,
        default=defaults.cgi_timeout,
        help="Kill CGI programs that run longer than this many seconds (default: no limit)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=defaults.log_level.upper(),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default=defaults.log_format,
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tinyhttpd {__version__}",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    try:
        env = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: bad TINYHTTPD_* setting: {e}", file=sys.stderr)
        return 1

    args = build_parser(env).parse_args(argv)

    config = replace(
        env,
        host=args.host,
        port=args.port,
        document_root=args.root,
        timeout=args.timeout,
        cgi_timeout=args.cgi_timeout,
        log_level=args.log_level,
        log_format=args.log_format,
    )

    try:
        TinyHTTPServer(config).run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
