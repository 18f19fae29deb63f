"""
Low-level networking: the listening socket and per-client connections.
"""

from .connection import Connection, ConnectionState, LineTooLongError
from .socket_server import SocketServer

__all__ = ["Connection", "ConnectionState", "LineTooLongError", "SocketServer"]
