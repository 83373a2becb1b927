"""
Core package - sockets, connections and server statistics.
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .stats import ServerStats

__all__ = ["Connection", "ConnectionState", "SocketServer", "ServerStats"]
