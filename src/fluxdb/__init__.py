"""
=============================================================================
FLUXDB - A THREADED RESP KEY-VALUE SERVER
=============================================================================

FluxDB speaks the Redis serialization protocol (RESP) over TCP and keeps an
in-memory string keyspace plus a small runtime configuration namespace.

    redis-cli -p 6379 SET greeting hello     → OK
    redis-cli -p 6379 GET greeting           → "hello"

=============================================================================
PACKAGE LAYOUT
=============================================================================

    fluxdb/
    ├── protocol/     RESP + legacy inline codecs, reply frames
    ├── store/        Keyspace and config maps behind reader/writer locks
    ├── commands/     Command table, dispatcher, built-in commands
    ├── middleware/   Pipeline around the dispatcher (command logging)
    ├── core/         Socket server, connections, statistics
    ├── server.py     FluxServer: wires everything together
    ├── client.py     Minimal blocking RESP client
    ├── config.py     ServerConfig (defaults / environment / CLI)
    └── __main__.py   python -m fluxdb

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import FluxServer, create_app
from .client import FluxClient, ReplyError

__all__ = [
    "FluxServer",
    "ServerConfig",
    "FluxClient",
    "ReplyError",
    "create_app",
    "__version__",
]
