"""
Server-wide counters.

Connection threads update these concurrently, so every mutation goes through
one small mutex. Readers (the INFO command) take a snapshot.
"""

import threading
import time
from dataclasses import dataclass, field


@dataclass
class ServerStats:
    """
    Runtime statistics reported by INFO.

    Attributes:
        started_at: Process start timestamp.
        connected_clients: Connections currently open.
        total_connections_received: Connections accepted since start.
        total_commands_processed: Commands dispatched since start.
        protocol_errors: Connections closed because of a decode error.
    """

    started_at: float = field(default_factory=time.time)
    connected_clients: int = 0
    total_connections_received: int = 0
    total_commands_processed: int = 0
    protocol_errors: int = 0

    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def uptime(self) -> float:
        return time.time() - self.started_at

    def connection_opened(self) -> None:
        with self._lock:
            self.connected_clients += 1
            self.total_connections_received += 1

    def connection_closed(self) -> None:
        with self._lock:
            self.connected_clients -= 1

    def command_processed(self) -> None:
        with self._lock:
            self.total_commands_processed += 1

    def protocol_error(self) -> None:
        with self._lock:
            self.protocol_errors += 1

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_in_seconds": int(self.uptime),
                "connected_clients": self.connected_clients,
                "total_connections_received": self.total_connections_received,
                "total_commands_processed": self.total_commands_processed,
                "protocol_errors": self.protocol_errors,
            }
