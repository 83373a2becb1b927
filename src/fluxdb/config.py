"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the FluxDB server.

=============================================================================
TWO LAYERS OF CONFIGURATION
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ServerConfig (this module)          ConfigStore (runtime)         │
    │   ───────────────────────────         ─────────────────────         │
    │   typed dataclass                     string → string map           │
    │   read at process start               CONFIG GET / CONFIG SET       │
    │   CLI > environment > defaults        seeded FROM ServerConfig      │
    │                                                                      │
    │        host, port, max_clients, timeout ──► bind, port,             │
    │                                             max_clients, timeout    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The listener binds to the ConfigStore's `bind`/`port` entries, read once at
startup. A later CONFIG SET port 7000 changes what CONFIG GET reports but
does not move the listening socket.

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    FLUXDB_BIND         Address to bind (default: 0.0.0.0)
    FLUXDB_PORT         Port to listen on (default: 6379)
    FLUXDB_PROTOCOL     "resp" or "inline" (default: resp)
    FLUXDB_MAX_CLIENTS  Advisory client limit (default: 10000)
    FLUXDB_LOG_LEVEL    DEBUG / INFO / WARNING / ERROR (default: INFO)
    FLUXDB_LOG_FORMAT   "text" or "json" (default: text)

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Dict

from .protocol import CODECS
from .protocol.codec import (
    DEFAULT_MAX_BULK_LENGTH,
    DEFAULT_MAX_INLINE_LENGTH,
    DEFAULT_MAX_MULTIBULK_LENGTH,
)


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the FluxDB server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog
    ADVISORY    max_clients, timeout (published in CONFIG, not enforced)
    PROTOCOL    protocol, max_bulk_length, max_multibulk_length,
                max_inline_length
    LOGGING     log_level, log_format, slowlog_threshold_ms

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind to. Published as the `bind` config entry."""

    port: int = 6379
    """Port to listen on. 0 lets the OS pick a free port (tests)."""

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    # ─────────────────────────────────────────────────────────────────────
    # ADVISORY SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_clients: int = 10000
    timeout: int = 0

    # ─────────────────────────────────────────────────────────────────────
    # PROTOCOL
    # ─────────────────────────────────────────────────────────────────────

    protocol: str = "resp"
    """Wire codec for every connection: "resp" or "inline" (legacy lines)."""

    max_bulk_length: int = DEFAULT_MAX_BULK_LENGTH
    max_multibulk_length: int = DEFAULT_MAX_MULTIBULK_LENGTH
    max_inline_length: int = DEFAULT_MAX_INLINE_LENGTH

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"

    slowlog_threshold_ms: float = 10.0
    """Commands slower than this are logged at WARNING."""

    server_name: str = "FluxDB"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from FLUXDB_* environment variables.

        Usage:
            FLUXDB_PORT=7000 FLUXDB_LOG_LEVEL=DEBUG python -m fluxdb
        """
        return cls(
            host=os.getenv("FLUXDB_BIND", "0.0.0.0"),
            port=int(os.getenv("FLUXDB_PORT", "6379")),
            protocol=os.getenv("FLUXDB_PROTOCOL", "resp"),
            max_clients=int(os.getenv("FLUXDB_MAX_CLIENTS", "10000")),
            log_level=os.getenv("FLUXDB_LOG_LEVEL", "INFO"),
            log_format=os.getenv("FLUXDB_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """Validate configuration values, failing fast at startup."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.protocol not in CODECS:
            raise ValueError(
                f"Unknown protocol: {self.protocol!r}. "
                f"Expected one of: {', '.join(sorted(CODECS))}"
            )

        for name in ("max_bulk_length", "max_multibulk_length", "max_inline_length"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be >= 1")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.log_level}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}")

    def runtime_settings(self) -> Dict[str, str]:
        """The initial contents of the runtime ConfigStore."""
        return {
            "port": str(self.port),
            "bind": self.host,
            "max_clients": str(self.max_clients),
            "timeout": str(self.timeout),
        }

    def codec_limits(self) -> Dict[str, int]:
        return {
            "max_bulk_length": self.max_bulk_length,
            "max_multibulk_length": self.max_multibulk_length,
            "max_inline_length": self.max_inline_length,
        }
