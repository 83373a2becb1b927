"""
=============================================================================
COMMAND LOGGING MIDDLEWARE
=============================================================================

Logs every command with timing information, the way a web server writes
an access log.

=============================================================================
LOG FORMATS
=============================================================================

TEXT:

    127.0.0.1:52814 [3f2a9c1e] SET argc=2 -> simple 0.08ms
    127.0.0.1:52814 [77b0d4aa] GET argc=1 -> bulk 0.03ms

JSON (one object per line, for log aggregators):

    {"command_id": "3f2a9c1e", "client": "127.0.0.1:52814", "command": "SET",
     "argc": 2, "reply": "simple", "duration_ms": 0.08, "timestamp": "..."}

ARGUMENT VALUES ARE NEVER LOGGED. Keys and values are user data; only the
verb and the number of arguments are recorded.

=============================================================================
SLOW COMMANDS
=============================================================================

A command that takes longer than slowlog_threshold_ms is logged at
WARNING instead of the normal level, so a slow-command report is a
`grep WARNING` away.

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import dataclass
from typing import Optional

from .base import Middleware, NextHandler
from ..protocol.command import Command
from ..protocol.frames import Frame, frame_kind


logger = logging.getLogger("fluxdb.commands.log")


@dataclass
class CommandLog:
    """
    Structured log entry for one command.

    command_id:   Short unique ID for correlating log lines
    client:       Client "ip:port"
    command:      Normalized verb (SET, GET, ...)
    argc:         Number of arguments after the verb
    reply:        Reply kind: simple, error, integer, bulk or array
    duration_ms:  Dispatch time, middleware included
    timestamp:    When the command finished
    """

    command_id: str
    client: str
    command: str
    argc: int
    reply: str
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "command_id": self.command_id,
            "client": self.client,
            "command": self.command,
            "argc": self.argc,
            "reply": self.reply,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        return (
            f"{self.client} [{self.command_id}] {self.command} "
            f"argc={self.argc} -> {self.reply} {self.duration_ms:.2f}ms"
        )


class CommandLoggingMiddleware(Middleware):
    """
    Command logging middleware.

    Should be FIRST in the pipeline so its timing covers everything that
    runs after it, including commands rejected by other middleware.

    Usage:
        server.use(CommandLoggingMiddleware())
        server.use(CommandLoggingMiddleware(log_format="json"))
        server.use(CommandLoggingMiddleware(skip_commands=["PING"]))
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        slowlog_threshold_ms: Optional[float] = 10.0,
        skip_commands: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" (one readable line) or "json".
            log_level: Level for normal command records.
            slowlog_threshold_ms: Commands slower than this log at WARNING.
                                  None disables the slow log.
            skip_commands: Verbs not to log (e.g. noisy health-check PINGs).
        """
        self.log_format = log_format
        self.log_level = log_level
        self.slowlog_threshold_ms = slowlog_threshold_ms
        self.skip_commands = {name.upper() for name in skip_commands or []}

    def __call__(self, command: Command, next: NextHandler) -> Frame:
        command_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            reply = next(command)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Command failed: [{command_id}] {command.name} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        if command.name in self.skip_commands:
            return reply

        host, port = command.client_address
        entry = CommandLog(
            command_id=command_id,
            client=f"{host}:{port}",
            command=command.name,
            argc=len(command.args),
            reply=frame_kind(reply),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        level = self.log_level
        if self.slowlog_threshold_ms is not None and duration_ms > self.slowlog_threshold_ms:
            level = logging.WARNING

        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())

        return reply
