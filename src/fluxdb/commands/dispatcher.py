"""
=============================================================================
COMMAND DISPATCHER
=============================================================================

The dispatcher turns one decoded Command into one reply Frame:

    Command(["set", "foo", "bar"])
          │
          ▼
    1. Normalize verb ─────────── "set" → "SET"
          │
    2. Table lookup ───────────── unknown? → -ERR unknown command 'SET'
          │
    3. Subcommand (CONFIG only) ─ unknown? → -ERR unknown subcommand ...
          │
    4. Arity check ────────────── wrong?   → -ERR wrong number of arguments
          │                                  (store untouched)
    5. Handler ────────────────── CommandError? → -ERR <message>
          │
          ▼
    Frame (SimpleString / Error / Integer / BulkString / Array)

Every failure above is a COMMAND error: it becomes an Error frame and the
connection keeps going. Protocol errors never reach the dispatcher.

=============================================================================
"""

import logging
from typing import Optional

from ..core.stats import ServerStats
from ..protocol.command import Command
from ..protocol.frames import Error, Frame
from ..store import Store
from .handlers import builtin_commands
from .table import CommandError, CommandSpec, CommandTable


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Validates commands and invokes their handlers.

    Handlers receive the dispatcher itself as context, which gives them
    access to the store, the server statistics and the command table.

    Usage:
        dispatcher = Dispatcher(Store())
        reply = dispatcher.dispatch(Command(["SET", "foo", "bar"]))
        # reply == SimpleString("OK")
    """

    def __init__(
        self,
        store: Store,
        table: Optional[CommandTable] = None,
        stats: Optional[ServerStats] = None,
    ):
        self.store = store
        self.table = table if table is not None else builtin_commands()
        self.stats = stats

    def dispatch(self, command: Command) -> Frame:
        """
        Execute one command.

        Args:
            command: A non-empty decoded command.

        Returns:
            The reply frame. Command errors are returned, not raised;
            unexpected exceptions from a handler propagate to the caller.
        """
        if self.stats is not None:
            self.stats.command_processed()

        spec = self.table.lookup(command.name)
        if spec is None:
            return Error(f"ERR unknown command '{command.name}'")

        args = command.args

        if spec.subcommands:
            if not args:
                return self._arity_error(spec)

            sub = spec.subcommands.get(args[0].upper())
            if sub is None:
                return Error(f"ERR unknown subcommand '{args[0].upper()}' for '{spec.label}'")
            spec, args = sub, args[1:]

        if not spec.accepts(len(args)):
            return self._arity_error(spec)

        try:
            return spec.handler(self, args)
        except CommandError as e:
            logger.debug(f"{spec.label} rejected: {e}")
            return e.to_frame()

    __call__ = dispatch

    def _arity_error(self, spec: CommandSpec) -> Error:
        return Error(f"ERR wrong number of arguments for '{spec.label}' command")
