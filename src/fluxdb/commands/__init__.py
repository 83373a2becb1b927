"""
Commands package - verb lookup, validation and the built-in handlers.

    table.py       CommandTable / CommandSpec / CommandError
    dispatcher.py  Dispatcher (Command → Frame)
    handlers.py    PING, SET, GET, DEL, CONFIG, SELECT, HELP, INFO, QUIT
"""

from .table import CommandError, CommandSpec, CommandTable, Handler
from .handlers import builtin_commands
from .dispatcher import Dispatcher

__all__ = [
    "CommandError",
    "CommandSpec",
    "CommandTable",
    "Handler",
    "builtin_commands",
    "Dispatcher",
]
