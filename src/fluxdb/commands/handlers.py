"""
=============================================================================
BUILT-IN COMMANDS
=============================================================================

    ┌────────────────┬────────────┬──────────────────────────────────────┐
    │ Command        │ Arguments  │ Reply                                │
    ├────────────────┼────────────┼──────────────────────────────────────┤
    │ PING           │ [message]  │ +PONG, or the message as bulk        │
    │ SET            │ k v [NX|XX]│ +OK, or null bulk if NX/XX not met   │
    │ GET            │ k          │ bulk value, or null bulk             │
    │ DEL            │ k [k ...]  │ :<number of keys removed>            │
    │ CONFIG GET     │ pattern    │ array of name/value bulk strings     │
    │ CONFIG SET     │ name value │ +OK                                  │
    │ SELECT         │ index      │ +OK (single database, ignored)       │
    │ HELP           │            │ bulk usage text                      │
    │ INFO           │ [section]  │ bulk "field:value" report            │
    │ QUIT           │            │ +OK, then the connection closes      │
    └────────────────┴────────────┴──────────────────────────────────────┘

=============================================================================
SET AND EXISTING KEYS
=============================================================================

Plain SET always overwrites. A caller that must not clobber an existing
key asks for it explicitly with NX:

    SET foo bar       → +OK
    SET foo baz       → +OK        (foo is now "baz")
    SET foo qux NX    → $-1        (foo exists, nothing written)
    SET new 1 XX      → $-1        (new does not exist, nothing written)

=============================================================================
LOOKUP MISSES ARE NOT ERRORS
=============================================================================

    GET missing           → $-1
    DEL missing           → :0
    CONFIG GET missing    → *0

=============================================================================
"""

from typing import TYPE_CHECKING, Dict, List

from .. import __version__
from ..protocol.frames import (
    NULL_BULK,
    OK,
    PONG,
    BulkString,
    Frame,
    Integer,
    bulk_array,
)
from .table import CommandError, CommandTable

if TYPE_CHECKING:
    from .dispatcher import Dispatcher


_BUILTIN = CommandTable()


def builtin_commands() -> CommandTable:
    """A fresh copy of the built-in command table."""
    return _BUILTIN.copy()


# =============================================================================
# CONNECTION
# =============================================================================


@_BUILTIN.command("PING", max_args=1, usage="PING [message]", summary="Test the connection")
def ping(ctx: "Dispatcher", args: List[str]) -> Frame:
    if args:
        return BulkString(args[0])
    return PONG


@_BUILTIN.command("SELECT", min_args=1, max_args=1, usage="SELECT index",
                  summary="Select a logical database (only one exists)")
def select(ctx: "Dispatcher", args: List[str]) -> Frame:
    return OK


@_BUILTIN.command("QUIT", usage="QUIT", summary="Close the connection")
def quit_(ctx: "Dispatcher", args: List[str]) -> Frame:
    # The connection loop closes the socket after sending this reply
    return OK


# =============================================================================
# KEYSPACE
# =============================================================================


@_BUILTIN.command("SET", min_args=2, max_args=3, usage="SET key value [NX|XX]",
                  summary="Set a key to a value")
def set_(ctx: "Dispatcher", args: List[str]) -> Frame:
    key, value, *options = args

    nx = xx = False
    for option in options:
        flag = option.upper()
        if flag == "NX":
            nx = True
        elif flag == "XX":
            xx = True
        else:
            raise CommandError("syntax error in 'set' command")

    if ctx.store.set(key, value, nx=nx, xx=xx):
        return OK
    return NULL_BULK


@_BUILTIN.command("GET", min_args=1, max_args=1, usage="GET key",
                  summary="Get the value of a key")
def get(ctx: "Dispatcher", args: List[str]) -> Frame:
    return BulkString(ctx.store.get(args[0]))


@_BUILTIN.command("DEL", min_args=1, max_args=None, usage="DEL key [key ...]",
                  summary="Delete one or more keys")
def delete(ctx: "Dispatcher", args: List[str]) -> Frame:
    # Each key is its own exclusive section; DEL is not atomic across keys
    removed = sum(1 for key in args if ctx.store.delete(key))
    return Integer(removed)


# =============================================================================
# CONFIGURATION
# =============================================================================


@_BUILTIN.subcommand("CONFIG", "GET", min_args=1, max_args=1, usage="CONFIG GET pattern",
                     summary="Read configuration ('*' for everything)")
def config_get(ctx: "Dispatcher", args: List[str]) -> Frame:
    pairs = ctx.store.config.match(args[0])
    return bulk_array(token for pair in pairs for token in pair)


@_BUILTIN.subcommand("CONFIG", "SET", min_args=2, max_args=2, usage="CONFIG SET name value",
                     summary="Create or update a configuration entry")
def config_set(ctx: "Dispatcher", args: List[str]) -> Frame:
    name, value = args
    ctx.store.set_config(name, value)
    return OK


# =============================================================================
# INTROSPECTION
# =============================================================================


@_BUILTIN.command("HELP", usage="HELP", summary="Show this help")
def help_(ctx: "Dispatcher", args: List[str]) -> Frame:
    specs = ctx.table.specs()
    width = max((len(spec.usage) for spec in specs), default=0)

    lines = ["Available commands:"]
    for spec in specs:
        lines.append(f"  {spec.usage.ljust(width)}  {spec.summary}".rstrip())
    return BulkString("\n".join(lines))


@_BUILTIN.command("INFO", max_args=1, usage="INFO [section]",
                  summary="Server, client and keyspace statistics")
def info(ctx: "Dispatcher", args: List[str]) -> Frame:
    """
    Report server state as "# Section" headers followed by "field:value"
    lines. Sections: server, clients, stats, keyspace. "all" and "default"
    select everything; an unknown section yields an empty report.
    """
    sections = _info_sections(ctx)

    wanted = args[0].lower() if args else "default"
    if wanted not in ("all", "default", "everything"):
        sections = {name: fields for name, fields in sections.items() if name == wanted}

    blocks = []
    for name, fields in sections.items():
        lines = [f"# {name.capitalize()}"]
        lines.extend(f"{key}:{value}" for key, value in fields.items())
        blocks.append("\r\n".join(lines))
    return BulkString("\r\n\r\n".join(blocks) + ("\r\n" if blocks else ""))


def _info_sections(ctx: "Dispatcher") -> Dict[str, Dict[str, object]]:
    stats = ctx.stats.snapshot() if ctx.stats is not None else {}
    config = ctx.store.config

    return {
        "server": {
            "fluxdb_version": __version__,
            "tcp_port": config.get("port") or "",
            "uptime_in_seconds": stats.get("uptime_in_seconds", 0),
        },
        "clients": {
            "connected_clients": stats.get("connected_clients", 0),
            "max_clients": config.get("max_clients") or "",
        },
        "stats": {
            "total_connections_received": stats.get("total_connections_received", 0),
            "total_commands_processed": stats.get("total_commands_processed", 0),
            "protocol_errors": stats.get("protocol_errors", 0),
        },
        "keyspace": {
            "keys": len(ctx.store.data),
        },
    }
