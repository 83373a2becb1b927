"""
=============================================================================
COMMAND TABLE
=============================================================================

The command table is to FluxDB what a URL router is to a web framework: it
maps an incoming name to the function that handles it.

    Incoming Command → CommandTable → Handler

        PING            → ping()
        SET foo bar     → set_()
        CONFIG GET *    → CONFIG ─► GET → config_get()
        FOO             → (no entry) → -ERR unknown command 'FOO'

=============================================================================
LOOKUP TABLE, NOT A SWITCH
=============================================================================

Each entry is a CommandSpec that DECLARES its arity. Adding a verb is one
decorated function; nothing else in the code base changes:

    table = CommandTable()

    @table.command("GET", min_args=1, max_args=1, usage="GET key")
    def get(ctx, args):
        value = ctx.store.get(args[0])
        return BulkString(value)

    @table.subcommand("CONFIG", "GET", min_args=1, max_args=1)
    def config_get(ctx, args):
        ...

Arity is checked by the dispatcher BEFORE a handler runs, so handlers can
unpack their arguments directly.

=============================================================================
"""

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional

from ..protocol.frames import Error, Frame

if TYPE_CHECKING:
    from .dispatcher import Dispatcher


Handler = Callable[["Dispatcher", List[str]], Frame]


class CommandError(Exception):
    """
    Raised by a handler for a semantic argument error.

    The dispatcher converts it into an Error frame; the connection stays
    open. The prefix is the first word of the error reply (ERR by default).
    """

    def __init__(self, message: str, prefix: str = "ERR"):
        super().__init__(f"{prefix} {message}")
        self.prefix = prefix
        self.message = message

    def to_frame(self) -> Error:
        return Error(str(self))


@dataclass
class CommandSpec:
    """
    A registered command.

    =========================================================================
    ANATOMY OF A COMMAND SPEC
    =========================================================================

        CommandSpec(
            name="DEL",                 # normalized (uppercase) verb
            handler=delete,             # (ctx, args) -> Frame
            min_args=1,                 # at least one key
            max_args=None,              # None = variadic
            usage="DEL key [key ...]",
            summary="Delete keys",
        )

    A spec with subcommands (CONFIG) has no handler of its own: the first
    argument selects the subcommand spec, which carries the real arity.

    =========================================================================
    """

    name: str
    handler: Optional[Handler]
    min_args: int = 0
    max_args: Optional[int] = 0
    usage: str = ""
    summary: str = ""
    parent: Optional[str] = None
    subcommands: Dict[str, "CommandSpec"] = field(default_factory=dict)

    @property
    def label(self) -> str:
        """Lowercase name used in error messages, e.g. 'config get'."""
        if self.parent:
            return f"{self.parent} {self.name}".lower()
        return self.name.lower()

    def accepts(self, argc: int) -> bool:
        """Check an argument count against the declared arity."""
        if argc < self.min_args:
            return False
        return self.max_args is None or argc <= self.max_args


class CommandTable:
    """Registry of command specs keyed by uppercase verb."""

    def __init__(self):
        self._commands: Dict[str, CommandSpec] = {}

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def add_command(
        self,
        name: str,
        handler: Optional[Handler],
        min_args: int = 0,
        max_args: Optional[int] = 0,
        usage: str = "",
        summary: str = "",
    ) -> CommandSpec:
        key = name.upper()
        if key in self._commands:
            raise ValueError(f"Command already registered: {key}")

        spec = CommandSpec(
            name=key,
            handler=handler,
            min_args=min_args,
            max_args=max_args,
            usage=usage or key,
            summary=summary,
        )
        self._commands[key] = spec
        return spec

    def add_subcommand(
        self,
        parent: str,
        name: str,
        handler: Handler,
        min_args: int = 0,
        max_args: Optional[int] = 0,
        usage: str = "",
        summary: str = "",
    ) -> CommandSpec:
        parent_key = parent.upper()
        name_key = name.upper()

        container = self._commands.get(parent_key)
        if container is None:
            container = self.add_command(parent_key, None, min_args=1, max_args=None)
        elif container.handler is not None:
            raise ValueError(f"{parent_key} already has a handler; cannot add subcommands")

        if name_key in container.subcommands:
            raise ValueError(f"Subcommand already registered: {parent_key} {name_key}")

        spec = CommandSpec(
            name=name_key,
            handler=handler,
            min_args=min_args,
            max_args=max_args,
            usage=usage or f"{parent_key} {name_key}",
            summary=summary,
            parent=parent_key,
        )
        container.subcommands[name_key] = spec
        return spec

    # =========================================================================
    # DECORATOR-STYLE REGISTRATION
    # =========================================================================

    def command(
        self,
        name: str,
        min_args: int = 0,
        max_args: Optional[int] = 0,
        usage: str = "",
        summary: str = "",
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_command(name, handler, min_args, max_args, usage, summary)
            return handler
        return decorator

    def subcommand(
        self,
        parent: str,
        name: str,
        min_args: int = 0,
        max_args: Optional[int] = 0,
        usage: str = "",
        summary: str = "",
    ) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            self.add_subcommand(parent, name, handler, min_args, max_args, usage, summary)
            return handler
        return decorator

    # =========================================================================
    # LOOKUP
    # =========================================================================

    def lookup(self, name: str) -> Optional[CommandSpec]:
        return self._commands.get(name.upper())

    def specs(self) -> List[CommandSpec]:
        """All leaf specs (subcommands expanded), in registration order."""
        result = []
        for spec in self._commands.values():
            if spec.subcommands:
                result.extend(spec.subcommands.values())
            else:
                result.append(spec)
        return result

    def copy(self) -> "CommandTable":
        """Independent table with the same entries, safe to extend."""
        clone = CommandTable()
        for key, spec in self._commands.items():
            clone._commands[key] = replace(spec, subcommands=dict(spec.subcommands))
        return clone

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.upper() in self._commands

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def __len__(self) -> int:
        return len(self._commands)
