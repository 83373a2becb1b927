"""
The decoded request unit.
"""

from dataclasses import dataclass, field
from typing import List


@dataclass
class Command:
    """
    One decoded command: an ordered sequence of string tokens.

    =========================================================================
    ANATOMY
    =========================================================================

        *3\\r\\n$3\\r\\nset\\r\\n$3\\r\\nfoo\\r\\n$3\\r\\nbar\\r\\n

        Command(tokens=["set", "foo", "bar"])
            .name  → "SET"          (first token, uppercased)
            .args  → ["foo", "bar"] (taken literally, no unescaping)

    A null array (*-1\\r\\n) decodes to Command(null=True). Both a null
    command and an empty one (a blank inline line) are falsy, and the
    connection loop skips them without dispatching.

    =========================================================================
    """

    tokens: List[str] = field(default_factory=list)
    null: bool = False

    # Filled in by the connection loop, used for logging
    client_address: tuple[str, int] = ("", 0)

    @classmethod
    def null_command(cls) -> "Command":
        return cls(null=True)

    @property
    def name(self) -> str:
        """Normalized verb (uppercase), or "" for an empty command."""
        return self.tokens[0].upper() if self.tokens else ""

    @property
    def args(self) -> List[str]:
        return self.tokens[1:]

    @property
    def closes_connection(self) -> bool:
        """True if the connection should be closed after replying."""
        return self.name == "QUIT"

    def __len__(self) -> int:
        return len(self.tokens)
