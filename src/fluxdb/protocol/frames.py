"""
Reply frame types.

A frame is one self-delimited unit on the wire. The dispatcher only ever
builds these objects; turning them into bytes is the codec's job, so the
same reply can be rendered as RESP or as a legacy text line.

    SimpleString   +OK\\r\\n
    Error          -ERR unknown command 'FOO'\\r\\n
    Integer        :1\\r\\n
    BulkString     $3\\r\\nbar\\r\\n        (value=None → $-1\\r\\n)
    Array          *2\\r\\n<frame><frame>   (items=None → *-1\\r\\n)
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Union


@dataclass(frozen=True)
class SimpleString:
    value: str


@dataclass(frozen=True)
class Error:
    message: str


@dataclass(frozen=True)
class Integer:
    value: int


@dataclass(frozen=True)
class BulkString:
    value: Optional[str]

    @property
    def is_null(self) -> bool:
        return self.value is None


@dataclass(frozen=True)
class Array:
    items: Optional[List["Frame"]]

    @property
    def is_null(self) -> bool:
        return self.items is None


Frame = Union[SimpleString, Error, Integer, BulkString, Array]


# Shared constants for the most common replies
OK = SimpleString("OK")
PONG = SimpleString("PONG")
NULL_BULK = BulkString(None)
NULL_ARRAY = Array(None)


def bulk_array(values: Iterable[str]) -> Array:
    """Build an array of bulk strings, e.g. for CONFIG GET replies."""
    return Array([BulkString(v) for v in values])


def frame_kind(frame: Frame) -> str:
    """Short lowercase name of a frame's type, used in command logs."""
    return {
        SimpleString: "simple",
        Error: "error",
        Integer: "integer",
        BulkString: "bulk",
        Array: "array",
    }[type(frame)]
