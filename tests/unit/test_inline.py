"""
Unit tests for the legacy line protocol.
"""

import io

import pytest

from fluxdb.protocol import (
    Array,
    BulkString,
    Error,
    InlineCodec,
    Integer,
    NULL_ARRAY,
    NULL_BULK,
    OK,
    ProtocolError,
    get_codec,
)


def stream(data: bytes) -> io.BufferedReader:
    return io.BufferedReader(io.BytesIO(data))


@pytest.fixture
def inline() -> InlineCodec:
    return InlineCodec()


class TestInlineDecoding:

    def test_one_command_per_line(self, inline: InlineCodec):
        s = stream(b"SET foo bar\nGET foo\r\n")

        assert inline.read_command(s).tokens == ["SET", "foo", "bar"]
        assert inline.read_command(s).tokens == ["GET", "foo"]
        assert inline.read_command(s) is None

    def test_resp_markers_are_not_special(self, inline: InlineCodec):
        assert inline.read_command(stream(b"*1\n")).tokens == ["*1"]

    def test_blank_line_is_empty_command(self, inline: InlineCodec):
        assert not inline.read_command(stream(b"   \n"))

    def test_line_too_long(self):
        codec = InlineCodec(max_inline_length=8)

        with pytest.raises(ProtocolError, match="too big inline request"):
            codec.read_command(stream(b"SET key value\n"))


class TestInlineRendering:

    @pytest.mark.parametrize("frame, expected", [
        (OK, b"OK\n"),
        (Error("ERR unknown command 'FOO'"), b"ERR unknown command 'FOO'\n"),
        (Integer(2), b"2\n"),
        (BulkString("bar"), b"bar\n"),
        (NULL_BULK, b"(nil)\n"),
        (NULL_ARRAY, b"(nil)\n"),
        (Array([]), b"(empty array)\n"),
        (Array([BulkString("port"), BulkString("6379")]), b"port 6379\n"),
    ])
    def test_render(self, inline: InlineCodec, frame, expected: bytes):
        assert inline.encode(frame) == expected

    def test_multiline_value_stays_on_one_line(self, inline: InlineCodec):
        assert inline.encode(BulkString("a\r\nb")) == b"a\\r\\nb\n"


class TestGetCodec:

    def test_known_codecs(self):
        assert get_codec("resp").name == "resp"
        assert get_codec("inline").name == "inline"

    def test_inline_ignores_resp_limits(self):
        codec = get_codec("inline", max_inline_length=100, max_bulk_length=5)
        assert codec.max_inline_length == 100

    def test_unknown_codec(self):
        with pytest.raises(ValueError, match="Unknown protocol"):
            get_codec("http")
