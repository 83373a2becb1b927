"""
End-to-end tests against a running server over real sockets.
"""

import socket
import threading
import time

import pytest

from fluxdb import FluxClient, ReplyError


def recv_until_closed(sock: socket.socket) -> bytes:
    """Read everything the server sends until it closes the connection."""
    chunks = []
    while True:
        data = sock.recv(4096)
        if not data:
            return b"".join(chunks)
        chunks.append(data)


def recv_exactly(sock: socket.socket, expected: bytes) -> bytes:
    data = b""
    while len(data) < len(expected):
        chunk = sock.recv(4096)
        if not chunk:
            break
        data += chunk
    return data


class TestBasicCommands:

    def test_set_get_del_scenario(self, client: FluxClient):
        assert client.execute("SET", "foo", "bar") == "OK"
        assert client.execute("GET", "foo") == "bar"
        assert client.execute("DEL", "foo") == 1
        assert client.execute("GET", "foo") is None

    def test_raw_wire_bytes(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"*3\r\n$3\r\nSET\r\n$3\r\nfoo\r\n$3\r\nbar\r\n")
            assert recv_exactly(sock, b"+OK\r\n") == b"+OK\r\n"

            sock.sendall(b"*2\r\n$3\r\nGET\r\n$3\r\nfoo\r\n")
            assert recv_exactly(sock, b"$3\r\nbar\r\n") == b"$3\r\nbar\r\n"

    def test_ping(self, client: FluxClient):
        assert client.execute("PING") == "PONG"

    def test_binary_safe_values(self, client: FluxClient):
        value = "line one\r\nline two\x00 é"
        client.execute("SET", "blob", value)
        assert client.execute("GET", "blob") == value

    def test_command_error_keeps_connection_open(self, client: FluxClient):
        with pytest.raises(ReplyError, match="unknown command 'NOPE'"):
            client.execute("NOPE")

        with pytest.raises(ReplyError, match="wrong number of arguments for 'get'"):
            client.execute("GET")

        assert client.execute("PING") == "PONG"

    def test_config_round_trip(self, client: FluxClient, test_server):
        assert client.execute("CONFIG", "GET", "bind") == ["bind", "127.0.0.1"]
        assert client.execute("CONFIG", "SET", "timeout", "60") == "OK"
        assert client.execute("CONFIG", "GET", "timeout") == ["timeout", "60"]

    def test_inline_request(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"PING\r\n")
            assert recv_exactly(sock, b"+PONG\r\n") == b"+PONG\r\n"

    def test_pipelined_replies_in_order(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(
                b"*3\r\n$3\r\nSET\r\n$1\r\nk\r\n$1\r\n1\r\n"
                b"*2\r\n$3\r\nGET\r\n$1\r\nk\r\n"
                b"*2\r\n$3\r\nDEL\r\n$1\r\nk\r\n"
            )
            expected = b"+OK\r\n$1\r\n1\r\n:1\r\n"
            assert recv_exactly(sock, expected) == expected

    def test_quit_closes_connection(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"*1\r\n$4\r\nQUIT\r\n")
            assert recv_until_closed(sock) == b"+OK\r\n"


class TestProtocolErrors:

    def test_malformed_length_closes_connection(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"*abc\r\n")
            reply = recv_until_closed(sock)

        assert reply.startswith(b"-ERR Protocol error: invalid multibulk length")
        assert reply.endswith(b"\r\n")

    def test_truncated_bulk_closes_connection(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"*2\r\n$3\r\nGET\r\n$10\r\nabc")
            sock.shutdown(socket.SHUT_WR)
            reply = recv_until_closed(sock)

        assert reply.startswith(b"-ERR Protocol error: unexpected end of stream")

    def test_bad_element_type_closes_connection(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"*1\r\n:5\r\n")
            reply = recv_until_closed(sock)

        assert reply.startswith(b"-ERR Protocol error: expected '$'")

    def test_server_survives_protocol_error(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"*x\r\n")
            recv_until_closed(sock)

        with test_server.client() as client:
            assert client.execute("PING") == "PONG"

        assert test_server.server.stats.protocol_errors == 1


class TestConcurrency:

    def test_concurrent_clients_never_see_partial_values(self, test_server):
        values = ["a" * 5000, "b" * 5000]
        errors = []

        def writer(value: str):
            with test_server.client() as c:
                for _ in range(100):
                    c.execute("SET", "shared", value)

        def reader():
            with test_server.client() as c:
                for _ in range(100):
                    got = c.execute("GET", "shared")
                    if got is not None and got not in values:
                        errors.append(got[:20])

        threads = [threading.Thread(target=writer, args=(v,)) for v in values]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        assert errors == []

    def test_many_clients_independent_keys(self, test_server):
        def worker(n: int):
            with test_server.client() as c:
                for i in range(20):
                    c.execute("SET", f"key:{n}:{i}", str(i))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)

        with test_server.client() as c:
            assert c.execute("GET", "key:7:19") == "19"
            assert c.execute("DEL", *[f"key:3:{i}" for i in range(20)]) == 20


class TestInlineProtocolServer:

    def test_line_protocol(self, inline_server):
        with inline_server.raw_connection() as sock:
            sock.sendall(b"SET foo bar\n")
            assert recv_exactly(sock, b"OK\n") == b"OK\n"

            sock.sendall(b"GET foo\n")
            assert recv_exactly(sock, b"bar\n") == b"bar\n"

            sock.sendall(b"GET missing\n")
            assert recv_exactly(sock, b"(nil)\n") == b"(nil)\n"

            sock.sendall(b"DEL foo\n")
            assert recv_exactly(sock, b"1\n") == b"1\n"


class TestShutdown:

    def test_shutdown_closes_idle_clients(self, test_server):
        sock = test_server.raw_connection()
        try:
            sock.sendall(b"PING\r\n")
            assert recv_exactly(sock, b"+PONG\r\n") == b"+PONG\r\n"

            test_server.stop()

            assert recv_until_closed(sock) == b""
        finally:
            sock.close()

    def test_closed_connections_are_released(self, test_server):
        with test_server.raw_connection() as sock:
            sock.sendall(b"QUIT\r\n")
            recv_until_closed(sock)

        deadline = time.monotonic() + 2.0
        while test_server.server.connection_count and time.monotonic() < deadline:
            time.sleep(0.01)

        assert test_server.server.connection_count == 0
        assert test_server.server.stats.connected_clients == 0


class TestExtension:

    def test_handler_crash_becomes_internal_error(self, test_server, client: FluxClient):
        @test_server.server.dispatcher.table.command("CRASH")
        def crash(ctx, args):
            raise RuntimeError("boom")

        with pytest.raises(ReplyError, match="ERR internal error"):
            client.execute("CRASH")

        assert client.execute("PING") == "PONG"
