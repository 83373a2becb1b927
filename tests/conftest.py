"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fluxdb import FluxClient, FluxServer, ServerConfig
from fluxdb.commands import Dispatcher
from fluxdb.core import ServerStats
from fluxdb.protocol import RespCodec
from fluxdb.store import Store


@pytest.fixture
def store() -> Store:
    """Empty keyspace with default configuration."""
    return Store()


@pytest.fixture
def stats() -> ServerStats:
    return ServerStats()


@pytest.fixture
def dispatcher(store: Store, stats: ServerStats) -> Dispatcher:
    return Dispatcher(store, stats=stats)


@pytest.fixture
def codec() -> RespCodec:
    return RespCodec()


@pytest.fixture
def config() -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: FluxServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread and wait until it listens."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        if self.server.is_running:
            self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def client(self) -> FluxClient:
        return FluxClient("127.0.0.1", self.port)

    def raw_connection(self) -> socket.socket:
        sock = socket.create_connection(("127.0.0.1", self.port), timeout=5.0)
        return sock


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running RESP server on an OS-assigned port."""
    test_srv = TestServer(FluxServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def inline_server(config: ServerConfig) -> Generator[TestServer, None, None]:
    """A running server speaking the legacy line protocol."""
    config.protocol = "inline"
    test_srv = TestServer(FluxServer(config))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def client(test_server: TestServer) -> Generator[FluxClient, None, None]:
    with test_server.client() as c:
        yield c
