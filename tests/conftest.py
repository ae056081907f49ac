"""
pytest configuration and fixtures.
"""

import socket
import time
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from autoresponder import EndpointMode, MatchMode, Rule, TcpAutoResponder
from autoresponder.core import ConnectionState, RunningFlag
from autoresponder.errors import StreamError


class FakeConnection:
    """
    In-memory stand-in for Connection, driven by a script.

    Each read_chunk() pops the next script item: bytes are returned,
    exceptions are raised, callables are called and their result returned.
    Once the script is exhausted the running flag (if given) is stopped and
    b"" is returned, so a session loop ends deterministically.
    """

    def __init__(self, script=(), running: Optional[RunningFlag] = None, write_errors: int = 0):
        self.id = "fake0001"
        self.peer = "fake:0"
        self.address = ("fake", 0)
        self.state = ConnectionState.CREATED
        self.running = running
        self.write_errors = write_errors
        self.sent: List[bytes] = []
        self.reads = 0
        self.closed = False
        self._script = list(script)

    def read_chunk(self) -> bytes:
        self.reads += 1
        if not self._script:
            if self.running is not None:
                self.running.stop()
            return b""

        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item()
        return item

    def send(self, data: bytes) -> None:
        if self.write_errors:
            self.write_errors -= 1
            raise StreamError("Error while writing to stream: broken pipe")
        self.sent.append(data)

    def close(self) -> None:
        self.closed = True
        self.state = ConnectionState.CLOSED


@pytest.fixture
def running() -> RunningFlag:
    return RunningFlag()


@pytest.fixture
def fake_connection(running: RunningFlag) -> Callable[..., FakeConnection]:
    """Factory for scripted fake connections bound to the running fixture."""
    def factory(*script, write_errors: int = 0) -> FakeConnection:
        return FakeConnection(script, running=running, write_errors=write_errors)
    return factory


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def ping_rule() -> Rule:
    return Rule("PING", "PONG", ignore_case=True, mode=MatchMode.EQUALS)


@pytest.fixture
def responder_factory(free_port: int) -> Generator[Callable[..., TcpAutoResponder], None, None]:
    """
    Build server-mode responders on a free port, stopped after the test.

    Sessions start without delay unless the test asks for one.
    """
    created: List[TcpAutoResponder] = []

    def factory(rules=(), **kwargs) -> TcpAutoResponder:
        kwargs.setdefault("startup_delay_ms", 0)
        responder = TcpAutoResponder(EndpointMode.SERVER, "127.0.0.1", free_port, rules, **kwargs)
        created.append(responder)
        return responder

    yield factory

    for responder in created:
        responder.stop()


def connect(port: int, timeout: float = 5.0) -> socket.socket:
    """Connect to a local responder; the timeout keeps a failing test from hanging."""
    sock = socket.create_connection(("127.0.0.1", port), timeout=timeout)
    sock.settimeout(timeout)
    return sock


def recv_exactly(sock: socket.socket, size: int) -> bytes:
    """Read until `size` bytes arrived; replies may be split across reads."""
    data = b""
    while len(data) < size:
        chunk = sock.recv(size - len(data))
        if not chunk:
            break
        data += chunk
    return data


def recv_until_closed(sock: socket.socket) -> bytes:
    """Read until the peer closes; a reset counts as closed."""
    data = b""
    while True:
        try:
            chunk = sock.recv(4096)
        except ConnectionResetError:
            return data
        if not chunk:
            return data
        data += chunk


def wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
