"""
Unit tests for Connection, open_connection and SocketListener.
"""

import errno
import socket

import pytest

from autoresponder.core import Connection, ConnectionState, SocketListener, open_connection
from autoresponder.errors import AcceptError, BindError, EndpointConnectionError, StreamError


class DeadPeerSocket:
    """Accepted socket whose peer reset before setup could finish."""

    def __init__(self):
        self.closed = False

    def setsockopt(self, *args):
        raise OSError(errno.EINVAL, "Invalid argument")

    def getpeername(self):
        raise OSError(errno.ENOTCONN, "Transport endpoint is not connected")

    def close(self):
        self.closed = True


@pytest.fixture
def socket_pair():
    left, right = socket.socketpair()
    right.settimeout(5.0)
    yield left, right
    left.close()
    right.close()


class TestConnection:
    """Tests for the Connection wrapper."""

    def test_read_chunk_is_single_recv(self, socket_pair):
        left, right = socket_pair
        conn = Connection(socket=left, address=("peer", 1), buffer_size=4)

        right.sendall(b"abcdefgh")

        assert conn.read_chunk() == b"abcd"
        assert conn.read_chunk() == b"efgh"
        assert conn.bytes_received == 8

    def test_read_chunk_empty_after_peer_close(self, socket_pair):
        left, right = socket_pair
        conn = Connection(socket=left, address=("peer", 1))

        right.shutdown(socket.SHUT_WR)

        assert conn.read_chunk() == b""

    def test_send(self, socket_pair):
        left, right = socket_pair
        conn = Connection(socket=left, address=("peer", 1))

        conn.send(b"PONG")

        assert right.recv(16) == b"PONG"
        assert conn.bytes_sent == 4

    def test_io_on_closed_socket_raises_stream_error(self, socket_pair):
        left, _ = socket_pair
        conn = Connection(socket=left, address=("peer", 1))
        left.close()

        with pytest.raises(StreamError):
            conn.read_chunk()
        with pytest.raises(StreamError):
            conn.send(b"x")

    def test_close_is_idempotent(self, socket_pair):
        left, right = socket_pair
        conn = Connection(socket=left, address=("peer", 1))

        with conn:
            assert conn.state is ConnectionState.CREATED
        conn.close()

        assert conn.closed
        assert right.recv(16) == b""

    def test_peer_format(self, socket_pair):
        left, _ = socket_pair
        conn = Connection(socket=left, address=("10.0.0.1", 4242))
        assert conn.peer == "10.0.0.1:4242"
        assert len(conn.id) == 8


class TestSocketListener:
    """Tests for SocketListener."""

    def test_bind_and_accept(self, free_port):
        listener = SocketListener("127.0.0.1", free_port)
        listener.bind()
        try:
            assert listener.address == ("127.0.0.1", free_port)

            with socket.create_connection(("127.0.0.1", free_port), timeout=5) as client:
                conn = listener.accept()
                client.sendall(b"hi")
                assert conn.read_chunk() == b"hi"
                conn.close()
        finally:
            listener.close()

        assert not listener.is_bound

    def test_bind_conflict(self, free_port):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", free_port))
            blocker.listen(1)

            listener = SocketListener("127.0.0.1", free_port)
            with pytest.raises(BindError):
                listener.bind()
            assert not listener.is_bound

    def test_accept_when_not_bound(self):
        with pytest.raises(AcceptError):
            SocketListener("127.0.0.1", 1).accept()

    def test_setup_failure_closes_accepted_socket(self, free_port):
        dead = DeadPeerSocket()

        class StubListeningSocket:
            def accept(self):
                return dead, ("10.0.0.1", 4242)

        listener = SocketListener("127.0.0.1", free_port)
        listener.bind()
        real_socket, listener._socket = listener._socket, StubListeningSocket()
        try:
            with pytest.raises(AcceptError):
                listener.accept()
        finally:
            listener._socket = real_socket
            listener.close()

        assert dead.closed


class TestOpenConnection:
    """Tests for the client-mode connect."""

    def test_connects(self, free_port):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server:
            server.bind(("127.0.0.1", free_port))
            server.listen(1)

            conn = open_connection("127.0.0.1", free_port)
            peer, _ = server.accept()
            with peer:
                peer.sendall(b"hello")
                assert conn.read_chunk() == b"hello"
            conn.close()

        assert conn.address == ("127.0.0.1", free_port)

    def test_refused(self, free_port):
        with pytest.raises(EndpointConnectionError) as exc_info:
            open_connection("127.0.0.1", free_port)
        assert isinstance(exc_info.value, ConnectionError)

    def test_setup_failure_closes_socket(self, monkeypatch):
        dead = DeadPeerSocket()
        monkeypatch.setattr(socket, "create_connection", lambda address: dead)

        with pytest.raises(EndpointConnectionError):
            open_connection("127.0.0.1", 2323)
        assert dead.closed
