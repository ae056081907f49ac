"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

This module wraps one connected TCP socket with the small API a Session
needs: read one chunk, send some bytes, close.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

    Client sends:
        send("PI")
        send("NG")

    Responder might receive:
        recv() → "PING"            (both combined)
        recv() → "PI", "NG"        (separately)

The responder does NOT reassemble messages. Whatever a single recv()
returns (at most buffer_size bytes) is one request. A trigger split across
two reads will not match. This is a known limitation of the tool, which
targets line-at-a-time protocols and test harnesses where peers send small
messages.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    CREATED ──► CONNECTED ──► (GREETING_SENT) ──► LOOPING ──► CLOSED
                    │                                            ▲
                    └──────────── fatal error / stop ────────────┘

The Session drives the transitions; Connection only records them and
flips to CLOSED in close().

=============================================================================
NO TIMEOUTS
=============================================================================

Sockets stay in plain blocking mode. A peer that never sends keeps its
session blocked in recv() indefinitely, and stop() does not interrupt it.

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field

from ..errors import EndpointConnectionError, StreamError


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, as seen by the owning Session."""
    CREATED = "created"              # Wrapped, session not started yet
    CONNECTED = "connected"          # Session started, startup delay running
    GREETING_SENT = "greeting_sent"  # Greeting written
    LOOPING = "looping"              # In the read/match/write loop
    CLOSED = "closed"                # Socket released


@dataclass
class Connection:
    """
    One connected duplex byte stream.

    Attributes:
        socket: The connected socket.
        address: Peer (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current lifecycle state.
        created_at: Timestamp when the connection was wrapped.
        bytes_received: Total bytes returned by read_chunk().
        bytes_sent: Total bytes written by send().
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.CREATED
    created_at: float = field(default_factory=time.time)
    buffer_size: int = 4096

    bytes_received: int = 0
    bytes_sent: int = 0

    def __post_init__(self):
        # Blocking, no timeout
        self.socket.settimeout(None)

    @property
    def peer(self) -> str:
        """Peer address formatted as host:port."""
        return f"{self.address[0]}:{self.address[1]}"

    @property
    def closed(self) -> bool:
        return self.state is ConnectionState.CLOSED

    # =========================================================================
    # READING
    # =========================================================================

    def read_chunk(self) -> bytes:
        """
        Perform exactly one recv() of at most buffer_size bytes.

        Returns:
            The bytes read. Empty bytes when the peer has closed its side.

        Raises:
            StreamError: The socket reported an error.
        """
        try:
            data = self.socket.recv(self.buffer_size)
        except OSError as e:
            raise StreamError(f"Error while reading the stream from {self.peer}: {e}") from e

        self.bytes_received += len(data)
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> None:
        """
        Write all of `data`.

        sendall() is used because send() may write only part of the buffer.

        Raises:
            StreamError: The socket reported an error.
        """
        try:
            self.socket.sendall(data)
        except OSError as e:
            raise StreamError(f"Error while writing to stream of {self.peer}: {e}") from e

        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection. Idempotent.

        shutdown(SHUT_WR) first sends FIN so the peer sees a clean end of
        stream, then close() releases the descriptor.
        """
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(
            f"[{self.id}] Connection to {self.peer} closed "
            f"({self.bytes_received} bytes in, {self.bytes_sent} bytes out)"
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def open_connection(host: str, port: int, buffer_size: int = 4096) -> Connection:
    """
    Make the single outbound connection used in client mode.

    One attempt, no timeout, no retry.

    Raises:
        EndpointConnectionError: The connection could not be established.
    """
    try:
        sock = socket.create_connection((host, port))
    except OSError as e:
        raise EndpointConnectionError(f"Can't connect to server {host}:{port}: {e}") from e

    try:
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        conn = Connection(socket=sock, address=sock.getpeername()[:2], buffer_size=buffer_size)
    except OSError as e:
        sock.close()
        raise EndpointConnectionError(f"Connection to {host}:{port} lost during setup: {e}") from e

    logger.info(f"[{conn.id}] Connected to {conn.peer}")
    return conn
