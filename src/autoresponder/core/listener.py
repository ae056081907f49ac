"""
=============================================================================
LISTENING SOCKET
=============================================================================

Server mode owns one listening socket:

    1. socket()    Create a TCP socket
    2. bind()      Reserve host:port
    3. listen()    OS starts queueing incoming connections
    4. accept()    BLOCKS until a client connects; returns a NEW socket
    5. close()     Release the listening socket

bind() and listen() run synchronously while the responder is being
constructed, so "address already in use" surfaces to the caller as a
BindError instead of dying in a background thread.

accept() has no timeout. A responder that was stopped keeps blocking here
until one more connection arrives (or the socket is closed), which is when
the accept loop gets to look at the running flag again.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:  restart on the same port without waiting out TIME_WAIT.
TCP_NODELAY:   disable Nagle; replies are small and should go out at once.

=============================================================================
"""

import socket
import logging
from typing import Optional, Tuple

from ..errors import AcceptError, BindError
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketListener:
    """
    Bound, listening TCP socket that hands out Connections.

    Usage:
        listener = SocketListener("127.0.0.1", 2323)
        listener.bind()
        conn = listener.accept()   # Blocks
    """

    def __init__(self, host: str, port: int, backlog: int = 128, buffer_size: int = 4096):
        self.host = host
        self.port = port
        self.backlog = backlog
        self.buffer_size = buffer_size

        self._socket: Optional[socket.socket] = None

    @property
    def is_bound(self) -> bool:
        return self._socket is not None

    @property
    def address(self) -> Tuple[str, int]:
        """The address actually bound (differs from host/port for "" hosts)."""
        if self._socket is None:
            return (self.host, self.port)
        return self._socket.getsockname()[:2]

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return sock

    def bind(self) -> None:
        """
        Create the socket, bind and listen.

        Raises:
            BindError: Any step failed. The socket is closed again.
        """
        try:
            sock = self._create_socket()
        except OSError as e:
            raise BindError(f"Can't create server socket: {e}") from e

        try:
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.host}:{self.port}: {e}")
            raise BindError(f"Can't start server on {self.host}:{self.port}: {e}") from e

        self._socket = sock
        host, port = self.address
        logger.info(f"Listening on {host}:{port}")

    def accept(self) -> Connection:
        """
        Wait for the next connection.

        Raises:
            AcceptError: accept() failed or the listener is not bound.
        """
        if self._socket is None:
            raise AcceptError("Listener is not bound")

        try:
            client_socket, client_address = self._socket.accept()
        except OSError as e:
            raise AcceptError(f"Can't accept client: {e}") from e

        # The peer may have reset before setup
        try:
            client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            conn = Connection(
                socket=client_socket,
                address=client_address[:2],
                buffer_size=self.buffer_size,
            )
        except OSError as e:
            client_socket.close()
            raise AcceptError(f"Can't set up accepted client {client_address}: {e}") from e

        logger.debug(f"[{conn.id}] Accepted connection from {conn.peer}")
        return conn

    def close(self) -> None:
        """Close the listening socket. Idempotent."""
        if self._socket is None:
            return
        try:
            self._socket.close()
        except OSError:
            pass
        self._socket = None
        logger.info("Listener closed")
