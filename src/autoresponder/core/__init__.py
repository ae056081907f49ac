"""
=============================================================================
CORE NETWORKING COMPONENTS
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET LISTENER                              │
    │  • Binds host:port and listens (server mode)                        │
    │  • accept() blocks until a peer connects, no timeout                │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ one Connection per accepted peer
                                    │ (or one from open_connection in
                                    │  client mode)
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                            SESSION                                   │
    │  • One thread per connection, unbounded                             │
    │  • Read one chunk → match rules → write replies                     │
    │  • Honors the shared RunningFlag at each loop check                 │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                           CONNECTION                                 │
    │  • Wraps the socket: read_chunk(), send(), close()                  │
    │  • Turns socket failures into StreamError                           │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .flag import RunningFlag
from .connection import Connection, ConnectionState, open_connection
from .listener import SocketListener
from .session import Session

__all__ = [
    "RunningFlag",
    "Connection",
    "ConnectionState",
    "open_connection",
    "SocketListener",
    "Session",
]
