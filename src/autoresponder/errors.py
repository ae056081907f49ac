"""
=============================================================================
RESPONDER ERRORS
=============================================================================

Every failure the responder core raises derives from ResponderError, so
surrounding code can catch the whole family with one except clause while
still matching the builtin category (ValueError, OSError, ...) it belongs to.

=============================================================================
FAILURE POLICY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Error                   │ Raised by          │ Effect               │
    ├──────────────────────────┼────────────────────┼──────────────────────┤
    │  ConfigurationError      │ constructors       │ nothing starts       │
    │  BindError               │ SocketListener     │ nothing starts       │
    │  EndpointConnectionError │ open_connection    │ nothing starts       │
    │  AcceptError             │ accept loop        │ accept loop ends     │
    │  SpawnError              │ thread start       │ controller fails     │
    │  StreamError             │ Connection I/O     │ session ends, unless │
    │                          │                    │ tolerance masks it   │
    │  EncodingError           │ Session codec      │ session ends, always │
    │  ResponseFileError       │ Rule.build_response│ one reply skipped    │
    └─────────────────────────────────────────────────────────────────────┘

The cause is always chained (raise ... from e), so tracebacks
show the underlying socket or codec error.

=============================================================================
"""


class ResponderError(Exception):
    """Base class for all responder failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ResponderError, ValueError):
    """Invalid construction parameters, rule definitions or rules files."""


class BindError(ResponderError, OSError):
    """The listening socket could not be created, bound or put in listen mode."""


class EndpointConnectionError(ResponderError, ConnectionError):
    """The single outbound connection of client mode could not be made."""


class AcceptError(ResponderError, OSError):
    """accept() failed; the accept loop does not retry."""


class SpawnError(ResponderError, RuntimeError):
    """A background thread could not be started."""


class StreamError(ResponderError, OSError):
    """A socket read or write failed."""


class EncodingError(ResponderError, ValueError):
    """Bytes could not be decoded to text, or text encoded to bytes."""


class ResponseFileError(ResponderError, OSError):
    """A file-backed rule could not read or decode its file."""
