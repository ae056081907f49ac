"""
=============================================================================
AUTORESPONDER - Rule-Driven TCP Auto-Responder
=============================================================================

A TCP endpoint, either a listening server or a connecting client, that
reads whatever the peer sends and writes back pre-configured replies for
every rule the request matches. Useful for protocol stubbing, test
harnesses and simple bot-style replies.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    autoresponder/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m autoresponder)
    ├── responder.py         # TcpAutoResponder (server/client controller)
    ├── config.py            # ResponderConfig dataclass
    ├── errors.py            # Exception hierarchy
    ├── core/                # Networking
    │   ├── flag.py          # Shared running flag
    │   ├── connection.py    # Connection wrapper, outbound connect
    │   ├── listener.py      # Listening socket
    │   └── session.py       # Per-connection read/match/write thread
    └── rules/               # Matching
        ├── rule.py          # Rule, MatchMode, FileSource
        ├── ruleset.py       # Thread-safe ordered RuleSet
        └── loader.py        # JSON rules files

=============================================================================
QUICK START
=============================================================================

    from autoresponder import TcpAutoResponder, EndpointMode, Rule, MatchMode

    responder = TcpAutoResponder(
        EndpointMode.SERVER, "127.0.0.1", 2323,
        [Rule("PING", "PONG", ignore_case=True, mode=MatchMode.EQUALS)],
    )

    # $ printf ping | nc 127.0.0.1 2323
    # PONG

    responder.stop()

=============================================================================
"""

__version__ = "1.0.0"

from .config import EndpointMode, ResponderConfig, SessionSettings
from .errors import (
    AcceptError,
    BindError,
    ConfigurationError,
    EncodingError,
    EndpointConnectionError,
    ResponderError,
    ResponseFileError,
    SpawnError,
    StreamError,
)
from .responder import TcpAutoResponder
from .rules import FileSource, MatchMode, Rule, RuleSet, load_rules

__all__ = [
    "TcpAutoResponder",
    "EndpointMode",
    "ResponderConfig",
    "SessionSettings",
    "Rule",
    "RuleSet",
    "MatchMode",
    "FileSource",
    "load_rules",
    "ResponderError",
    "ConfigurationError",
    "BindError",
    "EndpointConnectionError",
    "AcceptError",
    "SpawnError",
    "StreamError",
    "EncodingError",
    "ResponseFileError",
    "__version__",
]
