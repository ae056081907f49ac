"""
=============================================================================
RESPONDER CONFIGURATION
=============================================================================

Centralized configuration for a TcpAutoResponder.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m autoresponder server --port 2323                │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── AUTORESPONDER_PORT=2323 python -m autoresponder server    │
    │                                                                      │
    │   3. Default values (in this dataclass)                            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation happens eagerly in validate(), which every constructor of the
responder calls before any socket is touched. A bad port or a negative
delay is reported as ConfigurationError before anything starts.

=============================================================================
PER-SESSION SETTINGS
=============================================================================

Each Session receives its own frozen copy of the values it needs
(SessionSettings). Sessions never look at the ResponderConfig again, so a
config object mutated after start-up cannot change a running session.

=============================================================================
"""

import codecs
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .errors import ConfigurationError


class EndpointMode(Enum):
    """Whether the responder listens for connections or makes one."""
    SERVER = "server"
    CLIENT = "client"

    @classmethod
    def parse(cls, value) -> "EndpointMode":
        """Accept an EndpointMode or its name/value, case-insensitively."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for mode in cls:
                if value.strip().lower() in (mode.value, mode.name.lower()):
                    return mode
        raise ConfigurationError(f"Unknown endpoint mode: {value!r}")


@dataclass(frozen=True)
class SessionSettings:
    """
    Values copied into every Session at creation time.

    Attributes:
        startup_delay_ms: Sleep before the greeting, in milliseconds.
        greeting: Sent once after the delay when non-empty.
        ignore_read_errors: Mask failed reads as empty requests.
        ignore_write_errors: Drop replies whose write fails.
        wire_encoding: Strict codec for requests and replies on the wire.
        close_on_eof: End the session when a read returns zero bytes.
    """
    startup_delay_ms: int = 5
    greeting: str = ""
    ignore_read_errors: bool = True
    ignore_write_errors: bool = True
    wire_encoding: str = "ascii"
    close_on_eof: bool = False


@dataclass
class ResponderConfig:
    """
    Configuration for a TcpAutoResponder.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    ENDPOINT
    - mode, host, port, backlog

    SESSION BEHAVIOUR
    - greeting, startup_delay_ms, buffer_size, wire_encoding, close_on_eof

    ERROR TOLERANCE
    - ignore_read_errors, ignore_write_errors

    LOGGING
    - log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # ENDPOINT
    # ─────────────────────────────────────────────────────────────────────

    mode: EndpointMode = EndpointMode.SERVER

    host: str = "127.0.0.1"
    """
    Server: interface to bind ("" or "0.0.0.0" for all interfaces).
    Client: the remote host to connect to.
    """

    port: int = 2323

    backlog: int = 128

    # ─────────────────────────────────────────────────────────────────────
    # SESSION BEHAVIOUR
    # ─────────────────────────────────────────────────────────────────────

    greeting: str = ""

    startup_delay_ms: int = 5
    """
    Milliseconds each session sleeps before sending the greeting.
    The sleep is not interruptible by stop().
    """

    buffer_size: int = 4096
    """
    Maximum number of bytes taken by a single read. One read is one
    request: a message split across reads is never reassembled.
    """

    wire_encoding: str = "ascii"

    close_on_eof: bool = False
    """
    A read returning zero bytes normally means the peer closed, but it is
    treated as an empty request by default and the session keeps looping.
    Set this to end the session instead.
    """

    # ─────────────────────────────────────────────────────────────────────
    # ERROR TOLERANCE
    # ─────────────────────────────────────────────────────────────────────

    ignore_read_errors: bool = True
    ignore_write_errors: bool = True

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ResponderConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        AUTORESPONDER_MODE                server | client (default: server)
        AUTORESPONDER_HOST                Host (default: 127.0.0.1)
        AUTORESPONDER_PORT                Port (default: 2323)
        AUTORESPONDER_GREETING            Greeting message (default: none)
        AUTORESPONDER_STARTUP_DELAY_MS    Startup delay (default: 5)
        AUTORESPONDER_IGNORE_READ_ERRORS  true | false (default: true)
        AUTORESPONDER_IGNORE_WRITE_ERRORS true | false (default: true)
        AUTORESPONDER_LOG_LEVEL           Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            mode=EndpointMode.parse(os.getenv("AUTORESPONDER_MODE", "server")),
            host=os.getenv("AUTORESPONDER_HOST", "127.0.0.1"),
            port=_env_int("AUTORESPONDER_PORT", 2323),
            greeting=os.getenv("AUTORESPONDER_GREETING", ""),
            startup_delay_ms=_env_int("AUTORESPONDER_STARTUP_DELAY_MS", 5),
            ignore_read_errors=_env_bool("AUTORESPONDER_IGNORE_READ_ERRORS", True),
            ignore_write_errors=_env_bool("AUTORESPONDER_IGNORE_WRITE_ERRORS", True),
            log_level=os.getenv("AUTORESPONDER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Also normalizes `mode`, so a string such as "client" is accepted
        and replaced by the matching EndpointMode.

        Raises:
            ConfigurationError: On the first invalid value.
        """
        self.mode = EndpointMode.parse(self.mode)

        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise ConfigurationError(f"Port must be an integer, got {self.port!r}")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Port outside the allowed range: {self.port}. Must be 1-65535.")

        for name in ("startup_delay_ms", "buffer_size", "backlog"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")

        if self.startup_delay_ms < 0:
            raise ConfigurationError(f"Startup delay minimum is zero, got {self.startup_delay_ms}")

        if self.buffer_size < 1:
            raise ConfigurationError(f"buffer_size must be >= 1, got {self.buffer_size}")

        if self.backlog < 0:
            raise ConfigurationError(f"backlog must be >= 0, got {self.backlog}")

        if self.mode is EndpointMode.CLIENT and not self.host:
            raise ConfigurationError("Client mode needs a host to connect to")

        try:
            codecs.lookup(self.wire_encoding)
        except LookupError as e:
            raise ConfigurationError(f"Unknown wire encoding: {self.wire_encoding!r}") from e

    def session_settings(self) -> SessionSettings:
        """Snapshot of the values every Session of this config receives."""
        return SessionSettings(
            startup_delay_ms=self.startup_delay_ms,
            greeting=self.greeting,
            ignore_read_errors=self.ignore_read_errors,
            ignore_write_errors=self.ignore_write_errors,
            wire_encoding=self.wire_encoding,
            close_on_eof=self.close_on_eof,
        )


def _env_int(name: str, default: int) -> int:
    raw: Optional[str] = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be true or false, got {raw!r}")
