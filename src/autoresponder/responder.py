"""
=============================================================================
TCP AUTO-RESPONDER
=============================================================================

The orchestrator: owns the endpoint (listening socket or outbound
connection), the shared RuleSet and the shared RunningFlag, and starts one
Session thread per connection.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │                      ┌──────────────────┐                            │
    │                      │ TcpAutoResponder │                            │
    │                      └────────┬─────────┘                            │
    │              owns             │            owns                      │
    │      ┌────────────────────────┼───────────────────────┐              │
    │      ▼                        ▼                       ▼              │
    │ ┌──────────┐          ┌──────────────┐         ┌─────────────┐       │
    │ │ RuleSet  │          │ RunningFlag  │         │ Listener or │       │
    │ │ (shared) │          │  (shared)    │         │ Connection  │       │
    │ └────┬─────┘          └──────┬───────┘         └──────┬──────┘       │
    │      │    read by            │  read by               │              │
    │      └──────────────┬────────┘                        │              │
    │                     ▼                                 ▼              │
    │            ┌──────────────┐   ┌──────────────┐                       │
    │            │  Session 1   │   │  Session 2   │  ... one per peer     │
    │            └──────────────┘   └──────────────┘                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THREADS
=============================================================================

    SERVER MODE                         CLIENT MODE
    ───────────                         ───────────
    accept thread                       one Session thread
      └── Session thread per peer       (for the single connection)
          (no limit, no pool)

Binding (server) and connecting (client) happen synchronously in the
constructor, so a busy port or a refused connection raises BindError /
EndpointConnectionError to the caller before any thread starts.

=============================================================================
STOPPING
=============================================================================

stop() only clears the RunningFlag. Nothing is closed or interrupted:

    - a session blocked in recv() notices once that read returns, and
      exits without evaluating the request it just read
    - the accept thread notices after its next accept() returns

=============================================================================
"""

import logging
import threading
from typing import Iterable, List, Optional, Tuple, Union

from .config import EndpointMode, ResponderConfig
from .core import Connection, RunningFlag, Session, SocketListener, open_connection
from .errors import ResponderError, SpawnError
from .rules import Rule, RuleSet


logger = logging.getLogger(__name__)


class TcpAutoResponder:
    """
    Server or client that answers requests according to rules.

    =========================================================================
    USAGE
    =========================================================================

        responder = TcpAutoResponder(
            EndpointMode.SERVER, "127.0.0.1", 2323,
            [Rule("PING", "PONG", ignore_case=True, mode=MatchMode.EQUALS)],
            greeting="READY\\r\\n",
        )

        responder.register_rule(Rule("QUIT", "BYE"))
        ...
        responder.stop()

    =========================================================================
    """

    def __init__(
        self,
        mode: Union[EndpointMode, str],
        host: str,
        port: int,
        rules: Iterable[Rule] = (),
        greeting: str = "",
        startup_delay_ms: int = 5,
        *,
        ignore_read_errors: bool = True,
        ignore_write_errors: bool = True,
        buffer_size: int = 4096,
        wire_encoding: str = "ascii",
        close_on_eof: bool = False,
        backlog: int = 128,
    ):
        """
        Validate, open the endpoint and start the background thread.

        Raises:
            ConfigurationError: Invalid mode, port, delay or other option.
            BindError: Server mode could not listen.
            EndpointConnectionError: Client mode could not connect.
            SpawnError: The background thread could not be started.
        """
        self.config = ResponderConfig(
            mode=mode,
            host=host,
            port=port,
            greeting=greeting,
            startup_delay_ms=startup_delay_ms,
            ignore_read_errors=ignore_read_errors,
            ignore_write_errors=ignore_write_errors,
            buffer_size=buffer_size,
            wire_encoding=wire_encoding,
            close_on_eof=close_on_eof,
            backlog=backlog,
        )
        self.config.validate()  # Fail fast, before any socket exists

        self._rules = RuleSet(rules)
        self._running = RunningFlag()
        self._settings = self.config.session_settings()

        self._sessions: List[Session] = []
        self._sessions_lock = threading.Lock()

        self._listener: Optional[SocketListener] = None
        self._connection: Optional[Connection] = None
        self._thread: Optional[threading.Thread] = None

        # Set when the accept loop dies
        self.error: Optional[ResponderError] = None

        if self.mode is EndpointMode.SERVER:
            self._start_server()
        else:
            self._start_client()

    @classmethod
    def from_config(cls, config: ResponderConfig, rules: Iterable[Rule] = ()) -> "TcpAutoResponder":
        """Build a responder from a ResponderConfig."""
        return cls(
            config.mode,
            config.host,
            config.port,
            rules,
            greeting=config.greeting,
            startup_delay_ms=config.startup_delay_ms,
            ignore_read_errors=config.ignore_read_errors,
            ignore_write_errors=config.ignore_write_errors,
            buffer_size=config.buffer_size,
            wire_encoding=config.wire_encoding,
            close_on_eof=config.close_on_eof,
            backlog=config.backlog,
        )

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def mode(self) -> EndpointMode:
        return self.config.mode

    @property
    def is_running(self) -> bool:
        return self._running.is_running

    @property
    def rules(self) -> RuleSet:
        return self._rules

    @property
    def address(self) -> Tuple[str, int]:
        """Bound address (server) or peer address (client)."""
        if self._listener is not None and self._listener.is_bound:
            return self._listener.address
        if self._connection is not None:
            return self._connection.address
        return (self.config.host, self.config.port)

    @property
    def sessions(self) -> List[Session]:
        """Sessions currently running. A session leaves this list once it ends."""
        with self._sessions_lock:
            return list(self._sessions)

    # =========================================================================
    # CONTROL
    # =========================================================================

    def register_rule(self, rule: Rule) -> None:
        """
        Append a rule.

        Safe while sessions are running; it applies from each session's
        next request on. Accepted after stop() too, where it has no effect.
        """
        self._rules.add(rule)
        logger.debug(f"Registered rule {rule.trigger!r} ({rule.mode.value})")

    def stop(self) -> None:
        """Clear the running flag. Cooperative and idempotent."""
        if self._running.is_running:
            logger.info("Stopping responder")
        self._running.stop()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stop() has been called."""
        return self._running.wait(timeout)

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the background thread (accept loop or client session).

        Returns:
            True if it has finished.
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False

    # =========================================================================
    # SERVER MODE
    # =========================================================================

    def _start_server(self):
        self._listener = SocketListener(
            self.config.host,
            self.config.port,
            backlog=self.config.backlog,
            buffer_size=self.config.buffer_size,
        )
        self._listener.bind()

        self._thread = threading.Thread(
            target=self._run_accept_loop,
            name=f"Accept-{self.config.port}",
            daemon=True,
        )
        try:
            self._thread.start()
        except RuntimeError as e:
            self._listener.close()
            raise SpawnError(f"Can't start thread: {e}") from e

    def _run_accept_loop(self):
        """Accept thread entry point: record the error that ends the loop."""
        try:
            self._accept_loop()
        except SpawnError as e:
            self.error = e
            logger.error(f"Accept loop terminated: {e}", exc_info=True)
            self.stop()
        except ResponderError as e:
            self.error = e
            logger.error(f"Accept loop terminated: {e}", exc_info=True)
        finally:
            self._listener.close()

    def _accept_loop(self):
        while self._running.is_running:
            conn = self._listener.accept()

            # Blocked in accept() when stop() was called
            if not self._running.is_running:
                conn.close()
                break

            self._spawn_session(conn)

    # =========================================================================
    # CLIENT MODE
    # =========================================================================

    def _start_client(self):
        self._connection = open_connection(
            self.config.host,
            self.config.port,
            buffer_size=self.config.buffer_size,
        )
        self._thread = self._spawn_session(self._connection)

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def _spawn_session(self, conn: Connection) -> Session:
        session = Session(
            conn, self._rules, self._running, self._settings,
            on_finished=self._forget_session,
        )
        with self._sessions_lock:
            self._sessions.append(session)

        try:
            session.start()
        except RuntimeError as e:
            self._forget_session(session)
            conn.close()
            raise SpawnError(f"Can't start thread: {e}") from e

        return session

    def _forget_session(self, session: Session) -> None:
        with self._sessions_lock:
            if session in self._sessions:
                self._sessions.remove(session)

    def __repr__(self) -> str:
        host, port = self.address
        return (
            f"TcpAutoResponder(mode={self.mode.value}, address={host}:{port}, "
            f"rules={len(self._rules)}, running={self.is_running})"
        )


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Construction: validate → bind/connect → start background thread
# 2. Server: accept loop spawns one Session per connection, unbounded
# 3. Client: exactly one Session on the single outbound connection
# 4. Shared state: RuleSet (append-only) and RunningFlag (stop only)
# 5. stop() is cooperative; blocked accept()/recv() calls are not interrupted
# =============================================================================
