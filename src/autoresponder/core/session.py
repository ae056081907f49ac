"""
=============================================================================
SESSION: ONE CONNECTION, ONE THREAD
=============================================================================

A Session owns one Connection and runs the read → match → write loop for
it in its own thread. Sessions share exactly two things: the RuleSet and
the RunningFlag of their responder.

=============================================================================
SESSION LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   sleep(startup_delay_ms)          not interruptible                 │
    │        │                                                             │
    │   greeting? ──yes──► write(greeting)                                 │
    │        │                                                             │
    │   while running:                                                     │
    │        │                                                             │
    │        ├──► read one chunk (≤ buffer_size bytes)                     │
    │        │       └── StreamError: raise, or "" if reads are tolerated  │
    │        │                                                             │
    │        ├──► decode (strict)     EncodingError: always fatal          │
    │        │                                                             │
    │        ├──► running cleared?  → leave before matching                │
    │        │                                                             │
    │        └──► for each rule in order:                                  │
    │                 matches? → build reply → encode → write              │
    │                   │             │                     │              │
    │                   │      ResponseFileError:     StreamError: raise,  │
    │                   │      skip this reply        or drop the reply    │
    │                   │                             if writes tolerated  │
    │                                                                      │
    │   close connection                                                   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ZERO-LENGTH READS
=============================================================================

recv() returning b"" usually means the peer closed its side. By default it
is treated as an empty request: rules are evaluated against "" and the
loop continues until the responder is stopped. With close_on_eof the
session ends instead.

=============================================================================
"""

import logging
import threading
import time
from typing import Callable, Optional

from ..config import SessionSettings
from ..errors import EncodingError, ResponderError, ResponseFileError, StreamError
from ..rules import RuleSet
from .connection import Connection, ConnectionState
from .flag import RunningFlag


logger = logging.getLogger(__name__)


class Session(threading.Thread):
    """
    Per-connection worker thread.

    Attributes:
        connection: The stream this session serves.
        error: The fatal error that ended the session, if any.
        requests_handled: Reads that reached rule evaluation.
        responses_sent: Replies written successfully.
        responses_dropped: Replies lost to a tolerated write error or an
            unreadable response file.
        on_finished: Called with the session once it has closed its
            connection, whatever ended it.
    """

    def __init__(
        self,
        connection: Connection,
        rules: RuleSet,
        running: RunningFlag,
        settings: Optional[SessionSettings] = None,
        on_finished: Optional[Callable[["Session"], None]] = None,
    ):
        # daemon=True: a session blocked in recv() must not keep the
        # process alive after the owner has stopped
        super().__init__(name=f"Session-{connection.id}", daemon=True)

        self.connection = connection
        self.rules = rules
        self.running = running
        self.settings = settings or SessionSettings()
        self.on_finished = on_finished

        self.error: Optional[ResponderError] = None
        self.requests_handled = 0
        self.responses_sent = 0
        self.responses_dropped = 0
        self._eof_logged = False

    def run(self):
        """Thread entry point: serve, record any fatal error, always close."""
        logger.debug(f"[{self.connection.id}] Session started for {self.connection.peer}")
        try:
            self.serve()
        except ResponderError as e:
            self.error = e
            logger.error(f"[{self.connection.id}] Session terminated: {e}", exc_info=True)
        finally:
            self.connection.close()
            logger.debug(
                f"[{self.connection.id}] Session ended after {self.requests_handled} requests, "
                f"{self.responses_sent} responses"
            )
            if self.on_finished is not None:
                self.on_finished(self)

    def serve(self) -> None:
        """
        Run the session loop until stopped or a fatal error.

        Does not close the connection; run() does that.

        Raises:
            StreamError: Read/write failed and the policy does not mask it.
            EncodingError: Request or reply could not be converted.
        """
        conn = self.connection
        conn.state = ConnectionState.CONNECTED

        if self.settings.startup_delay_ms > 0:
            time.sleep(self.settings.startup_delay_ms / 1000.0)

        if self.settings.greeting:
            self._write(self.settings.greeting)
            conn.state = ConnectionState.GREETING_SENT

        conn.state = ConnectionState.LOOPING

        while self.running.is_running:
            request = self._read()
            if request is None:
                break

            # stop() may have happened while we were blocked in recv()
            if not self.running.is_running:
                break

            self.requests_handled += 1
            self._respond(request)

    # =========================================================================
    # READ SIDE
    # =========================================================================

    def _read(self) -> Optional[str]:
        """
        Read and decode one request.

        Returns:
            The request text, "" for a masked read error or an empty read,
            or None when the peer closed and close_on_eof is set.
        """
        try:
            data = self.connection.read_chunk()
        except StreamError as e:
            if not self.settings.ignore_read_errors:
                raise
            logger.debug(f"[{self.connection.id}] Ignoring read error: {e}")
            return ""

        if not data:
            if self.settings.close_on_eof:
                logger.debug(f"[{self.connection.id}] Peer closed the stream")
                return None
            if not self._eof_logged:
                logger.debug(f"[{self.connection.id}] Empty read, treating as empty request")
                self._eof_logged = True
            return ""

        return self._decode(data)

    def _decode(self, data: bytes) -> str:
        try:
            text = data.decode(self.settings.wire_encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise EncodingError(f"Encoding failed for {len(data)} bytes: {e}") from e
        logger.debug(f"[{self.connection.id}] Request {text!r}")
        return text

    # =========================================================================
    # WRITE SIDE
    # =========================================================================

    def _respond(self, request: str) -> None:
        """Fire every matching rule, in registration order."""
        for rule in self.rules.snapshot():
            if not rule.matches(request):
                continue

            try:
                reply = rule.build_response()
            except ResponseFileError as e:
                self.responses_dropped += 1
                logger.warning(f"[{self.connection.id}] Rule {rule.trigger!r}: {e}")
                continue

            if self._write(reply):
                self.responses_sent += 1
            else:
                self.responses_dropped += 1

    def _write(self, text: str) -> bool:
        """
        Encode and send `text`.

        Returns:
            True if sent, False if the write failed and was tolerated.
        """
        try:
            data = text.encode(self.settings.wire_encoding)
        except (UnicodeEncodeError, LookupError) as e:
            raise EncodingError(f"Can't get bytes from response string: {e}") from e

        try:
            self.connection.send(data)
        except StreamError as e:
            if not self.settings.ignore_write_errors:
                raise
            logger.debug(f"[{self.connection.id}] Ignoring write error: {e}")
            return False

        logger.debug(f"[{self.connection.id}] Sent {text!r}")
        return True
