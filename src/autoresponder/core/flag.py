"""Shared running flag for one responder and all of its sessions."""

import threading
from typing import Optional


class RunningFlag:
    """
    Starts out running; stop() clears it for good.

    One writer (the responder's stop()), many readers (the accept loop and
    every session). Backed by threading.Event so a stop is visible to all
    threads at their next check. Nothing blocked in accept() or recv() is
    woken by it.
    """

    def __init__(self):
        self._stopped = threading.Event()

    @property
    def is_running(self) -> bool:
        return not self._stopped.is_set()

    def stop(self) -> None:
        """Clear the flag. Safe to call any number of times."""
        self._stopped.set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stopped; returns False if `timeout` ran out first."""
        return self._stopped.wait(timeout)

    def __bool__(self) -> bool:
        return self.is_running

    def __repr__(self) -> str:
        return f"RunningFlag(running={self.is_running})"
