"""Deadline watchdog and the single-decision completion rendezvous."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections.abc import Callable
from enum import Enum

from runwarden.process import POLL_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Which side of the drainer/watchdog race finished first."""

    COMPLETED = "completed"
    TIMED_OUT = "timed_out"


class CompletionRendezvous:
    """Records exactly one outcome from the drainers or the watchdog.

    Drainers report through `stream_finished`. With `track_process` the
    watchdog must also report the child's exit through `process_exited`, so
    a child that closes its pipes but keeps running stays under the deadline.
    The outcome is COMPLETED once every expected report has arrived; the
    watchdog decides TIMED_OUT through `declare_timeout`. Whichever comes
    first wins under the lock and later reports are ignored.
    """

    def __init__(self, expected_streams: int = 2, *, track_process: bool = False) -> None:
        self._condition = threading.Condition()
        self._pending_streams = expected_streams
        self._process_running = track_process
        self._outcome: Outcome | None = None

    @property
    def outcome(self) -> Outcome | None:
        with self._condition:
            return self._outcome

    @property
    def timed_out(self) -> bool:
        return self.outcome is Outcome.TIMED_OUT

    def stream_finished(self) -> None:
        with self._condition:
            self._pending_streams -= 1
            self._complete_if_settled()

    def process_exited(self) -> None:
        with self._condition:
            self._process_running = False
            self._complete_if_settled()

    def declare_timeout(self) -> bool:
        """Return True if this call decided the outcome."""

        with self._condition:
            if self._outcome is not None:
                return False
            self._outcome = Outcome.TIMED_OUT
            self._condition.notify_all()
            return True

    def wait(self, timeout: float | None = None) -> Outcome | None:
        with self._condition:
            self._condition.wait_for(lambda: self._outcome is not None, timeout=timeout)
            return self._outcome

    def _complete_if_settled(self) -> None:
        if self._pending_streams > 0 or self._process_running or self._outcome is not None:
            return
        self._outcome = Outcome.COMPLETED
        self._condition.notify_all()


class DeadlineWatchdog(threading.Thread):
    """Polls child liveness until it exits or the timeout budget runs out.

    The drainers reaching EOF does not stop the watch; only the child's exit
    does, reported to the rendezvous through `process_exited`.
    """

    def __init__(
        self,
        *,
        is_alive: Callable[[], bool],
        timeout: float,
        rendezvous: CompletionRendezvous,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        super().__init__(daemon=True, name="runwarden-watchdog")
        self._is_alive = is_alive
        self._timeout = timeout
        self._rendezvous = rendezvous
        self._poll_interval = poll_interval

    def run(self) -> None:
        budget = math.ceil(self._timeout / self._poll_interval)
        for _ in range(budget):
            if not self._is_alive():
                self._rendezvous.process_exited()
                return
            time.sleep(self._poll_interval)

        if not self._is_alive():
            self._rendezvous.process_exited()
        elif self._rendezvous.declare_timeout():
            logger.warning("Deadline of %ss exceeded", self._timeout)
