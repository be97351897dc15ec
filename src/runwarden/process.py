"""Child process launch, liveness probes and termination escalation."""

from __future__ import annotations

import logging
import math
import os
import signal
import subprocess
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import IO

import psutil

from runwarden.errors import SpawnError
from runwarden.validation import resolve_application_path

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1
"""Interval between liveness polls in the watchdog and the escalator."""

_FORCED_KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)


@dataclass(slots=True)
class LaunchedProcess:
    """Handle returned to callers that do not wait for completion."""

    pid: int
    process: subprocess.Popen[bytes]
    stdout: IO[bytes] | None
    stderr: IO[bytes] | None


def launch(application_path: str, params: Sequence[str] = ()) -> subprocess.Popen[bytes]:
    """Start the child with piped stdio; stdin is closed right away."""

    executable = resolve_application_path(application_path)
    try:
        process = subprocess.Popen(  # noqa: S603
            [executable, *params],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as error:
        raise SpawnError(f"Failed to start {application_path}: {error}") from error

    if process.stdin is not None:
        process.stdin.close()
    logger.info("Started %s (pid=%s) with %d argument(s)", executable, process.pid, len(params))
    return process


def process_exists(pid: int) -> bool:
    """True while a non-zombie process with this pid exists."""

    try:
        return psutil.Process(pid).status() != psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return False
    except psutil.AccessDenied:
        return True


def process_status(pid: int) -> str | None:
    """OS-level state string such as ``running`` or ``sleeping``, None when gone."""

    try:
        status = psutil.Process(pid).status()
    except psutil.NoSuchProcess:
        return None
    if status == psutil.STATUS_ZOMBIE:
        return None
    return str(status)


class TerminationEscalator:
    """Send SIGTERM, then SIGKILL if the process outlives the grace period.

    A process that has already exited at any step counts as terminated, so
    every method is safe to call repeatedly against the same pid.
    """

    def __init__(
        self,
        grace_period_ms: int,
        *,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._grace_period_ms = max(0, grace_period_ms)
        self._poll_interval = poll_interval

    def send_graceful(self, pid: int) -> bool:
        """Send the graceful signal; False when the process is already gone."""

        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            logger.debug("pid=%s already exited before SIGTERM", pid)
            return False
        logger.debug("Sent SIGTERM to pid=%s", pid)
        return True

    def await_exit_or_kill(self, pid: int) -> bool:
        """Wait out the grace period; return True if a forced kill was sent."""

        polls = math.ceil(self._grace_period_ms / (self._poll_interval * 1000))
        for _ in range(polls):
            if not process_exists(pid):
                return False
            time.sleep(self._poll_interval)

        if not process_exists(pid):
            return False
        try:
            os.kill(pid, _FORCED_KILL_SIGNAL)
        except ProcessLookupError:
            return False
        logger.warning(
            "pid=%s survived SIGTERM for %d ms, sent forced kill",
            pid,
            self._grace_period_ms,
        )
        return True

    def escalate(self, pid: int | None) -> None:
        if pid is None:
            return
        if self.send_graceful(pid):
            self.await_exit_or_kill(pid)

    def escalate_in_background(
        self,
        pid: int | None,
        on_finished: Callable[[], None] | None = None,
    ) -> threading.Thread | None:
        """Signal now and confirm the kill on a daemon thread."""

        if pid is None:
            return None
        if not self.send_graceful(pid):
            if on_finished is not None:
                on_finished()
            return None

        thread = threading.Thread(
            target=self._confirm_kill,
            args=(pid, on_finished),
            daemon=True,
            name=f"runwarden-kill-{pid}",
        )
        thread.start()
        return thread

    def _confirm_kill(self, pid: int, on_finished: Callable[[], None] | None) -> None:
        try:
            self.await_exit_or_kill(pid)
        finally:
            if on_finished is not None:
                on_finished()
