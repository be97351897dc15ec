"""Execution state machine: launch, drain, watch the deadline, escalate."""

from __future__ import annotations

import logging
import os
import subprocess
from enum import Enum
from typing import IO, Any, cast

from runwarden.config import ExecutorOptions, default_options
from runwarden.drain import StreamDrainer
from runwarden.errors import (
    ExecutionTimeoutError,
    RunwardenError,
    SpawnError,
    ValidationError,
)
from runwarden.output import write_captured_output
from runwarden.process import (
    LaunchedProcess,
    TerminationEscalator,
    launch,
    process_status,
)
from runwarden.validation import resolve_application_path, validate_application
from runwarden.watchdog import CompletionRendezvous, DeadlineWatchdog, Outcome

logger = logging.getLogger(__name__)

NOT_EXECUTED = "not executed"
NO_LONGER_EXECUTING = "no longer executing"


class ExecutorState(str, Enum):
    """Lifecycle of one execution attempt."""

    IDLE = "idle"
    LAUNCHING = "launching"
    RUNNING = "running"
    COMPLETED = "completed"
    TIMED_OUT = "timed_out"
    VALIDATION_FAILED = "validation_failed"
    SPAWN_FAILED = "spawn_failed"


class Executor:
    """Run one external application and capture what it writes.

    Behaviour of `execute` depends on the options:

    - ``replace``: validate, then replace the current process image.
    - ``wait_for_completion=False``: start the child and return a
      `LaunchedProcess` immediately; output is left in the pipes.
    - ``wait_for_completion=True``: drain stdout and stderr on two threads
      and return the exit code. With ``timeout > 0`` a watchdog thread races
      the drainers; on expiry the child is sent SIGTERM (then SIGKILL after
      ``timeout_sig_kill_retry`` ms, in the background) and
      `ExecutionTimeoutError` is raised without waiting for the kill.

    Captured output becomes visible in `stdout` / `stderr` after `flush`.
    """

    def __init__(self, options: ExecutorOptions | None = None, **overrides: Any) -> None:
        base = options if options is not None else default_options()
        self.options = base.with_overrides(**overrides) if overrides else base
        self.stdout: str | None = None
        self.stderr: str | None = None
        self._state = ExecutorState.IDLE
        self._process: subprocess.Popen[bytes] | None = None
        self._stdout_buffer: bytearray | None = None
        self._stderr_buffer: bytearray | None = None

    @property
    def state(self) -> ExecutorState:
        if (
            self._state is ExecutorState.RUNNING
            and self._process is not None
            and self._process.returncode is not None
        ):
            return ExecutorState.COMPLETED
        return self._state

    @property
    def pid(self) -> int | None:
        return None if self._process is None else self._process.pid

    def validate(self) -> None:
        validate_application(
            self.options.application_path,
            protect_against_injection=self.options.protect_against_injection,
        )

    def execute(self) -> int | LaunchedProcess | None:
        if self._process is not None and self._process.poll() is None:
            raise RunwardenError(f"Executor already supervises running pid={self._process.pid}")
        self._reset()

        if self.options.replace:
            self._replace_process()
            return None
        if not self.options.wait_for_completion:
            return self._start_detached()
        if self.options.should_timeout:
            return self._run_with_deadline()
        return self._run_to_completion()

    def status(self) -> str:
        """``not executed``, the live OS state of the child, or ``no longer executing``."""

        if self._process is None:
            return NOT_EXECUTED
        if self._process.poll() is None:
            live_status = process_status(self._process.pid)
            if live_status is not None:
                return live_status
        return NO_LONGER_EXECUTING

    def result(self) -> int | None:
        """Exit code of a reaped child, None while running or after a timeout."""

        if self._process is None or self._state is ExecutorState.TIMED_OUT:
            return None
        return self._process.poll()

    def flush(self) -> None:
        if self._stdout_buffer is None or self._stderr_buffer is None:
            return
        stdout_text = _decode(self._stdout_buffer)
        stderr_text = _decode(self._stderr_buffer)
        self.stdout = stdout_text or None
        self.stderr = stderr_text or None

        if self.options.stdout_path is not None:
            write_captured_output(
                stdout_text,
                self.options.stdout_path,
                append=self.options.append_stdout_path,
            )
        if self.options.stderr_path is not None:
            write_captured_output(
                stderr_text,
                self.options.stderr_path,
                append=self.options.append_stderr_path,
            )

    def _reset(self) -> None:
        self.stdout = None
        self.stderr = None
        self._stdout_buffer = None
        self._stderr_buffer = None
        self._process = None
        self._state = ExecutorState.IDLE

    def _validate_before_launch(self) -> str:
        try:
            self.validate()
        except ValidationError:
            self._state = ExecutorState.VALIDATION_FAILED
            raise
        return self.options.application_path or ""

    def _launch(self) -> subprocess.Popen[bytes]:
        application_path = self._validate_before_launch()
        self._state = ExecutorState.LAUNCHING
        try:
            process = launch(application_path, self.options.params)
        except SpawnError:
            self._state = ExecutorState.SPAWN_FAILED
            raise
        self._process = process
        self._state = ExecutorState.RUNNING
        return process

    def _replace_process(self) -> None:
        application_path = self._validate_before_launch()
        executable = resolve_application_path(application_path)
        logger.info("Replacing current process with %s", executable)
        try:
            os.execv(executable, [application_path, *self.options.params])  # noqa: S606
        except OSError as error:
            self._state = ExecutorState.SPAWN_FAILED
            raise SpawnError(f"Failed to replace process with {application_path}: {error}") from error

    def _start_detached(self) -> LaunchedProcess:
        process = self._launch()
        return LaunchedProcess(
            pid=process.pid,
            process=process,
            stdout=process.stdout,
            stderr=process.stderr,
        )

    def _start_drainers(
        self,
        process: subprocess.Popen[bytes],
        rendezvous: CompletionRendezvous,
    ) -> tuple[StreamDrainer, StreamDrainer]:
        self._stdout_buffer = bytearray()
        self._stderr_buffer = bytearray()
        stdout = cast(IO[bytes], process.stdout)
        stderr = cast(IO[bytes], process.stderr)
        drainers = (
            StreamDrainer("stdout", stdout, self._stdout_buffer, rendezvous),
            StreamDrainer("stderr", stderr, self._stderr_buffer, rendezvous),
        )
        for drainer in drainers:
            drainer.start()
        return drainers

    def _run_to_completion(self) -> int:
        process = self._launch()
        drainers = self._start_drainers(process, CompletionRendezvous())
        for drainer in drainers:
            drainer.join()
        return self._finish(process, drainers)

    def _run_with_deadline(self) -> int:
        process = self._launch()
        rendezvous = CompletionRendezvous(track_process=True)
        drainers = self._start_drainers(process, rendezvous)
        watchdog = DeadlineWatchdog(
            is_alive=lambda: process.poll() is None,
            timeout=self.options.timeout,
            rendezvous=rendezvous,
        )
        watchdog.start()

        if rendezvous.wait() is Outcome.TIMED_OUT:
            self._state = ExecutorState.TIMED_OUT
            logger.warning(
                "pid=%s exceeded timeout of %ss, terminating",
                process.pid,
                self.options.timeout,
            )
            TerminationEscalator(self.options.timeout_sig_kill_retry).escalate_in_background(
                process.pid,
                on_finished=process.wait,
            )
            raise ExecutionTimeoutError(self.options.timeout)

        for drainer in drainers:
            drainer.join()
        watchdog.join()
        return self._finish(process, drainers)

    def _finish(
        self,
        process: subprocess.Popen[bytes],
        drainers: tuple[StreamDrainer, StreamDrainer],
    ) -> int:
        returncode = process.wait()
        self._state = ExecutorState.COMPLETED
        logger.info("pid=%s exited with code %s", process.pid, returncode)
        for drainer in drainers:
            drainer.raise_if_failed()
        return returncode


def _decode(buffer: bytearray) -> str:
    return bytes(buffer).decode("utf-8", errors="replace")
