from __future__ import annotations

import signal
import subprocess
import time

import allure
import pytest

from runwarden.errors import SpawnError
from runwarden.process import (
    TerminationEscalator,
    launch,
    process_exists,
    process_status,
)

pytestmark = [
    allure.epic("Execution"),
    allure.feature("Launch & Termination"),
]


def test_launch_closes_stdin_and_pipes_output(reap) -> None:
    process = reap(launch("cat"))

    assert process.stdin is not None
    assert process.stdin.closed
    assert process.stdout is not None
    assert process.stderr is not None
    assert process.stdout.read() == b""
    assert process.stderr.read() == b""
    assert process.wait(timeout=5) == 0


def test_launch_wraps_os_errors(tmp_path) -> None:
    bogus = tmp_path / "bogus"
    bogus.write_bytes(b"\x00\x01\x02 not a program")
    bogus.chmod(0o755)

    with pytest.raises(SpawnError, match="Failed to start") as error_info:
        launch(str(bogus))

    assert isinstance(error_info.value.__cause__, OSError)


def test_process_liveness_and_status(reap) -> None:
    process = reap(subprocess.Popen(["sleep", "5"]))

    assert process_exists(process.pid) is True
    assert process_status(process.pid) is not None

    process.kill()
    process.wait(timeout=5)

    assert process_exists(process.pid) is False
    assert process_status(process.pid) is None


def test_zombie_counts_as_gone(reap) -> None:
    process = reap(subprocess.Popen(["true"]))
    deadline = time.monotonic() + 5
    while process_exists(process.pid) and time.monotonic() < deadline:
        time.sleep(0.05)

    assert process_exists(process.pid) is False
    assert process.poll() == 0


def test_escalate_terminates_cooperative_process(reap) -> None:
    process = reap(subprocess.Popen(["sleep", "5"]))
    escalator = TerminationEscalator(500, poll_interval=0.05)

    escalator.escalate(process.pid)

    assert process.wait(timeout=5) == -signal.SIGTERM


def test_escalate_sends_forced_kill_when_sigterm_is_ignored(shell_script, reap) -> None:
    script = shell_script("trap '' TERM\nexec sleep 5")
    process = reap(subprocess.Popen([str(script)]))
    time.sleep(0.3)
    escalator = TerminationEscalator(200, poll_interval=0.05)

    assert escalator.send_graceful(process.pid) is True
    assert escalator.await_exit_or_kill(process.pid) is True
    assert process.wait(timeout=5) == -signal.SIGKILL


def test_escalate_against_exited_process_is_a_noop(reap) -> None:
    process = reap(subprocess.Popen(["true"]))
    process.wait(timeout=5)
    escalator = TerminationEscalator(100, poll_interval=0.05)

    assert escalator.send_graceful(process.pid) is False
    assert escalator.await_exit_or_kill(process.pid) is False
    escalator.escalate(process.pid)
    escalator.escalate(process.pid)


def test_escalate_without_pid_is_a_noop() -> None:
    escalator = TerminationEscalator(100)

    escalator.escalate(None)
    assert escalator.escalate_in_background(None) is None


def test_escalate_in_background_signals_before_returning(reap) -> None:
    process = reap(subprocess.Popen(["sleep", "5"]))
    finished: list[int] = []
    escalator = TerminationEscalator(500, poll_interval=0.05)

    thread = escalator.escalate_in_background(
        process.pid,
        on_finished=lambda: finished.append(process.wait()),
    )

    assert thread is not None
    thread.join(timeout=5)
    assert finished == [-signal.SIGTERM]


def test_escalate_in_background_on_gone_process_finishes_inline(reap) -> None:
    process = reap(subprocess.Popen(["true"]))
    process.wait(timeout=5)
    finished: list[bool] = []

    thread = TerminationEscalator(100).escalate_in_background(
        process.pid,
        on_finished=lambda: finished.append(True),
    )

    assert thread is None
    assert finished == [True]
