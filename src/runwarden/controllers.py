"""Controllers for runwarden CLI commands."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from runwarden.config import ExecutorOptions
from runwarden.errors import ExecutionTimeoutError
from runwarden.executor import Executor
from runwarden.process import LaunchedProcess
from runwarden.validation import collect_validation_errors

TIMEOUT_EXIT_CODE = 124


@dataclass(slots=True)
class RunCommand:
    """CLI input for one supervised run."""

    application: str
    params: tuple[str, ...] = ()
    timeout: float | None = None
    kill_grace_ms: int | None = None
    stdout_path: Path | None = None
    stderr_path: Path | None = None
    append: bool | None = None
    protect_against_injection: bool = True
    replace: bool = False
    background: bool = False


@dataclass(slots=True)
class ValidateCommand:
    """CLI input for a validation-only check."""

    application: str
    protect_against_injection: bool = True


@dataclass(slots=True)
class RunOutcome:
    """What the CLI should print and exit with."""

    exit_code: int
    lines: list[str] = field(default_factory=list)
    stdout: str | None = None
    stderr: str | None = None


class ExecutorCliController:
    """Translate CLI commands into executor calls."""

    def run(self, command: RunCommand) -> RunOutcome:
        executor = Executor(_build_options(command))

        if command.replace:
            executor.execute()
            return RunOutcome(exit_code=0)

        if command.background:
            launched = cast(LaunchedProcess, executor.execute())
            return RunOutcome(
                exit_code=0,
                lines=[f"Started pid={launched.pid} status={executor.status()}"],
            )

        try:
            exit_code = cast(int, executor.execute())
        except ExecutionTimeoutError as error:
            executor.flush()
            return RunOutcome(
                exit_code=TIMEOUT_EXIT_CODE,
                lines=[f"{error} after {error.timeout}s (pid={executor.pid} terminated)"],
                stdout=executor.stdout,
                stderr=executor.stderr,
            )

        executor.flush()
        return RunOutcome(exit_code=exit_code, stdout=executor.stdout, stderr=executor.stderr)

    def validate(self, command: ValidateCommand) -> RunOutcome:
        errors = collect_validation_errors(
            command.application,
            protect_against_injection=command.protect_against_injection,
        )
        if not errors:
            return RunOutcome(exit_code=0, lines=[f"Application path valid: {command.application}"])
        return RunOutcome(exit_code=1, lines=[f"error: {message}" for message in errors])


def _build_options(command: RunCommand) -> ExecutorOptions:
    overrides: dict[str, Any] = {
        "application_path": command.application,
        "params": command.params,
        "protect_against_injection": command.protect_against_injection,
        "replace": command.replace,
        "wait_for_completion": not command.background,
        "stdout_path": command.stdout_path,
        "stderr_path": command.stderr_path,
    }
    if command.timeout is not None:
        overrides["timeout"] = command.timeout
    if command.kill_grace_ms is not None:
        overrides["timeout_sig_kill_retry"] = command.kill_grace_ms
    if command.append is not None:
        overrides["append_stdout_path"] = command.append
        overrides["append_stderr_path"] = command.append
    return ExecutorOptions.from_env(**overrides)
