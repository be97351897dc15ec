"""Shortcuts over `Executor` for the common execution modes."""

from __future__ import annotations

from collections.abc import Sequence
from typing import cast

from runwarden.executor import Executor
from runwarden.process import LaunchedProcess


def execute_blocking(
    application_path: str,
    params: Sequence[str] | None = None,
) -> tuple[int, str | None, str | None]:
    """Run to completion; return exit code, stdout and stderr."""

    return execute_and_timeout_after(application_path, params)


def execute_and_timeout_after(
    application_path: str,
    params: Sequence[str] | None = None,
    timeout: float = -1,
) -> tuple[int, str | None, str | None]:
    """Like `execute_blocking`, raising `ExecutionTimeoutError` past `timeout` seconds."""

    executor = Executor(
        timeout=timeout,
        wait_for_completion=True,
        application_path=application_path,
        params=tuple(params or ()),
    )
    exit_code = cast(int, executor.execute())
    executor.flush()
    return exit_code, executor.stdout, executor.stderr


def execute_non_blocking(
    application_path: str,
    params: Sequence[str] | None = None,
) -> LaunchedProcess:
    executor = Executor(
        wait_for_completion=False,
        application_path=application_path,
        params=tuple(params or ()),
    )
    return cast(LaunchedProcess, executor.execute())


def execute_replacing(application_path: str, params: Sequence[str] | None = None) -> None:
    """Replace the current process image; returns only if exec is intercepted."""

    Executor(
        replace=True,
        application_path=application_path,
        params=tuple(params or ()),
    ).execute()
