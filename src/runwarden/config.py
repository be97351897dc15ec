"""Runtime configuration for one child-process execution."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any


@dataclass(slots=True, frozen=True)
class ExecutorOptions:
    """Options recognized by `Executor`, one record per execution."""

    application_path: str | None = None
    params: tuple[str, ...] = ()
    timeout: float = -1
    protect_against_injection: bool = True
    stdout_path: Path | None = None
    stderr_path: Path | None = None
    append_stdout_path: bool = True
    append_stderr_path: bool = True
    replace: bool = False
    wait_for_completion: bool = False
    timeout_sig_kill_retry: int = 500

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(str(item) for item in self.params or ()))
        if self.stdout_path is not None:
            object.__setattr__(self, "stdout_path", Path(self.stdout_path))
        if self.stderr_path is not None:
            object.__setattr__(self, "stderr_path", Path(self.stderr_path))
        if self.timeout_sig_kill_retry < 0:
            raise ValueError("timeout_sig_kill_retry must be >= 0.")

    @property
    def should_timeout(self) -> bool:
        return self.timeout > 0

    def with_overrides(self, **overrides: Any) -> ExecutorOptions:
        """Return a copy with the given options replaced."""

        unknown = sorted(set(overrides) - _OPTION_NAMES)
        if unknown:
            raise ValueError(f"Unknown executor option(s): {', '.join(unknown)}")
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, **overrides: Any) -> ExecutorOptions:
        """Load defaults from `RUNWARDEN_*` variables, then apply overrides."""

        base = cls(
            timeout=_env_float("RUNWARDEN_TIMEOUT", default=-1.0),
            protect_against_injection=_env_bool(
                "RUNWARDEN_PROTECT_AGAINST_INJECTION",
                default=True,
            ),
            append_stdout_path=_env_bool("RUNWARDEN_APPEND_STDOUT_PATH", default=True),
            append_stderr_path=_env_bool("RUNWARDEN_APPEND_STDERR_PATH", default=True),
            timeout_sig_kill_retry=_env_int("RUNWARDEN_TIMEOUT_SIG_KILL_RETRY_MS", default=500),
        )
        return base.with_overrides(**overrides)


_OPTION_NAMES = frozenset(item.name for item in fields(ExecutorOptions))


def default_options() -> ExecutorOptions:
    """Fresh default configuration; callers never share one instance."""

    return ExecutorOptions()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value.strip())
    except ValueError as error:
        raise ValueError(f"Invalid number value for {name}: {value!r}") from error


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
