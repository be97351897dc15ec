"""Error types raised by the executor."""

from __future__ import annotations

from pathlib import Path


class RunwardenError(Exception):
    """Base class for executor failures."""


class ValidationError(RunwardenError, ValueError):
    """Application path failed one or more precondition checks."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(", ".join(errors))
        self.errors = list(errors)


class SpawnError(RunwardenError, OSError):
    """The OS could not create the child process."""


class ExecutionTimeoutError(RunwardenError, TimeoutError):
    """Child did not finish before the configured deadline."""

    def __init__(self, timeout: float) -> None:
        super().__init__("execution expired")
        self.timeout = timeout


class OutputPersistError(RunwardenError, OSError):
    """Captured output could not be written to its destination file."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to write captured output to {path}: {reason}")
        self.path = path
