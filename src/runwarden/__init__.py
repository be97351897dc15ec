"""Supervised execution of external programs."""

from runwarden.config import ExecutorOptions, default_options
from runwarden.entrypoints import (
    execute_and_timeout_after,
    execute_blocking,
    execute_non_blocking,
    execute_replacing,
)
from runwarden.errors import (
    ExecutionTimeoutError,
    OutputPersistError,
    RunwardenError,
    SpawnError,
    ValidationError,
)
from runwarden.executor import Executor, ExecutorState
from runwarden.process import LaunchedProcess

__version__ = "0.1.0"

__all__ = [
    "ExecutionTimeoutError",
    "Executor",
    "ExecutorOptions",
    "ExecutorState",
    "LaunchedProcess",
    "OutputPersistError",
    "RunwardenError",
    "SpawnError",
    "ValidationError",
    "__version__",
    "default_options",
    "execute_and_timeout_after",
    "execute_blocking",
    "execute_non_blocking",
    "execute_replacing",
]
