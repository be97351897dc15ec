"""Precondition checks for the application path."""

from __future__ import annotations

import os
import shutil
from pathlib import Path

from runwarden.errors import ValidationError

NO_APPLICATION_PATH = "No application path provided"
APPLICATION_NOT_FOUND = "Application path not found"
APPLICATION_NOT_EXECUTABLE = "Application path not executable"
SUSPECTED_INJECTION = (
    "Suspected injection vulnerability due to whitespace or shell metacharacters "
    "in application_path. Turn off strict checking if you are sure by setting "
    "protect_against_injection to False"
)

_SHELL_METACHARACTERS = frozenset(";&|$`<>()*?!\"'\0")


def resolve_application_path(application_path: str) -> str:
    """Resolve a bare command name through PATH; paths are returned as given."""

    if os.sep in application_path or (os.altsep and os.altsep in application_path):
        return application_path
    return shutil.which(application_path) or application_path


def collect_validation_errors(
    application_path: str | None,
    *,
    protect_against_injection: bool,
) -> list[str]:
    """Return every failed check for `application_path`, empty when valid."""

    if application_path is None or not application_path.strip():
        return [NO_APPLICATION_PATH]

    errors: list[str] = []
    candidate = Path(resolve_application_path(application_path))
    if not candidate.exists():
        errors.append(APPLICATION_NOT_FOUND)
    elif not candidate.is_file() or not os.access(candidate, os.X_OK):
        errors.append(APPLICATION_NOT_EXECUTABLE)

    if protect_against_injection and _looks_injected(application_path):
        errors.append(SUSPECTED_INJECTION)
    return errors


def validate_application(
    application_path: str | None,
    *,
    protect_against_injection: bool,
) -> None:
    """Raise `ValidationError` listing all failed checks."""

    errors = collect_validation_errors(
        application_path,
        protect_against_injection=protect_against_injection,
    )
    if errors:
        raise ValidationError(errors)


def _looks_injected(application_path: str) -> bool:
    return any(char.isspace() or char in _SHELL_METACHARACTERS for char in application_path)
