"""Persist captured output to files."""

from __future__ import annotations

import logging
from pathlib import Path

from runwarden.errors import OutputPersistError

logger = logging.getLogger(__name__)


def write_captured_output(data: str, path: Path, *, append: bool) -> None:
    """Append `data` to `path`; with `append=False` any existing file is replaced."""

    try:
        if not append:
            path.unlink(missing_ok=True)
        with path.open("a", encoding="utf-8") as handle:
            handle.write(data)
    except OSError as error:
        raise OutputPersistError(path, error.strerror or str(error)) from error
    logger.debug("Wrote %d chars to %s (append=%s)", len(data), path, append)
