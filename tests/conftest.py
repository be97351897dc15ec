"""Shared test fixtures."""

from __future__ import annotations

import stat
import subprocess
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest


@pytest.fixture()
def shell_script(tmp_path: Path) -> Callable[..., Path]:
    """Write an executable /bin/sh script into tmp_path and return its path."""

    def _write(body: str, name: str = "script.sh", *, executable: bool = True) -> Path:
        path = tmp_path / name
        path.write_text(f"#!/bin/sh\n{body.strip()}\n", "utf-8")
        mode = path.stat().st_mode
        if executable:
            path.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        else:
            path.chmod(mode & ~(stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH))
        return path

    return _write


@pytest.fixture()
def reap() -> Iterator[Callable[[subprocess.Popen[bytes]], subprocess.Popen[bytes]]]:
    """Register child processes to kill after the test."""

    processes: list[subprocess.Popen[bytes]] = []

    def _register(process: subprocess.Popen[bytes]) -> subprocess.Popen[bytes]:
        processes.append(process)
        return process

    yield _register
    for process in processes:
        if process.poll() is None:
            process.kill()
        process.wait(timeout=5)
