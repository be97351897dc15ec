"""Concurrent copy of one child output stream into a memory buffer."""

from __future__ import annotations

import logging
import threading
from typing import IO

from runwarden.watchdog import CompletionRendezvous

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class StreamDrainer(threading.Thread):
    """Reads `stream` until EOF, appending every chunk to `buffer`.

    A read that fails after the watchdog declared a timeout belongs to the
    timeout outcome and is not kept as an I/O error.
    """

    def __init__(
        self,
        name: str,
        stream: IO[bytes],
        buffer: bytearray,
        rendezvous: CompletionRendezvous,
    ) -> None:
        super().__init__(daemon=True, name=f"runwarden-drain-{name}")
        self.stream_name = name
        self._stream = stream
        self._buffer = buffer
        self._rendezvous = rendezvous
        self.error: BaseException | None = None
        self.interrupted_by_timeout = False

    def run(self) -> None:
        try:
            self._copy()
        except (OSError, ValueError) as error:
            if self._rendezvous.timed_out:
                self.interrupted_by_timeout = True
                logger.debug("%s drain stopped by timeout: %s", self.stream_name, error)
            else:
                self.error = error
        finally:
            self._close_stream()
            self._rendezvous.stream_finished()

    def raise_if_failed(self) -> None:
        if self.error is not None:
            raise self.error

    def _copy(self) -> None:
        read = getattr(self._stream, "read1", None) or self._stream.read
        while True:
            chunk = read(CHUNK_SIZE)
            if not chunk:
                return
            self._buffer.extend(chunk)

    def _close_stream(self) -> None:
        try:
            self._stream.close()
        except OSError:
            logger.debug("Failed to close %s stream", self.stream_name, exc_info=True)
