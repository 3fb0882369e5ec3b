# Copyright (C) 2023 Leiden University Medical Center
# This file is part of readwatch
#
# readwatch is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as
# published by the Free Software Foundation, either version 3 of the
# License, or (at your option) any later version.
#
# readwatch is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with readwatch.  If not, see <https://www.gnu.org/licenses/

import io
import logging
import os
import select
import sys
import termios
import time
import tty
from typing import BinaryIO, List, Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
QUIT_KEY = "q"


class ChunkReader:
    """
    Reads chunks of at most chunk_size bytes from a file or standard input
    without blocking longer than the given timeout.
    """
    name: str
    file: BinaryIO
    chunk_size: int
    total_bytes: int
    eof: bool

    def __init__(self, input: Union[str, BinaryIO] = "-",
                 chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size < 1:
            raise ValueError(
                f"Chunk size must be at least 1, got {chunk_size}.")
        if input == "-":
            self.name = "<stdin>"
            self.file = sys.stdin.buffer
            self._owns_file = False
        elif isinstance(input, str):
            self.name = input
            self.file = open(input, "rb")
            self._owns_file = True
        else:
            self.name = getattr(input, "name", "<stream>")
            self.file = input
            self._owns_file = False
        self.chunk_size = chunk_size
        self.total_bytes = 0
        self.eof = False
        try:
            self._fd: Optional[int] = self.file.fileno()
        except (AttributeError, io.UnsupportedOperation):
            # In-memory streams are always ready.
            self._fd = None

    def read(self, timeout: float) -> Optional[bytes]:
        """
        Return the next chunk, or None if no data arrived before the timeout.
        An empty bytes object signals the end of the input.
        """
        if self.eof:
            return b""
        if self._fd is not None:
            ready, _, _ = select.select([self._fd], [], [], timeout)
            if not ready:
                return None
            data = os.read(self._fd, self.chunk_size)
        else:
            data = self.file.read(self.chunk_size)
        if not data:
            self.eof = True
            logger.debug("End of input reached after %d bytes.",
                         self.total_bytes)
            return b""
        self.total_bytes += len(data)
        logger.debug("Read %d bytes from %s.", len(data), self.name)
        return data

    def close(self):
        if self._owns_file:
            self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class KeyPoller:
    """
    Polls the controlling terminal for key presses.

    Standard input is usually the data pipe, so keys are read from /dev/tty,
    which is put in cbreak mode for the lifetime of the poller. Without a
    terminal poll() only waits for the timeout.
    """
    _tty: Optional[BinaryIO]
    _saved_attributes: Optional[List]

    def __init__(self, tty_path: str = "/dev/tty"):
        self._tty = None
        self._saved_attributes = None
        try:
            self._tty = open(tty_path, "rb", buffering=0)
            self._saved_attributes = termios.tcgetattr(self._tty)
            tty.setcbreak(self._tty)
        except (OSError, termios.error) as error:
            logger.debug("No terminal available for key input: %s", error)
            if self._tty is not None:
                self._tty.close()
                self._tty = None

    @property
    def interactive(self) -> bool:
        return self._tty is not None

    def poll(self, timeout: float) -> Optional[str]:
        timeout = max(timeout, 0.0)
        if self._tty is None:
            time.sleep(timeout)
            return None
        ready, _, _ = select.select([self._tty], [], [], timeout)
        if not ready:
            return None
        key = self._tty.read(1)
        return key.decode("ascii", errors="replace") if key else None

    def quit_requested(self, timeout: float) -> bool:
        return self.poll(timeout) == QUIT_KEY

    def close(self):
        if self._tty is None:
            return
        if self._saved_attributes is not None:
            termios.tcsetattr(self._tty, termios.TCSADRAIN,
                              self._saved_attributes)
        self._tty.close()
        self._tty = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
