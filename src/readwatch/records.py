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

import logging
import typing
from typing import List, Optional, Tuple

from .exceptions import (MalformedRecordError, UnknownFormatError,
                         UnsupportedFormatError)
from .sniff import FormatTag, SNIFF_PREFIX_LENGTH, guess_format

logger = logging.getLogger(__name__)

LINES_PER_RECORD = 4


class FastqRecord(typing.NamedTuple):
    sequence: bytes
    qualities: bytes

    def __len__(self):
        return len(self.sequence)


class RecordStream:
    """
    Incrementally extracts FASTQ records from data that arrives in chunks.

    Bytes that do not yet form a complete record are kept in the buffer and
    are prefixed to the data of the next feed() call. The format is guessed
    once, as soon as enough data has been buffered.
    """
    _buffer: bytearray
    _prefix: bytearray
    _format: Optional[FormatTag]
    _format_error: Optional[UnknownFormatError]
    at_eof: bool

    def __init__(self):
        self._buffer = bytearray()
        # The start of the stream is kept separately. The buffer is consumed
        # before the format can be guessed for some (short) inputs.
        self._prefix = bytearray()
        self._format = None
        self._format_error = None
        self.at_eof = False

    @property
    def format(self) -> Optional[FormatTag]:
        return self._format

    @property
    def buffered_bytes(self) -> int:
        return len(self._buffer)

    def feed(self, data: bytes):
        if self.at_eof:
            raise ValueError("Can not feed data after finish() was called.")
        if len(self._prefix) < SNIFF_PREFIX_LENGTH:
            self._prefix += data[:SNIFF_PREFIX_LENGTH - len(self._prefix)]
        self._buffer += data

    def finish(self):
        """Signal that no more data will be fed."""
        self.at_eof = True

    def _guess_format(self) -> Optional[FormatTag]:
        if self._format_error is not None:
            raise self._format_error
        if self._format is None:
            try:
                self._format = guess_format(self._prefix, self.at_eof)
            except UnknownFormatError as error:
                self._format_error = error
                raise
            if self._format is not None:
                logger.info("Detected %s input.", self._format.value)
        return self._format

    def _next_record_bounds(self, start: int) -> Optional[Tuple[int, ...]]:
        """
        Return the start offset of each line of the record at start plus the
        offset just past its last line feed. None if the record is not
        complete yet.
        """
        buffer = self._buffer
        bounds = [start]
        position = start
        for _ in range(LINES_PER_RECORD):
            newline = buffer.find(b"\n", position)
            if newline == -1:
                # Only at the end of the stream a missing final newline is
                # tolerated.
                if (self.at_eof and len(bounds) == LINES_PER_RECORD and
                        position < len(buffer)):
                    bounds.append(len(buffer))
                    return tuple(bounds)
                return None
            position = newline + 1
            bounds.append(position)
        return tuple(bounds)

    def _parse_record(self, bounds: Tuple[int, ...]) -> FastqRecord:
        buffer = self._buffer
        header, sequence, separator, qualities = (
            bytes(buffer[start:stop]).strip()
            for start, stop in zip(bounds, bounds[1:])
        )
        for name, line, encoding in (("header", header, "utf-8"),
                                     ("sequence", sequence, "ascii"),
                                     ("separator", separator, "ascii")):
            try:
                line.decode(encoding)
            except UnicodeDecodeError as error:
                raise MalformedRecordError(
                    f"The {name} line of the record at buffer offset "
                    f"{bounds[0]} is not valid text: {error}")
        if not qualities:
            raise MalformedRecordError(
                f"Record {header.decode('utf-8')!r} has no quality values.")
        return FastqRecord(sequence, qualities)

    def drain_complete_records(self) -> List[FastqRecord]:
        """
        Extract all records that are completely present in the buffer.

        :raises UnknownFormatError: when the format is not recognized.
        :raises UnsupportedFormatError: when the format is recognized but
            record extraction is not implemented for it.
        :raises MalformedRecordError: when a complete record can not be
            parsed. The records before it are consumed and stored on the
            exception. The malformed record stays in the buffer.
        """
        format = self._guess_format()
        if format is None:
            return []
        if format is not FormatTag.FASTQ:
            raise UnsupportedFormatError(format)
        records: List[FastqRecord] = []
        position = 0
        try:
            while True:
                bounds = self._next_record_bounds(position)
                if bounds is None:
                    break
                try:
                    records.append(self._parse_record(bounds))
                except MalformedRecordError as error:
                    error.records = records
                    raise
                position = bounds[-1]
        finally:
            del self._buffer[:position]
        return records

    def skip_record(self) -> bool:
        """
        Discard the first complete record in the buffer. Returns False when
        the buffer holds no complete record.
        """
        bounds = self._next_record_bounds(0)
        if bounds is None:
            return False
        del self._buffer[:bounds[-1]]
        return True
