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

from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .records import FastqRecord
    from .sniff import FormatTag


class UnknownFormatError(ValueError):
    """The start of the stream matches no known format signature."""


class UnsupportedFormatError(ValueError):
    """
    The format was recognized, but records cannot be extracted from it.
    """
    def __init__(self, format: "FormatTag"):
        self.format = format
        super().__init__(
            f"Record extraction is not supported for {format.value} input.")


class MalformedRecordError(ValueError):
    """
    A complete record could not be parsed.

    The records that were extracted before the malformed one are stored in
    ``records`` so they do not get lost.
    """
    records: List["FastqRecord"]

    def __init__(self, message: str, records: Sequence["FastqRecord"] = ()):
        self.records = list(records)
        super().__init__(message)


class EmptyHistogramInputError(ValueError):
    pass
