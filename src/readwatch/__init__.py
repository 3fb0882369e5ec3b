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

from ._version import __version__
from .exceptions import (EmptyHistogramInputError, MalformedRecordError,
                         UnknownFormatError, UnsupportedFormatError)
from .records import FastqRecord, RecordStream
from .sniff import FormatTag, MIN_SNIFF_LENGTH, guess_format
from .stats import (QUALITY_CEILING, ReadStats, average_quality, bin_values,
                    length_histogram, quality_histogram)


__all__ = [
    "EmptyHistogramInputError",
    "MalformedRecordError",
    "UnknownFormatError",
    "UnsupportedFormatError",
    "FastqRecord",
    "RecordStream",
    "FormatTag",
    "MIN_SNIFF_LENGTH",
    "guess_format",
    "QUALITY_CEILING",
    "ReadStats",
    "average_quality",
    "bin_values",
    "length_histogram",
    "quality_histogram",
    "__version__",
]
