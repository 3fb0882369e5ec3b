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

import array
import dataclasses
import math
from typing import Callable, List, Optional, Sequence, Tuple

import tqdm

from .exceptions import EmptyHistogramInputError
from .records import FastqRecord

QUALITY_CEILING = 255
DEFAULT_BIN_COUNT = 10

BYTE_TO_ERROR_RATE = [10 ** (-q / 10) for q in range(256)]

Histogram = List[Tuple[str, int]]


def average_quality(qualities: bytes, phred_offset: int = 0) -> float:
    """
    Average the qualities in the error rate domain. The average of the error
    rates is converted back to a quality score.
    """
    if not qualities:
        raise ValueError("Can not average an empty sequence of qualities.")
    if phred_offset:
        error_rate_sum = sum(10 ** ((q - phred_offset) / -10)
                             for q in qualities)
    else:
        error_rate_sum = sum(BYTE_TO_ERROR_RATE[q] for q in qualities)
    return -10 * math.log10(error_rate_sum / len(qualities))


def bin_values(values: Sequence[int],
               bin_count: int = DEFAULT_BIN_COUNT,
               formatter: Callable[[int], str] = str,
               ceiling: Optional[int] = None,
               ) -> Histogram:
    """
    Divide values over bins of equal width between the minimum and the
    maximum value.

    Bins are half-open intervals except the last bin, which also contains
    every value up to and including the maximum. If the range is too small
    to give each bin an integer width, bins with a width of 1 are used and
    fewer bins are returned. When all values are equal this results in a
    single bin.

    :param values: the observations
    :param bin_count: the number of bins
    :param formatter: renders a bin boundary for the label
    :param ceiling: the largest representable value. The upper boundary of
        the last bin's label is clamped to this value.
    :return: (label, count) tuples, ordered from low to high.
    """
    if bin_count < 1:
        raise ValueError(f"bin_count must be at least 1, got {bin_count}.")
    if len(values) == 0:
        raise EmptyHistogramInputError("Can not bin an empty set of values.")
    minimum = min(values)
    maximum = max(values)
    width = (maximum - minimum) // bin_count
    if width == 0:
        width = 1
        bin_count = maximum - minimum + 1
    counts = [0 for _ in range(bin_count)]
    last_bin = bin_count - 1
    for value in values:
        counts[min((value - minimum) // width, last_bin)] += 1
    histogram = []
    for i, count in enumerate(counts):
        lower = minimum + i * width
        if i == last_bin:
            upper = maximum if ceiling is None else min(maximum, ceiling)
        else:
            upper = lower + width
        histogram.append((f"{formatter(lower)}-{formatter(upper)}", count))
    return histogram


def human_readable_length(length: int) -> str:
    if length < 1000:
        return f"{length}bp"
    return tqdm.tqdm.format_sizeof(length, "bp", divisor=1000)


def quality_histogram(qualities: Sequence[int],
                      bin_count: int = DEFAULT_BIN_COUNT) -> Histogram:
    return bin_values(qualities, bin_count, ceiling=QUALITY_CEILING)


def length_histogram(lengths: Sequence[int],
                     bin_count: int = DEFAULT_BIN_COUNT) -> Histogram:
    return bin_values(lengths, bin_count, formatter=human_readable_length)


def nx(lengths: Sequence[int], x: float = 50) -> int:
    if not lengths:
        return 0
    target = sum(lengths) * x / 100
    cumulative = 0
    for length in sorted(lengths, reverse=True):
        cumulative += length
        if cumulative >= target:
            return length
    return 0


@dataclasses.dataclass
class Summary:
    total_reads: int
    total_bases: int
    mean_length: float
    minimum_length: int
    maximum_length: int
    n50: int
    mean_quality: float


class ReadStats:
    """
    The lengths and average qualities of all reads seen so far, in order of
    arrival.
    """
    lengths: array.ArrayType
    qualities: array.ArrayType

    def __init__(self):
        self.lengths = array.array("Q")
        self.qualities = array.array("B")

    def __len__(self):
        return len(self.lengths)

    @property
    def number_of_reads(self) -> int:
        return len(self.lengths)

    def ingest(self, length: int, quality: int):
        if length < 0:
            raise ValueError(f"Length can not be negative, got {length}.")
        if not 0 <= quality <= QUALITY_CEILING:
            raise ValueError(f"Quality must be between 0 and "
                             f"{QUALITY_CEILING}, got {quality}.")
        # Both arrays are checked before, so none of the appends can fail.
        self.lengths.append(length)
        self.qualities.append(quality)

    def ingest_record(self, record: FastqRecord, phred_offset: int = 0):
        quality = average_quality(record.qualities, phred_offset)
        # Round first so 72.99999999999999 is not truncated to 72.
        truncated = int(round(quality, 6))
        self.ingest(len(record), min(max(truncated, 0), QUALITY_CEILING))

    def snapshot(self) -> Tuple[Tuple[int, ...], Tuple[int, ...]]:
        return tuple(self.lengths), tuple(self.qualities)

    def quality_histogram(self, bin_count: int = DEFAULT_BIN_COUNT
                          ) -> Histogram:
        return quality_histogram(self.qualities, bin_count)

    def length_histogram(self, bin_count: int = DEFAULT_BIN_COUNT
                         ) -> Histogram:
        return length_histogram(self.lengths, bin_count)

    def summary(self) -> Summary:
        total_reads = len(self.lengths)
        if total_reads == 0:
            return Summary(0, 0, 0.0, 0, 0, 0, 0.0)
        total_bases = sum(self.lengths)
        return Summary(
            total_reads=total_reads,
            total_bases=total_bases,
            mean_length=total_bases / total_reads,
            minimum_length=min(self.lengths),
            maximum_length=max(self.lengths),
            n50=nx(self.lengths, 50),
            mean_quality=average_quality(self.qualities),
        )
