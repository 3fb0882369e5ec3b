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

from typing import List, Optional, TextIO, Tuple

import tqdm

from .stats import (DEFAULT_BIN_COUNT, Histogram, length_histogram,
                    quality_histogram)

BIN_BAR_FORMAT = "{desc} |{bar:40}| {n_fmt}"
STATUS_BAR_FORMAT = "{desc}: {n_fmt} reads [{elapsed}{postfix}]"


class HistogramDisplay:
    """
    Draws the quality and length histograms as stacked tqdm bars. Every bar
    is one bin, scaled against the largest bin of its histogram.
    """
    status: tqdm.tqdm
    quality_bars: List[tqdm.tqdm]
    length_bars: List[tqdm.tqdm]

    def __init__(self, bin_count: int = DEFAULT_BIN_COUNT,
                 file: Optional[TextIO] = None,
                 disable: bool = False):
        self.bin_count = bin_count
        self.disable = disable
        self._file = file
        self.status = tqdm.tqdm(
            desc="readwatch", bar_format=STATUS_BAR_FORMAT, position=0,
            file=file, disable=disable)
        self.quality_bars = [self._bin_bar(1 + i) for i in range(bin_count)]
        self.length_bars = [self._bin_bar(1 + bin_count + i)
                            for i in range(bin_count)]

    def _bin_bar(self, position: int) -> tqdm.tqdm:
        return tqdm.tqdm(total=1, bar_format=BIN_BAR_FORMAT,
                         position=position, file=self._file,
                         disable=self.disable)

    @staticmethod
    def _draw_histogram(bars: List[tqdm.tqdm], histogram: Histogram,
                        prefix: str):
        largest = max((count for _, count in histogram), default=0)
        for i, bar in enumerate(bars):
            if i < len(histogram):
                label, count = histogram[i]
                bar.set_description_str(f"{prefix} {label:>20}",
                                        refresh=False)
            else:
                count = 0
                bar.set_description_str(f"{prefix} {'':>20}", refresh=False)
            bar.total = max(largest, 1)
            bar.n = count
            bar.refresh()

    def render(self, snapshot: Tuple[Tuple[int, ...], Tuple[int, ...]],
               status: str = ""):
        """Draw a (lengths, qualities) snapshot as taken by ReadStats."""
        if self.disable:
            return
        lengths, qualities = snapshot
        self.status.n = len(lengths)
        self.status.set_postfix_str(status, refresh=False)
        self.status.refresh()
        if not lengths:
            return
        self._draw_histogram(self.quality_bars,
                             quality_histogram(qualities, self.bin_count), "Q")
        self._draw_histogram(self.length_bars,
                             length_histogram(lengths, self.bin_count), "L")

    def close(self):
        for bar in (self.status, *self.quality_bars, *self.length_bars):
            bar.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
