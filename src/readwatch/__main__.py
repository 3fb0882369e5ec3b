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

import argparse
import contextlib
import json
import logging
import os
import sys
import time
from typing import Optional

import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from ._version import __version__
from .display import HistogramDisplay
from .exceptions import (MalformedRecordError, UnknownFormatError,
                         UnsupportedFormatError)
from .records import RecordStream
from .report_modules import (calculate_stats, dict_to_report_modules,
                             report_modules_to_dict, write_html_report)
from .stats import DEFAULT_BIN_COUNT, ReadStats
from .util import ChunkReader, DEFAULT_CHUNK_SIZE, KeyPoller, QUIT_KEY

logger = logging.getLogger("readwatch")

DEFAULT_TICK = 0.25


class StreamAnalyzer:
    """
    Feeds incoming data to a RecordStream and adds every completed record to
    the read statistics.

    Format errors are logged once. After an unknown or unsupported format
    no more data is buffered. Malformed records are skipped.
    """
    record_stream: RecordStream
    stats: ReadStats
    phred_offset: int
    error: Optional[ValueError]
    malformed_records: int
    total_bytes: int

    def __init__(self, phred_offset: int = 0):
        self.record_stream = RecordStream()
        self.stats = ReadStats()
        self.phred_offset = phred_offset
        self.error = None
        self.malformed_records = 0
        self.total_bytes = 0

    @property
    def format_name(self) -> str:
        if isinstance(self.error, UnknownFormatError):
            return "unknown"
        format = self.record_stream.format
        return format.value if format is not None else "undetermined"

    def feed(self, data: bytes):
        self.total_bytes += len(data)
        if self.error is None:
            self.record_stream.feed(data)

    def finish(self):
        self.record_stream.finish()
        self.process()
        leftover = self.record_stream.buffered_bytes
        if self.error is None and leftover:
            logger.warning("Input ended with an incomplete record of %d "
                           "bytes.", leftover)

    def _ingest(self, records) -> int:
        for record in records:
            self.stats.ingest_record(record, self.phred_offset)
        return len(records)

    def process(self) -> int:
        """Ingest all complete records. Returns the number of new reads."""
        if self.error is not None:
            return 0
        ingested = 0
        while True:
            try:
                records = self.record_stream.drain_complete_records()
            except MalformedRecordError as error:
                ingested += self._ingest(error.records)
                self.malformed_records += 1
                logger.warning("Skipping malformed record: %s", error)
                self.record_stream.skip_record()
                continue
            except UnsupportedFormatError as error:
                logger.error("%s No reads will be analyzed.", error)
                self.error = error
                break
            except UnknownFormatError as error:
                logger.error("Could not determine input format: %s", error)
                self.error = error
                break
            ingested += self._ingest(records)
            break
        return ingested

    def status(self) -> str:
        summary = self.stats.summary()
        read_bytes = tqdm.tqdm.format_sizeof(self.total_bytes, "B", 1024)
        status = f"{self.format_name}, {read_bytes}"
        if summary.total_reads:
            status += (f", mean Q {summary.mean_quality:.1f}, "
                       f"N50 {summary.n50:,}")
        if self.malformed_records:
            status += f", {self.malformed_records} malformed"
        return status


def run(reader: ChunkReader,
        analyzer: StreamAnalyzer,
        display: HistogramDisplay,
        key_poller: KeyPoller,
        tick: float = DEFAULT_TICK,
        keep_open: bool = False):
    """
    Read, parse and render until the input ends or the quit key is pressed.
    No step blocks for longer than the time left until the next render.
    """
    next_tick = time.monotonic()
    while True:
        if not reader.eof:
            data = reader.read(max(next_tick - time.monotonic(), 0.0))
            if data:
                analyzer.feed(data)
                analyzer.process()
            elif data == b"":
                logger.info("End of input after %d bytes.", reader.total_bytes)
                analyzer.finish()
        now = time.monotonic()
        if now >= next_tick:
            display.render(analyzer.stats.snapshot(), analyzer.status())
            next_tick = now + tick
        if reader.eof and not keep_open:
            break
        # While data is streaming in only check for a key press.
        poll_timeout = max(next_tick - time.monotonic(), 0.0) \
            if reader.eof else 0.0
        if key_poller.quit_requested(poll_timeout):
            logger.info("Quit key pressed.")
            break
    display.render(analyzer.stats.snapshot(), analyzer.status())


def argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Show live read quality and read length histograms for "
                    "sequencing data that is streamed in. Press "
                    f"'{QUIT_KEY}' to quit.")
    parser.add_argument("input", metavar="INPUT", nargs="?", default="-",
                        help="Input FASTQ file. Use '-' for standard input. "
                             "default: '-'.")
    parser.add_argument("--json",
                        help="Write a JSON report to this file at the end of "
                             "the run.")
    parser.add_argument("--html",
                        help="Write an HTML report to this file at the end "
                             "of the run.")
    parser.add_argument("-b", "--bins", type=int, default=DEFAULT_BIN_COUNT,
                        help=f"Number of histogram bins. "
                             f"Default: {DEFAULT_BIN_COUNT}.")
    parser.add_argument("--tick", type=float, default=DEFAULT_TICK,
                        metavar="SECONDS",
                        help=f"Time between display updates. "
                             f"Default: {DEFAULT_TICK}.")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK_SIZE,
                        metavar="BYTES",
                        help=f"Maximum number of bytes read at once. "
                             f"Default: {DEFAULT_CHUNK_SIZE}.")
    parser.add_argument("--phred-offset", type=int, default=0,
                        metavar="OFFSET",
                        help="Value subtracted from every quality byte. Use "
                             "33 for Sanger encoded qualities. Default: 0, "
                             "the raw byte value is the quality.")
    parser.add_argument("--keep-open", action="store_true",
                        help=f"Keep showing the histograms after the input "
                             f"has ended, until '{QUIT_KEY}' is pressed.")
    parser.add_argument("--no-display", action="store_true",
                        help="Do not draw histograms on the terminal.")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true",
                           help="Log debug messages.")
    verbosity.add_argument("-q", "--quiet", action="store_true",
                           help="Only log warnings and errors.")
    parser.add_argument("--version", action="version",
                        version=__version__)
    return parser


def main() -> None:
    args = argument_parser().parse_args()
    if args.bins < 1:
        raise ValueError(f"Bins must be at least 1, got {args.bins}.")
    if args.tick <= 0:
        raise ValueError(f"Tick must be greater than 0, got {args.tick}.")
    if args.verbose:
        log_level = logging.DEBUG
    elif args.quiet:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO
    logging.basicConfig(level=log_level, stream=sys.stderr,
                        format="%(levelname)s: %(message)s")

    analyzer = StreamAnalyzer(phred_offset=args.phred_offset)
    with contextlib.ExitStack() as exit_stack:
        reader = exit_stack.enter_context(
            ChunkReader(args.input, args.chunk_size))
        display = exit_stack.enter_context(
            HistogramDisplay(args.bins, disable=args.no_display))
        key_poller = exit_stack.enter_context(KeyPoller())
        if not args.no_display:
            exit_stack.enter_context(logging_redirect_tqdm())
        try:
            run(reader, analyzer, display, key_poller, args.tick,
                args.keep_open)
        except KeyboardInterrupt:
            logger.info("Interrupted.")

    summary = analyzer.stats.summary()
    logger.info("Analyzed %d reads with %d bases from %s.",
                summary.total_reads, summary.total_bases, reader.name)
    report_modules = calculate_stats(analyzer.stats, analyzer.format_name,
                                     args.bins)
    if args.json:
        with open(args.json, "wt") as json_file:
            # Indent=0 is ~40% smaller than indent=2 while still human-readable
            json.dump(report_modules_to_dict(report_modules), json_file,
                      indent=0)
    if args.html:
        write_html_report(report_modules, args.html,
                          os.path.basename(reader.name))
    if isinstance(analyzer.error, UnknownFormatError):
        sys.exit(1)


def readwatch_report():
    parser = argparse.ArgumentParser(
        description="Create an HTML report from a readwatch JSON report.")
    parser.add_argument("json", metavar="JSON", help="readwatch JSON file")
    parser.add_argument("-o", "--html", help="Output html file default: "
                                             "<input>.html")
    args = parser.parse_args()
    output = args.html
    in_json = args.json
    if not output:
        # Remove json extension and add HTML
        output = ".".join(in_json.split(".")[:-1]) + ".html"
    with open(in_json) as j:
        json_data = json.load(j)
    write_html_report(dict_to_report_modules(json_data), output,
                      os.path.basename(in_json))


if __name__ == "__main__":  # pragma: no cover
    main()
