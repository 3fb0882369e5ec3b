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

import random
from pathlib import Path

import pytest

from readwatch import (FastqRecord, FormatTag, MalformedRecordError,
                       RecordStream, UnknownFormatError,
                       UnsupportedFormatError)
from readwatch.sniff import SNIFF_PREFIX_LENGTH

DATA = Path(__file__).parent / "data"

TWO_RECORDS = b"@r1\nACGT\n+\nIIII\n@r2\nAC\n+\nII\n"


def fastq_data(number_of_records: int = 20) -> bytes:
    records = []
    for i in range(number_of_records):
        length = i % 7 + 1
        records.append(f"@read{i} some description\n"
                       f"{'ACGT'[i % 4] * length}\n"
                       f"+\n"
                       f"{chr(33 + i) * length}\n".encode("ascii"))
    return b"".join(records)


def drain_all(stream: RecordStream, chunks):
    records = []
    for chunk in chunks:
        stream.feed(chunk)
        records.extend(stream.drain_complete_records())
    stream.finish()
    records.extend(stream.drain_complete_records())
    return records


def test_two_records():
    stream = RecordStream()
    stream.feed(TWO_RECORDS)
    # Too short to guess the format before the input has ended.
    assert stream.drain_complete_records() == []
    assert stream.format is None
    stream.finish()
    records = stream.drain_complete_records()
    assert stream.format is FormatTag.FASTQ
    assert records == [FastqRecord(b"ACGT", b"IIII"),
                       FastqRecord(b"AC", b"II")]
    assert [len(record) for record in records] == [4, 2]
    assert stream.buffered_bytes == 0


def test_simple_fastq_file():
    stream = RecordStream()
    stream.feed((DATA / "simple.fastq").read_bytes())
    records = stream.drain_complete_records()
    assert stream.format is FormatTag.FASTQ
    assert [record.sequence for record in records] == [
        b"GATTACA", b"ACATTAG", b"AAAATTTT"]
    assert [record.qualities for record in records] == [
        b"HHHHHHH", b"KKKKKKK", b"XKLLCCCC"]


@pytest.mark.parametrize("split", [1, 5, 99, 100, 101, 150, 257, 400])
def test_chunked_feed_equals_single_feed(split):
    data = fastq_data()
    assert len(data) > 400
    expected = drain_all(RecordStream(), [data])
    records = drain_all(RecordStream(), [data[:split], data[split:]])
    assert records == expected
    assert len(records) == 20


@pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 64])
def test_many_small_chunks(chunk_size):
    data = fastq_data()
    chunks = [data[i:i + chunk_size] for i in range(0, len(data), chunk_size)]
    assert drain_all(RecordStream(), chunks) == drain_all(RecordStream(),
                                                          [data])


def test_partial_record_stays_buffered():
    data = fastq_data(10)
    cut = data.index(b"@read9")
    stream = RecordStream()
    stream.feed(data[:cut + 10])
    records = stream.drain_complete_records()
    assert len(records) == 9
    assert stream.buffered_bytes == 10
    stream.feed(data[cut + 10:])
    records = stream.drain_complete_records()
    assert len(records) == 1
    assert stream.buffered_bytes == 0


def test_records_in_order():
    records = drain_all(RecordStream(), [fastq_data()])
    assert [record.qualities[:1] for record in records] == [
        chr(33 + i).encode("ascii") for i in range(20)]


def test_missing_final_newline_at_eof():
    stream = RecordStream()
    stream.feed(fastq_data(10)[:-1])
    assert len(stream.drain_complete_records()) == 9
    stream.finish()
    assert len(stream.drain_complete_records()) == 1
    assert stream.buffered_bytes == 0


def test_windows_line_endings_are_stripped():
    data = fastq_data(10).replace(b"\n", b"\r\n")
    records = drain_all(RecordStream(), [data])
    assert records == drain_all(RecordStream(), [fastq_data(10)])


def test_malformed_record_undecodable_sequence():
    data = fastq_data(10)
    bad_record = b"@bad\nAC\xffGT\n+\nIIIII\n"
    stream = RecordStream()
    stream.feed(data[:200])
    good = stream.drain_complete_records()
    stream.feed(data[200:] + bad_record + fastq_data(2))
    with pytest.raises(MalformedRecordError) as error:
        stream.drain_complete_records()
    error.match("sequence")
    assert len(good) + len(error.value.records) == 10
    assert stream.skip_record()
    assert len(stream.drain_complete_records()) == 2


def test_utf8_header():
    stream = RecordStream()
    stream.feed("@read é\nACGT\n+\nIIII\n".encode("utf-8"))
    stream.finish()
    assert stream.drain_complete_records() == [FastqRecord(b"ACGT", b"IIII")]


def test_malformed_record_undecodable_header():
    stream = RecordStream()
    stream.feed(b"@read \xff\nACGT\n+\nIIII\n")
    stream.finish()
    with pytest.raises(MalformedRecordError) as error:
        stream.drain_complete_records()
    error.match("header")


def test_malformed_record_empty_qualities():
    stream = RecordStream()
    stream.feed(fastq_data(10) + b"@empty\n\n+\n\n")
    with pytest.raises(MalformedRecordError) as error:
        stream.drain_complete_records()
    error.match("no quality values")
    assert len(error.value.records) == 10
    assert stream.skip_record()
    assert stream.buffered_bytes == 0
    assert not stream.skip_record()


@pytest.mark.parametrize(["data", "format"], [
    (b">chr1\n" + b"ACGT" * 100 + b"\n", FormatTag.FASTA),
    (b"@HD\tVN:1.6\n" + b"@SQ\tSN:chr1\tLN:1000\n" * 10, FormatTag.SAM),
    (b"CRAM\x03\x00" + b"\x00" * 200, FormatTag.CRAM),
])
def test_unsupported_format(data, format):
    stream = RecordStream()
    stream.feed(data)
    with pytest.raises(UnsupportedFormatError) as error:
        stream.drain_complete_records()
    assert error.value.format is format
    assert stream.format is format
    # No bytes are discarded.
    assert stream.buffered_bytes == len(data)
    with pytest.raises(UnsupportedFormatError):
        stream.drain_complete_records()


@pytest.mark.parametrize("payload_size", [200, 20000])
@pytest.mark.parametrize("chunk_size", [1, 37, 1000])
def test_bgzf_bam_is_unsupported(bgzf_block, payload_size, chunk_size):
    rng = random.Random(payload_size)
    payload = b"BAM\x01" + bytes(rng.randrange(256)
                                 for _ in range(payload_size))
    # Followed by the empty end of file block.
    data = bgzf_block(payload) + bgzf_block(b"")
    stream = RecordStream()
    with pytest.raises(UnsupportedFormatError) as error:
        for i in range(0, len(data), chunk_size):
            stream.feed(data[i:i + chunk_size])
            stream.drain_complete_records()
    assert error.value.format is FormatTag.BAM
    assert stream.format is FormatTag.BAM
    # Detected from the start of the first block.
    assert stream.buffered_bytes < SNIFF_PREFIX_LENGTH


def test_unknown_format_stays_unknown():
    stream = RecordStream()
    stream.feed(b"this is not sequencing data" * 10)
    with pytest.raises(UnknownFormatError):
        stream.drain_complete_records()
    stream.feed(fastq_data())
    with pytest.raises(UnknownFormatError):
        stream.drain_complete_records()
    assert stream.format is None


def test_format_guessed_once():
    stream = RecordStream()
    stream.feed(fastq_data())
    stream.drain_complete_records()
    assert stream.format is FormatTag.FASTQ
    # Data that would be classified differently does not change the format.
    stream.feed(b">not a fastq record\n")
    stream.drain_complete_records()
    assert stream.format is FormatTag.FASTQ


def test_feed_after_finish():
    stream = RecordStream()
    stream.finish()
    with pytest.raises(ValueError):
        stream.feed(b"@")


def test_empty_input():
    stream = RecordStream()
    stream.finish()
    assert stream.drain_complete_records() == []
    assert stream.format is None
