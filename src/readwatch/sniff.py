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

import enum
import zlib
from typing import Optional

from .exceptions import UnknownFormatError

# Enough bytes to get past the gzip header and the first deflate block header
# of a BGZF compressed BAM file.
MIN_SNIFF_LENGTH = 100
SNIFF_PREFIX_LENGTH = 4096

GZIP_MAGIC = b"\x1f\x8b"
BAM_MAGIC = b"BAM"


class FormatTag(enum.Enum):
    FASTA = "FASTA"
    FASTQ = "FASTQ"
    SAM = "SAM"
    BAM = "BAM"
    CRAM = "CRAM"


def decompressed_start(prefix: bytes, size: int) -> bytes:
    """
    Decompress at most the first ``size`` bytes of a gzip stream that may be
    truncated at any point. Returns fewer bytes when the prefix does not hold
    enough compressed data.

    :raises zlib.error: when the data is not a valid gzip stream.
    """
    # wbits 31: gzip header and trailer. Extra header fields, such as the BGZF
    # block size, are skipped.
    decompressor = zlib.decompressobj(wbits=31)
    return decompressor.decompress(prefix, size)


def guess_format(prefix: bytes, at_eof: bool = False) -> Optional[FormatTag]:
    """
    Guess the container format from a block of binary data at the start of
    the stream.

    :param prefix: the first bytes of the stream. Only the first
        SNIFF_PREFIX_LENGTH bytes are inspected.
    :param at_eof: whether the stream has ended. Short prefixes are only
        classified at the end of the stream.
    :return: The format, or None if more data is needed to decide.
    :raises UnknownFormatError: if no known signature matches.
    """
    if len(prefix) < MIN_SNIFF_LENGTH and not at_eof:
        return None
    if not prefix:
        return None
    prefix = bytes(prefix[:SNIFF_PREFIX_LENGTH])
    if prefix[:1] == b">":
        return FormatTag.FASTA
    if prefix[:3] == b"@HD":
        return FormatTag.SAM
    if prefix[:1] == b"@":
        return FormatTag.FASTQ
    if prefix[:4] == b"CRAM":
        return FormatTag.CRAM
    if prefix[:2] == GZIP_MAGIC:
        try:
            start = decompressed_start(prefix, len(BAM_MAGIC))
        except zlib.error as error:
            raise UnknownFormatError(
                f"Stream starts with gzip magic but does not decompress: "
                f"{error}") from error
        if start == BAM_MAGIC:
            return FormatTag.BAM
        if len(start) < len(BAM_MAGIC) and not at_eof and \
                len(prefix) < SNIFF_PREFIX_LENGTH:
            return None
        raise UnknownFormatError(
            f"Compressed stream does not contain BAM data, starts with: "
            f"{start!r}")
    raise UnknownFormatError(
        f"Unrecognized format, stream starts with: {prefix[:8]!r}")
