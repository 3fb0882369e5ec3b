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

import struct
import zlib

import pytest


def make_bgzf_block(payload: bytes) -> bytes:
    """A single BGZF block: a gzip member with the BC extra field."""
    compressor = zlib.compressobj(wbits=-15)
    compressed = compressor.compress(payload) + compressor.flush()
    block_size = 18 + len(compressed) + 8
    header = struct.pack("<4BI2BH2BHH", 31, 139, 8, 4, 0, 0, 255,
                         6, 66, 67, 2, block_size - 1)
    trailer = struct.pack("<II", zlib.crc32(payload), len(payload))
    return header + compressed + trailer


@pytest.fixture
def bgzf_block():
    return make_bgzf_block
