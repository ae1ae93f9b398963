"""
Base utilities for Marshal binary parsing.

This module provides the cursor used by the graph parser:
- ByteReader: bounds-checked reads of bytes, packed longs and byte strings
"""

import struct
from typing import Tuple

from rgss_codec.errors import UnexpectedEndOfInput


class ByteReader:
    """
    Left-to-right cursor over a Marshal byte buffer.

    Every read is bounds checked and raises UnexpectedEndOfInput instead of
    returning short data.

    Usage:
        reader = ByteReader(data)
        major, minor = reader.read_byte(), reader.read_byte()
        length = reader.read_long()
        payload = reader.read(length)
    """

    def __init__(self, data: bytes, start_offset: int = 0):
        """
        Initialize reader.

        Args:
            data: Binary data to read
            start_offset: Offset to start reading from (default 0)
        """
        self.data = data
        self.offset = start_offset

    def read(self, size: int) -> bytes:
        """Read exactly size bytes."""
        end = self.offset + size
        if size < 0 or end > len(self.data):
            raise UnexpectedEndOfInput(size, self.offset, self.remaining_bytes)
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def read_byte(self) -> int:
        """Read one unsigned byte."""
        if self.offset >= len(self.data):
            raise UnexpectedEndOfInput(1, self.offset, 0)
        value = self.data[self.offset]
        self.offset += 1
        return value

    def read_long(self) -> int:
        """
        Read a Marshal packed long.

        The first byte is either a small value biased by 5 or a signed count
        of little-endian bytes that follow.
        """
        c = struct.unpack('<b', bytes([self.read_byte()]))[0]
        if c == 0:
            return 0
        if 4 < c < 128:
            return c - 5
        if -129 < c < -4:
            return c + 5
        if c > 0:
            return int.from_bytes(self.read(c), 'little')
        raw = self.read(-c)
        # Negative counts sign-extend from the bytes present
        return int.from_bytes(raw, 'little') - (1 << (8 * len(raw)))

    def read_string(self) -> bytes:
        """Read a length-prefixed byte string."""
        return self.read(self.read_long())

    @property
    def remaining_bytes(self) -> int:
        """Number of bytes remaining to be read."""
        return max(0, len(self.data) - self.offset)

    @property
    def has_more(self) -> bool:
        """Check if there are more bytes to read."""
        return self.offset < len(self.data)


def read_header(reader: ByteReader) -> Tuple[int, int]:
    """
    Read the two-byte Marshal version header.

    Returns:
        Tuple of (major, minor)
    """
    return reader.read_byte(), reader.read_byte()
