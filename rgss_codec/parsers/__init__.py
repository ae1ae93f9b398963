"""
Input Parsers

This package provides the reader for engine data files:

- base: ByteReader cursor over Marshal data
- marshal_reader: MarshalParser for .rxdata/.rvdata/.rvdata2 files

Usage:
    from rgss_codec.parsers import load_data_file
    from rgss_codec.config import VersionPolicy

    root = load_data_file("Data/Map001.rxdata", VersionPolicy.resolve("xp"))
"""

# Base utilities
from .base import (
    ByteReader,
    read_header,
)

# Marshal parser
from .marshal_reader import (
    MarshalParser,
    load_data,
    load_data_file,
)

__all__ = [
    # Base
    'ByteReader',
    'read_header',
    # Marshal
    'MarshalParser',
    'load_data',
    'load_data_file',
]
