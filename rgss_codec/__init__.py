"""
RGSS Codec

Converts RPG Maker XP/VX/VX Ace data files (Ruby Marshal) to YAML documents
and back.

Pipeline:
1. parsers: Marshal bytes -> object graph
2. document: object graph <-> YAML text
3. serialization: object graph -> Marshal bytes

The registry and config packages supply the per-class field rules and the
version policy both directions consult.
"""

from .config import ConversionConfig, VersionPolicy
from .converter import convert, convert_dir, convert_list
from .document import dump_document, load_document
from .parsers import load_data, load_data_file
from .serialization import dump_data, dump_data_file

__version__ = '0.1.0'

__all__ = [
    'ConversionConfig',
    'VersionPolicy',
    'convert',
    'convert_list',
    'convert_dir',
    'dump_document',
    'load_document',
    'load_data',
    'load_data_file',
    'dump_data',
    'dump_data_file',
]
