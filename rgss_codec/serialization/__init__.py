"""
Serialization Package

Writes object graphs back to engine data files.

- marshal_writer: MarshalSerializer, the inverse of parsers.MarshalParser
"""

from .marshal_writer import MarshalSerializer, dump_data, dump_data_file

__all__ = [
    'MarshalSerializer',
    'dump_data',
    'dump_data_file',
]
