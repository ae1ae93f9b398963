"""
Document Codec

YAML side of the conversion:

- yaml_writer: DocumentWriter, object graph -> YAML text
- yaml_reader: DocumentReader, YAML text -> object graph
"""

from .yaml_writer import DocumentWriter, dump_document, table_rows, float_text
from .yaml_reader import DocumentReader, load_document, table_cells

__all__ = [
    'DocumentWriter',
    'DocumentReader',
    'dump_document',
    'load_document',
    'table_rows',
    'table_cells',
    'float_text',
]
