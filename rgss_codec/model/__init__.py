"""
Object Graph Model

In-memory form shared by the binary and document codecs:

- nodes: Symbol, RubyString, RubyHash, RubyObject, UserDefined, UserMarshal
- structs: Table, Color, Tone, Rect (fixed byte layouts)
"""

from .nodes import (
    Symbol,
    MarshalFloat,
    RubyString,
    RubyHash,
    RubyObject,
    UserDefined,
    UserMarshal,
)
from .structs import (
    Table,
    Color,
    Tone,
    Rect,
    STRUCT_TYPES,
    decode_struct,
    struct_class_name,
)

__all__ = [
    'Symbol',
    'MarshalFloat',
    'RubyString',
    'RubyHash',
    'RubyObject',
    'UserDefined',
    'UserMarshal',
    'Table',
    'Color',
    'Tone',
    'Rect',
    'STRUCT_TYPES',
    'decode_struct',
    'struct_class_name',
]
