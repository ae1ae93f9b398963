"""
Fixed-layout struct leaves.

Table, Color, Tone and Rect are dumped by the engine with _dump, so on the
wire they are opaque byte blobs. Each class here decodes its blob with
from_bytes() and re-emits the exact same layout with to_bytes().

Layouts (all little-endian, no padding):
- Table: u32 dim, u32 x, u32 y, u32 z, u32 cell_count, u16 cells[cell_count]
- Color/Tone: f64 r, f64 g, f64 b, f64 a (gray for Tone)
- Rect: i32 x, i32 y, i32 width, i32 height
"""

import struct
from dataclasses import dataclass

import numpy as np

from rgss_codec.errors import SizeMismatch


TABLE_HEADER = struct.Struct('<5I')
TABLE_CELL_DTYPE = np.dtype('<u2')


@dataclass(eq=False)
class Table:
    """
    A 1-3 dimensional grid of 16-bit cells.

    dim is kept exactly as read; some data files set it inconsistently with
    x/y/z and a pass-through must not change it.
    """
    dim: int
    x: int
    y: int
    z: int
    data: np.ndarray

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=TABLE_CELL_DTYPE).reshape(-1)
        if self.x * self.y * self.z != len(self.data):
            raise SizeMismatch(
                f"Table {self.x}x{self.y}x{self.z} needs {self.x * self.y * self.z} cells, "
                f"got {len(self.data)}"
            )

    @property
    def cell_count(self) -> int:
        return len(self.data)

    @property
    def stride(self) -> int:
        """Row length used when laying cells out as text."""
        if self.x >= 2:
            return self.x
        if self.y >= 2:
            return self.y
        return self.z

    @classmethod
    def from_bytes(cls, blob: bytes) -> 'Table':
        if len(blob) < TABLE_HEADER.size:
            raise SizeMismatch(f"Table blob too small: {len(blob)} bytes")
        dim, x, y, z, items = TABLE_HEADER.unpack_from(blob, 0)
        body = len(blob) - TABLE_HEADER.size
        if body != items * TABLE_CELL_DTYPE.itemsize:
            raise SizeMismatch(
                f"Size mismatch loading Table: header declares {items} cells, "
                f"{body} bytes of cell data present"
            )
        if x * y * z != items:
            raise SizeMismatch(f"Size mismatch loading Table: {x}*{y}*{z} != {items}")
        cells = np.frombuffer(blob, dtype=TABLE_CELL_DTYPE, offset=TABLE_HEADER.size).copy()
        return cls(dim, x, y, z, cells)

    def to_bytes(self) -> bytes:
        header = TABLE_HEADER.pack(self.dim, self.x, self.y, self.z, self.cell_count)
        return header + self.data.astype(TABLE_CELL_DTYPE, copy=False).tobytes()

    def __eq__(self, other) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return ((self.dim, self.x, self.y, self.z) == (other.dim, other.x, other.y, other.z)
                and np.array_equal(self.data, other.data))


_COLOR_LAYOUT = struct.Struct('<4d')


@dataclass
class Color:
    """RGBA color, components stored as doubles without range checks."""
    r: float
    g: float
    b: float
    a: float

    @classmethod
    def from_bytes(cls, blob: bytes) -> 'Color':
        if len(blob) != _COLOR_LAYOUT.size:
            raise SizeMismatch(f"{cls.__name__} blob must be {_COLOR_LAYOUT.size} bytes, got {len(blob)}")
        return cls(*_COLOR_LAYOUT.unpack(blob))

    def to_bytes(self) -> bytes:
        return _COLOR_LAYOUT.pack(self.r, self.g, self.b, self.a)


@dataclass
class Tone(Color):
    """Screen tone; same layout as Color, the fourth component is gray."""


_RECT_LAYOUT = struct.Struct('<4i')


@dataclass
class Rect:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_bytes(cls, blob: bytes) -> 'Rect':
        if len(blob) != _RECT_LAYOUT.size:
            raise SizeMismatch(f"Rect blob must be {_RECT_LAYOUT.size} bytes, got {len(blob)}")
        return cls(*_RECT_LAYOUT.unpack(blob))

    def to_bytes(self) -> bytes:
        return _RECT_LAYOUT.pack(self.x, self.y, self.width, self.height)


# Class name on the wire -> struct leaf type
STRUCT_TYPES = {
    'Table': Table,
    'Color': Color,
    'Tone': Tone,
    'Rect': Rect,
}


def decode_struct(class_name: str, blob: bytes):
    """Decode a _dump blob for one of the struct leaf classes."""
    return STRUCT_TYPES[class_name].from_bytes(blob)


def struct_class_name(value) -> str:
    """Wire class name of a struct leaf instance."""
    return type(value).__name__
