"""Tests for the fixed-layout struct leaves."""

import math
import struct

import numpy as np
import pytest

from rgss_codec.errors import SizeMismatch
from rgss_codec.model import Color, Rect, Table, Tone, decode_struct, struct_class_name


def table_blob(dim, x, y, z, cells, count=None):
    count = len(cells) if count is None else count
    return struct.pack('<5I', dim, x, y, z, count) + struct.pack(f'<{len(cells)}H', *cells)


# ---------------------------------------------------------------------------
# Table
# ---------------------------------------------------------------------------

def test_table_from_bytes():
    table = Table.from_bytes(table_blob(2, 3, 2, 1, [1, 2, 3, 4, 5, 6]))
    assert (table.dim, table.x, table.y, table.z) == (2, 3, 2, 1)
    assert table.data.tolist() == [1, 2, 3, 4, 5, 6]
    assert table.cell_count == 6

def test_table_to_bytes_is_exact():
    blob = table_blob(3, 2, 2, 2, [0, 0xFFFF, 7, 8, 9, 10, 11, 0x1234])
    assert Table.from_bytes(blob).to_bytes() == blob

def test_table_keeps_dim_verbatim():
    # dim disagrees with the shape and must survive anyway
    blob = table_blob(3, 4, 1, 1, [1, 2, 3, 4])
    assert Table.from_bytes(blob).dim == 3
    assert Table.from_bytes(blob).to_bytes() == blob

def test_table_cells_are_unsigned_16_bit():
    table = Table(1, 2, 1, 1, [0, 65535])
    assert table.data.dtype == np.dtype('<u2')
    assert table.to_bytes()[-2:] == b'\xff\xff'

def test_table_empty():
    table = Table.from_bytes(table_blob(1, 0, 1, 1, []))
    assert table.cell_count == 0
    assert table.to_bytes() == table_blob(1, 0, 1, 1, [])

def test_table_count_disagrees_with_body():
    with pytest.raises(SizeMismatch):
        Table.from_bytes(table_blob(2, 3, 2, 1, [1, 2, 3, 4, 5, 6], count=7))

def test_table_count_disagrees_with_shape():
    with pytest.raises(SizeMismatch):
        Table.from_bytes(table_blob(2, 3, 2, 1, [1, 2, 3, 4, 5]))

def test_table_header_truncated():
    with pytest.raises(SizeMismatch):
        Table.from_bytes(b'\x01\x00\x00\x00')

def test_table_constructor_checks_shape():
    with pytest.raises(SizeMismatch):
        Table(2, 2, 2, 1, [1, 2, 3])

def test_table_stride():
    assert Table(2, 3, 2, 1, [0] * 6).stride == 3
    assert Table(2, 1, 5, 1, [0] * 5).stride == 5
    assert Table(3, 1, 1, 4, [0] * 4).stride == 4

def test_table_equality():
    assert Table(1, 2, 1, 1, [1, 2]) == Table(1, 2, 1, 1, [1, 2])
    assert Table(1, 2, 1, 1, [1, 2]) != Table(1, 2, 1, 1, [2, 1])
    assert Table(1, 2, 1, 1, [1, 2]) != Table(2, 2, 1, 1, [1, 2])


# ---------------------------------------------------------------------------
# Color / Tone
# ---------------------------------------------------------------------------

def test_color_round_trip():
    blob = struct.pack('<4d', 255.0, 128.5, 0.0, 255.0)
    color = Color.from_bytes(blob)
    assert (color.r, color.g, color.b, color.a) == (255.0, 128.5, 0.0, 255.0)
    assert color.to_bytes() == blob

def test_color_passes_out_of_range_and_nan():
    blob = struct.pack('<4d', -300.0, 1e9, float('nan'), -0.0)
    color = Color.from_bytes(blob)
    assert color.r == -300.0
    assert math.isnan(color.b)
    assert color.to_bytes() == blob

def test_color_wrong_size():
    with pytest.raises(SizeMismatch):
        Color.from_bytes(b'\x00' * 24)

def test_tone_shares_color_layout():
    blob = struct.pack('<4d', -68.0, -68.0, 0.0, 68.0)
    tone = Tone.from_bytes(blob)
    assert isinstance(tone, Tone)
    assert tone.to_bytes() == blob
    assert struct_class_name(tone) == 'Tone'


# ---------------------------------------------------------------------------
# Rect
# ---------------------------------------------------------------------------

def test_rect_round_trip():
    blob = struct.pack('<4i', -16, 32, 640, 480)
    rect = Rect.from_bytes(blob)
    assert rect == Rect(-16, 32, 640, 480)
    assert rect.to_bytes() == blob

def test_rect_wrong_size():
    with pytest.raises(SizeMismatch):
        Rect.from_bytes(b'\x00' * 17)


# ---------------------------------------------------------------------------
# decode_struct
# ---------------------------------------------------------------------------

def test_decode_struct_dispatches_by_class_name():
    assert isinstance(decode_struct('Table', table_blob(1, 1, 1, 1, [9])), Table)
    assert isinstance(decode_struct('Tone', struct.pack('<4d', 0, 0, 0, 0)), Tone)
    assert decode_struct('Rect', struct.pack('<4i', 1, 2, 3, 4)) == Rect(1, 2, 3, 4)
