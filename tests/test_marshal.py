"""Tests for the Marshal reader and writer."""

import math
import struct

import pytest

from rgss_codec.config import VersionPolicy
from rgss_codec.errors import (
    MarshalVersionError, RGSSCodecError, SizeMismatch, UnexpectedEndOfInput, UnknownWireTag,
)
from rgss_codec.model import (
    Color, MarshalFloat, RubyHash, RubyObject, RubyString, Symbol, Table, UserDefined, UserMarshal,
)
from rgss_codec.parsers import ByteReader, load_data
from rgss_codec.serialization import dump_data
from rgss_codec.utils import format_float

XP = VersionPolicy.resolve('xp')
ACE = VersionPolicy.resolve('ace')

TABLE_BLOB = struct.pack('<5I', 2, 3, 2, 1, 6) + struct.pack('<6H', 1, 2, 3, 4, 5, 6)


def stream(body: bytes) -> bytes:
    return b'\x04\x08' + body


def reencode(data: bytes, policy=XP) -> bytes:
    return dump_data(load_data(data, policy), policy)


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------

def test_nil_true_false():
    data = stream(b'[\x080TF')
    assert load_data(data, XP) == [None, True, False]
    assert reencode(data) == data

@pytest.mark.parametrize('value, encoded', [
    (0, b'\x00'),
    (1, b'\x06'),
    (122, b'\x7f'),
    (123, b'\x01\x7b'),
    (255, b'\x01\xff'),
    (256, b'\x02\x00\x01'),
    (-1, b'\xfa'),
    (-123, b'\x80'),
    (-124, b'\xff\x84'),
    (-256, b'\xff\x00'),
    (-32768, b'\xfe\x00\x80'),
    ((1 << 30) - 1, b'\x04\xff\xff\xff\x3f'),
])
def test_fixnum_encoding(value, encoded):
    assert load_data(stream(b'i' + encoded), XP) == value
    assert dump_data(value, XP) == stream(b'i' + encoded)

def test_bignum_positive():
    data = stream(b'l+\x07\x00\x00\x00\x40')
    assert load_data(data, XP) == 1 << 30
    assert dump_data(1 << 30, XP) == data

def test_bignum_negative_pads_to_whole_words():
    value = -(1 << 40)
    data = stream(b'l-\x08' + (1 << 40).to_bytes(6, 'little'))
    assert load_data(data, XP) == value
    assert dump_data(value, XP) == data

@pytest.mark.parametrize('value, text', [
    (1.0, b'1'),
    (0.5, b'0.5'),
    (-2.25, b'-2.25'),
    (100.0, b'1e2'),
    (123.25, b'123.25'),
    (0.001, b'0.001'),
    (0.0001, b'0.0001'),
    (0.00001, b'1e-5'),
    (1e20, b'1e20'),
    (12345678901234567890.0, b'1.2345678901234567e19'),
    (0.0, b'0'),
    (-0.0, b'-0'),
    (float('inf'), b'inf'),
    (float('-inf'), b'-inf'),
    (float('nan'), b'nan'),
])
def test_format_float(value, text):
    assert format_float(value) == text

def test_float_round_trip():
    data = stream(b'[\x08f\x081.5f\x07-0f\x08nan')
    values = load_data(data, XP)
    assert values[0] == 1.5
    assert math.copysign(1.0, values[1]) < 0
    assert math.isnan(values[2])
    assert reencode(data) == data

def test_float_ignores_legacy_mantissa_bytes():
    assert load_data(stream(b'f\x0b1.5\x00ab'), XP) == 1.5

@pytest.mark.parametrize('value, text', [
    (1.0, b'1'),
    (100.0, b'100'),
    (-2.25, b'-2.25'),
    (0.1, b'0.10000000000000001\x00\x99\x9a'),
    (1e20, b'1e+20\x00\x8c@'),
    (-0.0, b'-0'),
    (float('-inf'), b'-inf'),
    (float('nan'), b'nan'),
])
def test_format_float_legacy(value, text):
    assert format_float(value, legacy=True) == text

def test_float_text_follows_dialect():
    assert dump_data(0.1, XP) == stream(b'f\x1b0.10000000000000001\x00\x99\x9a')
    assert dump_data(0.1, ACE) == stream(b'f\x080.1')

@pytest.mark.parametrize('text', [
    b'0.10000000000000001',
    b'0.10000000000000001\x00\x99\x9a',
    b'0.1',
    b'1e2',
    b'1.5\x00ab',
])
def test_float_text_is_kept_verbatim(text):
    data = stream(b'f' + bytes([len(text) + 5]) + text)
    assert reencode(data, XP) == data
    assert reencode(data, ACE) == data

def test_float_keeps_only_unusual_text():
    value = load_data(stream(b'f\x080.1'), XP)
    assert isinstance(value, MarshalFloat)
    assert value == 0.1
    assert value.raw == b'0.1'
    assert type(load_data(stream(b'f\x080.1'), ACE)) is float


# ---------------------------------------------------------------------------
# Strings and symbols
# ---------------------------------------------------------------------------

def test_utf8_string():
    data = stream(b'I"\x08abc\x06:\x06ET')
    value = load_data(data, ACE)
    assert isinstance(value, RubyString)
    assert value.encoding == 'UTF-8'
    assert value.text == 'abc'
    assert reencode(data, ACE) == data

def test_us_ascii_string():
    value = load_data(stream(b'I"\x08abc\x06:\x06EF'), ACE)
    assert value.encoding == 'US-ASCII'

def test_named_encoding_string():
    data = stream(b'I"\x07\x82\xa0\x06:\x0dencoding"\x0eShift_JIS')
    value = load_data(data, ACE)
    assert value.encoding == 'Shift_JIS'
    assert value.text == '\u3042'
    assert reencode(data, ACE) == data

def test_unmarked_string():
    data = stream(b'"\x08abc')
    value = load_data(data, XP)
    assert value.encoding is None
    assert value.data == b'abc'
    assert reencode(data) == data

def test_plain_str_follows_dialect_encoding():
    assert dump_data('abc', ACE) == stream(b'I"\x08abc\x06:\x06ET')
    assert dump_data('abc', XP) == stream(b'"\x08abc')

def test_shared_string_is_linked():
    data = stream(b'[\x07"\x06a@\x06')
    values = load_data(data, XP)
    assert values[0] is values[1]
    assert reencode(data) == data

def test_equal_but_distinct_strings_are_not_linked():
    values = [RubyString(b'a'), RubyString(b'a')]
    assert dump_data(values, XP) == stream(b'[\x07"\x06a"\x06a')

def test_symbol_link():
    data = stream(b'[\x07:\x08foo;\x00')
    values = load_data(data, XP)
    assert values == [Symbol('foo'), Symbol('foo')]
    assert isinstance(values[0], Symbol)
    assert reencode(data) == data

def test_non_ascii_symbol_carries_encoding():
    data = stream(b'I:\x07\xc3\xa9\x06:\x06ET')
    assert load_data(data, ACE) == Symbol('\u00e9')
    assert dump_data(Symbol('\u00e9'), ACE) == data


# ---------------------------------------------------------------------------
# Containers and objects
# ---------------------------------------------------------------------------

def test_hash():
    data = stream(b'{\x06i\x06i\x07')
    value = load_data(data, XP)
    assert isinstance(value, RubyHash)
    assert value.pairs == [(1, 2)]
    assert not value.has_default
    assert reencode(data) == data

def test_hash_with_default():
    data = stream(b'}\x00i\x06')
    value = load_data(data, XP)
    assert value.has_default
    assert value.default == 1
    assert reencode(data) == data

def test_object():
    data = stream(b'o:\x0fRPG::Actor\x07:\x08@idi\x06:\x0a@name"\x08Bob')
    actor = load_data(data, XP)
    assert actor.class_name == 'RPG::Actor'
    assert list(actor.attributes) == ['id', 'name']
    assert actor['id'] == 1
    assert actor['name'] == 'Bob'
    assert reencode(data) == data

def test_self_referencing_array():
    data = stream(b'[\x06@\x00')
    values = load_data(data, XP)
    assert values[0] is values
    assert reencode(data) == data

def test_unknown_class_keeps_fields():
    data = stream(b'o:\x08Foo\x06:\x0a@self@\x00')
    obj = load_data(data, XP)
    assert obj.class_name == 'Foo'
    assert obj['self'] is obj
    assert reencode(data) == data


# ---------------------------------------------------------------------------
# User-defined leaves
# ---------------------------------------------------------------------------

def test_table_leaf():
    data = stream(b'u:\x0aTable\x25' + TABLE_BLOB)
    table = load_data(data, XP)
    assert isinstance(table, Table)
    assert table.data.tolist() == [1, 2, 3, 4, 5, 6]
    assert reencode(data) == data

def test_shared_table_registers_after_blob():
    data = stream(b'[\x07u:\x0aTable\x25' + TABLE_BLOB + b'@\x06')
    values = load_data(data, XP)
    assert values[0] is values[1]
    assert reencode(data) == data

def test_table_leaf_size_mismatch():
    with pytest.raises(SizeMismatch):
        load_data(stream(b'u:\x0aTable\x23' + TABLE_BLOB[:-2]), XP)

def test_color_leaf():
    blob = struct.pack('<4d', 255.0, 0.0, 0.0, 128.0)
    data = stream(b'u:\x0aColor\x25' + blob)
    assert load_data(data, XP) == Color(255.0, 0.0, 0.0, 128.0)
    assert reencode(data) == data

def test_unknown_user_defined_leaf():
    data = stream(b'u:\x09Font\x08abc')
    value = load_data(data, XP)
    assert value == UserDefined('Font', b'abc')
    assert reencode(data) == data

def test_interpreter_is_a_user_marshal_leaf_under_ace():
    data = stream(b'U:\x15Game_Interpreter[\x00')
    interpreter = load_data(data, ACE)
    assert isinstance(interpreter, RubyObject)
    assert interpreter['data'] == []
    assert reencode(data, ACE) == data

def test_user_marshal_without_routing():
    data = stream(b'U:\x15Game_Interpreter[\x00')
    value = load_data(data, XP)
    assert value == UserMarshal('Game_Interpreter', [])
    assert reencode(data) == data

def test_user_marshal_registers_before_payload():
    data = stream(b'[\x07U:\x15Game_Interpreter[\x00@\x07')
    values = load_data(data, ACE)
    assert values[1] is values[0]['data']
    assert reencode(data, ACE) == data


# ---------------------------------------------------------------------------
# Graph round trip
# ---------------------------------------------------------------------------

def test_written_graph_reads_back():
    name = RubyString.from_text('Village')
    table = Table(3, 2, 2, 1, [1, 2, 3, 4])
    command = RubyObject('RPG::EventCommand', {'code': 101, 'indent': 0, 'parameters': [name, 2.5]})
    root = RubyObject('RPG::Map', {
        'display_name': name,
        'data': table,
        'events': RubyHash([(1, command)]),
        'encounter_list': [],
        'tint': Color(0.0, 0.0, 0.0, 0.0),
        'huge': 1 << 40,
    })

    data = dump_data(root, ACE)
    loaded = load_data(data, ACE)

    assert loaded == root
    assert loaded['display_name'] is loaded['events'].get(1)['parameters'][0]
    assert dump_data(loaded, ACE) == data


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

def test_bad_header():
    with pytest.raises(MarshalVersionError) as info:
        load_data(b'\x04\x07i\x00', XP)
    assert isinstance(info.value, UnknownWireTag)

def test_truncated_input():
    with pytest.raises(UnexpectedEndOfInput):
        load_data(stream(b'"\x0aab'), XP)

def test_empty_input():
    with pytest.raises(UnexpectedEndOfInput):
        load_data(b'', XP)

def test_unknown_tag():
    with pytest.raises(UnknownWireTag):
        load_data(stream(b'/\x08abc\x00'), XP)

def test_link_out_of_range():
    with pytest.raises(RGSSCodecError):
        load_data(stream(b'@\x06'), XP)

def test_unsupported_python_value():
    with pytest.raises(RGSSCodecError):
        dump_data({'a': 1}, XP)

def test_byte_reader_bounds():
    reader = ByteReader(b'\x01')
    with pytest.raises(UnexpectedEndOfInput):
        reader.read(2)

def test_invalid_float_text():
    with pytest.raises(RGSSCodecError):
        load_data(stream(b'f\x08abc'), XP)
    with pytest.raises(RGSSCodecError):
        load_data(stream(b'f\x07\xff\xfe'), XP)
