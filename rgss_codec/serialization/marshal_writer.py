#!/usr/bin/env python3
"""
Marshal Serializer

Serializes an object graph back to Ruby Marshal 4.8 bytes.

Mirrors the reader's bookkeeping exactly: values take object table slots in
the same order, a repeated Python object is written as an '@' link and a
repeated symbol as a ';' link, so decoding then encoding a stream
reproduces it byte for byte.
"""

import io
import struct
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

from rgss_codec.config import VersionPolicy
from rgss_codec.constants import (
    MARSHAL_MAJOR, MARSHAL_MINOR, FIXNUM_MIN, FIXNUM_MAX, ENCODING_SHORT_IVAR,
    TYPE_NIL, TYPE_TRUE, TYPE_FALSE, TYPE_FIXNUM, TYPE_BIGNUM, TYPE_FLOAT,
    TYPE_STRING, TYPE_SYMBOL, TYPE_SYMLINK, TYPE_IVAR, TYPE_ARRAY, TYPE_HASH,
    TYPE_HASH_DEF, TYPE_OBJECT, TYPE_USERDEF, TYPE_USRMARSHAL, TYPE_LINK,
)
from rgss_codec.errors import RGSSCodecError
from rgss_codec.model import (
    MarshalFloat, RubyHash, RubyObject, RubyString, Symbol, UserDefined, UserMarshal,
    STRUCT_TYPES, struct_class_name,
)
from rgss_codec.registry import DEFAULT_REGISTRY, TypeRegistry
from rgss_codec.utils import format_float, logDebug, logWarning, write_bytes, write_long

STRUCT_LEAVES = tuple(STRUCT_TYPES.values())


class MarshalSerializer:
    """
    Serialize one object graph to Marshal bytes.

    Usage:
        serializer = MarshalSerializer(policy)
        data = serializer.serialize(root)
    """

    def __init__(self, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY):
        """
        Initialize serializer.

        Args:
            policy: Version policy for the run
            registry: Class catalog
        """
        self.policy = policy
        self.registry = registry

    def serialize(self, root: Any) -> bytes:
        """
        Serialize a complete graph.

        Returns:
            Marshal stream including the version header
        """
        self._buffer = io.BytesIO()
        self._symbols: Dict[str, int] = {}
        self._objects: Dict[int, int] = {}
        # Holds every registered value so ids stay unique for the whole pass
        self._registered: List[Any] = []

        self._buffer.write(struct.pack('<BB', MARSHAL_MAJOR, MARSHAL_MINOR))
        self._write_value(root)

        logDebug(f"  Marshal: {len(self._registered)} objects, {len(self._symbols)} symbols, "
                 f"{self._buffer.tell():,} bytes")
        return self._buffer.getvalue()

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _write_link(self, value: Any) -> bool:
        """Write an object link if value was already written."""
        index = self._objects.get(id(value))
        if index is None:
            return False
        self._buffer.write(bytes([TYPE_LINK]))
        write_long(self._buffer, index)
        return True

    def _remember(self, value: Any):
        self._objects[id(value)] = len(self._registered)
        self._registered.append(value)

    def _write_symbol(self, name: str):
        index = self._symbols.get(name)
        if index is not None:
            self._buffer.write(bytes([TYPE_SYMLINK]))
            write_long(self._buffer, index)
            return

        raw = name.encode('utf-8', errors='surrogateescape')
        # Non-ASCII symbols carry their encoding once strings do
        marked = self.policy.text_encoding_marked and not name.isascii()
        if marked:
            self._buffer.write(bytes([TYPE_IVAR]))
        self._buffer.write(bytes([TYPE_SYMBOL]))
        write_bytes(self._buffer, raw)
        self._symbols[name] = len(self._symbols)
        if marked:
            self._write_ivars([(Symbol(ENCODING_SHORT_IVAR), True)])

    def _write_ivars(self, attributes: List[Tuple[str, Any]]):
        write_long(self._buffer, len(attributes))
        for name, value in attributes:
            self._write_symbol(name)
            self._write_value(value)

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def _write_value(self, value: Any):
        f = self._buffer

        if value is None:
            f.write(bytes([TYPE_NIL]))
        elif value is True:
            f.write(bytes([TYPE_TRUE]))
        elif value is False:
            f.write(bytes([TYPE_FALSE]))
        elif isinstance(value, int):
            self._write_integer(value)
        elif isinstance(value, float):
            if not self._write_link(value):
                self._remember(value)
                f.write(bytes([TYPE_FLOAT]))
                if isinstance(value, MarshalFloat):
                    write_bytes(f, value.raw)
                else:
                    write_bytes(f, format_float(value, self.policy.legacy_float_text))
        elif isinstance(value, Symbol):
            self._write_symbol(value)
        elif isinstance(value, str):
            encoding = 'UTF-8' if self.policy.text_encoding_marked else None
            self._write_string(RubyString.from_text(value, encoding))
        elif isinstance(value, RubyString):
            if not self._write_link(value):
                self._write_string(value)
        elif self._write_link(value):
            pass
        elif isinstance(value, list):
            self._remember(value)
            f.write(bytes([TYPE_ARRAY]))
            write_long(f, len(value))
            for item in value:
                self._write_value(item)
        elif isinstance(value, RubyHash):
            self._write_hash(value)
        elif isinstance(value, RubyObject):
            self._write_object(value)
        elif isinstance(value, STRUCT_LEAVES):
            self._write_user_defined(struct_class_name(value), value.to_bytes(), [], value)
        elif isinstance(value, UserDefined):
            self._write_user_defined(value.class_name, value.data, value.attributes, value)
        elif isinstance(value, UserMarshal):
            self._write_user_marshal(value.class_name, value.payload, value)
        else:
            raise RGSSCodecError(f"Cannot marshal value of type {type(value).__name__}: {value!r}")

    def _write_integer(self, value: int):
        if FIXNUM_MIN <= value <= FIXNUM_MAX:
            self._buffer.write(bytes([TYPE_FIXNUM]))
            write_long(self._buffer, value)
            return
        if self._write_link(value):
            return
        self._remember(value)
        magnitude = abs(value)
        size = (magnitude.bit_length() + 7) // 8
        size += size % 2  # length is counted in 16-bit words
        self._buffer.write(bytes([TYPE_BIGNUM, ord('-') if value < 0 else ord('+')]))
        write_long(self._buffer, size // 2)
        self._buffer.write(magnitude.to_bytes(size, 'little'))

    def _write_string(self, value: RubyString):
        self._remember(value)
        if value.attributes:
            self._buffer.write(bytes([TYPE_IVAR]))
        self._buffer.write(bytes([TYPE_STRING]))
        write_bytes(self._buffer, value.data)
        if value.attributes:
            self._write_ivars(value.attributes)

    def _write_hash(self, value: RubyHash):
        self._remember(value)
        self._buffer.write(bytes([TYPE_HASH_DEF if value.has_default else TYPE_HASH]))
        write_long(self._buffer, len(value.pairs))
        for key, item in value.pairs:
            self._write_value(key)
            self._write_value(item)
        if value.has_default:
            self._write_value(value.default)

    def _write_object(self, value: RubyObject):
        payload_name = self.registry.marshal_payload(value.class_name, self.policy)
        if payload_name is not None:
            extra = [name for name in value.attributes if name != payload_name]
            if extra:
                logWarning(f"{value.class_name} is written via marshal_dump; dropping attributes {extra}")
            self._write_user_marshal(value.class_name, value.attributes.get(payload_name), value)
            return

        self._remember(value)
        self._buffer.write(bytes([TYPE_OBJECT]))
        self._write_symbol(value.class_name)
        self._write_ivars([('@' + name, item) for name, item in value.attributes.items()])

    def _write_user_defined(self, class_name: str, blob: bytes, attributes: list, owner: Any):
        if attributes:
            self._buffer.write(bytes([TYPE_IVAR]))
        self._buffer.write(bytes([TYPE_USERDEF]))
        self._write_symbol(class_name)
        write_bytes(self._buffer, blob)
        if attributes:
            self._write_ivars(attributes)
        # _dump values take their slot only after the blob is written
        self._remember(owner)

    def _write_user_marshal(self, class_name: str, payload: Any, owner: Any):
        self._remember(owner)
        self._buffer.write(bytes([TYPE_USRMARSHAL]))
        self._write_symbol(class_name)
        self._write_value(payload)


def dump_data(root: Any, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY) -> bytes:
    """Serialize a graph to Marshal bytes."""
    return MarshalSerializer(policy, registry).serialize(root)


def dump_data_file(root: Any, filepath: Union[str, Path], policy: VersionPolicy,
                   registry: TypeRegistry = DEFAULT_REGISTRY):
    """Serialize a graph and write it to a file."""
    data = dump_data(root, policy, registry)
    with open(filepath, 'wb') as f:
        f.write(data)
