"""
Marshal Parser

Decodes Ruby Marshal 4.8 data files into the object graph model.

Stream format:
- u8 major (4), u8 minor (8)
- One tagged value, recursively:
  - '0' 'T' 'F'         nil / true / false
  - 'i' long            fixnum
  - 'l' sign len bytes  bignum (len counts 16-bit words)
  - 'f' string          float as text
  - '"' string          byte string
  - ':' string          symbol (added to the symbol table)
  - ';' long            symbol table link
  - 'I' value ivars     value followed by its instance variables
  - '[' long values     array
  - '{' long pairs      hash ('}' adds a default value after the pairs)
  - 'o' symbol ivars    object
  - 'u' symbol string   _dump blob
  - 'U' symbol value    marshal_dump payload
  - '@' long            object table link

Every value except nil, booleans, fixnums and symbols gets an object table
slot in encounter order. Containers take their slot before their children
are read so that a child can link back to its parent.
"""

from pathlib import Path
from typing import Any, List, Set, Tuple, Union

from rgss_codec.config import VersionPolicy
from rgss_codec.constants import (
    MARSHAL_MAJOR, MARSHAL_MINOR,
    TYPE_NIL, TYPE_TRUE, TYPE_FALSE, TYPE_FIXNUM, TYPE_BIGNUM, TYPE_FLOAT,
    TYPE_STRING, TYPE_SYMBOL, TYPE_SYMLINK, TYPE_IVAR, TYPE_ARRAY, TYPE_HASH,
    TYPE_HASH_DEF, TYPE_OBJECT, TYPE_USERDEF, TYPE_USRMARSHAL, TYPE_LINK,
)
from rgss_codec.errors import MarshalVersionError, RGSSCodecError, UnknownWireTag
from rgss_codec.model import (
    MarshalFloat, RubyHash, RubyObject, RubyString, Symbol, UserDefined, UserMarshal, decode_struct,
)
from rgss_codec.registry import DEFAULT_REGISTRY, TypeRegistry
from rgss_codec.utils import format_float, logDebug, logWarning
from .base import ByteReader, read_header


class MarshalParser:
    """
    Parser for one Marshal stream.

    Usage:
        parser = MarshalParser(data, policy)
        root = parser.parse()

        # Or straight from a file
        root = MarshalParser.from_file(Path("Map001.rxdata"), policy).parse()
    """

    def __init__(self, data: bytes, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY,
                 source: str = "<bytes>"):
        """
        Initialize parser.

        Args:
            data: Complete Marshal stream
            policy: Version policy for the run
            registry: Class catalog
            source: Name used in log messages
        """
        self.reader = ByteReader(data)
        self.policy = policy
        self.registry = registry
        self.source = source
        self._symbols: List[Symbol] = []
        self._objects: List[Any] = []
        self._unknown_classes: Set[str] = set()

    @classmethod
    def from_file(cls, filepath: Union[str, Path], policy: VersionPolicy,
                  registry: TypeRegistry = DEFAULT_REGISTRY) -> 'MarshalParser':
        filepath = Path(filepath)
        with open(filepath, 'rb') as f:
            data = f.read()
        return cls(data, policy, registry, source=filepath.name)

    def parse(self) -> Any:
        """
        Decode the stream.

        Returns:
            Root node of the object graph
        """
        major, minor = read_header(self.reader)
        if (major, minor) != (MARSHAL_MAJOR, MARSHAL_MINOR):
            raise MarshalVersionError(major, minor)

        root = self._read_value()

        if self.reader.has_more:
            logWarning(f"{self.source}: {self.reader.remaining_bytes} trailing byte(s) after root object ignored")
        logDebug(f"{self.source}: decoded {len(self._objects)} objects, {len(self._symbols)} symbols")
        return root

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    def _register(self, value: Any) -> Any:
        self._objects.append(value)
        return value

    def _reserve(self) -> int:
        """Take an object slot now and fill it once the value exists."""
        self._objects.append(None)
        return len(self._objects) - 1

    def _link(self, index: int) -> Any:
        if not 0 <= index < len(self._objects):
            raise RGSSCodecError(f"Object link {index} out of range [0, {len(self._objects)})")
        return self._objects[index]

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    def _read_value(self) -> Any:
        offset = self.reader.offset
        tag = self.reader.read_byte()

        if tag == TYPE_NIL:
            return None
        if tag == TYPE_TRUE:
            return True
        if tag == TYPE_FALSE:
            return False
        if tag == TYPE_FIXNUM:
            return self.reader.read_long()
        if tag == TYPE_BIGNUM:
            return self._register(self._read_bignum())
        if tag == TYPE_FLOAT:
            return self._register(self._read_float())
        if tag == TYPE_STRING:
            return self._register(RubyString(self.reader.read_string()))
        if tag in (TYPE_SYMBOL, TYPE_SYMLINK):
            return self._read_symbol_body(tag)
        if tag == TYPE_IVAR:
            return self._read_ivar_value()
        if tag == TYPE_LINK:
            return self._link(self.reader.read_long())
        if tag == TYPE_ARRAY:
            return self._read_array()
        if tag in (TYPE_HASH, TYPE_HASH_DEF):
            return self._read_hash(tag == TYPE_HASH_DEF)
        if tag == TYPE_OBJECT:
            return self._read_object()
        if tag == TYPE_USERDEF:
            return self._read_user_defined()
        if tag == TYPE_USRMARSHAL:
            return self._read_user_marshal()

        raise UnknownWireTag(tag, offset)

    def _read_bignum(self) -> int:
        sign = self.reader.read_byte()
        words = self.reader.read_long()
        magnitude = int.from_bytes(self.reader.read(words * 2), 'little')
        return -magnitude if sign == ord('-') else magnitude

    def _read_float(self) -> float:
        raw = self.reader.read_string()
        # Ruby 1.8 dumps append mantissa bytes after a NUL
        text = raw.split(b'\x00', 1)[0].decode('ascii', errors='replace')
        if text == 'nan':
            value = float('nan')
        elif text == 'inf':
            value = float('inf')
        elif text == '-inf':
            value = float('-inf')
        else:
            try:
                value = float(text)
            except ValueError:
                raise RGSSCodecError(f"Invalid float text {raw!r} at offset {self.reader.offset}") from None
        if raw != format_float(value, self.policy.legacy_float_text):
            return MarshalFloat(value, raw)
        return value

    def _read_symbol(self) -> Symbol:
        """Read a value that must be a symbol (class and ivar names)."""
        offset = self.reader.offset
        tag = self.reader.read_byte()
        if tag == TYPE_IVAR:
            symbol = self._read_symbol_body(self.reader.read_byte())
            self._read_ivars()
            return symbol
        if tag not in (TYPE_SYMBOL, TYPE_SYMLINK):
            raise UnknownWireTag(tag, offset)
        return self._read_symbol_body(tag)

    def _read_symbol_body(self, tag: int) -> Symbol:
        if tag == TYPE_SYMLINK:
            index = self.reader.read_long()
            if not 0 <= index < len(self._symbols):
                raise RGSSCodecError(f"Symbol link {index} out of range [0, {len(self._symbols)})")
            return self._symbols[index]
        if tag != TYPE_SYMBOL:
            raise UnknownWireTag(tag, self.reader.offset - 1)
        symbol = Symbol(self.reader.read_string().decode('utf-8', errors='surrogateescape'))
        self._symbols.append(symbol)
        return symbol

    def _read_ivars(self) -> List[Tuple[Symbol, Any]]:
        count = self.reader.read_long()
        return [(self._read_symbol(), self._read_value()) for _ in range(count)]

    def _read_ivar_value(self) -> Any:
        offset = self.reader.offset
        tag = self.reader.read_byte()

        if tag == TYPE_STRING:
            value = self._register(RubyString(self.reader.read_string()))
            value.attributes = self._read_ivars()
            return value
        if tag == TYPE_SYMBOL:
            symbol = self._read_symbol_body(tag)
            # Encoding of a non-ASCII symbol; the name is already decoded as UTF-8
            self._read_ivars()
            return symbol
        if tag == TYPE_USERDEF:
            return self._read_user_defined(with_ivars=True)

        raise UnknownWireTag(tag, offset)

    def _read_array(self) -> list:
        count = self.reader.read_long()
        values: list = self._register([])
        for _ in range(count):
            values.append(self._read_value())
        return values

    def _read_hash(self, with_default: bool) -> RubyHash:
        count = self.reader.read_long()
        mapping = self._register(RubyHash())
        for _ in range(count):
            key = self._read_value()
            mapping.pairs.append((key, self._read_value()))
        if with_default:
            mapping.default = self._read_value()
            mapping.has_default = True
        return mapping

    def _class_name(self) -> str:
        name = str(self._read_symbol())
        if not self.registry.is_known(name) and name not in self._unknown_classes:
            self._unknown_classes.add(name)
            logWarning(f"{self.source}: unrecognized class {name}, keeping its data without field rules")
        return name

    def _read_object(self) -> RubyObject:
        obj = self._register(RubyObject(self._class_name()))
        count = self.reader.read_long()
        for _ in range(count):
            name = str(self._read_symbol())
            obj.attributes[name[1:] if name.startswith('@') else name] = self._read_value()
        return obj

    def _read_user_defined(self, with_ivars: bool = False) -> Any:
        class_name = self._class_name()
        blob = self.reader.read_string()
        attributes = self._read_ivars() if with_ivars else []

        if self.registry.is_struct_leaf(class_name) and not attributes:
            value = decode_struct(class_name, blob)
        else:
            value = UserDefined(class_name, blob, attributes)
        # _dump values take their slot only after the blob is read
        return self._register(value)

    def _read_user_marshal(self) -> Any:
        class_name = self._class_name()
        slot = self._reserve()
        payload_name = self.registry.marshal_payload(class_name, self.policy)
        if payload_name is not None:
            value = RubyObject(class_name)
        else:
            value = UserMarshal(class_name)
        self._objects[slot] = value

        payload = self._read_value()
        if payload_name is not None:
            value.attributes[payload_name] = payload
        else:
            value.payload = payload
        return value


def load_data(data: bytes, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY,
              source: str = "<bytes>") -> Any:
    """Decode a complete Marshal stream."""
    return MarshalParser(data, policy, registry, source).parse()


def load_data_file(filepath: Union[str, Path], policy: VersionPolicy,
                   registry: TypeRegistry = DEFAULT_REGISTRY) -> Any:
    """Decode a Marshal data file."""
    return MarshalParser.from_file(filepath, policy, registry).parse()
