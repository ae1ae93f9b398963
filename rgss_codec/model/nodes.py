"""
Object graph node types.

Scalars map onto Python values (None, bool, int, float) and sequences onto
plain lists. Everything else the Marshal format can carry gets a small class
here so that object identity survives a decode/encode pass: two fields that
held the same object in the source stream hold the same Python object after
decoding.
"""

import codecs
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from rgss_codec.constants import ENCODING_IVAR, ENCODING_SHORT_IVAR


class Symbol(str):
    """An interned identifier. Compares equal to a str with the same text."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


class MarshalFloat(float):
    """
    A float that keeps the exact text it was stored as.

    Only made when the stored text differs from what the writer would
    produce for the value, e.g. a mantissa suffix the writer does not
    reproduce. The writer emits raw unchanged.
    """

    def __new__(cls, value: float, raw: bytes):
        obj = super().__new__(cls, value)
        obj.raw = raw
        return obj


class RubyString:
    """
    A Ruby string: raw bytes plus the instance variables stored with it.

    The encoding of a string travels as instance variables on the wire
    (E=true for UTF-8, E=false for US-ASCII, encoding=<name> otherwise);
    strings without them carry raw bytes (UTF-8 text in engines that predate
    string encodings).
    """

    __slots__ = ('data', 'attributes')

    def __init__(self, data: bytes, attributes: Optional[List[Tuple[Symbol, Any]]] = None):
        self.data = data
        self.attributes = attributes if attributes is not None else []

    @classmethod
    def from_text(cls, text: str, encoding: Optional[str] = 'UTF-8') -> 'RubyString':
        """Build a string in the given encoding (None for unmarked UTF-8 bytes)."""
        if encoding is None:
            return cls(text.encode('utf-8'))
        if encoding == 'UTF-8':
            return cls(text.encode('utf-8'), [(Symbol(ENCODING_SHORT_IVAR), True)])
        if encoding == 'US-ASCII':
            return cls(text.encode('ascii'), [(Symbol(ENCODING_SHORT_IVAR), False)])
        return cls(text.encode(encoding),
                   [(Symbol(ENCODING_IVAR), cls(encoding.encode('ascii')))])

    @property
    def encoding(self) -> Optional[str]:
        """Encoding name, or None for an unmarked string."""
        for name, value in self.attributes:
            if name == ENCODING_SHORT_IVAR:
                return 'UTF-8' if value else 'US-ASCII'
            if name == ENCODING_IVAR and isinstance(value, RubyString):
                return value.data.decode('ascii')
        return None

    @property
    def extra_attributes(self) -> List[Tuple[Symbol, Any]]:
        """Instance variables other than the encoding marker."""
        return [(k, v) for k, v in self.attributes if k not in (ENCODING_SHORT_IVAR, ENCODING_IVAR)]

    @property
    def codec(self) -> str:
        """
        Python codec name for this string's encoding.

        Unmarked strings are read as UTF-8 when their bytes allow it and as
        latin-1 otherwise; unknown encoding names also fall back to latin-1.
        """
        encoding = self.encoding
        if encoding is None:
            try:
                self.data.decode('utf-8')
                return 'utf-8'
            except UnicodeDecodeError:
                return 'latin-1'
        try:
            return codecs.lookup(encoding).name
        except LookupError:
            return 'latin-1'

    @property
    def text(self) -> str:
        """Decoded text (see codec)."""
        return self.data.decode(self.codec, errors='surrogateescape')

    def with_text(self, text: str) -> 'RubyString':
        """Return a new string holding text, keeping this string's attributes."""
        return RubyString(text.encode(self.codec, errors='surrogateescape'), list(self.attributes))

    def __eq__(self, other) -> bool:
        if isinstance(other, RubyString):
            return self.data == other.data and self.encoding == other.encoding
        if isinstance(other, str) and not isinstance(other, Symbol):
            return self.text == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.text)

    def __repr__(self) -> str:
        return f"RubyString({self.data!r}, encoding={self.encoding!r})"


class RubyHash:
    """
    An ordered mapping of (key, value) pairs.

    Stored as a pair list rather than a dict because keys may be unhashable
    nodes such as arrays.
    """

    __slots__ = ('pairs', 'default', 'has_default')

    def __init__(self, pairs: Optional[List[Tuple[Any, Any]]] = None,
                 default: Any = None, has_default: bool = False):
        self.pairs = pairs if pairs is not None else []
        self.default = default
        self.has_default = has_default

    def get(self, key, fallback=None):
        for k, v in self.pairs:
            if k == key:
                return v
        return fallback

    def keys(self) -> List[Any]:
        return [k for k, _ in self.pairs]

    def __len__(self) -> int:
        return len(self.pairs)

    def __eq__(self, other) -> bool:
        if not isinstance(other, RubyHash):
            return NotImplemented
        return (self.pairs == other.pairs and self.has_default == other.has_default
                and self.default == other.default)

    def __repr__(self) -> str:
        return f"RubyHash({self.pairs!r})"


class RubyObject:
    """
    An instance of a named class with ordered instance variables.

    Attribute names are stored without the leading '@'.
    """

    __slots__ = ('class_name', 'attributes')

    def __init__(self, class_name: str, attributes: Optional[Dict[str, Any]] = None):
        self.class_name = class_name
        self.attributes = attributes if attributes is not None else {}

    def __getitem__(self, name: str):
        return self.attributes[name]

    def __eq__(self, other) -> bool:
        if not isinstance(other, RubyObject):
            return NotImplemented
        return self.class_name == other.class_name and self.attributes == other.attributes

    def __repr__(self) -> str:
        return f"RubyObject({self.class_name!r}, {self.attributes!r})"


@dataclass(eq=True)
class UserDefined:
    """An opaque _dump blob of a class without a known byte layout."""
    class_name: str
    data: bytes
    # Instance variables attached to the dumped string
    attributes: List[Tuple[Symbol, Any]] = field(default_factory=list)


@dataclass(eq=True)
class UserMarshal:
    """A marshal_dump object: class name plus the single payload it dumped."""
    class_name: str
    payload: Any = None
