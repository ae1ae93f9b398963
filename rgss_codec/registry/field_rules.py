"""
Field Rules

Per-field transforms applied between the object graph and the document.
encode() runs on the way to YAML and decode() on the way back; each pair is
an inverse except where a rule deliberately normalizes data (string trimming
and version markers outside round-trip mode).
"""

import re
from typing import Any, Dict, List

from rgss_codec.config import VersionPolicy
from rgss_codec.constants import EVENT_TEXT_CODE
from rgss_codec.errors import MalformedCompoundKey, MalformedDocument, MalformedEventCommand
from rgss_codec.model import RubyHash, RubyString, Symbol

# Characters Ruby's String#strip removes
RUBY_WHITESPACE = ' \t\n\v\f\r\x00'

_COMPOUND_KEY_RE = re.compile(r'^\s*([-+]?\d+)\s+([-+]?\d+)\s+(\S+)')


def text_string(text: str, policy: VersionPolicy) -> RubyString:
    """Build a string the way the dialect stores ordinary text."""
    return RubyString.from_text(text, 'UTF-8' if policy.text_encoding_marked else None)


def reduce_string(value, policy: VersionPolicy):
    """
    Trim a string and drop it entirely if nothing is left.

    Identity in round-trip mode and for anything that is not a string.
    """
    if policy.round_trip or not isinstance(value, RubyString):
        return value
    stripped = value.text.strip(RUBY_WHITESPACE)
    return value.with_text(stripped) if stripped else None


def array_to_hash(values: List[Any], transform=None) -> RubyHash:
    """
    Turn a sparse list into an index -> value mapping.

    Absent entries are skipped, except the last index which is always
    present so the original length survives.
    """
    pairs = []
    for index, value in enumerate(values):
        if transform is not None:
            value = transform(value)
        if value is not None:
            pairs.append((index, value))
    if values and (not pairs or pairs[-1][0] != len(values) - 1):
        pairs.append((len(values) - 1, None))
    return RubyHash(pairs)


def hash_to_array(mapping: RubyHash) -> List[Any]:
    """Rebuild a list from an index mapping, leaving gaps as None."""
    indices = mapping.keys()
    if any(not isinstance(k, int) or isinstance(k, bool) or k < 0 for k in indices):
        raise MalformedDocument(f"Index map keys must be non-negative integers: {indices!r}")
    values: List[Any] = [None] * (max(indices) + 1 if indices else 0)
    for index, value in mapping.pairs:
        values[index] = value
    return values


class FieldTransform:
    """Base transform: passes values through unchanged."""

    def encode(self, value, policy: VersionPolicy):
        return value

    def decode(self, value, policy: VersionPolicy):
        return value


class SparseIndexMap(FieldTransform):
    """Sparse array <-> {index: value} mapping, optionally trimming strings."""

    def __init__(self, reduce_strings: bool = False):
        self.reduce_strings = reduce_strings

    def encode(self, value, policy: VersionPolicy):
        if not isinstance(value, list):
            return value
        transform = (lambda v: reduce_string(v, policy)) if self.reduce_strings else None
        return array_to_hash(value, transform)

    def decode(self, value, policy: VersionPolicy):
        if not isinstance(value, RubyHash):
            return value
        return hash_to_array(value)


def format_compound_key(key) -> str:
    map_id, event_id, name = key
    if isinstance(name, RubyString):
        name = name.text
    return '%03d %03d %s' % (map_id, event_id, name)


def parse_compound_key(text: str, policy: VersionPolicy) -> list:
    match = _COMPOUND_KEY_RE.match(text)
    if match is None:
        raise MalformedCompoundKey(f"Cannot parse self switch key '{text}' (expected '%03d %03d %s')")
    return [int(match.group(1)), int(match.group(2)), text_string(match.group(3), policy)]


class CompoundKeyMap(FieldTransform):
    """{[map_id, event_id, letter] => value} <-> {"001 002 A" => value}."""

    def encode(self, value, policy: VersionPolicy):
        if not isinstance(value, RubyHash):
            return value
        pairs = []
        for key, item in value.pairs:
            if not (isinstance(key, list) and len(key) == 3):
                raise MalformedCompoundKey(f"Self switch key must be a 3-element array, got {key!r}")
            pairs.append((text_string(format_compound_key(key), policy), item))
        return RubyHash(pairs, value.default, value.has_default)

    def decode(self, value, policy: VersionPolicy):
        if not isinstance(value, RubyHash):
            return value
        pairs = []
        for key, item in value.pairs:
            text = key.text if isinstance(key, RubyString) else key
            if not isinstance(text, str) or isinstance(text, Symbol):
                raise MalformedCompoundKey(f"Self switch key must be a string, got {key!r}")
            pairs.append((parse_compound_key(text, policy), item))
        return RubyHash(pairs, value.default, value.has_default)


class VersionIdMarker(FieldTransform):
    """
    Replace a version id with a fixed marker outside round-trip mode.

    slot 0 is the database marker (RPG::System), slot 1 the save file
    marker (Game_System).
    """

    def __init__(self, slot: int):
        self.slot = slot

    def encode(self, value, policy: VersionPolicy):
        if policy.round_trip:
            return value
        return policy.version_id_constants[self.slot]


class EventCommandRule:
    """
    Event commands render as {i, c, p} records.

    Every command is compact except the dialect's move-list command, which
    nests a move route and is easier to read expanded.
    """

    FIELDS = (('indent', 'i'), ('code', 'c'), ('parameters', 'p'))
    # Order the engine assigns the instance variables in
    DECLARED = ('code', 'indent', 'parameters')

    def encode(self, attributes: Dict[str, Any], policy: VersionPolicy):
        """
        Returns:
            Tuple of (list of (document key, value), compact flag)
        """
        if len(attributes) != 3 or any(name not in attributes for name, _ in self.FIELDS):
            raise MalformedEventCommand(
                f"Unexpected number of instance variables in event command: {sorted(attributes)}"
            )
        code = attributes['code']
        parameters = attributes['parameters']
        if not policy.round_trip and code == EVENT_TEXT_CODE and parameters:
            first = parameters[0]
            if isinstance(first, RubyString):
                parameters = [first.with_text(first.text.rstrip(RUBY_WHITESPACE))] + list(parameters[1:])
        values = {'indent': attributes['indent'], 'code': code, 'parameters': parameters}
        pairs = [(key, values[name]) for name, key in self.FIELDS]
        return pairs, code != policy.move_list_opcode

    def decode(self, pairs: Dict[str, Any]) -> Dict[str, Any]:
        if len(pairs) != 3 or any(key not in pairs for _, key in self.FIELDS):
            raise MalformedEventCommand(f"Event command needs exactly keys i, c, p; got {sorted(pairs)}")
        keys = dict(self.FIELDS)
        return {name: pairs[keys[name]] for name in self.DECLARED}
