"""
Document Reader

Parses a YAML document written by DocumentWriter back into an object graph.

The text is composed into PyYAML nodes and each node is mapped by its tag:
standard scalars go through PyYAML's SafeConstructor, the engine tags
(!ruby/object:..., !ruby/symbol, ...) are handled here. An aliased node
yields the same Python object at every use, so shared references written as
anchors come back shared.
"""

import math
from typing import Any, Dict, List, Optional

import yaml
from yaml.constructor import SafeConstructor
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from rgss_codec.config import VersionPolicy
from rgss_codec.constants import ENCODING_IVAR, ENCODING_SHORT_IVAR
from rgss_codec.errors import MalformedDocument
from rgss_codec.model import (
    RubyHash, RubyObject, RubyString, Symbol, Table, UserDefined, UserMarshal, STRUCT_TYPES,
)
from rgss_codec.registry import DEFAULT_REGISTRY, TypeRegistry, text_string
from rgss_codec.utils import logDebug
from .yaml_writer import (
    NULL_TAG, BOOL_TAG, INT_TAG, FLOAT_TAG, STR_TAG, BINARY_TAG, SEQ_TAG, MAP_TAG,
    SYMBOL_TAG, STRING_TAG_PREFIX, BINARY_STRING_TAG_PREFIX, HASH_WITH_DEFAULT_TAG,
    OBJECT_TAG_PREFIX, USER_TAG_PREFIX, MARSHAL_TAG_PREFIX,
)

TIMESTAMP_TAG = 'tag:yaml.org,2002:timestamp'


def encoded_string(encoding: str, text: Optional[str] = None, data: Optional[bytes] = None) -> RubyString:
    """Build a string marked with an encoding from either text or raw bytes."""
    if encoding == 'UTF-8':
        attributes = [(Symbol(ENCODING_SHORT_IVAR), True)]
    elif encoding == 'US-ASCII':
        attributes = [(Symbol(ENCODING_SHORT_IVAR), False)]
    else:
        attributes = [(Symbol(ENCODING_IVAR), RubyString(encoding.encode('ascii')))]
    value = RubyString(data if data is not None else b'', attributes)
    return value.with_text(text) if text is not None else value


def table_cells(rows: List[str]) -> List[int]:
    """Flatten hex rows back into the cell sequence."""
    cells = []
    for row in rows:
        for cell in str(row).split():
            try:
                value = int(cell, 16)
            except ValueError:
                raise MalformedDocument(f"Invalid Table cell '{cell}' in row '{row}'") from None
            if not 0 <= value <= 0xFFFF:
                raise MalformedDocument(f"Table cell '{cell}' in row '{row}' is outside 0000..ffff")
            cells.append(value)
    return cells


class DocumentReader:
    """
    Rebuild an object graph from YAML text.

    Usage:
        reader = DocumentReader(policy)
        root = reader.load(text)
    """

    def __init__(self, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY):
        """
        Initialize reader.

        Args:
            policy: Version policy for the run
            registry: Class catalog
        """
        self.policy = policy
        self.registry = registry
        self._scalars = SafeConstructor()

    def load(self, text: str, source: str = "<document>") -> Any:
        """
        Parse a complete document.

        Raises:
            MalformedDocument: Invalid YAML, no document, or unknown tags
        """
        try:
            node = yaml.compose(text, Loader=yaml.SafeLoader)
        except yaml.YAMLError as e:
            raise MalformedDocument(f"{source}: {e}") from e
        if node is None:
            raise MalformedDocument(f"{source}: no document found")

        self._values: Dict[int, Any] = {}
        root = self.construct(node)
        logDebug(f"{source}: rebuilt {len(self._values)} composite values")
        return root

    def construct(self, node: Node) -> Any:
        """Convert one node (and everything below it) to a graph value."""
        key = id(node)
        if key in self._values:
            return self._values[key]

        if isinstance(node, ScalarNode):
            value = self._scalar(node)
            # Aliased strings and floats stay shared
            if isinstance(value, (RubyString, float)):
                self._values[key] = value
            return value
        if isinstance(node, SequenceNode):
            return self._sequence(node)
        if isinstance(node, MappingNode):
            return self._mapping(node)
        raise MalformedDocument(f"Unsupported node {node!r}")

    # ------------------------------------------------------------------
    # Scalars
    # ------------------------------------------------------------------

    def _scalar(self, node: ScalarNode) -> Any:
        tag = node.tag

        if tag == NULL_TAG:
            return None
        if tag == BOOL_TAG:
            return self._scalars.construct_yaml_bool(node)
        if tag == INT_TAG:
            return self._scalars.construct_yaml_int(node)
        if tag == FLOAT_TAG:
            return _fresh_float(self._scalars.construct_yaml_float(node))
        if tag in (STR_TAG, TIMESTAMP_TAG):
            return text_string(node.value, self.policy)
        if tag == BINARY_TAG:
            return RubyString(self._binary(node))
        if tag == SYMBOL_TAG:
            return Symbol(node.value)
        if tag.startswith(STRING_TAG_PREFIX):
            return encoded_string(tag[len(STRING_TAG_PREFIX):], text=node.value)
        if tag.startswith(BINARY_STRING_TAG_PREFIX):
            return encoded_string(tag[len(BINARY_STRING_TAG_PREFIX):], data=self._binary(node))

        raise MalformedDocument(f"Unknown scalar tag {tag} {_mark(node)}")

    def _binary(self, node: ScalarNode) -> bytes:
        try:
            return self._scalars.construct_yaml_binary(node)
        except yaml.constructor.ConstructorError as e:
            raise MalformedDocument(f"Invalid base64 data {_mark(node)}") from e

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def _sequence(self, node: SequenceNode) -> list:
        if node.tag != SEQ_TAG:
            raise MalformedDocument(f"Unknown sequence tag {node.tag} {_mark(node)}")
        values: list = []
        self._values[id(node)] = values
        for item in node.value:
            values.append(self.construct(item))
        return values

    def _mapping(self, node: MappingNode) -> Any:
        tag = node.tag

        if tag == MAP_TAG:
            mapping = RubyHash()
            self._values[id(node)] = mapping
            mapping.pairs = [(self.construct(k), self.construct(v)) for k, v in node.value]
            return mapping
        if tag == HASH_WITH_DEFAULT_TAG:
            return self._hash_with_default(node)
        if tag.startswith(OBJECT_TAG_PREFIX):
            class_name = tag[len(OBJECT_TAG_PREFIX):]
            if class_name in STRUCT_TYPES:
                return self._struct(class_name, node)
            return self._object(class_name, node)
        if tag.startswith(USER_TAG_PREFIX):
            fields = self._fields(node)
            data = fields.get('data')
            if not isinstance(data, RubyString):
                raise MalformedDocument(f"{tag} needs a 'data' string {_mark(node)}")
            ivars = fields.get('ivars')
            attributes = [(Symbol(k), v) for k, v in ivars.pairs] if isinstance(ivars, RubyHash) else []
            value = UserDefined(tag[len(USER_TAG_PREFIX):], data.data, attributes)
            self._values[id(node)] = value
            return value
        if tag.startswith(MARSHAL_TAG_PREFIX):
            value = UserMarshal(tag[len(MARSHAL_TAG_PREFIX):])
            self._values[id(node)] = value
            value.payload = self._fields(node).get('payload')
            return value

        raise MalformedDocument(f"Unknown mapping tag {tag} {_mark(node)}")

    def _hash_with_default(self, node: MappingNode) -> RubyHash:
        mapping = RubyHash(has_default=True)
        self._values[id(node)] = mapping
        fields = self._fields(node)
        pairs = fields.get('pairs')
        if not isinstance(pairs, RubyHash):
            raise MalformedDocument(f"{HASH_WITH_DEFAULT_TAG} needs a 'pairs' mapping {_mark(node)}")
        mapping.pairs = pairs.pairs
        mapping.default = fields.get('default')
        return mapping

    def _object(self, class_name: str, node: MappingNode) -> RubyObject:
        obj = RubyObject(class_name)
        self._values[id(node)] = obj
        obj.attributes = self.registry.decode_fields(class_name, self._fields(node), self.policy)
        return obj

    def _struct(self, class_name: str, node: MappingNode) -> Any:
        fields = self._fields(node)
        if class_name == 'Table':
            rows = fields.get('data') or []
            value = Table(
                dim=_int_field(fields, 'dim', node),
                x=_int_field(fields, 'x', node),
                y=_int_field(fields, 'y', node),
                z=_int_field(fields, 'z', node),
                data=table_cells([row.text if isinstance(row, RubyString) else row for row in rows]),
            )
        elif class_name == 'Rect':
            value = STRUCT_TYPES[class_name](*(_int_field(fields, name, node)
                                               for name in ('x', 'y', 'width', 'height')))
        else:
            value = STRUCT_TYPES[class_name](*(_float_field(fields, name, node)
                                               for name in ('r', 'g', 'b', 'a')))
        self._values[id(node)] = value
        return value

    def _fields(self, node: MappingNode) -> Dict[str, Any]:
        """Read a mapping whose keys are plain field names."""
        fields = {}
        for key_node, value_node in node.value:
            if not isinstance(key_node, ScalarNode) or key_node.tag != STR_TAG:
                raise MalformedDocument(f"Field names must be plain strings {_mark(key_node)}")
            fields[key_node.value] = self.construct(value_node)
        return fields


def _fresh_float(value: float) -> float:
    # SafeConstructor hands out one shared object for nan and inf
    if math.isnan(value):
        return float('nan')
    if math.isinf(value):
        return float('inf') if value > 0 else float('-inf')
    return value


def _int_field(fields: Dict[str, Any], name: str, node: Node) -> int:
    value = fields.get(name)
    if not isinstance(value, int) or isinstance(value, bool):
        raise MalformedDocument(f"Field '{name}' must be an integer {_mark(node)}")
    return value


def _float_field(fields: Dict[str, Any], name: str, node: Node) -> float:
    value = fields.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedDocument(f"Field '{name}' must be a number {_mark(node)}")
    return float(value)


def _mark(node: Node) -> str:
    if node.start_mark is None:
        return ''
    return f"(line {node.start_mark.line + 1}, column {node.start_mark.column + 1})"


def load_document(text: str, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY,
                  source: str = "<document>") -> Any:
    """Parse YAML text into an object graph."""
    return DocumentReader(policy, registry).load(text, source)
