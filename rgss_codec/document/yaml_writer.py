"""
Document Writer

Renders an object graph as a YAML document.

The graph is turned into a PyYAML node tree by hand rather than through a
Representer so that every presentation choice stays explicit:

- objects of compact classes (and every event command except move lists)
  become one-line flow mappings, all other objects block mappings
- Table cells are laid out as rows of 4-digit hex numbers
- values reachable twice become YAML anchors/aliases, which the reader
  turns back into shared objects

Field order and field rules come from the type registry under the run's
version policy.
"""

import base64
import math
from typing import Any, Dict, List, Optional, Tuple

import yaml
from yaml.nodes import MappingNode, Node, ScalarNode, SequenceNode

from rgss_codec.config import VersionPolicy
from rgss_codec.errors import CyclicReferenceError, RGSSCodecError
from rgss_codec.model import (
    Color, Rect, RubyHash, RubyObject, RubyString, Symbol, Table, UserDefined, UserMarshal,
    struct_class_name,
)
from rgss_codec.registry import DEFAULT_REGISTRY, TypeRegistry
from rgss_codec.utils import logDebug, logWarning

# Standard YAML tags
NULL_TAG = 'tag:yaml.org,2002:null'
BOOL_TAG = 'tag:yaml.org,2002:bool'
INT_TAG = 'tag:yaml.org,2002:int'
FLOAT_TAG = 'tag:yaml.org,2002:float'
STR_TAG = 'tag:yaml.org,2002:str'
BINARY_TAG = 'tag:yaml.org,2002:binary'
SEQ_TAG = 'tag:yaml.org,2002:seq'
MAP_TAG = 'tag:yaml.org,2002:map'

# Engine value tags
SYMBOL_TAG = '!ruby/symbol'
STRING_TAG_PREFIX = '!ruby/string:'
BINARY_STRING_TAG_PREFIX = '!ruby/binary:'
HASH_WITH_DEFAULT_TAG = '!ruby/hash-with-default'
OBJECT_TAG_PREFIX = '!ruby/object:'
USER_TAG_PREFIX = '!ruby/user:'
MARSHAL_TAG_PREFIX = '!ruby/marshal:'


def float_text(value: float) -> str:
    """YAML 1.1 spelling of a float, as PyYAML's SafeRepresenter writes it."""
    if math.isnan(value):
        return '.nan'
    if value == math.inf:
        return '.inf'
    if value == -math.inf:
        return '-.inf'
    text = repr(value).lower()
    # 1e17 would read back as a string in YAML 1.1
    if '.' not in text and 'e' in text:
        text = text.replace('e', '.0e', 1)
    return text


def table_rows(table: Table, max_width: Optional[int]) -> List[str]:
    """
    Lay Table cells out as text rows.

    Rows are `stride` cells long (x, else y, else z); rows wider than
    max_width are cut into equal sub-rows.

    Args:
        table: Table to render
        max_width: Maximum cells per row, None for unbounded

    Returns:
        List of rows, each cell as 4 lowercase hex digits
    """
    stride = table.stride
    if stride <= 0 or table.cell_count == 0:
        return []

    row_length = stride
    if max_width is not None and stride > max_width:
        block_count = -(-stride // max_width)
        row_length = -(-stride // block_count)

    cells = ['%04x' % cell for cell in table.data.tolist()]
    rows = []
    for start in range(0, len(cells), stride):
        row = cells[start:start + stride]
        for sub in range(0, len(row), row_length):
            rows.append(' '.join(row[sub:sub + row_length]))
    return rows


class DocumentWriter:
    """
    Build a YAML document for one object graph.

    Usage:
        writer = DocumentWriter(policy, max_row_width=20)
        text = writer.dump(root)
    """

    def __init__(self, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY,
                 max_row_width: Optional[int] = None, line_width: int = -1):
        """
        Initialize writer.

        Args:
            policy: Version policy for the run
            registry: Class catalog
            max_row_width: Table cells per document row, None for unbounded
            line_width: Preferred YAML line width, -1 for unbounded
        """
        self.policy = policy
        self.registry = registry
        self.max_row_width = max_row_width
        self.line_width = line_width

    def dump(self, root: Any) -> str:
        """
        Render a graph.

        Returns:
            YAML text starting with '---'
        """
        node = self.represent(root)
        width = self.line_width if self.line_width > 0 else float('inf')
        text = yaml.serialize(node, Dumper=yaml.SafeDumper, explicit_start=True,
                              allow_unicode=True, width=width)
        logDebug(f"  Document: {len(self._nodes)} composite nodes, {len(text):,} characters")
        return text

    def represent(self, root: Any) -> Node:
        """Convert a graph to a PyYAML node tree."""
        # id -> (value, node); the value is held so ids are not reused mid-run
        self._nodes: Dict[int, Tuple[Any, Node]] = {}
        self._active = set()
        return self._node(root)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _node(self, value: Any, flow: bool = False) -> Node:
        if value is None:
            return ScalarNode(NULL_TAG, '~')
        if isinstance(value, bool):
            return ScalarNode(BOOL_TAG, 'true' if value else 'false')
        if isinstance(value, int):
            return ScalarNode(INT_TAG, str(value))
        if isinstance(value, Symbol):
            return ScalarNode(SYMBOL_TAG, str(value))
        if isinstance(value, str):
            return self._text_node(value)

        key = id(value)
        cached = self._nodes.get(key)
        if cached is not None:
            return cached[1]
        if key in self._active:
            raise CyclicReferenceError(
                f"Reference cycle through {type(value).__name__} cannot be written as a document"
            )

        self._active.add(key)
        try:
            node = self._build(value, flow)
        finally:
            self._active.discard(key)
        self._nodes[key] = (value, node)
        return node

    def _build(self, value: Any, flow: bool) -> Node:
        if isinstance(value, float):
            return ScalarNode(FLOAT_TAG, float_text(value))
        if isinstance(value, RubyString):
            return self._string_node(value)
        if isinstance(value, list):
            return SequenceNode(SEQ_TAG, [self._node(item, flow) for item in value], flow_style=flow)
        if isinstance(value, RubyHash):
            return self._hash_node(value, flow)
        if isinstance(value, RubyObject):
            return self._object_node(value, flow)
        if isinstance(value, Table):
            return self._table_node(value)
        if isinstance(value, Color):
            components = [(ScalarNode(STR_TAG, name), ScalarNode(FLOAT_TAG, float_text(float(getattr(value, name)))))
                          for name in ('r', 'g', 'b', 'a')]
            return MappingNode(OBJECT_TAG_PREFIX + struct_class_name(value), components, flow_style=True)
        if isinstance(value, Rect):
            return self._mapping(OBJECT_TAG_PREFIX + 'Rect',
                                 [('x', value.x), ('y', value.y), ('width', value.width),
                                  ('height', value.height)], flow)
        if isinstance(value, UserDefined):
            pairs = [('data', RubyString(value.data))]
            if value.attributes:
                pairs.append(('ivars', RubyHash([(Symbol(name), item) for name, item in value.attributes])))
            return self._mapping(USER_TAG_PREFIX + value.class_name, pairs, flow)
        if isinstance(value, UserMarshal):
            return self._mapping(MARSHAL_TAG_PREFIX + value.class_name, [('payload', value.payload)], flow)

        raise RGSSCodecError(f"Cannot write value of type {type(value).__name__} to a document: {value!r}")

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def _text_node(self, text: str) -> ScalarNode:
        # Literal style is only a hint; the emitter falls back to quoting
        style = '|' if '\n' in text else None
        return ScalarNode(STR_TAG, text, style=style)

    def _string_node(self, value: RubyString) -> ScalarNode:
        if value.extra_attributes:
            names = [str(name) for name, _ in value.extra_attributes]
            logWarning(f"Dropping string instance variables {names} on {value.data[:32]!r}")

        encoding = value.encoding
        default_encoding = 'UTF-8' if self.policy.text_encoding_marked else None
        codec = value.codec if encoding is not None else 'utf-8'
        try:
            text = value.data.decode(codec)
        except UnicodeDecodeError:
            text = None

        if text is None:
            encoded = base64.encodebytes(value.data).decode('ascii')
            if encoding is None:
                return ScalarNode(BINARY_TAG, encoded, style='|')
            return ScalarNode(BINARY_STRING_TAG_PREFIX + encoding, encoded, style='|')
        if encoding == default_encoding:
            return self._text_node(text)
        if encoding is None:
            return ScalarNode(BINARY_TAG, base64.encodebytes(value.data).decode('ascii'), style='|')
        node = self._text_node(text)
        node.tag = STRING_TAG_PREFIX + encoding
        return node

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    def _mapping(self, tag: str, pairs: List[Tuple[str, Any]], flow: bool) -> MappingNode:
        value = [(ScalarNode(STR_TAG, name), self._node(item, flow)) for name, item in pairs]
        return MappingNode(tag, value, flow_style=flow)

    def _hash_node(self, value: RubyHash, flow: bool) -> MappingNode:
        pairs = list(value.pairs)
        if self.policy.sorts_fields and _sortable(pairs):
            pairs.sort(key=lambda pair: _sort_key(pair[0]))
        node = MappingNode(MAP_TAG, [(self._node(k, flow), self._node(v, flow)) for k, v in pairs],
                           flow_style=flow)
        if not value.has_default:
            return node
        return MappingNode(HASH_WITH_DEFAULT_TAG, [
            (ScalarNode(STR_TAG, 'default'), self._node(value.default, flow)),
            (ScalarNode(STR_TAG, 'pairs'), node),
        ], flow_style=flow)

    def _object_node(self, value: RubyObject, flow: bool) -> MappingNode:
        pairs, compact = self.registry.encode_fields(value, self.policy)
        return self._mapping(OBJECT_TAG_PREFIX + value.class_name, pairs, flow or compact)

    def _table_node(self, table: Table) -> MappingNode:
        rows = [ScalarNode(STR_TAG, row) for row in table_rows(table, self.max_row_width)]
        return MappingNode(OBJECT_TAG_PREFIX + 'Table', [
            (ScalarNode(STR_TAG, 'dim'), ScalarNode(INT_TAG, str(table.dim))),
            (ScalarNode(STR_TAG, 'x'), ScalarNode(INT_TAG, str(table.x))),
            (ScalarNode(STR_TAG, 'y'), ScalarNode(INT_TAG, str(table.y))),
            (ScalarNode(STR_TAG, 'z'), ScalarNode(INT_TAG, str(table.z))),
            (ScalarNode(STR_TAG, 'data'), SequenceNode(SEQ_TAG, rows, flow_style=False)),
        ], flow_style=False)


def _sortable(pairs: List[Tuple[Any, Any]]) -> bool:
    """True when every key is an integer or every key is text."""
    keys = [k for k, _ in pairs]
    if all(isinstance(k, int) and not isinstance(k, bool) for k in keys):
        return True
    return all(isinstance(k, RubyString) for k in keys) or all(isinstance(k, Symbol) for k in keys)


def _sort_key(key):
    return key.text if isinstance(key, RubyString) else key


def dump_document(root: Any, policy: VersionPolicy, registry: TypeRegistry = DEFAULT_REGISTRY,
                  max_row_width: Optional[int] = None, line_width: int = -1) -> str:
    """Render a graph as YAML text."""
    return DocumentWriter(policy, registry, max_row_width, line_width).dump(root)
