"""
Type Registry & Field Rules

- catalog: ClassEntry, TypeRegistry and the static class catalog
- field_rules: transforms attached to individual fields
"""

from .catalog import (
    ClassEntry,
    TypeRegistry,
    DEFAULT_REGISTRY,
    COMPACT_CLASSES,
    build_catalog,
)
from .field_rules import (
    FieldTransform,
    SparseIndexMap,
    CompoundKeyMap,
    VersionIdMarker,
    EventCommandRule,
    array_to_hash,
    hash_to_array,
    reduce_string,
    text_string,
    format_compound_key,
    parse_compound_key,
)

__all__ = [
    'ClassEntry',
    'TypeRegistry',
    'DEFAULT_REGISTRY',
    'COMPACT_CLASSES',
    'build_catalog',
    'FieldTransform',
    'SparseIndexMap',
    'CompoundKeyMap',
    'VersionIdMarker',
    'EventCommandRule',
    'array_to_hash',
    'hash_to_array',
    'reduce_string',
    'text_string',
    'format_compound_key',
    'parse_compound_key',
]
