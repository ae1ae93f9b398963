"""
Type Catalog

Static list of every engine class the codec knows about, with the handful
of per-class rules that change how instances are written.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from rgss_codec.config import VersionPolicy
from rgss_codec.model import RubyObject
from .field_rules import (
    CompoundKeyMap,
    EventCommandRule,
    FieldTransform,
    SparseIndexMap,
    VersionIdMarker,
)


@dataclass(frozen=True)
class ClassEntry:
    """Registry entry for one class."""
    name: str
    compact: bool = False  # Single-line flow mapping in documents
    struct_leaf: bool = False  # _dump blob with a fixed byte layout
    # Payload attribute when the policy marshals this class as a single object
    marshal_payload: Optional[str] = None
    field_rules: Mapping[str, FieldTransform] = field(default_factory=dict)
    event_command: Optional[EventCommandRule] = None


# RGSS data structures
RPG_CLASSES = [
    'RPG::Actor', 'RPG::Animation', 'RPG::Animation::Frame', 'RPG::Animation::Timing',
    'RPG::Area', 'RPG::Armor', 'RPG::AudioFile', 'RPG::BaseItem', 'RPG::BaseItem::Feature',
    'RPG::BGM', 'RPG::BGS', 'RPG::Class', 'RPG::Class::Learning', 'RPG::CommonEvent',
    'RPG::Enemy', 'RPG::Enemy::Action', 'RPG::Enemy::DropItem', 'RPG::EquipItem',
    'RPG::Event', 'RPG::Event::Page', 'RPG::Event::Page::Condition',
    'RPG::Event::Page::Graphic', 'RPG::EventCommand', 'RPG::Item', 'RPG::Map',
    'RPG::Map::Encounter', 'RPG::MapInfo', 'RPG::ME', 'RPG::MoveCommand', 'RPG::MoveRoute',
    'RPG::SE', 'RPG::Skill', 'RPG::State', 'RPG::System', 'RPG::System::Terms',
    'RPG::System::TestBattler', 'RPG::System::Vehicle', 'RPG::System::Words',
    'RPG::Tileset', 'RPG::Troop', 'RPG::Troop::Member', 'RPG::Troop::Page',
    'RPG::Troop::Page::Condition', 'RPG::UsableItem', 'RPG::UsableItem::Damage',
    'RPG::UsableItem::Effect', 'RPG::Weapon',
]

# Script classes serialized in save game files
SAVE_CLASSES = [
    'Game_ActionResult', 'Game_Actor', 'Game_Actors', 'Game_BaseItem', 'Game_BattleAction',
    'Game_CommonEvent', 'Game_Enemy', 'Game_Event', 'Game_Follower', 'Game_Followers',
    'Game_Interpreter', 'Game_Map', 'Game_Message', 'Game_Party', 'Game_Picture',
    'Game_Pictures', 'Game_Player', 'Game_Screen', 'Game_SelfSwitches', 'Game_Switches',
    'Game_System', 'Game_Timer', 'Game_Troop', 'Game_Variables', 'Game_Vehicle',
    'Interpreter',
]

STRUCT_CLASSES = ['Table', 'Color', 'Tone', 'Rect']

COMPACT_CLASSES = {'Color', 'Tone', 'RPG::BGM', 'RPG::BGS', 'RPG::MoveCommand', 'RPG::SE'}


def build_catalog() -> List[ClassEntry]:
    """Create the entries for every cataloged class."""
    special: Dict[str, Dict[str, Any]] = {
        'Game_Switches': {'field_rules': {'data': SparseIndexMap()}},
        'Game_Variables': {'field_rules': {'data': SparseIndexMap()}},
        'Game_SelfSwitches': {'field_rules': {'data': CompoundKeyMap()}},
        'Game_System': {'field_rules': {'version_id': VersionIdMarker(1)}},
        'Game_Interpreter': {'marshal_payload': 'data'},
        'RPG::System': {'field_rules': {
            'variables': SparseIndexMap(reduce_strings=True),
            'switches': SparseIndexMap(reduce_strings=True),
            'version_id': VersionIdMarker(0),
        }},
        'RPG::EventCommand': {'event_command': EventCommandRule()},
    }

    entries = []
    for name in RPG_CLASSES + SAVE_CLASSES + STRUCT_CLASSES:
        options = dict(special.get(name, {}))
        entries.append(ClassEntry(
            name=name,
            compact=name in COMPACT_CLASSES,
            struct_leaf=name in STRUCT_CLASSES,
            **options,
        ))
    return entries


class TypeRegistry:
    """
    Lookup of class entries by wire class name.

    Immutable after construction; one instance can be shared by any number
    of conversions.
    """

    def __init__(self, entries: Optional[List[ClassEntry]] = None):
        self._entries: Dict[str, ClassEntry] = {
            entry.name: entry for entry in (entries if entries is not None else build_catalog())
        }

    def lookup(self, class_name: str) -> Optional[ClassEntry]:
        return self._entries.get(class_name)

    def is_known(self, class_name: str) -> bool:
        return class_name in self._entries

    def is_struct_leaf(self, class_name: str) -> bool:
        entry = self._entries.get(class_name)
        return entry is not None and entry.struct_leaf

    def marshal_payload(self, class_name: str, policy: VersionPolicy) -> Optional[str]:
        """Payload attribute if this class is user-marshalled under the policy."""
        entry = self._entries.get(class_name)
        if entry is None or entry.marshal_payload is None or not policy.interpreter_is_opaque_leaf:
            return None
        return entry.marshal_payload

    def encode_fields(self, obj: RubyObject, policy: VersionPolicy) -> Tuple[List[Tuple[str, Any]], bool]:
        """
        Apply field rules and ordering for the document side.

        Returns:
            Tuple of (list of (document key, value), compact flag)
        """
        entry = self._entries.get(obj.class_name)
        if entry is not None and entry.event_command is not None:
            return entry.event_command.encode(obj.attributes, policy)

        rules = entry.field_rules if entry is not None else {}
        pairs = []
        for name, value in obj.attributes.items():
            rule = rules.get(name)
            pairs.append((name, rule.encode(value, policy) if rule is not None else value))
        if policy.sorts_fields:
            pairs.sort(key=lambda pair: pair[0])
        return pairs, entry is not None and entry.compact

    def decode_fields(self, class_name: str, pairs: Dict[str, Any], policy: VersionPolicy) -> Dict[str, Any]:
        """Inverse of encode_fields: document keys back to attribute values."""
        entry = self._entries.get(class_name)
        if entry is not None and entry.event_command is not None:
            return entry.event_command.decode(pairs)

        rules = entry.field_rules if entry is not None else {}
        attributes = {}
        for name, value in pairs.items():
            rule = rules.get(name)
            attributes[name] = rule.decode(value, policy) if rule is not None else value
        return attributes


DEFAULT_REGISTRY = TypeRegistry()
