"""
Version Policy

Resolves an engine generation (xp, vx, ace) into the read-only settings the
codecs consult. Nothing else in the package looks at the dialect name.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

from rgss_codec.constants import MOVE_LIST_CODE_VX, MOVE_LIST_CODE_XP


class Dialect(Enum):
    XP = 'xp'
    VX = 'vx'
    ACE = 'ace'


class FieldOrdering(Enum):
    DECLARED = 'declared'
    ALPHABETICAL = 'alphabetical'


# (RPG::System marker, Game_System marker) written in place of version_id.
# The two values of a pair must differ, otherwise a save file would keep
# using its stored copy of a map after the map was edited.
VERSION_ID_CONSTANTS = {
    Dialect.XP: (12345678, 87654321),
    Dialect.VX: (23456789, 98765432),
    Dialect.ACE: (34567890, 9876543),
}


@dataclass(frozen=True)
class VersionPolicy:
    """Settings for one conversion run."""
    dialect: Dialect
    field_ordering: FieldOrdering
    move_list_opcode: int
    interpreter_is_opaque_leaf: bool
    version_id_constants: Tuple[int, int]
    # Strings carry encoding instance variables (Ruby 1.9+ engines only)
    text_encoding_marked: bool
    # Floats are written as %.17g plus mantissa bytes (Ruby 1.8 engines)
    legacy_float_text: bool
    round_trip: bool = False

    @classmethod
    def resolve(cls, dialect: Union[str, Dialect], round_trip: bool = False) -> 'VersionPolicy':
        """
        Build the policy for a dialect.

        Args:
            dialect: 'xp', 'vx', 'ace' or a Dialect member
            round_trip: Disable lossy normalizations

        Returns:
            VersionPolicy instance

        Raises:
            ValueError: Unknown dialect name
        """
        if not isinstance(dialect, Dialect):
            try:
                dialect = Dialect(str(dialect).lower())
            except ValueError:
                choices = ', '.join(d.value for d in Dialect)
                raise ValueError(f"Unknown engine version '{dialect}' (expected one of: {choices})") from None

        return cls(
            dialect=dialect,
            # Ace keeps fields in the order the engine assigned them
            field_ordering=FieldOrdering.DECLARED if dialect == Dialect.ACE else FieldOrdering.ALPHABETICAL,
            move_list_opcode=MOVE_LIST_CODE_XP if dialect == Dialect.XP else MOVE_LIST_CODE_VX,
            interpreter_is_opaque_leaf=dialect == Dialect.ACE,
            version_id_constants=VERSION_ID_CONSTANTS[dialect],
            text_encoding_marked=dialect == Dialect.ACE,
            legacy_float_text=dialect != Dialect.ACE,
            round_trip=round_trip,
        )

    @property
    def sorts_fields(self) -> bool:
        return self.field_ordering == FieldOrdering.ALPHABETICAL
