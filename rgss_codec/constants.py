"""
Constants used across the codec modules.

Consolidates wire tags, file extensions and the magic numbers the engine
data files depend on.
"""

# Marshal format version written by every supported engine generation
MARSHAL_MAJOR = 4
MARSHAL_MINOR = 8

# Marshal type tags
TYPE_NIL = ord('0')
TYPE_TRUE = ord('T')
TYPE_FALSE = ord('F')
TYPE_FIXNUM = ord('i')
TYPE_BIGNUM = ord('l')
TYPE_FLOAT = ord('f')
TYPE_STRING = ord('"')
TYPE_SYMBOL = ord(':')
TYPE_SYMLINK = ord(';')
TYPE_IVAR = ord('I')
TYPE_ARRAY = ord('[')
TYPE_HASH = ord('{')
TYPE_HASH_DEF = ord('}')
TYPE_OBJECT = ord('o')
TYPE_USERDEF = ord('u')
TYPE_USRMARSHAL = ord('U')
TYPE_LINK = ord('@')

# Integers Marshal writes as fixnums; anything wider is written as a bignum
FIXNUM_MIN = -(1 << 30)
FIXNUM_MAX = (1 << 30) - 1

# String encoding instance variables
ENCODING_SHORT_IVAR = 'E'
ENCODING_IVAR = 'encoding'

# Event command opcodes
EVENT_TEXT_CODE = 401
MOVE_LIST_CODE_XP = 209
MOVE_LIST_CODE_VX = 205

# Default maximum number of Table cells per document row, -1 for unbounded
DEFAULT_TABLE_WIDTH = -1

# File naming
SCRIPTS_BASE = 'Scripts'
DOODADS_POSTFIX = '_doodads'

ACE_DATA_EXT = '.rvdata2'
VX_DATA_EXT = '.rvdata'
XP_DATA_EXT = '.rxdata'
YAML_EXT = '.yaml'

DATA_EXTENSIONS = (XP_DATA_EXT, VX_DATA_EXT, ACE_DATA_EXT)
