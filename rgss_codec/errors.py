"""
Codec Errors

Exception taxonomy shared by the binary and document codecs.

All of these are fatal for the file being converted. An unrecognized class is
not an error: the decoder logs a warning and keeps going.
"""


class RGSSCodecError(Exception):
    """Base class for every conversion failure raised by this package."""


class SizeMismatch(RGSSCodecError):
    """A struct blob does not agree with the dimensions it declares."""


class UnexpectedEndOfInput(RGSSCodecError):
    """The binary stream ended in the middle of a value."""

    def __init__(self, needed: int, offset: int, available: int):
        super().__init__(
            f"Unexpected end of input: needed {needed} byte(s) at offset {offset}, "
            f"{available} available"
        )
        self.needed = needed
        self.offset = offset


class UnknownWireTag(RGSSCodecError):
    """The binary stream contains a type tag this codec does not handle."""

    def __init__(self, tag: int, offset: int):
        super().__init__(f"Unknown wire tag {chr(tag)!r} (0x{tag:02X}) at offset {offset}")
        self.tag = tag
        self.offset = offset


class MarshalVersionError(UnknownWireTag):
    """The stream does not start with the Marshal 4.8 header."""

    def __init__(self, major: int, minor: int):
        RGSSCodecError.__init__(self, f"Unsupported marshal format version {major}.{minor} (expected 4.8)")
        self.tag = major
        self.offset = 0


class MalformedEventCommand(RGSSCodecError):
    """An event command does not carry exactly indent, code and parameters."""


class MalformedCompoundKey(RGSSCodecError):
    """A self-switch key string could not be parsed back into its triple."""


class MalformedDocument(RGSSCodecError):
    """The YAML document uses a tag or shape the codec cannot map back."""


class CyclicReferenceError(RGSSCodecError):
    """An object graph with a reference cycle cannot be written as a document."""
