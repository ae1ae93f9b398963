"""
Binary File Utilities

Common helpers for writing the Marshal primitives shared by every value kind.
"""

import io
import math
from decimal import Decimal
from typing import BinaryIO, Union


def write_long(buffer: Union[BinaryIO, io.BytesIO], value: int):
    """
    Write a Marshal packed long.

    Packed long format:
    - 0 is a single zero byte
    - 1..122 is one byte holding value + 5
    - -123..-1 is one byte holding value - 5
    - anything else is a signed byte count (1-4) followed by the
      little-endian bytes of the value

    Args:
        buffer: Output buffer (file or BytesIO)
        value: Integer within the signed 32-bit range
    """
    if value == 0:
        buffer.write(b'\x00')
    elif 0 < value < 123:
        buffer.write(bytes([value + 5]))
    elif -124 < value < 0:
        buffer.write(bytes([(value - 5) & 0xFF]))
    else:
        payload = bytearray()
        remaining = value
        for _ in range(4):
            payload.append(remaining & 0xFF)
            remaining >>= 8
            if remaining == 0 or remaining == -1:
                break
        count = len(payload)
        buffer.write(bytes([count if value > 0 else (256 - count)]))
        buffer.write(bytes(payload))


def write_bytes(buffer: Union[BinaryIO, io.BytesIO], data: bytes):
    """
    Write a length-prefixed byte string.

    Args:
        buffer: Output buffer
        data: Raw bytes, prefixed with their packed length
    """
    write_long(buffer, len(data))
    buffer.write(data)


def float_mantissa(value: float) -> bytes:
    """
    Mantissa suffix Ruby 1.8 appends to a float's text.

    The low 16 bits of the 53-bit significand, as a NUL followed by their
    big-endian bytes with trailing zero bytes removed. Empty when those bits
    are all zero.
    """
    fraction, _ = math.frexp(abs(value))
    low = int(fraction * (1 << 53)) & 0xFFFF
    if not low:
        return b''
    return b'\x00' + bytes([low >> 8, low & 0xFF]).rstrip(b'\x00')


def format_float(value: float, legacy: bool = False) -> bytes:
    """
    Format a float the way Marshal stores it.

    Uses the shortest digit string that round-trips, laid out as plain
    decimal when the exponent is small and as d.ddde<exp> otherwise.

    Args:
        value: Float to format
        legacy: Ruby 1.8 layout instead: "%.17g" followed by float_mantissa()
    """
    if math.isnan(value):
        return b'nan'
    if math.isinf(value):
        return b'inf' if value > 0 else b'-inf'
    if value == 0.0:
        return b'-0' if math.copysign(1.0, value) < 0 else b'0'
    if legacy:
        return ('%.17g' % value).encode('ascii') + float_mantissa(value)

    sign, digit_tuple, exponent = Decimal(repr(value)).as_tuple()
    digits = ''.join(str(d) for d in digit_tuple).rstrip('0')
    # Decimal exponent counted from the front of the digit string
    decpt = len(digit_tuple) + exponent
    prefix = '-' if sign else ''

    if decpt < -3 or decpt > len(digits):
        mantissa = digits[0] + ('.' + digits[1:] if len(digits) > 1 else '')
        text = f"{prefix}{mantissa}e{decpt - 1}"
    elif decpt > 0:
        fraction = digits[decpt:]
        text = prefix + digits[:decpt] + ('.' + fraction if fraction else '')
    else:
        text = f"{prefix}0.{'0' * -decpt}{digits}"
    return text.encode('ascii')
