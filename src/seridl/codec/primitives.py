"""Byte-level packing and unpacking of primitive wire types.

Every multi-byte integer is written through an explicit little- or big-endian
unsigned codec; signed integers use two's complement of the same width, and
floats are reinterpreted as the unsigned integer holding their IEEE-754 bit
pattern. All functions operate on a caller-supplied buffer at an offset.
"""

from __future__ import annotations

import math
import struct
from typing import Any, Union

from ..exceptions import DecodeError, EncodeError
from ..types import Endian, Primitive

Buffer = Union[bytes, bytearray, memoryview]
WritableBuffer = Union[bytearray, memoryview]

_UINT_CODES = {1: "B", 2: "H", 4: "I", 8: "Q"}
_FLOAT_CODES = {4: "f", 8: "d"}


def _uint_code(width: int) -> str:
    try:
        return _UINT_CODES[width]
    except KeyError:
        raise ValueError(f"unsupported integer width {width}, expected 1, 2, 4 or 8") from None


def write_uint(
    value: int, width: int, endian: Endian, buffer: WritableBuffer, offset: int = 0
) -> int:
    """Write an unsigned integer of ``width`` bytes.

    Args:
        value: Unsigned value (0 <= value < 2**(8*width))
        width: Width in bytes (1, 2, 4 or 8)
        endian: Byte order
        buffer: Writable destination
        offset: Position of the first byte

    Returns:
        Offset just past the written bytes

    Raises:
        EncodeError: If the value does not fit or the destination is too short

    Example:
        >>> buf = bytearray(4)
        >>> write_uint(0x01020304, 4, Endian.LITTLE, buf)
        4
        >>> bytes(buf)
        b'\\x04\\x03\\x02\\x01'
    """
    code = _uint_code(width)
    max_value = (1 << (8 * width)) - 1
    if value < 0 or value > max_value:
        raise EncodeError(f"value {value} does not fit in {width} unsigned byte(s)")
    try:
        struct.pack_into(endian.struct_prefix + code, buffer, offset, value)
    except (struct.error, TypeError) as e:
        raise EncodeError(f"cannot write {width} byte(s) at offset {offset}: {e}") from e
    return offset + width


def read_uint(width: int, endian: Endian, buffer: Buffer, offset: int = 0) -> int:
    """Read an unsigned integer of ``width`` bytes; exact inverse of write_uint."""
    code = _uint_code(width)
    try:
        (value,) = struct.unpack_from(endian.struct_prefix + code, buffer, offset)
    except struct.error as e:
        raise DecodeError(f"cannot read {width} byte(s) at offset {offset}: {e}") from e
    return int(value)


def write_int(
    value: int, width: int, endian: Endian, buffer: WritableBuffer, offset: int = 0
) -> int:
    """Write a two's complement signed integer through the unsigned codec."""
    bits = 8 * width
    low = -(1 << (bits - 1))
    high = (1 << (bits - 1)) - 1
    if value < low or value > high:
        raise EncodeError(f"value {value} does not fit in {width} signed byte(s)")
    return write_uint(value & ((1 << bits) - 1), width, endian, buffer, offset)


def read_int(width: int, endian: Endian, buffer: Buffer, offset: int = 0) -> int:
    raw = read_uint(width, endian, buffer, offset)
    sign_bit = 1 << (8 * width - 1)
    return raw - (sign_bit << 1) if raw & sign_bit else raw


_F32_EXPONENT = 0x7F800000
_F32_MANTISSA = 0x007FFFFF
_F32_QUIET = 0x00400000
_F64_EXPONENT = 0x7FF << 52
_F64_MANTISSA = (1 << 52) - 1
# binary64 mantissa bits dropped when narrowing to binary32
_NARROW_SHIFT = 29


def _f32_nan_bits(value: float) -> int:
    # Narrow the payload by hand; struct's "f" code quiets signaling NaNs.
    wide = int(struct.unpack("<Q", struct.pack("<d", value))[0])
    mantissa = (wide & _F64_MANTISSA) >> _NARROW_SHIFT
    if mantissa == 0:
        mantissa = _F32_QUIET
    return ((wide >> 63) << 31) | _F32_EXPONENT | mantissa


def _f32_nan_value(bits: int) -> float:
    wide = ((bits >> 31) << 63) | _F64_EXPONENT | ((bits & _F32_MANTISSA) << _NARROW_SHIFT)
    return float(struct.unpack("<d", struct.pack("<Q", wide))[0])


def float_to_bits(value: float, width: int) -> int:
    """Return the IEEE-754 bit pattern of ``value`` as an unsigned integer.

    NaN payloads survive narrowing to binary32: the sign and the top 23
    mantissa bits are kept, including a clear quiet bit.

    Args:
        value: Float value
        width: 4 for binary32, 8 for binary64

    Raises:
        EncodeError: If the value is out of range for binary32
    """
    code = _FLOAT_CODES.get(width)
    if code is None:
        raise ValueError(f"unsupported float width {width}, expected 4 or 8")
    if width == 4 and isinstance(value, float) and math.isnan(value):
        return _f32_nan_bits(value)
    try:
        packed = struct.pack("<" + code, value)
    except (OverflowError, struct.error) as e:
        raise EncodeError(f"value {value!r} is not representable as float{8 * width}: {e}") from e
    return int(struct.unpack("<" + _UINT_CODES[width], packed)[0])


def bits_to_float(bits: int, width: int) -> float:
    """Inverse of float_to_bits."""
    code = _FLOAT_CODES.get(width)
    if code is None:
        raise ValueError(f"unsupported float width {width}, expected 4 or 8")
    if width == 4 and (bits & _F32_EXPONENT) == _F32_EXPONENT and bits & _F32_MANTISSA:
        return _f32_nan_value(bits)
    packed = struct.pack("<" + _UINT_CODES[width], bits)
    return float(struct.unpack("<" + code, packed)[0])


def write_primitive(
    primitive: Primitive,
    endian: Endian,
    value: Any,
    buffer: WritableBuffer,
    offset: int = 0,
) -> int:
    """Write one primitive value and return the offset past it.

    One-byte types (U8, I8, BOOL, CHAR) ignore ``endian``. BOOL is always
    written as 0x00 or 0x01.
    """
    width = primitive.width

    if primitive is Primitive.BOOL:
        return write_uint(1 if value else 0, 1, endian, buffer, offset)

    if primitive is Primitive.CHAR:
        if isinstance(value, str):
            if len(value) != 1:
                raise EncodeError(f"expected a single character, got {value!r}")
            value = ord(value)
        if not isinstance(value, int) or not 0 <= value <= 0xFF:
            raise EncodeError(f"character {value!r} does not fit in one byte")
        return write_uint(value, 1, endian, buffer, offset)

    if primitive.is_float:
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            raise EncodeError(f"expected float, got {type(value).__name__}")
        return write_uint(float_to_bits(value, width), width, endian, buffer, offset)

    if not isinstance(value, int) or isinstance(value, bool):
        raise EncodeError(f"expected int, got {type(value).__name__}")
    if primitive.is_signed:
        return write_int(value, width, endian, buffer, offset)
    return write_uint(value, width, endian, buffer, offset)


def read_primitive(
    primitive: Primitive, endian: Endian, buffer: Buffer, offset: int = 0
) -> Any:
    """Read one primitive value.

    Any nonzero byte decodes as True for BOOL.
    """
    width = primitive.width

    if primitive is Primitive.BOOL:
        return read_uint(1, endian, buffer, offset) != 0

    if primitive is Primitive.CHAR:
        return chr(read_uint(1, endian, buffer, offset))

    if primitive.is_float:
        return bits_to_float(read_uint(width, endian, buffer, offset), width)

    if primitive.is_signed:
        return read_int(width, endian, buffer, offset)
    return read_uint(width, endian, buffer, offset)
