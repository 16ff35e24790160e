"""Per-field encoding and decoding.

Fields are written back to back with no padding and no length prefixes. The
length of a bounded field is carried by the instance on encode and derived
from the buffer length on decode; a message has at most one such field, so
the bytes left after every fixed-size part belong to it.
"""

from __future__ import annotations

from typing import Any

from ..exceptions import DecodeError, EncodeError
from ..types import CharArray, FieldDefinition, MessageDefinition, Scalar, ScalarArray, Struct
from .primitives import Buffer, WritableBuffer, read_primitive, write_primitive


def field_size(field: FieldDefinition, value: Any) -> int:
    """Encoded size of ``value`` for ``field``.

    Depends only on the element count of bounded fields, never on values.
    """
    if field.is_array:
        return len(value) * field.element_width
    if isinstance(field.type, Struct):
        return struct_size(field.type.definition(), value)
    return field.element_width


def struct_size(definition: MessageDefinition, instance: Any) -> int:
    """Encoded size of a whole message or nested struct instance."""
    return sum(field_size(f, getattr(instance, f.name)) for f in definition.fields)


def encode_field(field: FieldDefinition, value: Any, buffer: WritableBuffer, offset: int) -> int:
    """Encode a single field value at ``offset``.

    Args:
        field: Field definition
        value: Field value taken from the instance
        buffer: Writable destination
        offset: Position of the field's first byte

    Returns:
        Offset just past the field

    Raises:
        EncodeError: If the value is invalid for the field
    """
    field_type = field.type

    if isinstance(field_type, Scalar):
        return write_primitive(field_type.primitive, field.endian, value, buffer, offset)

    if isinstance(field_type, CharArray):
        if not isinstance(value, str):
            raise EncodeError(f"expected str, got {type(value).__name__}")
        _check_length(field, len(value))
        try:
            raw = value.encode("latin-1")
        except UnicodeEncodeError as e:
            raise EncodeError(f"characters must fit in one byte: {e}") from e
        end = offset + len(raw)
        if end > len(buffer):
            raise EncodeError(f"{len(raw)} byte(s) do not fit at offset {offset}")
        buffer[offset:end] = raw
        return end

    if isinstance(field_type, ScalarArray):
        if not isinstance(value, (list, tuple)):
            raise EncodeError(f"expected list, got {type(value).__name__}")
        _check_length(field, len(value))
        for element in value:
            offset = write_primitive(field_type.inner, field.endian, element, buffer, offset)
        return offset

    if isinstance(field_type, Struct):
        if value is None:
            raise EncodeError("nested struct is missing")
        return encode_fields(field_type.definition(), value, buffer, offset)

    raise EncodeError(f"unsupported field type {field_type!r}")


def encode_fields(
    definition: MessageDefinition, instance: Any, buffer: WritableBuffer, offset: int = 0
) -> int:
    """Encode every field of ``definition`` in declaration order."""
    for field in definition.fields:
        try:
            value = getattr(instance, field.name)
        except AttributeError as e:
            raise EncodeError(f"field {field.name} is missing from the instance") from e
        try:
            offset = encode_field(field, value, buffer, offset)
        except EncodeError as e:
            raise EncodeError(f"field {field.name}: {e}") from e
    return offset


def decode_field(
    field: FieldDefinition, buffer: Buffer, offset: int, variable_bytes: int
) -> tuple[Any, int]:
    """Decode a single field at ``offset``.

    Args:
        field: Field definition
        buffer: Source bytes
        offset: Position of the field's first byte
        variable_bytes: Bytes owned by the message's bounded field; only
            consumed by that field (or the struct containing it)

    Returns:
        Tuple of (decoded value, offset just past the field). Nested structs
        decode to a dict of their field values.

    Raises:
        DecodeError: If the bytes are not a legal encoding for the field
    """
    field_type = field.type

    if isinstance(field_type, Scalar):
        value = read_primitive(field_type.primitive, field.endian, buffer, offset)
        return value, offset + field.element_width

    if isinstance(field_type, (CharArray, ScalarArray)):
        count = _element_count(field, variable_bytes)
        end = offset + variable_bytes
        if end > len(buffer):
            raise DecodeError(f"needs {variable_bytes} byte(s) at offset {offset}")
        if isinstance(field_type, CharArray):
            return bytes(buffer[offset:end]).decode("latin-1"), end
        width = field.element_width
        elements = [
            read_primitive(field_type.inner, field.endian, buffer, offset + i * width)
            for i in range(count)
        ]
        return elements, end

    if isinstance(field_type, Struct):
        nested_bytes = variable_bytes if field.contains_variable else 0
        return decode_fields(field_type.definition(), buffer, offset, nested_bytes)

    raise DecodeError(f"unsupported field type {field_type!r}")


def decode_fields(
    definition: MessageDefinition, buffer: Buffer, offset: int, variable_bytes: int
) -> tuple[dict[str, Any], int]:
    """Decode every field of ``definition`` into a dict of values."""
    values: dict[str, Any] = {}
    for field in definition.fields:
        field_bytes = variable_bytes if field.contains_variable else 0
        try:
            values[field.name], offset = decode_field(field, buffer, offset, field_bytes)
        except DecodeError as e:
            raise DecodeError(f"field {field.name}: {e}") from e
    return values, offset


def _check_length(field: FieldDefinition, length: int) -> None:
    max_length = field.max_length or 0
    if length > max_length:
        raise EncodeError(f"length {length} exceeds max_length {max_length}")


def _element_count(field: FieldDefinition, variable_bytes: int) -> int:
    width = field.element_width
    if variable_bytes % width != 0:
        raise DecodeError(f"{variable_bytes} byte(s) is not a multiple of element width {width}")
    count = variable_bytes // width
    max_length = field.max_length or 0
    if count > max_length:
        raise DecodeError(f"{count} element(s) exceeds max_length {max_length}")
    return count
