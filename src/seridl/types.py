"""Type system for seridl schemas.

This module defines the closed set of field types, endianness modes and the
immutable in-memory schema model (FieldDefinition, MessageDefinition, Schema)
that the compiler validates and the codecs consume.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from .exceptions import SchemaError, SchemaIssue


class Endian(str, enum.Enum):
    """Byte order of a multi-byte field, fixed at schema-authoring time."""

    LITTLE = "little"
    BIG = "big"

    @classmethod
    def parse(cls, value: str) -> Endian:
        """Parse a schema endianness string (``little``/``le``, ``big``/``be``)."""
        text = str(value).strip().lower()
        if text in ("little", "le"):
            return cls.LITTLE
        if text in ("big", "be"):
            return cls.BIG
        raise ValueError(f"unsupported endian value '{value}'")

    @property
    def suffix(self) -> str:
        return "le" if self is Endian.LITTLE else "be"

    @property
    def struct_prefix(self) -> str:
        return "<" if self is Endian.LITTLE else ">"


class Direction(str, enum.Enum):
    """Which participant originates a message.

    PUB messages are published by the originator (server) to receivers (clients);
    SUB messages are sent by receivers back to the originator.
    """

    PUB = "pub"
    SUB = "sub"

    @classmethod
    def parse(cls, value: str) -> Direction:
        text = str(value).strip().lower()
        if text in ("pub", "publish"):
            return cls.PUB
        if text in ("sub", "subscribe"):
            return cls.SUB
        raise ValueError(f"unsupported direction '{value}', expected 'pub' or 'sub'")


class Primitive(enum.Enum):
    """Primitive wire types."""

    U8 = "uint8"
    U16 = "uint16"
    U32 = "uint32"
    U64 = "uint64"
    I8 = "int8"
    I16 = "int16"
    I32 = "int32"
    I64 = "int64"
    F32 = "float32"
    F64 = "float64"
    BOOL = "bool"
    CHAR = "char"

    @classmethod
    def parse(cls, value: str) -> Primitive:
        """Parse a schema type name, accepting short aliases (u8, i16, f32, double)."""
        text = str(value).strip().lower()
        primitive = _ALIASES.get(text)
        if primitive is None:
            raise ValueError(f"unsupported primitive type '{value}'")
        return primitive

    @property
    def width(self) -> int:
        """Encoded width in bytes."""
        return _WIDTHS[self]

    @property
    def is_float(self) -> bool:
        return self in (Primitive.F32, Primitive.F64)

    @property
    def is_integer(self) -> bool:
        return self in _INT_RANGES

    @property
    def is_signed(self) -> bool:
        return self in (Primitive.I8, Primitive.I16, Primitive.I32, Primitive.I64) or self.is_float

    @property
    def is_numeric(self) -> bool:
        return self.is_integer or self.is_float

    @property
    def int_range(self) -> tuple[int, int]:
        """Inclusive value range of an integer primitive."""
        try:
            return _INT_RANGES[self]
        except KeyError:
            raise ValueError(f"{self.value} is not an integer type") from None

    @property
    def c_type(self) -> str:
        return _C_TYPES[self]


_WIDTHS = {
    Primitive.U8: 1,
    Primitive.I8: 1,
    Primitive.BOOL: 1,
    Primitive.CHAR: 1,
    Primitive.U16: 2,
    Primitive.I16: 2,
    Primitive.U32: 4,
    Primitive.I32: 4,
    Primitive.F32: 4,
    Primitive.U64: 8,
    Primitive.I64: 8,
    Primitive.F64: 8,
}

_INT_RANGES = {
    Primitive.U8: (0, 0xFF),
    Primitive.U16: (0, 0xFFFF),
    Primitive.U32: (0, 0xFFFF_FFFF),
    Primitive.U64: (0, 0xFFFF_FFFF_FFFF_FFFF),
    Primitive.I8: (-(1 << 7), (1 << 7) - 1),
    Primitive.I16: (-(1 << 15), (1 << 15) - 1),
    Primitive.I32: (-(1 << 31), (1 << 31) - 1),
    Primitive.I64: (-(1 << 63), (1 << 63) - 1),
}

_C_TYPES = {
    Primitive.U8: "uint8_t",
    Primitive.U16: "uint16_t",
    Primitive.U32: "uint32_t",
    Primitive.U64: "uint64_t",
    Primitive.I8: "int8_t",
    Primitive.I16: "int16_t",
    Primitive.I32: "int32_t",
    Primitive.I64: "int64_t",
    Primitive.F32: "float",
    Primitive.F64: "double",
    Primitive.BOOL: "bool",
    Primitive.CHAR: "char",
}

_ALIASES = {
    "uint8": Primitive.U8,
    "u8": Primitive.U8,
    "uint16": Primitive.U16,
    "u16": Primitive.U16,
    "uint32": Primitive.U32,
    "u32": Primitive.U32,
    "uint64": Primitive.U64,
    "u64": Primitive.U64,
    "int8": Primitive.I8,
    "i8": Primitive.I8,
    "int16": Primitive.I16,
    "i16": Primitive.I16,
    "int32": Primitive.I32,
    "i32": Primitive.I32,
    "int64": Primitive.I64,
    "i64": Primitive.I64,
    "float32": Primitive.F32,
    "f32": Primitive.F32,
    "float": Primitive.F32,
    "float64": Primitive.F64,
    "f64": Primitive.F64,
    "double": Primitive.F64,
    "bool": Primitive.BOOL,
    "boolean": Primitive.BOOL,
    "char": Primitive.CHAR,
}


@dataclass(frozen=True)
class Scalar:
    """A single numeric or boolean value."""

    primitive: Primitive


@dataclass(frozen=True)
class CharArray:
    """A bounded run of one-byte characters."""


@dataclass(frozen=True)
class ScalarArray:
    """A bounded run of numeric elements sharing one endianness."""

    inner: Primitive


@dataclass(frozen=True)
class Struct:
    """A nested struct.

    ``ref`` is the referenced message name until the compiler resolves it to the
    target MessageDefinition.
    """

    ref: Union[str, "MessageDefinition"]

    @property
    def ref_name(self) -> str:
        return self.ref if isinstance(self.ref, str) else self.ref.name

    @property
    def resolved(self) -> bool:
        return isinstance(self.ref, MessageDefinition)

    def definition(self) -> MessageDefinition:
        """Return the resolved target definition."""
        if not isinstance(self.ref, MessageDefinition):
            raise SchemaError([SchemaIssue(self.ref, "struct reference has not been resolved")])
        return self.ref


FieldType = Union[Scalar, CharArray, ScalarArray, Struct]


@dataclass(frozen=True)
class FieldDefinition:
    """One field of a message, in encoding order.

    Attributes:
        name: Field identifier
        type: Field type variant
        endian: Byte order of the field (or of each array element)
        max_length: Capacity of a bounded field; ignored for other types
        description: Optional documentation string
        sector_bytes: Transfer sector size of a bounded field in bytes, emitted as a
            constant only
    """

    name: str
    type: FieldType
    endian: Endian = Endian.LITTLE
    max_length: Optional[int] = None
    description: Optional[str] = None
    sector_bytes: Optional[int] = None

    @property
    def is_array(self) -> bool:
        return isinstance(self.type, (CharArray, ScalarArray))

    @property
    def is_struct(self) -> bool:
        return isinstance(self.type, Struct)

    @property
    def element(self) -> Optional[Primitive]:
        """Primitive of the field (or of each element); None for structs."""
        if isinstance(self.type, Scalar):
            return self.type.primitive
        if isinstance(self.type, CharArray):
            return Primitive.CHAR
        if isinstance(self.type, ScalarArray):
            return self.type.inner
        return None

    @property
    def element_width(self) -> int:
        element = self.element
        if element is None:
            raise ValueError(f"field {self.name} is a struct and has no element width")
        return element.width

    @property
    def contains_variable(self) -> bool:
        """Whether this field, or any field nested below it, is variable-length."""
        if self.is_array:
            return True
        if isinstance(self.type, Struct):
            return self.type.definition().has_variable_length
        return False

    @property
    def min_size(self) -> int:
        if self.is_array:
            return 0
        if isinstance(self.type, Struct):
            return self.type.definition().min_size
        return self.element_width

    @property
    def max_size(self) -> int:
        if self.is_array:
            return (self.max_length or 0) * self.element_width
        if isinstance(self.type, Struct):
            return self.type.definition().max_size
        return self.element_width


@dataclass(frozen=True)
class MessageDefinition:
    """A message: ordered fields plus its packet identifier and direction.

    ``packet_id`` is None only for struct-only definitions synthesized from inline
    nested structs; those are never dispatched on their own.
    """

    name: str
    packet_id: Optional[int]
    direction: Direction = Direction.PUB
    fields: tuple[FieldDefinition, ...] = ()
    description: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.fields, tuple):
            object.__setattr__(self, "fields", tuple(self.fields))

    @property
    def is_packet(self) -> bool:
        return self.packet_id is not None

    @property
    def min_size(self) -> int:
        """Encoded size with every bounded field empty."""
        return sum(f.min_size for f in self.fields)

    @property
    def max_size(self) -> int:
        """Encoded size with every bounded field full."""
        return sum(f.max_size for f in self.fields)

    @property
    def has_variable_length(self) -> bool:
        return any(f.contains_variable for f in self.fields)

    def variable_fields(self, prefix: str = "") -> list[tuple[str, FieldDefinition]]:
        """List (dotted path, field) for every variable-length field, through nested structs."""
        found: list[tuple[str, FieldDefinition]] = []
        for f in self.fields:
            path = f"{prefix}{f.name}"
            if f.is_array:
                found.append((path, f))
            elif isinstance(f.type, Struct) and f.type.resolved:
                found.extend(f.type.definition().variable_fields(prefix=f"{path}."))
        return found

    def iter_struct_refs(self) -> Iterator[tuple[FieldDefinition, Struct]]:
        for f in self.fields:
            if isinstance(f.type, Struct):
                yield f, f.type

    def field(self, name: str) -> FieldDefinition:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(name)


@dataclass(frozen=True)
class Schema:
    """A complete protocol: ordered message definitions plus metadata."""

    messages: tuple[MessageDefinition, ...] = field(default_factory=tuple)
    version: Optional[str] = None
    max_address: Optional[int] = None

    def __post_init__(self) -> None:
        if not isinstance(self.messages, tuple):
            object.__setattr__(self, "messages", tuple(self.messages))
