"""Field helpers mapping schema field types to pydantic fields.

Each helper returns a Pydantic FieldInfo with a zero-valued default and the
bounds implied by the wire type, so a freshly created instance always encodes.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated, Any, Optional, cast

from pydantic import AfterValidator, Field
from pydantic.fields import FieldInfo

from ..codec.primitives import bits_to_float, float_to_bits
from ..exceptions import EncodeError
from ..types import CharArray, FieldDefinition, Primitive, Scalar, ScalarArray, Struct

if TYPE_CHECKING:
    from .base import BaseMessage

# One byte per character on the wire
LATIN1_PATTERN = r"^[\x00-\xFF]*$"


def round_to_float32(value: float) -> float:
    """Round ``value`` to the nearest binary32 value, keeping NaN payloads."""
    try:
        return bits_to_float(float_to_bits(value, 4), 4)
    except EncodeError as e:
        raise ValueError(f"{value!r} is out of range for float32") from e


Float32 = Annotated[float, AfterValidator(round_to_float32)]


def WireInt(primitive: Primitive, **kwargs: Any) -> FieldInfo:
    """Create an integer field bounded to the range of ``primitive``.

    Example:
        >>> class Message(BaseMessage):
        ...     counter: int = WireInt(Primitive.U16)
    """
    low, high = primitive.int_range
    return cast(FieldInfo, Field(default=0, ge=low, le=high, **kwargs))


def WireFloat(**kwargs: Any) -> FieldInfo:
    """Create a float field; NaN and infinities are allowed."""
    return cast(FieldInfo, Field(default=0.0, allow_inf_nan=True, **kwargs))


def WireBool(**kwargs: Any) -> FieldInfo:
    return cast(FieldInfo, Field(default=False, **kwargs))


def BoundedStr(*, max_length: int, **kwargs: Any) -> FieldInfo:
    """Create a character array field holding at most ``max_length`` characters."""
    return cast(
        FieldInfo, Field(default="", max_length=max_length, pattern=LATIN1_PATTERN, **kwargs)
    )


def BoundedList(*, max_length: int, **kwargs: Any) -> FieldInfo:
    """Create a scalar array field holding at most ``max_length`` elements."""
    return cast(FieldInfo, Field(default_factory=list, max_length=max_length, **kwargs))


def NestedStruct(model: type[BaseMessage], **kwargs: Any) -> FieldInfo:
    """Create a nested struct field defaulting to a zero-valued ``model`` instance."""
    return cast(FieldInfo, Field(default_factory=model, **kwargs))


def element_annotation(primitive: Primitive) -> Any:
    """Python annotation for one element of ``primitive``."""
    if primitive is Primitive.BOOL:
        return bool
    if primitive is Primitive.F32:
        return Float32
    if primitive.is_float:
        return float
    if primitive is Primitive.CHAR:
        return Annotated[str, Field(min_length=1, max_length=1, pattern=LATIN1_PATTERN)]
    low, high = primitive.int_range
    return Annotated[int, Field(ge=low, le=high)]


def field_spec(
    field: FieldDefinition, nested: Optional[type[BaseMessage]] = None
) -> tuple[Any, FieldInfo]:
    """Return the (annotation, FieldInfo) pair for a schema field.

    Args:
        field: Schema field definition
        nested: Model class of the referenced struct, for Struct fields

    Returns:
        Annotation and FieldInfo suitable for building a pydantic model
    """
    description = field.description
    field_type = field.type

    if isinstance(field_type, Scalar):
        primitive = field_type.primitive
        if primitive is Primitive.BOOL:
            return bool, WireBool(description=description)
        if primitive.is_float:
            return element_annotation(primitive), WireFloat(description=description)
        return int, WireInt(primitive, description=description)

    if isinstance(field_type, CharArray):
        return str, BoundedStr(max_length=field.max_length or 0, description=description)

    if isinstance(field_type, ScalarArray):
        annotation = list[element_annotation(field_type.inner)]  # type: ignore[misc]
        return annotation, BoundedList(max_length=field.max_length or 0, description=description)

    if isinstance(field_type, Struct):
        if nested is None:
            raise ValueError(f"field {field.name}: struct model for {field_type.ref_name} missing")
        return nested, NestedStruct(nested, description=description)

    raise TypeError(f"unsupported field type {field_type!r}")
