"""Base message class for generated seridl instance models.

Every message in a compiled schema gets a BaseMessage subclass whose fields
mirror the message definition. Instances are created zero-valued and are
filled either by the caller (before encode) or by a decoder.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from ..codec.message import MessageCodec
    from ..types import Direction, MessageDefinition


class BaseMessage(BaseModel):
    """Base class for all seridl message instances.

    Subclasses are normally generated by the schema compiler, but can be written
    by hand as long as ``seridl_definition`` is set.

    Example:
        >>> compiled = compile_schema(schema)
        >>> Ping = compiled.model("ping")
        >>> msg = Ping()
        >>> msg.value
        0
        >>> msg.value = 42

    Attributes:
        seridl_definition: Message definition the model was generated from
        seridl_packet_id: Packet identifier, None for struct-only types
        seridl_direction: Direction of the message
        seridl_max_lengths: Capacity of each bounded field, keyed by field name
        seridl_codec: MessageCodec bound to the model by the compiler
    """

    model_config = ConfigDict(
        # Lax coercion for caller convenience; bounds are still enforced
        strict=False,
        validate_assignment=True,
        extra="forbid",
    )

    seridl_definition: ClassVar[MessageDefinition | None] = None
    seridl_packet_id: ClassVar[int | None] = None
    seridl_direction: ClassVar[Direction | None] = None
    seridl_max_lengths: ClassVar[dict[str, int]] = {}
    seridl_codec: ClassVar[MessageCodec | None] = None

    def length_of(self, field_name: str) -> int:
        """Current element count of a bounded field."""
        if field_name not in self.seridl_max_lengths:
            raise KeyError(f"{type(self).__name__}.{field_name} is not a bounded field")
        value: Any = getattr(self, field_name)
        return len(value)
