"""Message size calculation utilities.

This module provides functions to calculate the encoded size of messages
without actually encoding them.
"""

from __future__ import annotations

from ..codec.fields import field_size, struct_size
from ..exceptions import SchemaError
from ..models.base import BaseMessage
from ..types import MessageDefinition


def _definition_of(message_or_class: BaseMessage | type[BaseMessage]) -> MessageDefinition:
    message_class = (
        type(message_or_class) if isinstance(message_or_class, BaseMessage) else message_or_class
    )
    definition = getattr(message_class, "seridl_definition", None)
    if definition is None:
        raise SchemaError(f"{message_class.__name__} is not a compiled seridl message")
    return definition


def encoded_size(message: BaseMessage) -> int:
    """Calculate the encoded size of a message instance in bytes.

    The size depends on the current length of the bounded field, never on
    field values.

    Args:
        message: Message instance

    Returns:
        Size in bytes

    Example:
        >>> encoded_size(FirmwareVersion(data="1.2.3"))
        5
    """
    return struct_size(_definition_of(message), message)


def min_encoded_size(message_or_class: BaseMessage | type[BaseMessage]) -> int:
    """Smallest encoded size (every bounded field empty)."""
    return _definition_of(message_or_class).min_size


def max_encoded_size(message_or_class: BaseMessage | type[BaseMessage]) -> int:
    """Largest encoded size (every bounded field full).

    Example:
        >>> max_encoded_size(FirmwareVersion)
        32
    """
    return _definition_of(message_or_class).max_size


def field_sizes(message: BaseMessage) -> dict[str, int]:
    """Get the encoded size in bytes of each field of a message instance.

    Example:
        >>> field_sizes(Temperature(value=21.5))
        {'value': 4}
    """
    definition = _definition_of(message)
    return {f.name: field_size(f, getattr(message, f.name)) for f in definition.fields}
