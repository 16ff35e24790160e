"""Build pydantic instance models from resolved message definitions."""

from __future__ import annotations

import types
from typing import Any, Mapping

from ..types import MessageDefinition, Struct
from ..utils.naming import to_pascal_case
from .base import BaseMessage
from .fields import field_spec


def build_model(
    definition: MessageDefinition, nested_models: Mapping[str, type[BaseMessage]]
) -> type[BaseMessage]:
    """Create the BaseMessage subclass for ``definition``.

    Args:
        definition: Resolved message definition
        nested_models: Already-built models of every struct the message references

    Returns:
        New model class named after the message in PascalCase
    """
    annotations: dict[str, Any] = {}
    namespace: dict[str, Any] = {
        "__module__": __name__,
        "__qualname__": to_pascal_case(definition.name),
        "__doc__": definition.description or f"Instance of the {definition.name} message.",
        "seridl_definition": definition,
        "seridl_packet_id": definition.packet_id,
        "seridl_direction": definition.direction,
        "seridl_max_lengths": {
            f.name: f.max_length for f in definition.fields if f.is_array and f.max_length
        },
    }

    for field in definition.fields:
        nested = None
        if isinstance(field.type, Struct):
            nested = nested_models[field.type.ref_name]
        annotation, info = field_spec(field, nested)
        annotations[field.name] = annotation
        namespace[field.name] = info

    namespace["__annotations__"] = annotations

    return types.new_class(
        to_pascal_case(definition.name),
        (BaseMessage,),
        {},
        lambda ns: ns.update(namespace),
    )
