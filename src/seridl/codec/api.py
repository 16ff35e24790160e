"""Convenience encode/decode for generated message instances.

These wrap MessageCodec in the usual Python style: they return bytes or a new
instance and raise EncodeError/DecodeError instead of returning sentinels.
"""

from __future__ import annotations

from typing import TypeVar

from ..exceptions import DecodeError, EncodeError
from ..models.base import BaseMessage
from .message import MessageCodec

T = TypeVar("T", bound=BaseMessage)


def codec_for(model: type[BaseMessage]) -> MessageCodec:
    """Return the MessageCodec bound to a model class.

    Compiled models carry their codec in ``seridl_codec``; hand-written models
    get one built from ``seridl_definition`` and stored on the class.

    Raises:
        TypeError: If the model carries no message definition
    """
    codec = vars(model).get("seridl_codec")
    if codec is not None:
        return codec
    definition = getattr(model, "seridl_definition", None)
    if definition is None:
        raise TypeError(f"{model.__name__} has no seridl_definition")
    codec = MessageCodec(definition, model)
    model.seridl_codec = codec
    return codec


def encode(message: BaseMessage) -> bytes:
    """Encode a message instance to its payload bytes.

    Args:
        message: Instance of a generated (or hand-written) BaseMessage model

    Returns:
        Payload bytes, without packet id or framing

    Raises:
        EncodeError: If the message cannot be encoded

    Example:
        >>> Ping = compiled.model("ping")
        >>> encode(Ping(value=42))
        b'*'
    """
    if not isinstance(message, BaseMessage):
        raise EncodeError(f"expected a BaseMessage instance, got {type(message).__name__}")
    try:
        codec = codec_for(type(message))
    except TypeError as e:
        raise EncodeError(str(e)) from e
    return codec.encode_bytes(message)


def decode(message_class: type[T], data: bytes) -> T:
    """Decode payload bytes into a new instance of ``message_class``.

    Raises:
        DecodeError: If ``data`` is not a legal encoding of the message
    """
    try:
        codec = codec_for(message_class)
    except TypeError as e:
        raise DecodeError(str(e)) from e
    instance = codec.decode_bytes(data)
    return instance  # type: ignore[return-value]
