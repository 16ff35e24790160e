"""Message-level encode/decode contract.

A MessageCodec serializes one message instance as its fields in declared
order, with no padding and no embedded packet id. ``encode`` and ``decode``
never raise: failures are reported as ``0`` and ``False`` so they can be used
like the generated firmware functions. ``encode_bytes`` and ``decode_bytes``
are the raising variants used by the convenience API.
"""

from __future__ import annotations

import logging
import operator
from typing import Any, Optional

from pydantic import ValidationError

from ..exceptions import DecodeError, EncodeError, SchemaError, SchemaIssue
from ..models.base import BaseMessage
from ..types import Direction, FieldDefinition, MessageDefinition
from .fields import decode_fields, encode_fields, struct_size

logger = logging.getLogger(__name__)


class MessageCodec:
    """Encoder/decoder for one message definition.

    Example:
        >>> codec = compiled.codecs["ping"]
        >>> msg = codec.new()
        >>> msg.value = 42
        >>> buf = bytearray(8)
        >>> codec.encode(msg, buf)
        1
        >>> out = codec.new()
        >>> codec.decode(out, buf, 1)
        True

    Attributes:
        definition: Resolved message definition
        model: Instance model class
        min_size: Encoded size with every bounded field empty
        max_size: Encoded size with every bounded field full
        max_lengths: Capacity of each bounded field, keyed by dotted field path
    """

    def __init__(self, definition: MessageDefinition, model: type[BaseMessage]) -> None:
        variable = definition.variable_fields()
        if len(variable) > 1:
            paths = ", ".join(path for path, _ in variable)
            raise SchemaError(
                [SchemaIssue(definition.name, f"more than one variable-length field ({paths})")]
            )
        self.definition = definition
        self.model = model
        self.min_size = definition.min_size
        self.max_size = definition.max_size
        self.max_lengths: dict[str, int] = {
            path: field.max_length or 0 for path, field in variable
        }
        self._variable: Optional[FieldDefinition] = variable[0][1] if variable else None

    def __repr__(self) -> str:
        return f"MessageCodec({self.definition.name!r}, packet_id={self.packet_id})"

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def packet_id(self) -> Optional[int]:
        return self.definition.packet_id

    @property
    def direction(self) -> Direction:
        return self.definition.direction

    @property
    def is_fixed_size(self) -> bool:
        return self._variable is None

    def new(self, **values: Any) -> BaseMessage:
        """Create a zero-valued instance, optionally overriding some fields."""
        return self.model(**values)

    def required_size(self, instance: BaseMessage) -> int:
        """Bytes ``encode`` needs for the instance's current bounded-field lengths."""
        return struct_size(self.definition, instance)

    def is_legal_length(self, length: int) -> bool:
        """Whether ``length`` bytes can be a complete encoding of this message."""
        if length < self.min_size or length > self.max_size:
            return False
        variable_bytes = length - self.min_size
        if self._variable is None:
            return variable_bytes == 0
        return variable_bytes % self._variable.element_width == 0

    def encode(self, instance: Any, buffer: Any, capacity: Optional[int] = None) -> int:
        """Encode ``instance`` into the start of ``buffer``.

        Args:
            instance: Instance of this codec's model
            buffer: Writable buffer (bytearray, memoryview, ...)
            capacity: Usable bytes of ``buffer``; defaults to its full length

        Returns:
            Number of bytes written, or 0 on failure. On failure nothing is
            written; on success only ``buffer[0:n]`` is touched.
        """
        if instance is None or buffer is None:
            logger.debug("%s: encode called with a null instance or buffer", self.name)
            return 0
        view = _byte_view(buffer)
        if view is None or view.readonly:
            logger.debug("%s: encode destination is not a writable buffer", self.name)
            return 0
        if capacity is None:
            limit = view.nbytes
        else:
            capacity = _as_length(capacity)
            if capacity is None:
                logger.debug("%s: encode capacity is not an integer", self.name)
                return 0
            limit = max(0, min(capacity, view.nbytes))
        try:
            encoded = self._encode(instance, limit)
        except EncodeError as e:
            logger.debug("%s: encode failed: %s", self.name, e)
            return 0
        view[: len(encoded)] = encoded
        return len(encoded)

    def decode(self, instance: Any, buffer: Any, length: Optional[int] = None) -> bool:
        """Decode ``buffer`` into ``instance``.

        Args:
            instance: Instance of this codec's model, populated in place
            buffer: Source bytes
            length: Number of bytes to decode; defaults to the whole buffer

        Returns:
            True on success. On False the instance contents are undefined and
            must not be used.
        """
        if instance is None or buffer is None:
            logger.debug("%s: decode called with a null instance or buffer", self.name)
            return False
        view = _byte_view(buffer)
        if view is None:
            logger.debug("%s: decode source is not a buffer", self.name)
            return False
        length = view.nbytes if length is None else _as_length(length)
        if length is None or length < 0 or length > view.nbytes:
            logger.debug("%s: decode length %s is out of range", self.name, length)
            return False
        try:
            self._decode_into(instance, view[:length])
        except DecodeError as e:
            logger.debug("%s: decode failed: %s", self.name, e)
            return False
        return True

    def encode_bytes(self, instance: BaseMessage) -> bytes:
        """Encode ``instance`` and return the payload.

        Raises:
            EncodeError: If the instance cannot be encoded
        """
        return self._encode(instance, None)

    def decode_bytes(self, data: bytes) -> BaseMessage:
        """Decode ``data`` into a new instance.

        Raises:
            DecodeError: If ``data`` is not a legal encoding of this message
        """
        instance = self.new()
        view = _byte_view(data)
        if view is None:
            raise DecodeError(f"{self.name}: expected a bytes-like object")
        self._decode_into(instance, view)
        return instance

    def _encode(self, instance: Any, limit: Optional[int]) -> bytes:
        if not isinstance(instance, self.model):
            raise EncodeError(
                f"{self.name}: expected {self.model.__name__}, got {type(instance).__name__}"
            )
        try:
            required = self.required_size(instance)
        except (TypeError, AttributeError) as e:
            raise EncodeError(f"{self.name}: cannot size instance: {e}") from e
        if limit is not None and limit < required:
            raise EncodeError(f"{self.name}: needs {required} byte(s), capacity is {limit}")
        if required > self.max_size:
            raise EncodeError(
                f"{self.name}: {required} byte(s) exceeds the maximum of {self.max_size}"
            )
        scratch = bytearray(required)
        written = encode_fields(self.definition, instance, scratch, 0)
        if written != required:
            raise EncodeError(f"{self.name}: wrote {written} byte(s), expected {required}")
        return bytes(scratch)

    def _decode_into(self, instance: Any, view: memoryview) -> None:
        if not isinstance(instance, self.model):
            raise DecodeError(
                f"{self.name}: expected {self.model.__name__}, got {type(instance).__name__}"
            )
        length = view.nbytes
        if not self.is_legal_length(length):
            raise DecodeError(f"{self.name}: {length} byte(s) is not a legal encoding length")
        values, end = decode_fields(self.definition, view, 0, length - self.min_size)
        if end != length:
            raise DecodeError(f"{self.name}: decoded {end} of {length} byte(s)")
        try:
            _populate(instance, values)
        except ValidationError as e:
            raise DecodeError(f"{self.name}: decoded values rejected: {e}") from e


def _as_length(value: Any) -> Optional[int]:
    try:
        return operator.index(value)
    except TypeError:
        return None


def _byte_view(buffer: Any) -> Optional[memoryview]:
    try:
        view = memoryview(buffer)
    except TypeError:
        return None
    if view.format != "B" or view.ndim != 1:
        try:
            view = view.cast("B")
        except TypeError:
            return None
    return view


def _populate(instance: BaseMessage, values: dict[str, Any]) -> None:
    for name, value in values.items():
        if isinstance(value, dict):
            nested = getattr(instance, name, None)
            if isinstance(nested, BaseMessage):
                _populate(nested, value)
                continue
            field_type = type(instance).model_fields[name].annotation
            nested = field_type()  # type: ignore[misc]
            _populate(nested, value)
            value = nested
        setattr(instance, name, value)
