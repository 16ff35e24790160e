"""Role projection of message codecs.

Each message is published by one side of the link. The originator (server)
encodes PUB messages and decodes SUB messages; every receiver (client) does
the opposite. A role surface only contains the projected operation for each
message: encoders have no ``decode`` attribute and decoders have no
``encode`` attribute, so an operation outside the role cannot even be looked
up.
"""

from __future__ import annotations

import enum
from typing import Any, Iterator, Mapping, Optional, Union

from .codec.message import MessageCodec
from .models.base import BaseMessage
from .types import Direction
from .utils.naming import to_snake_case


class Role(str, enum.Enum):
    """Participant role on a serial link."""

    ORIGINATOR = "server"
    RECEIVER = "client"

    @classmethod
    def parse(cls, value: str) -> Role:
        text = str(value).strip().lower()
        if text in ("server", "originator"):
            return cls.ORIGINATOR
        if text in ("client", "receiver"):
            return cls.RECEIVER
        raise ValueError(f"unsupported role '{value}', expected 'server' or 'client'")


class Operation(str, enum.Enum):
    ENCODE = "encode"
    DECODE = "decode"


_PROJECTION: dict[tuple[Direction, Role], Operation] = {
    (Direction.PUB, Role.ORIGINATOR): Operation.ENCODE,
    (Direction.PUB, Role.RECEIVER): Operation.DECODE,
    (Direction.SUB, Role.ORIGINATOR): Operation.DECODE,
    (Direction.SUB, Role.RECEIVER): Operation.ENCODE,
}


def project(direction: Direction, role: Role) -> frozenset[Operation]:
    """Return the operations ``role`` may perform on a message of ``direction``.

    Example:
        >>> project(Direction.PUB, Role.ORIGINATOR)
        frozenset({<Operation.ENCODE: 'encode'>})
    """
    return frozenset({_PROJECTION[(Direction(direction), Role(role))]})


class _Endpoint:
    """Shared read-only view of a codec, without any operation."""

    __slots__ = ("_codec",)

    def __init__(self, codec: MessageCodec) -> None:
        self._codec = codec

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, packet_id={self.packet_id})"

    @property
    def name(self) -> str:
        return self._codec.name

    @property
    def packet_id(self) -> Optional[int]:
        return self._codec.packet_id

    @property
    def direction(self) -> Direction:
        return self._codec.direction

    @property
    def model(self) -> type[BaseMessage]:
        return self._codec.model

    @property
    def max_lengths(self) -> Mapping[str, int]:
        return dict(self._codec.max_lengths)

    @property
    def min_size(self) -> int:
        return self._codec.min_size

    @property
    def max_size(self) -> int:
        return self._codec.max_size

    def new(self, **values: Any) -> BaseMessage:
        return self._codec.new(**values)


class MessageEncoder(_Endpoint):
    """Encode-only projection of a message codec."""

    __slots__ = ()

    operation = Operation.ENCODE

    def encode(self, instance: Any, buffer: Any, capacity: Optional[int] = None) -> int:
        """See MessageCodec.encode."""
        return self._codec.encode(instance, buffer, capacity)

    def encode_bytes(self, instance: BaseMessage) -> bytes:
        return self._codec.encode_bytes(instance)

    def required_size(self, instance: BaseMessage) -> int:
        return self._codec.required_size(instance)


class MessageDecoder(_Endpoint):
    """Decode-only projection of a message codec."""

    __slots__ = ()

    operation = Operation.DECODE

    def decode(self, instance: Any, buffer: Any, length: Optional[int] = None) -> bool:
        """See MessageCodec.decode."""
        return self._codec.decode(instance, buffer, length)

    def decode_bytes(self, data: bytes) -> BaseMessage:
        return self._codec.decode_bytes(data)

    def is_legal_length(self, length: int) -> bool:
        return self._codec.is_legal_length(length)


Endpoint = Union[MessageEncoder, MessageDecoder]

# Public RoleSurface attributes, unavailable as message names
SURFACE_RESERVED_NAMES = frozenset({"role", "constants", "encoders", "decoders", "by_packet_id"})


def endpoint_for(codec: MessageCodec, role: Role) -> Endpoint:
    """Project ``codec`` onto ``role``."""
    (operation,) = project(codec.direction, role)
    if operation is Operation.ENCODE:
        return MessageEncoder(codec)
    return MessageDecoder(codec)


class RoleSurface:
    """Everything one role can do with a compiled schema.

    Endpoints are reachable as attributes named after the snake-case message
    name, by packet id, or by iteration in packet id order.
    Packet names that would collide with the surface's own attributes are
    rejected at compile time.

    Example:
        >>> server = compiled.surface(Role.ORIGINATOR)
        >>> server.ping.encode(msg, buf)
        1
        >>> server.ping.decode
        Traceback (most recent call last):
        AttributeError: 'MessageEncoder' object has no attribute 'decode'
    """

    def __init__(
        self,
        role: Role,
        codecs: list[MessageCodec],
        constants: Optional[Mapping[str, int]] = None,
    ) -> None:
        self.role = role
        self.constants: dict[str, int] = dict(constants or {})
        self._endpoints: dict[str, Endpoint] = {}
        self._by_packet_id: dict[int, Endpoint] = {}
        for codec in codecs:
            endpoint = endpoint_for(codec, role)
            self._endpoints[to_snake_case(codec.name)] = endpoint
            if codec.packet_id is not None:
                self._by_packet_id[codec.packet_id] = endpoint

    def __repr__(self) -> str:
        return f"RoleSurface({self.role.value!r}, {len(self._endpoints)} message(s))"

    def __getattr__(self, name: str) -> Endpoint:
        endpoints = self.__dict__.get("_endpoints", {})
        try:
            return endpoints[name]
        except KeyError:
            raise AttributeError(
                f"no message named {name!r} in the {self.role.value} surface"
            ) from None

    def __getitem__(self, name: str) -> Endpoint:
        return self._endpoints[to_snake_case(name)]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and to_snake_case(name) in self._endpoints

    def __iter__(self) -> Iterator[Endpoint]:
        return iter(sorted(self._endpoints.values(), key=lambda e: e.packet_id or 0))

    def __len__(self) -> int:
        return len(self._endpoints)

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._endpoints))

    def by_packet_id(self, packet_id: int) -> Endpoint:
        """Endpoint for transport-level dispatch on a received packet id."""
        try:
            return self._by_packet_id[packet_id]
        except KeyError:
            raise KeyError(f"unknown packet id {packet_id}") from None

    @property
    def encoders(self) -> dict[str, MessageEncoder]:
        return {n: e for n, e in self._endpoints.items() if isinstance(e, MessageEncoder)}

    @property
    def decoders(self) -> dict[str, MessageDecoder]:
        return {n: e for n, e in self._endpoints.items() if isinstance(e, MessageDecoder)}
