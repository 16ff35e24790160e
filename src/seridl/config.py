"""Compiler configuration.

Limits default to the values used by the serial protocol this compiler was
built for: one-byte packet ids and a 251-byte payload (a 256-byte frame minus
header and checksum).
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .types import Endian

DEFAULT_MAX_PACKET_ID = 255
DEFAULT_MAX_ARRAY_LENGTH = 1024
DEFAULT_MAX_PAYLOAD_BYTES = 251


class CompilerConfig(BaseModel):
    """Limits and defaults applied by the schema compiler.

    Attributes:
        max_packet_id: Highest accepted packet id (inclusive)
        max_array_length: Highest accepted max_length for bounded fields
        max_payload_bytes: Largest accepted encoded payload, or None for no limit
        default_endian: Endianness used when a schema entry does not set one
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_packet_id: int = Field(default=DEFAULT_MAX_PACKET_ID, ge=0)
    max_array_length: int = Field(default=DEFAULT_MAX_ARRAY_LENGTH, ge=1)
    max_payload_bytes: Optional[int] = Field(default=DEFAULT_MAX_PAYLOAD_BYTES, ge=1)
    default_endian: Endian = Endian.LITTLE
