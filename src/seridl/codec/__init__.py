"""Binary codec for seridl messages.

Primitive, field and message level encoding with fixed per-field endianness.
"""

from __future__ import annotations

from .api import codec_for, decode, encode
from .message import MessageCodec

__all__ = [
    "encode",
    "decode",
    "codec_for",
    "MessageCodec",
]
