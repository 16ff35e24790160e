"""seridl: Schema-driven binary message compiler

Compiles a declarative message schema (packet ids, typed fields, endianness,
bounded arrays, nested structs) into encoders and decoders that write fields
back to back with no padding, plus role-filtered C99 headers and Markdown
protocol documentation.

Key Features:
- Pydantic-based instance models generated from the schema
- Exact byte layout: declared field order, per-field endianness, no padding
- One variable-length field per message, sized from the buffer length
- Server/client role projection of encode and decode operations
- JSON and YAML schema documents

Quick Start:
    >>> from seridl import compile_schema, loads_schema
    >>> schema = loads_schema('{"ping": {"packet_id": 0, "msg_type": "uint8"}}')
    >>> compiled = compile_schema(schema)
    >>> server = compiled.surface("server")
    >>> msg = server.ping.new(value=42)
    >>> buf = bytearray(8)
    >>> server.ping.encode(msg, buf)
    1
"""

from __future__ import annotations

from .codec import MessageCodec, codec_for, decode, encode
from .compiler import CompiledSchema, SchemaCompiler, compile_schema
from .config import CompilerConfig
from .exceptions import DecodeError, EncodeError, SchemaError, SchemaIssue, SeridlError
from .loader import load_schema, loads_schema, parse_document
from .models import BaseMessage
from .roles import MessageDecoder, MessageEncoder, Operation, Role, RoleSurface, project
from .types import (
    CharArray,
    Direction,
    Endian,
    FieldDefinition,
    MessageDefinition,
    Primitive,
    Scalar,
    ScalarArray,
    Schema,
    Struct,
)
from .utils import encoded_size, field_sizes, max_encoded_size, min_encoded_size

__version__ = "0.1.0"

__all__ = [
    # Schema model
    "Primitive",
    "Endian",
    "Direction",
    "Scalar",
    "CharArray",
    "ScalarArray",
    "Struct",
    "FieldDefinition",
    "MessageDefinition",
    "Schema",
    # Compilation
    "CompilerConfig",
    "SchemaCompiler",
    "CompiledSchema",
    "compile_schema",
    "load_schema",
    "loads_schema",
    "parse_document",
    # Codec
    "BaseMessage",
    "MessageCodec",
    "codec_for",
    "encode",
    "decode",
    # Roles
    "Role",
    "Operation",
    "project",
    "RoleSurface",
    "MessageEncoder",
    "MessageDecoder",
    # Sizing
    "encoded_size",
    "min_encoded_size",
    "max_encoded_size",
    "field_sizes",
    # Exceptions
    "SeridlError",
    "SchemaError",
    "SchemaIssue",
    "EncodeError",
    "DecodeError",
    # Version
    "__version__",
]
