"""Schema loader for the JSON intermediate representation (and its YAML twin).

Document layout::

    {
        "version": "1.0.0",
        "max_address": 255,
        "ping": {"packet_id": 0, "msg_type": "uint8", "msg_desc": "Ping"},
        "temperatures": {
            "packet_id": 20, "msg_type": "float32", "array": true,
            "max_length": 8, "endianess": "big", "direction": "sub"
        },
        "sensor_data": {
            "packet_id": 30, "msg_type": "struct",
            "fields": {
                "temperature": {"type": "float32"},
                "location": {"type": "struct", "fields": {"x": {"type": "int16"}}},
                "reading": {"ref": "temperatures"}
            }
        }
    }

Messages may also be nested under a top-level ``packets`` object. Scalar
messages get a single field named ``value``, array messages a single field
named ``data``. Inline nested structs become struct-only definitions named
``<parent>_<field>`` placed right before their parent.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from .config import CompilerConfig
from .exceptions import SchemaError, SchemaIssue
from .types import (
    CharArray,
    Direction,
    Endian,
    FieldDefinition,
    FieldType,
    MessageDefinition,
    Primitive,
    Scalar,
    ScalarArray,
    Schema,
    Struct,
)

logger = logging.getLogger(__name__)

METADATA_KEYS = ("version", "max_address")
ENDIAN_KEYS = ("endianess", "endianness", "endian")
DIRECTION_KEYS = ("direction", "request_type")

SCALAR_FIELD = "value"
ARRAY_FIELD = "data"


def load_schema(path: Union[str, Path], config: Optional[CompilerConfig] = None) -> Schema:
    """Load a schema document from ``path``.

    ``.yaml`` / ``.yml`` files are read as YAML, everything else as JSON.

    Raises:
        SchemaError: If the document cannot be parsed or is malformed
        OSError: If the file cannot be read
    """
    path = Path(path)
    fmt = "yaml" if path.suffix.lower() in (".yaml", ".yml") else "json"
    logger.debug("loading %s schema from %s", fmt, path)
    return loads_schema(path.read_text(encoding="utf-8"), fmt, config)


def loads_schema(
    text: str, format: str = "json", config: Optional[CompilerConfig] = None
) -> Schema:
    """Parse a schema document held in a string."""
    fmt = format.lower()
    try:
        if fmt == "json":
            document = json.loads(text)
        elif fmt in ("yaml", "yml"):
            document = yaml.safe_load(text)
        else:
            raise ValueError(f"unsupported schema format '{format}'")
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaError(f"failed to parse {fmt} schema: {e}") from e
    if not isinstance(document, Mapping):
        raise SchemaError("top-level document must be an object")
    return parse_document(document, config)


def parse_document(document: Mapping[str, Any], config: Optional[CompilerConfig] = None) -> Schema:
    """Turn a decoded document into a Schema.

    Structural problems in every message are collected and raised together.
    """
    parser = _DocumentParser(config or CompilerConfig())
    return parser.parse(document)


class _DocumentParser:
    def __init__(self, config: CompilerConfig) -> None:
        self.config = config
        self.issues: list[SchemaIssue] = []
        self.messages: list[MessageDefinition] = []

    def parse(self, document: Mapping[str, Any]) -> Schema:
        version = document.get("version")
        max_address = document.get("max_address")
        if max_address is not None and (
            not isinstance(max_address, int) or isinstance(max_address, bool)
        ):
            self.issues.append(
                SchemaIssue("<schema>", f"max_address {max_address!r} is not an integer")
            )
            max_address = None

        entries = document.get("packets")
        if entries is None:
            entries = {k: v for k, v in document.items() if k not in METADATA_KEYS}
        elif not isinstance(entries, Mapping):
            self.issues.append(SchemaIssue("<schema>", "'packets' must be an object"))
            entries = {}

        for name, body in entries.items():
            name = str(name)
            if not isinstance(body, Mapping):
                self.issues.append(SchemaIssue(name, "message must be an object"))
                continue
            self._parse_message(name, body)

        if self.issues:
            raise SchemaError(self.issues)
        return Schema(
            messages=tuple(self.messages),
            version=None if version is None else str(version),
            max_address=max_address,
        )

    def _parse_message(self, name: str, body: Mapping[str, Any]) -> None:
        start = len(self.issues)
        packet_id = body.get("packet_id")
        if packet_id is None:
            self.issues.append(SchemaIssue(name, "missing required key 'packet_id'"))

        direction = Direction.PUB
        for key in DIRECTION_KEYS:
            if key in body:
                try:
                    direction = Direction.parse(body[key])
                except ValueError as e:
                    self.issues.append(SchemaIssue(name, str(e)))
                break

        msg_type = body.get("msg_type")
        if not isinstance(msg_type, str):
            self.issues.append(
                SchemaIssue(
                    name, "missing required key 'msg_type' (e.g. 'uint8', 'float32', 'struct')"
                )
            )
            return

        if msg_type.strip().lower() == "struct":
            fields = self._parse_fields(name, body.get("fields"), name)
        else:
            field_name = ARRAY_FIELD if body.get("array") else SCALAR_FIELD
            field = self._parse_field(name, field_name, body, name)
            fields = [field] if field is not None else []

        if len(self.issues) == start:
            self.messages.append(
                MessageDefinition(
                    name=name,
                    packet_id=packet_id,
                    direction=direction,
                    fields=tuple(fields),
                    description=_description(body),
                )
            )

    def _parse_fields(self, owner: str, fields: Any, path: str) -> list[FieldDefinition]:
        if not isinstance(fields, Mapping):
            self.issues.append(SchemaIssue(owner, f"struct '{path}' requires a 'fields' object"))
            return []
        if not fields:
            self.issues.append(
                SchemaIssue(owner, f"struct '{path}' must define at least one field")
            )
            return []

        parsed: list[FieldDefinition] = []
        for field_name, spec in fields.items():
            field_name = str(field_name)
            if not isinstance(spec, Mapping):
                self.issues.append(SchemaIssue(owner, "field must be an object", field_name))
                continue
            field = self._parse_field(owner, field_name, spec, path)
            if field is not None:
                parsed.append(field)
        return parsed

    def _parse_field(
        self, owner: str, field_name: str, spec: Mapping[str, Any], path: str
    ) -> Optional[FieldDefinition]:
        endian = self._endian(owner, field_name, spec)
        field_type = self._field_type(owner, field_name, spec, path)
        if field_type is None:
            return None
        is_array = isinstance(field_type, (CharArray, ScalarArray))
        max_length = spec.get("max_length") if is_array else None
        sector_bytes = spec.get("sector_bytes") if is_array else None
        return FieldDefinition(
            name=field_name,
            type=field_type,
            endian=endian,
            max_length=max_length,
            description=_description(spec),
            sector_bytes=sector_bytes,
        )

    def _field_type(
        self, owner: str, field_name: str, spec: Mapping[str, Any], path: str
    ) -> Optional[FieldType]:
        ref = spec.get("ref")
        type_name = spec.get("type", spec.get("msg_type"))
        if ref is not None:
            if not isinstance(ref, str):
                self.issues.append(SchemaIssue(owner, "'ref' must be a message name", field_name))
                return None
            return Struct(ref)
        if not isinstance(type_name, str):
            self.issues.append(SchemaIssue(owner, "missing 'type' or 'msg_type'", field_name))
            return None

        if type_name.strip().lower() == "struct":
            nested_name = f"{path}_{field_name}"
            nested_fields = self._parse_fields(owner, spec.get("fields"), nested_name)
            if not nested_fields:
                return None
            self.messages.append(
                MessageDefinition(
                    name=nested_name,
                    packet_id=None,
                    fields=tuple(nested_fields),
                    description=_description(spec),
                )
            )
            return Struct(nested_name)

        try:
            primitive = Primitive.parse(type_name)
        except ValueError as e:
            self.issues.append(SchemaIssue(owner, str(e), field_name))
            return None

        if spec.get("array"):
            return CharArray() if primitive is Primitive.CHAR else ScalarArray(primitive)
        return Scalar(primitive)

    def _endian(self, owner: str, field_name: str, spec: Mapping[str, Any]) -> Endian:
        for key in ENDIAN_KEYS:
            if key in spec:
                try:
                    return Endian.parse(spec[key])
                except ValueError as e:
                    self.issues.append(SchemaIssue(owner, str(e), field_name))
                    break
        return self.config.default_endian


def _description(spec: Mapping[str, Any]) -> Optional[str]:
    text = spec.get("msg_desc", spec.get("description"))
    return None if text is None else str(text)
