"""Schema compiler.

Validates a schema as a whole, resolves struct references, builds the
instance models and one MessageCodec per message. Every problem found in one
pass is collected and raised together in a single SchemaError.
"""

from __future__ import annotations

import keyword
import logging
from collections import defaultdict
from dataclasses import replace
from typing import Iterable, Mapping, Optional, Union

from .codec.message import MessageCodec
from .config import CompilerConfig
from .exceptions import SchemaError, SchemaIssue
from .models.base import BaseMessage
from .models.builder import build_model
from .roles import SURFACE_RESERVED_NAMES, Role, RoleSurface
from .types import (
    CharArray,
    FieldDefinition,
    MessageDefinition,
    Primitive,
    Scalar,
    ScalarArray,
    Schema,
    Struct,
)
from .utils.naming import to_macro_ident, to_snake_case

logger = logging.getLogger(__name__)


class CompiledSchema:
    """Result of compiling a schema.

    Attributes:
        schema: The resolved schema (struct references point at definitions)
        messages: Packet definitions sorted by packet id
        models: Instance model class per message name (struct-only types included)
        codecs: MessageCodec per message name (struct-only types included)
    """

    def __init__(
        self,
        schema: Schema,
        models: Mapping[str, type[BaseMessage]],
        codecs: Mapping[str, MessageCodec],
    ) -> None:
        self.schema = schema
        self.models = dict(models)
        self.codecs = dict(codecs)
        self.messages: tuple[MessageDefinition, ...] = tuple(
            sorted((m for m in schema.messages if m.is_packet), key=lambda m: m.packet_id or 0)
        )
        self._surfaces: dict[Role, RoleSurface] = {}

    def __repr__(self) -> str:
        return f"CompiledSchema({len(self.messages)} message(s), version={self.version!r})"

    @property
    def version(self) -> Optional[str]:
        return self.schema.version

    @property
    def max_address(self) -> Optional[int]:
        return self.schema.max_address

    @property
    def packet_ids(self) -> dict[str, int]:
        return {m.name: m.packet_id for m in self.messages if m.packet_id is not None}

    @property
    def constants(self) -> dict[str, int]:
        """Packet id, max-length and sector-size constants, named like the C macros."""
        constants: dict[str, int] = {}
        for message in self.messages:
            prefix = to_macro_ident(message.name)
            constants[f"{prefix}_PACKET_ID"] = message.packet_id or 0
            for path, field in message.variable_fields():
                ident = "_".join(to_macro_ident(part) for part in path.split("."))
                constants[f"{prefix}_{ident}_MAX_LENGTH"] = field.max_length or 0
                if field.sector_bytes is not None:
                    constants[f"{prefix}_{ident}_SECTOR_BYTES"] = field.sector_bytes
        return constants

    def model(self, name: str) -> type[BaseMessage]:
        return self.models[name]

    def codec(self, name: str) -> MessageCodec:
        return self.codecs[name]

    def codec_for_packet(self, packet_id: int) -> MessageCodec:
        """MessageCodec selected by a packet id received from the transport."""
        for message in self.messages:
            if message.packet_id == packet_id:
                return self.codecs[message.name]
        raise KeyError(f"unknown packet id {packet_id}")

    def surface(self, role: Union[Role, str]) -> RoleSurface:
        """Encode/decode surface projected for ``role``."""
        role = role if isinstance(role, Role) else Role.parse(role)
        if role not in self._surfaces:
            codecs = [self.codecs[m.name] for m in self.messages]
            self._surfaces[role] = RoleSurface(role, codecs, self.constants)
        return self._surfaces[role]


class SchemaCompiler:
    """Validates and compiles schemas under one configuration.

    Example:
        >>> compiler = SchemaCompiler(CompilerConfig(max_payload_bytes=None))
        >>> compiled = compiler.compile(schema)
        >>> compiled.surface("server").ping.encode(msg, buf)
    """

    def __init__(self, config: Optional[CompilerConfig] = None) -> None:
        self.config = config or CompilerConfig()

    def compile(self, schema: Union[Schema, Iterable[MessageDefinition]]) -> CompiledSchema:
        """Compile ``schema``.

        Args:
            schema: Schema, or an ordered iterable of message definitions

        Returns:
            CompiledSchema with models, codecs and role surfaces

        Raises:
            SchemaError: Listing every problem found
        """
        if not isinstance(schema, Schema):
            schema = Schema(messages=tuple(schema))

        resolved = self.validate(schema)

        models: dict[str, type[BaseMessage]] = {}
        codecs: dict[str, MessageCodec] = {}
        for definition in resolved.messages:
            model = build_model(definition, models)
            codec = MessageCodec(definition, model)
            model.seridl_codec = codec
            models[definition.name] = model
            codecs[definition.name] = codec

        compiled = CompiledSchema(resolved, models, codecs)
        logger.info(
            "compiled %d message(s) (%d struct type(s))",
            len(compiled.messages),
            len(resolved.messages) - len(compiled.messages),
        )
        return compiled

    def validate(self, schema: Schema) -> Schema:
        """Validate ``schema`` and return it with struct references resolved.

        Raises:
            SchemaError: Listing every problem found
        """
        issues: list[SchemaIssue] = []
        messages = list(schema.messages)

        if not messages:
            issues.append(SchemaIssue("<schema>", "no message definitions found"))

        issues.extend(self._check_message_names(messages))
        issues.extend(self._check_packet_ids(messages))

        positions: dict[str, int] = {}
        for index, message in enumerate(messages):
            positions.setdefault(message.name, index)
        graph = _reference_graph(messages)

        resolved: dict[str, MessageDefinition] = {}
        resolved_order: list[MessageDefinition] = []
        broken: set[str] = set()
        for index, message in enumerate(messages):
            message_issues: list[SchemaIssue] = []
            if not message.fields:
                message_issues.append(SchemaIssue(message.name, "must define at least one field"))

            fields: list[FieldDefinition] = []
            seen: set[str] = set()
            for field in message.fields:
                if field.name in seen:
                    message_issues.append(
                        SchemaIssue(message.name, "duplicate field name", field.name)
                    )
                seen.add(field.name)
                message_issues.extend(self._check_field(message, field))
                if isinstance(field.type, Struct):
                    target = self._resolve_reference(
                        message, field, index, positions, graph, resolved, message_issues
                    )
                    if target is not None:
                        field = replace(field, type=Struct(target))
                fields.append(field)

            definition = replace(message, fields=tuple(fields))
            depends_on_broken = any(ref.ref_name in broken for _, ref in message.iter_struct_refs())
            if not message_issues and not depends_on_broken:
                message_issues.extend(self._check_layout(definition))

            issues.extend(message_issues)
            if message_issues or depends_on_broken:
                broken.add(message.name)
            if message.name not in resolved:
                resolved[message.name] = definition
                resolved_order.append(definition)

        if issues:
            logger.debug("schema validation found %d issue(s)", len(issues))
            raise SchemaError(issues)

        return replace(schema, messages=tuple(resolved_order))

    def _check_message_names(self, messages: list[MessageDefinition]) -> list[SchemaIssue]:
        issues: list[SchemaIssue] = []
        by_name: dict[str, list[str]] = defaultdict(list)
        by_ident: dict[str, list[str]] = defaultdict(list)
        for message in messages:
            if not isinstance(message.name, str) or not message.name.strip():
                issues.append(SchemaIssue(repr(message.name), "message name must be non-empty"))
                continue
            by_name[message.name].append(message.name)
            by_ident[to_snake_case(message.name)].append(message.name)
            if message.is_packet and to_snake_case(message.name) in SURFACE_RESERVED_NAMES:
                issues.append(SchemaIssue(message.name, "name is reserved by the role surface"))
        for name, names in by_name.items():
            if len(names) > 1:
                issues.append(SchemaIssue(name, f"defined {len(names)} times"))
        for ident, names in by_ident.items():
            distinct = sorted(set(names))
            if len(distinct) > 1:
                issues.append(
                    SchemaIssue(
                        distinct[-1],
                        f"name maps to identifier '{ident}' already used by "
                        + ", ".join(f"'{n}'" for n in distinct[:-1]),
                    )
                )
        return issues

    def _check_packet_ids(self, messages: list[MessageDefinition]) -> list[SchemaIssue]:
        issues: list[SchemaIssue] = []
        owners: dict[int, list[str]] = defaultdict(list)
        max_id = self.config.max_packet_id
        for message in messages:
            packet_id = message.packet_id
            if packet_id is None:
                continue
            if not isinstance(packet_id, int) or isinstance(packet_id, bool):
                issues.append(
                    SchemaIssue(message.name, f"packet_id {packet_id!r} is not an integer")
                )
                continue
            if packet_id < 0 or packet_id > max_id:
                issues.append(
                    SchemaIssue(
                        message.name,
                        f"packet_id {packet_id} is outside the allowed range 0-{max_id}",
                    )
                )
            owners[packet_id].append(message.name)
        for packet_id, names in sorted(owners.items()):
            if len(names) > 1:
                issues.append(
                    SchemaIssue(
                        names[-1],
                        f"packet_id {packet_id} is shared by {len(names)} messages: "
                        + ", ".join(f"'{n}'" for n in names),
                    )
                )
        return issues

    def _check_field(self, message: MessageDefinition, field: FieldDefinition) -> list[SchemaIssue]:
        issues: list[SchemaIssue] = []
        name = field.name
        if not _is_field_identifier(name):
            issues.append(SchemaIssue(message.name, "is not a usable field identifier", str(name)))

        field_type = field.type
        if isinstance(field_type, Scalar):
            if field_type.primitive is Primitive.CHAR:
                issues.append(
                    SchemaIssue(message.name, "char is only supported as an array", name)
                )
        elif isinstance(field_type, ScalarArray):
            if not field_type.inner.is_numeric:
                issues.append(
                    SchemaIssue(
                        message.name,
                        f"array elements must be numeric, got {field_type.inner.value}",
                        name,
                    )
                )
        elif not isinstance(field_type, (CharArray, Struct)):
            issues.append(SchemaIssue(message.name, f"unsupported type {field_type!r}", name))

        if field.is_array:
            max_length = field.max_length
            limit = self.config.max_array_length
            if max_length is None:
                issues.append(
                    SchemaIssue(message.name, f"array requires max_length (1-{limit})", name)
                )
            elif not isinstance(max_length, int) or isinstance(max_length, bool):
                issues.append(
                    SchemaIssue(message.name, f"max_length {max_length!r} is not an integer", name)
                )
            elif max_length <= 0:
                issues.append(
                    SchemaIssue(message.name, f"max_length {max_length} must be at least 1", name)
                )
            elif max_length > limit:
                issues.append(
                    SchemaIssue(
                        message.name,
                        f"max_length {max_length} exceeds maximum of {limit}",
                        name,
                    )
                )
            sector_bytes = field.sector_bytes
            if sector_bytes is not None and (
                not isinstance(sector_bytes, int)
                or isinstance(sector_bytes, bool)
                or sector_bytes <= 0
            ):
                issues.append(
                    SchemaIssue(
                        message.name,
                        f"sector_bytes {sector_bytes!r} must be a positive integer",
                        name,
                    )
                )
        return issues

    def _resolve_reference(
        self,
        message: MessageDefinition,
        field: FieldDefinition,
        index: int,
        positions: Mapping[str, int],
        graph: Mapping[str, set[str]],
        resolved: Mapping[str, MessageDefinition],
        issues: list[SchemaIssue],
    ) -> Optional[MessageDefinition]:
        assert isinstance(field.type, Struct)
        target = field.type.ref_name

        if target == message.name:
            issues.append(
                SchemaIssue(message.name, "struct references its own message (cycle)", field.name)
            )
            return None
        position = positions.get(target)
        if position is None:
            issues.append(
                SchemaIssue(message.name, f"unresolved struct reference '{target}'", field.name)
            )
            return None
        if position > index:
            if _reaches(graph, target, message.name):
                reason = f"cyclic struct reference '{target}'"
            else:
                reason = f"forward struct reference '{target}' (define it before '{message.name}')"
            issues.append(SchemaIssue(message.name, reason, field.name))
            return None
        return resolved.get(target)

    def _check_layout(self, definition: MessageDefinition) -> list[SchemaIssue]:
        issues: list[SchemaIssue] = []
        variable = definition.variable_fields()
        if len(variable) > 1:
            paths = ", ".join(path for path, _ in variable)
            issues.append(
                SchemaIssue(
                    definition.name,
                    f"has {len(variable)} variable-length fields ({paths}); at most one is allowed",
                )
            )
        limit = self.config.max_payload_bytes
        if definition.is_packet and limit is not None:
            size = definition.max_size
            if size > limit:
                issues.append(
                    SchemaIssue(
                        definition.name,
                        f"maximum payload of {size} bytes exceeds the limit of {limit} bytes",
                    )
                )
        return issues


def compile_schema(
    schema: Union[Schema, Iterable[MessageDefinition]], config: Optional[CompilerConfig] = None
) -> CompiledSchema:
    """Compile ``schema`` with ``config`` (defaults if omitted)."""
    return SchemaCompiler(config).compile(schema)


def _is_field_identifier(name: object) -> bool:
    return (
        isinstance(name, str)
        and name.isidentifier()
        and not keyword.iskeyword(name)
        and not name.startswith(("_", "model_", "seridl_"))
        and not hasattr(BaseMessage, name)
    )


def _reference_graph(messages: list[MessageDefinition]) -> dict[str, set[str]]:
    graph: dict[str, set[str]] = defaultdict(set)
    for message in messages:
        for _, ref in message.iter_struct_refs():
            graph[message.name].add(ref.ref_name)
    return graph


def _reaches(graph: Mapping[str, set[str]], start: str, goal: str) -> bool:
    stack = [start]
    visited: set[str] = set()
    while stack:
        node = stack.pop()
        if node == goal:
            return True
        if node in visited:
            continue
        visited.add(node)
        stack.extend(graph.get(node, ()))
    return False
