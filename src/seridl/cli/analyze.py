"""Schema analysis CLI command."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..compiler import CompiledSchema, compile_schema
from ..config import CompilerConfig
from ..loader import load_schema
from ..roles import Operation, Role, project
from ..types import FieldDefinition, MessageDefinition, Struct


def analyze_file(file_path: Path, config: Optional[CompilerConfig] = None) -> CompiledSchema:
    """Compile a schema file and print a size breakdown of every message.

    Args:
        file_path: Path to a JSON or YAML schema
        config: Compiler limits

    Returns:
        The compiled schema
    """
    compiled = compile_schema(load_schema(file_path, config), config)
    count = len(compiled.messages)

    print("|" * 7, "seridl: schema-driven binary messages", "|" * 7)
    print(f"{count} message{'s' if count != 1 else ''} loaded.")
    if compiled.version is not None:
        print(f"Protocol version: {compiled.version}")
    print("Field sizes are in bytes.")
    print()

    for message in compiled.messages:
        analyze_message(message, config or CompilerConfig())
    return compiled


def analyze_message(message: MessageDefinition, config: CompilerConfig) -> None:
    """Print the layout and role projection of one message."""
    print(f"{'=' * 19} {message.packet_id}: {message.name} {'=' * 19}")
    if message.description:
        print(message.description)

    if message.has_variable_length:
        print(f"Encoded size: {message.min_size}-{message.max_size} bytes")
    else:
        print(f"Encoded size: {message.max_size} bytes (fixed)")
    if config.max_payload_bytes is not None:
        print(f"Allowed maximum payload: {config.max_payload_bytes} bytes")

    server = _operations(message, Role.ORIGINATOR)
    client = _operations(message, Role.RECEIVER)
    print(f"Direction: {message.direction.value} (server: {server}, client: {client})")
    print()

    print(f"{'-' * 28} Body {'-' * 28}")
    for i, (path, field) in enumerate(_flatten(message, ""), 1):
        field_desc = f"{i}. {path}"
        size = _size(field)
        dots = "." * max(1, 54 - len(field_desc) - len(size) - 1)
        print(f"        {field_desc}{dots} {size} {_describe(field)}")
    print()


def _operations(message: MessageDefinition, role: Role) -> str:
    operations = project(message.direction, role)
    return "/".join(op.value for op in (Operation.ENCODE, Operation.DECODE) if op in operations)


def _flatten(definition: MessageDefinition, prefix: str) -> list[tuple[str, FieldDefinition]]:
    rows: list[tuple[str, FieldDefinition]] = []
    for field in definition.fields:
        path = f"{prefix}{field.name}"
        if isinstance(field.type, Struct):
            rows.extend(_flatten(field.type.definition(), f"{path}."))
        else:
            rows.append((path, field))
    return rows


def _size(field: FieldDefinition) -> str:
    if field.is_array:
        return f"0-{field.max_size}"
    return str(field.max_size)


def _describe(field: FieldDefinition) -> str:
    element = field.element
    assert element is not None
    if field.is_array:
        return f"{element.value}[<= {field.max_length}] {field.endian.value}"
    if element.width == 1:
        return element.value
    return f"{element.value} {field.endian.value}"
