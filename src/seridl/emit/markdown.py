"""Markdown protocol documentation."""

from __future__ import annotations

import logging
from typing import Optional

from ..compiler import CompiledSchema
from ..types import FieldDefinition, MessageDefinition, Scalar, Struct

logger = logging.getLogger(__name__)

CUSTOM_COMMAND_START = 20


def command_name(name: str) -> str:
    """SCREAMING_SNAKE command name with a single ``CMD_`` prefix.

    Example:
        >>> command_name("reboot device")
        'CMD_REBOOT_DEVICE'
    """
    result = ""
    last_was_underscore = False
    for ch in name:
        if ch.isascii() and ch.isalnum():
            upper = ch.upper()
            if not result and upper.isdigit():
                result = "CMD_"
            result += upper
            last_was_underscore = False
        elif not last_was_underscore and result:
            result += "_"
            last_was_underscore = True
    result = result.rstrip("_")
    if not result.startswith("CMD_"):
        result = f"CMD_{result}"
    return result


def generate(compiled: CompiledSchema, source: Optional[str] = None) -> str:
    """Render the command tables and per-message wire layouts.

    Commands are split into base (packet id below 20) and custom sections.
    """
    lines = ["# Command Definitions", ""]
    if source is not None:
        lines.append(f"Auto-generated from: `{source}`")
    if compiled.version is not None:
        lines.append(f"Protocol version: {compiled.version}")
    if compiled.max_address is not None:
        lines.append(f"Max address: {compiled.max_address}")
    lines.append("")

    base = [m for m in compiled.messages if (m.packet_id or 0) < CUSTOM_COMMAND_START]
    custom = [m for m in compiled.messages if (m.packet_id or 0) >= CUSTOM_COMMAND_START]
    if base:
        lines.extend(_command_section(f"Base Commands (0~{CUSTOM_COMMAND_START - 1})", base))
    if custom:
        lines.extend(_command_section(f"Custom Commands ({CUSTOM_COMMAND_START}+)", custom))

    lines.extend(["## Message Layouts", ""])
    for message in compiled.messages:
        lines.extend(_layout_section(message))

    logger.info("generated documentation for %d command(s)", len(compiled.messages))
    return "\n".join(lines)


def _command_section(title: str, messages: list[MessageDefinition]) -> list[str]:
    lines = [
        f"## {title}",
        "",
        "| Command | Value | Direction | Description |",
        "|---------|-------|-----------|-------------|",
    ]
    for message in messages:
        description = message.description or "No description"
        lines.append(
            f"| `{command_name(message.name)}` | {message.packet_id} "
            f"| {message.direction.value} | {description} |"
        )
    lines.append("")
    return lines


def _layout_section(message: MessageDefinition) -> list[str]:
    if message.min_size == message.max_size:
        size = f"{message.max_size} bytes"
    else:
        size = f"{message.min_size}-{message.max_size} bytes"
    lines = [
        f"### {message.name} (packet {message.packet_id})",
        "",
        f"Payload size: {size}",
        "",
        "| Field | Type | Endian | Size (bytes) |",
        "|-------|------|--------|--------------|",
    ]
    lines.extend(_field_rows(message, ""))
    lines.append("")
    return lines


def _field_rows(definition: MessageDefinition, prefix: str) -> list[str]:
    rows: list[str] = []
    for field in definition.fields:
        path = f"{prefix}{field.name}"
        if isinstance(field.type, Struct):
            rows.extend(_field_rows(field.type.definition(), f"{path}."))
            continue
        cells = [f"`{path}`", _type_label(field), _endian_label(field), _size_label(field)]
        rows.append("| " + " | ".join(cells) + " |")
    return rows


def _type_label(field: FieldDefinition) -> str:
    element = field.element
    assert element is not None
    if field.is_array:
        return f"{element.value}[<= {field.max_length}]"
    return element.value


def _endian_label(field: FieldDefinition) -> str:
    element = field.element
    if element is not None and element.width == 1:
        return "-"
    return field.endian.value


def _size_label(field: FieldDefinition) -> str:
    if isinstance(field.type, Scalar):
        return str(field.max_size)
    return f"0-{field.max_size}"
