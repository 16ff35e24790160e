"""C99 header generation.

Produces three headers per schema:

- ``<base>_types.h``: endian helpers, typedefs, packet-id and max-length macros
- ``<base>_server.h``: functions for the originator (pub -> encode, sub -> decode)
- ``<base>_client.h``: functions for receivers (pub -> decode, sub -> encode)

The generated functions follow the same wire rules as MessageCodec: fields in
declared order, no padding, the single bounded field sized from the buffer
length on decode.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..compiler import CompiledSchema
from ..roles import Operation, Role, project
from ..types import (
    CharArray,
    Endian,
    FieldDefinition,
    MessageDefinition,
    Primitive,
    Scalar,
    ScalarArray,
    Struct,
)
from ..utils.naming import to_macro_ident, to_snake_case

logger = logging.getLogger(__name__)

PREFIX = "seridl"
MACRO_PREFIX = "SERIDL_MSG"
DEFAULT_BASE_NAME = "seridl_messages"
INDENT = "    "

ROLE_FILES = {Role.ORIGINATOR: "server", Role.RECEIVER: "client"}


def type_name(definition: MessageDefinition) -> str:
    return f"{PREFIX}_msg_{to_snake_case(definition.name)}_t"


def encode_fn_name(definition: MessageDefinition) -> str:
    return f"{PREFIX}_msg_{to_snake_case(definition.name)}_encode"


def decode_fn_name(definition: MessageDefinition) -> str:
    return f"{PREFIX}_msg_{to_snake_case(definition.name)}_decode"


def packet_id_macro(definition: MessageDefinition) -> str:
    return f"{MACRO_PREFIX}_{to_macro_ident(definition.name)}_PACKET_ID"


def max_length_macro(owner: MessageDefinition, field: FieldDefinition) -> str:
    return f"{MACRO_PREFIX}_{to_macro_ident(owner.name)}_{to_macro_ident(field.name)}_MAX_LENGTH"


def sector_bytes_macro(owner: MessageDefinition, field: FieldDefinition) -> str:
    return f"{MACRO_PREFIX}_{to_macro_ident(owner.name)}_{to_macro_ident(field.name)}_SECTOR_BYTES"


def header_guard(filename: str) -> str:
    return "".join(ch.upper() if ch.isascii() and ch.isalnum() else "_" for ch in filename)


def generate(
    compiled: CompiledSchema,
    source: Optional[str] = None,
    base_name: str = DEFAULT_BASE_NAME,
) -> dict[str, str]:
    """Generate the C headers for a compiled schema.

    Args:
        compiled: Compiled schema
        source: Schema path recorded in the banner comment
        base_name: Filename prefix of the generated headers

    Returns:
        Mapping of filename to header text (types, server, client)
    """
    types_file = f"{base_name}_types.h"
    files = {types_file: _types_header(compiled, source, types_file)}
    for role, suffix in ROLE_FILES.items():
        filename = f"{base_name}_{suffix}.h"
        files[filename] = _role_header(compiled, source, filename, types_file, role)
    logger.info("generated %d C header(s) for %d message(s)", len(files), len(compiled.messages))
    return files


def _banner(compiled: CompiledSchema, source: Optional[str], title: str) -> list[str]:
    lines = ["/*", " * Auto-generated by seridl. Do not edit."]
    if source is not None:
        lines.append(f" * Source: {source}")
    lines.append(f" * {title}")
    if compiled.version is not None:
        lines.append(f" * Protocol version: {compiled.version}")
    if compiled.max_address is not None:
        lines.append(f" * Max address: {compiled.max_address}")
    lines.extend([" */", ""])
    return lines


def _wrap(guard: str, body: list[str]) -> list[str]:
    return [
        f"#ifndef {guard}",
        f"#define {guard}",
        "",
        *body[:1],
        "",
        "#ifdef __cplusplus",
        'extern "C" {',
        "#endif",
        "",
        *body[1:],
        "#ifdef __cplusplus",
        "}",
        "#endif",
        "",
        f"#endif /* {guard} */",
        "",
    ]


def _types_header(compiled: CompiledSchema, source: Optional[str], filename: str) -> str:
    body = [
        "#include <stdbool.h>\n#include <stddef.h>\n#include <stdint.h>\n#include <string.h>",
        *_helpers(),
    ]
    for definition in compiled.schema.messages:
        body.extend(_typedef(definition))
    lines = _banner(compiled, source, "Common type definitions and helper functions")
    lines.extend(_wrap(header_guard(filename), body))
    return "\n".join(lines)


def _role_header(
    compiled: CompiledSchema,
    source: Optional[str],
    filename: str,
    types_file: str,
    role: Role,
) -> str:
    body = [f'#include "{types_file}"']
    for definition in compiled.messages:
        operations = project(definition.direction, role)
        if definition.description:
            body.append(f"/* {definition.description} */")
        if Operation.ENCODE in operations:
            body.extend(_encode_function(definition))
        if Operation.DECODE in operations:
            body.extend(_decode_function(definition))
    title = "Role: Server" if role is Role.ORIGINATOR else "Role: Client"
    lines = _banner(compiled, source, title)
    lines.extend(_wrap(header_guard(filename), body))
    return "\n".join(lines)


def _helpers() -> list[str]:
    lines: list[str] = []
    for bits in (16, 32, 64):
        width = bits // 8
        utype = f"uint{bits}_t"
        for endian in (Endian.LITTLE, Endian.BIG):
            order = range(width) if endian is Endian.LITTLE else range(width - 1, -1, -1)
            shifts = [8 * i for i in order]
            lines.append(
                f"static inline void {PREFIX}_write_u{bits}_{endian.suffix}"
                f"({utype} value, uint8_t *out) {{"
            )
            for index, shift in enumerate(shifts):
                source = "value" if shift == 0 else f"(value >> {shift})"
                lines.append(f"{INDENT}out[{index}] = (uint8_t)({source} & 0xFFu);")
            lines.extend(["}", ""])

            terms = [
                f"(({utype})in[{index}] << {shift})" if shift else f"({utype})in[{index}]"
                for index, shift in enumerate(shifts)
            ]
            lines.append(
                f"static inline {utype} {PREFIX}_read_u{bits}_{endian.suffix}(const uint8_t *in) {{"
            )
            lines.append(f"{INDENT}return ({utype})({' | '.join(terms)});")
            lines.extend(["}", ""])

    for bits, ctype in ((32, "float"), (64, "double")):
        utype = f"uint{bits}_t"
        for endian in (Endian.LITTLE, Endian.BIG):
            sfx = endian.suffix
            lines.extend(
                [
                    f"static inline void {PREFIX}_write_f{bits}_{sfx}"
                    f"({ctype} value, uint8_t *out) {{",
                    f"{INDENT}{utype} u;",
                    f"{INDENT}memcpy(&u, &value, sizeof({utype}));",
                    f"{INDENT}{PREFIX}_write_u{bits}_{sfx}(u, out);",
                    "}",
                    "",
                    f"static inline {ctype} {PREFIX}_read_f{bits}_{sfx}(const uint8_t *in) {{",
                    f"{INDENT}{utype} u = {PREFIX}_read_u{bits}_{sfx}(in);",
                    f"{INDENT}{ctype} f;",
                    f"{INDENT}memcpy(&f, &u, sizeof({ctype}));",
                    f"{INDENT}return f;",
                    "}",
                    "",
                ]
            )
    return lines


def _typedef(definition: MessageDefinition) -> list[str]:
    lines: list[str] = []
    if definition.description:
        lines.append(f"/* {definition.description} */")
    if definition.is_packet:
        lines.append(f"#define {packet_id_macro(definition)} {definition.packet_id}")
    for field in definition.fields:
        if field.is_array:
            lines.append(f"#define {max_length_macro(definition, field)} {field.max_length}")
            if field.sector_bytes is not None:
                sector_macro = sector_bytes_macro(definition, field)
                lines.append(f"#define {sector_macro} {field.sector_bytes}")
    lines.append("typedef struct {")
    for field in definition.fields:
        ident = to_snake_case(field.name)
        if isinstance(field.type, Scalar):
            lines.append(f"{INDENT}{field.type.primitive.c_type} {ident};")
        elif isinstance(field.type, (CharArray, ScalarArray)):
            element = field.element
            assert element is not None
            lines.append(f"{INDENT}size_t {ident}_length;")
            capacity = max_length_macro(definition, field)
            lines.append(f"{INDENT}{element.c_type} {ident}[{capacity}];")
        elif isinstance(field.type, Struct):
            lines.append(f"{INDENT}{type_name(field.type.definition())} {ident};")
    lines.extend([f"}} {type_name(definition)};", ""])
    return lines


def _variable_field(
    definition: MessageDefinition,
) -> Optional[tuple[str, MessageDefinition, FieldDefinition]]:
    """Locate the bounded field: (C accessor of its storage, owning definition, field)."""
    found = definition.variable_fields()
    if not found:
        return None
    path, field = found[0]
    owner = definition
    parts = path.split(".")
    for part in parts[:-1]:
        step = owner.field(part)
        assert isinstance(step.type, Struct)
        owner = step.type.definition()
    accessor = "msg->" + ".".join(to_snake_case(part) for part in parts)
    return accessor, owner, field


def _encode_function(definition: MessageDefinition) -> list[str]:
    lines = [
        f"static inline size_t {encode_fn_name(definition)}"
        f"(const {type_name(definition)} *msg, uint8_t *out_buf, const size_t out_len) {{",
        f"{INDENT}if (!msg || !out_buf) {{",
        f"{INDENT * 2}return 0;",
        f"{INDENT}}}",
    ]
    variable = _variable_field(definition)
    if variable is None:
        lines.append(f"{INDENT}const size_t required = {definition.max_size};")
    else:
        accessor, owner, field = variable
        lines.extend(
            [
                f"{INDENT}if ({accessor}_length > {max_length_macro(owner, field)}) {{",
                f"{INDENT * 2}return 0;",
                f"{INDENT}}}",
                f"{INDENT}const size_t required = {definition.min_size}"
                f" + {accessor}_length * {field.element_width};",
            ]
        )
    lines.extend(
        [
            f"{INDENT}if (out_len < required) {{",
            f"{INDENT * 2}return 0;",
            f"{INDENT}}}",
            f"{INDENT}size_t offset = 0;",
        ]
    )
    lines.extend(_encode_statements(definition, "msg->", INDENT))
    lines.extend([f"{INDENT}return offset;", "}", ""])
    return lines


def _decode_function(definition: MessageDefinition) -> list[str]:
    lines = [
        f"static inline bool {decode_fn_name(definition)}"
        f"({type_name(definition)} *msg, const uint8_t *data, const size_t data_len) {{",
        f"{INDENT}if (!msg || !data) {{",
        f"{INDENT * 2}return false;",
        f"{INDENT}}}",
    ]
    variable = _variable_field(definition)
    if variable is None:
        lines.extend(
            [
                f"{INDENT}if (data_len != {definition.max_size}) {{",
                f"{INDENT * 2}return false;",
                f"{INDENT}}}",
            ]
        )
    else:
        _, owner, field = variable
        if definition.min_size > 0:
            lines.extend(
                [
                    f"{INDENT}if (data_len < {definition.min_size}) {{",
                    f"{INDENT * 2}return false;",
                    f"{INDENT}}}",
                ]
            )
        lines.extend(
            [
                f"{INDENT}const size_t remaining = data_len - {definition.min_size};",
                f"{INDENT}if (remaining % {field.element_width} != 0) {{",
                f"{INDENT * 2}return false;",
                f"{INDENT}}}",
                f"{INDENT}const size_t element_count = remaining / {field.element_width};",
                f"{INDENT}if (element_count > {max_length_macro(owner, field)}) {{",
                f"{INDENT * 2}return false;",
                f"{INDENT}}}",
            ]
        )
    lines.append(f"{INDENT}size_t offset = 0;")
    lines.extend(_decode_statements(definition, "msg->", INDENT))
    lines.extend([f"{INDENT}return true;", "}", ""])
    return lines


def _encode_statements(definition: MessageDefinition, accessor: str, indent: str) -> list[str]:
    lines: list[str] = []
    for field in definition.fields:
        target = f"{accessor}{to_snake_case(field.name)}"
        if isinstance(field.type, Struct):
            lines.extend(_encode_statements(field.type.definition(), f"{target}.", indent))
            continue
        element = field.element
        assert element is not None
        if field.is_array:
            lines.append(f"{indent}for (size_t i = 0; i < {target}_length; ++i) {{")
            lines.append(_encode_stmt(element, field.endian, f"{target}[i]", indent + INDENT))
            lines.append(f"{indent}{INDENT}offset += {element.width};")
            lines.append(f"{indent}}}")
        else:
            lines.append(_encode_stmt(element, field.endian, target, indent))
            lines.append(f"{indent}offset += {element.width};")
    return lines


def _decode_statements(definition: MessageDefinition, accessor: str, indent: str) -> list[str]:
    lines: list[str] = []
    for field in definition.fields:
        target = f"{accessor}{to_snake_case(field.name)}"
        if isinstance(field.type, Struct):
            lines.extend(_decode_statements(field.type.definition(), f"{target}.", indent))
            continue
        element = field.element
        assert element is not None
        if field.is_array:
            lines.append(f"{indent}{target}_length = element_count;")
            lines.append(f"{indent}for (size_t i = 0; i < element_count; ++i) {{")
            lines.append(_decode_stmt(element, field.endian, f"{target}[i]", indent + INDENT))
            lines.append(f"{indent}{INDENT}offset += {element.width};")
            lines.append(f"{indent}}}")
            if isinstance(field.type, CharArray):
                capacity = max_length_macro(definition, field)
                lines.append(f"{indent}if (element_count < {capacity}) {{")
                lines.append(f"{indent}{INDENT}{target}[element_count] = '\\0';")
                lines.append(f"{indent}}}")
        else:
            lines.append(_decode_stmt(element, field.endian, target, indent))
            lines.append(f"{indent}offset += {element.width};")
    return lines


def _encode_stmt(primitive: Primitive, endian: Endian, source: str, indent: str) -> str:
    dest = "out_buf + offset"
    if primitive is Primitive.BOOL:
        return f"{indent}({dest})[0] = ({source}) ? 1 : 0;"
    if primitive.width == 1:
        return f"{indent}({dest})[0] = (uint8_t)({source});"
    bits = primitive.width * 8
    if primitive.is_float:
        return f"{indent}{PREFIX}_write_f{bits}_{endian.suffix}({source}, {dest});"
    return f"{indent}{PREFIX}_write_u{bits}_{endian.suffix}((uint{bits}_t)({source}), {dest});"


def _decode_stmt(primitive: Primitive, endian: Endian, target: str, indent: str) -> str:
    src = "data + offset"
    if primitive is Primitive.BOOL:
        return f"{indent}{target} = ({src})[0] != 0;"
    if primitive.width == 1:
        return f"{indent}{target} = ({primitive.c_type})({src})[0];"
    bits = primitive.width * 8
    if primitive.is_float:
        return f"{indent}{target} = {PREFIX}_read_f{bits}_{endian.suffix}({src});"
    return f"{indent}{target} = ({primitive.c_type}){PREFIX}_read_u{bits}_{endian.suffix}({src});"
