"""Unit tests for schema validation and compilation."""

from __future__ import annotations

from dataclasses import replace

import pytest

from seridl import (
    CharArray,
    CompilerConfig,
    Direction,
    FieldDefinition,
    MessageDefinition,
    Primitive,
    Scalar,
    ScalarArray,
    Schema,
    SchemaCompiler,
    SchemaError,
    Struct,
    compile_schema,
)


def u8(name: str = "value") -> FieldDefinition:
    return FieldDefinition(name, Scalar(Primitive.U8))


def message(name: str, packet_id: int | None, *fields: FieldDefinition) -> MessageDefinition:
    return MessageDefinition(name, packet_id, fields=fields or (u8(),))


def reasons(error: SchemaError) -> str:
    return "\n".join(str(issue) for issue in error.issues)


class TestPacketIds:
    """Test packet id validation."""

    def test_duplicate_packet_id_names_both_messages(self) -> None:
        """Test two messages sharing packet_id=5 are reported together."""
        with pytest.raises(SchemaError) as exc_info:
            compile_schema([message("status", 5), message("heartbeat", 5)])

        text = str(exc_info.value)
        assert "'status'" in text
        assert "'heartbeat'" in text
        assert "packet_id 5" in text

    def test_packet_id_range(self) -> None:
        """Test packet ids must fit in the configured range."""
        with pytest.raises(SchemaError, match="outside the allowed range 0-255"):
            compile_schema([message("big", 256)])
        with pytest.raises(SchemaError, match="outside the allowed range"):
            compile_schema([message("negative", -1)])

    def test_packet_id_range_is_configurable(self) -> None:
        """Test a wider packet id range can be configured."""
        compiled = SchemaCompiler(CompilerConfig(max_packet_id=1023)).compile(
            [message("wide", 1000)]
        )
        assert compiled.packet_ids == {"wide": 1000}

    def test_packet_id_type(self) -> None:
        """Test packet ids must be integers."""
        with pytest.raises(SchemaError, match="not an integer"):
            odd = MessageDefinition("odd", "7", fields=(u8(),))  # type: ignore[arg-type]
            compile_schema([odd])


class TestMessageStructure:
    """Test message and field level checks."""

    def test_empty_schema(self) -> None:
        """Test a schema needs at least one message."""
        with pytest.raises(SchemaError, match="no message definitions"):
            compile_schema([])

    def test_message_without_fields(self) -> None:
        """Test every message needs at least one field."""
        with pytest.raises(SchemaError, match="at least one field"):
            compile_schema([MessageDefinition("empty", 1, fields=())])

    def test_duplicate_message_name(self) -> None:
        """Test message names are unique."""
        with pytest.raises(SchemaError, match="defined 2 times"):
            compile_schema([message("ping", 1), message("ping", 2)])

    def test_colliding_identifiers(self) -> None:
        """Test names that map to the same generated identifier are rejected."""
        with pytest.raises(SchemaError, match="led_control"):
            compile_schema([message("LED Control", 1), message("led_control", 2)])

    @pytest.mark.parametrize("name", ["constants", "Role", "encoders", "decoders", "by packet id"])
    def test_surface_attribute_names_reserved(self, name: str) -> None:
        """Test packet names that would be shadowed on a role surface are rejected."""
        with pytest.raises(SchemaError, match="reserved by the role surface"):
            compile_schema([message(name, 1)])

    def test_reserved_name_allowed_for_struct_types(self) -> None:
        """Test struct-only types may use surface attribute names."""
        role = message("role", None)
        user = message("user", 1, FieldDefinition("role", Struct("role")))
        compiled = compile_schema([role, user])
        assert "role" in compiled.models

    def test_duplicate_field_name(self) -> None:
        """Test field names are unique within a message."""
        with pytest.raises(SchemaError, match="duplicate field name"):
            compile_schema([message("pair", 1, u8("a"), u8("a"))])

    @pytest.mark.parametrize("name", ["class", "1st", "model_dump", "_hidden", "has space", ""])
    def test_invalid_field_identifier(self, name: str) -> None:
        """Test field names must be usable as attribute names."""
        with pytest.raises(SchemaError, match="field identifier"):
            compile_schema([message("bad", 1, u8(name))])

    def test_scalar_char_rejected(self) -> None:
        """Test char is only valid inside an array."""
        field = FieldDefinition("c", Scalar(Primitive.CHAR))
        with pytest.raises(SchemaError, match="only supported as an array"):
            compile_schema([message("letter", 1, field)])

    def test_bool_array_rejected(self) -> None:
        """Test scalar arrays need numeric elements."""
        field = FieldDefinition("flags", ScalarArray(Primitive.BOOL), max_length=4)
        with pytest.raises(SchemaError, match="must be numeric"):
            compile_schema([message("flags", 1, field)])


class TestMaxLength:
    """Test bounded field capacity checks."""

    def test_missing(self) -> None:
        """Test arrays require max_length."""
        field = FieldDefinition("data", CharArray())
        with pytest.raises(SchemaError, match="requires max_length"):
            compile_schema([message("text", 1, field)])

    @pytest.mark.parametrize("max_length", [0, -3])
    def test_not_positive(self, max_length: int) -> None:
        """Test max_length must be at least 1."""
        field = FieldDefinition("data", ScalarArray(Primitive.U8), max_length=max_length)
        with pytest.raises(SchemaError, match="must be at least 1"):
            compile_schema([message("bytes", 1, field)])

    @pytest.mark.parametrize("sector_bytes", [0, -8, 2.5, True])
    def test_sector_bytes_must_be_positive(self, sector_bytes: object) -> None:
        """Test sector_bytes must be a positive integer when given."""
        field = FieldDefinition("data", ScalarArray(Primitive.U8), max_length=8)
        field = replace(field, sector_bytes=sector_bytes)
        with pytest.raises(SchemaError, match="sector_bytes"):
            compile_schema([message("bytes", 1, field)])

    def test_above_limit(self) -> None:
        """Test max_length is capped by the configuration."""
        field = FieldDefinition("data", ScalarArray(Primitive.U8), max_length=1025)
        config = CompilerConfig(max_payload_bytes=None)
        with pytest.raises(SchemaError, match="exceeds maximum of 1024"):
            compile_schema([message("bytes", 1, field)], config)

    def test_single_variable_field(self) -> None:
        """Test two bounded fields in one message are rejected."""
        fields = (
            FieldDefinition("name", CharArray(), max_length=8),
            FieldDefinition("values", ScalarArray(Primitive.U16), max_length=4),
        )
        with pytest.raises(SchemaError, match="2 variable-length fields") as exc_info:
            compile_schema([message("record", 1, *fields)])
        assert "name, values" in str(exc_info.value)

    def test_variable_field_through_nested_struct(self) -> None:
        """Test bounded fields are counted through nested structs."""
        inner = message("inner", None, FieldDefinition("tag", CharArray(), max_length=4))
        outer = message(
            "outer",
            1,
            FieldDefinition("head", Struct("inner")),
            FieldDefinition("body", ScalarArray(Primitive.U8), max_length=4),
        )
        with pytest.raises(SchemaError, match=r"head\.tag, body"):
            compile_schema([inner, outer])


class TestPayloadLimit:
    """Test the maximum payload size."""

    def test_array_message_too_large(self) -> None:
        """Test a 252-byte array message exceeds the 251-byte limit."""
        field = FieldDefinition("data", ScalarArray(Primitive.U16), max_length=126)
        with pytest.raises(SchemaError) as exc_info:
            compile_schema([message("blob", 1, field)])
        assert "252 bytes" in str(exc_info.value)
        assert "251 bytes" in str(exc_info.value)

    def test_struct_message_too_large(self) -> None:
        """Test a 253-byte struct message exceeds the 251-byte limit."""
        fields = (u8("kind"), FieldDefinition("data", ScalarArray(Primitive.U16), max_length=126))
        with pytest.raises(SchemaError) as exc_info:
            compile_schema([message("blob", 1, *fields)])
        assert "253 bytes" in str(exc_info.value)

    def test_limit_disabled(self) -> None:
        """Test the limit can be turned off."""
        field = FieldDefinition("data", ScalarArray(Primitive.U16), max_length=126)
        config = CompilerConfig(max_payload_bytes=None)
        compiled = compile_schema([message("blob", 1, field)], config)
        assert compiled.codec("blob").max_size == 252

    def test_struct_only_types_are_not_limited(self) -> None:
        """Test the limit applies to packets, not helper structs."""
        inner = message("inner", None, *(u8(f"b{i}") for i in range(300)))
        compiled = compile_schema([inner, message("ping", 1)])
        assert compiled.codec("inner").max_size == 300


class TestStructReferences:
    """Test struct reference resolution."""

    def test_unresolved(self) -> None:
        """Test references to unknown messages are rejected."""
        with pytest.raises(SchemaError, match="unresolved struct reference 'nowhere'"):
            compile_schema([message("a", 1, FieldDefinition("x", Struct("nowhere")))])

    def test_forward_reference(self) -> None:
        """Test references to later definitions are rejected."""
        with pytest.raises(SchemaError, match="forward struct reference 'b'"):
            compile_schema([message("a", 1, FieldDefinition("x", Struct("b"))), message("b", 2)])

    def test_cycle(self) -> None:
        """Test mutually referencing messages are rejected as a cycle."""
        a = message("a", 1, FieldDefinition("x", Struct("b")))
        b = message("b", 2, FieldDefinition("y", Struct("a")))
        with pytest.raises(SchemaError, match="cyclic struct reference 'b'"):
            compile_schema([a, b])

    def test_self_reference(self) -> None:
        """Test a message cannot contain itself."""
        with pytest.raises(SchemaError, match="own message"):
            compile_schema([message("a", 1, FieldDefinition("x", Struct("a")))])

    def test_resolved_in_order(self) -> None:
        """Test earlier definitions resolve to the definition object."""
        point = message("point", None, u8("x"), u8("y"))
        path = message("path", 1, FieldDefinition("start", Struct("point")), u8("count"))

        compiled = compile_schema([point, path])

        field_type = compiled.schema.messages[1].fields[0].type
        assert isinstance(field_type, Struct)
        assert field_type.resolved
        assert field_type.definition().name == "point"
        assert compiled.codec("path").max_size == 3

    def test_reference_by_definition_object(self) -> None:
        """Test a Struct may hold the target definition directly."""
        point = message("point", None, u8("x"))
        path = message("path", 1, FieldDefinition("start", Struct(point)))
        compiled = compile_schema([point, path])
        assert compiled.codec("path").encode_bytes(compiled.model("path")()) == b"\x00"

    def test_broken_target_does_not_mask_issues(self) -> None:
        """Test a message referencing an invalid struct still reports the struct's issue."""
        inner = message("inner", None, FieldDefinition("x", Struct("missing")))
        outer = message("outer", 1, FieldDefinition("i", Struct("inner")))
        with pytest.raises(SchemaError) as exc_info:
            compile_schema([inner, outer])
        assert len(exc_info.value.issues) == 1
        assert "missing" in str(exc_info.value)


class TestIssueCollection:
    """Test that every problem is reported in one pass."""

    def test_all_issues_collected(self) -> None:
        """Test independent problems in several messages are all reported."""
        messages = [
            message("a", 5),
            message("b", 5),
            message("c", 6, FieldDefinition("data", CharArray())),
            message("d", 7, FieldDefinition("x", Struct("zzz"))),
        ]
        with pytest.raises(SchemaError) as exc_info:
            compile_schema(messages)

        error = exc_info.value
        assert len(error.issues) == 3
        assert {issue.message for issue in error.issues} == {"b", "c", "d"}
        assert str(error).startswith("schema has 3 errors:")
        assert "c.data" in reasons(error)


class TestCompiledSchema:
    """Test the compilation result."""

    def build(self) -> Schema:
        return Schema(
            messages=(
                message("zeta", 9),
                MessageDefinition(
                    "text",
                    2,
                    Direction.SUB,
                    fields=(FieldDefinition("data", CharArray(), max_length=16, sector_bytes=8),),
                ),
                message("point", None, u8("x"), u8("y")),
                message(
                    "walk",
                    4,
                    FieldDefinition("at", Struct("point")),
                    FieldDefinition("steps", ScalarArray(Primitive.I8), max_length=10),
                ),
            ),
            version="2.1",
            max_address=16,
        )

    def test_messages_sorted_by_packet_id(self) -> None:
        """Test packets are listed by id and struct-only types are left out."""
        compiled = compile_schema(self.build())
        assert [m.name for m in compiled.messages] == ["text", "walk", "zeta"]
        assert set(compiled.models) == {"zeta", "text", "point", "walk"}

    def test_metadata(self) -> None:
        """Test version and max_address are carried through."""
        compiled = compile_schema(self.build())
        assert compiled.version == "2.1"
        assert compiled.max_address == 16

    def test_constants(self) -> None:
        """Test packet id, max-length and sector-size constants."""
        compiled = compile_schema(self.build())
        assert compiled.constants == {
            "TEXT_PACKET_ID": 2,
            "TEXT_DATA_MAX_LENGTH": 16,
            "TEXT_DATA_SECTOR_BYTES": 8,
            "WALK_PACKET_ID": 4,
            "WALK_STEPS_MAX_LENGTH": 10,
            "ZETA_PACKET_ID": 9,
        }

    def test_models_carry_their_codec(self) -> None:
        """Test every compiled model is bound to its codec."""
        compiled = compile_schema(self.build())
        for name, model in compiled.models.items():
            assert model.seridl_codec is compiled.codec(name)

    def test_codec_for_packet(self) -> None:
        """Test dispatch by packet id."""
        compiled = compile_schema(self.build())
        assert compiled.codec_for_packet(4).name == "walk"
        with pytest.raises(KeyError):
            compiled.codec_for_packet(3)

    def test_surface_is_cached(self) -> None:
        """Test each role surface is built once."""
        compiled = compile_schema(self.build())
        assert compiled.surface("server") is compiled.surface("originator")
