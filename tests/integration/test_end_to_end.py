"""End-to-end integration tests.

A server and a client are both built from the example schema; payloads cross
between them as plain bytes, the way a serial transport would carry them
alongside the packet id.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from seridl import (
    CompiledSchema,
    MessageDecoder,
    MessageEncoder,
    Role,
    RoleSurface,
    SchemaCompiler,
    compile_schema,
    encoded_size,
    field_sizes,
    load_schema,
)
from seridl.emit import c


def transmit(sender: RoleSurface, name: str, **values: object) -> tuple[int, bytes]:
    """Encode a message on one side and return (packet id, payload)."""
    encoder = sender[name]
    assert isinstance(encoder, MessageEncoder)
    msg = encoder.new(**values)
    buf = bytearray(encoder.max_size)
    size = encoder.encode(msg, buf)
    assert size == encoded_size(msg)
    assert encoder.packet_id is not None
    return encoder.packet_id, bytes(buf[:size])


def receive(receiver: RoleSurface, packet_id: int, payload: bytes) -> object:
    """Dispatch a payload by packet id and decode it."""
    decoder = receiver.by_packet_id(packet_id)
    assert isinstance(decoder, MessageDecoder)
    msg = decoder.new()
    assert decoder.decode(msg, payload, len(payload))
    return msg


class TestServerToClient:
    """Test pub messages flowing from the server to clients."""

    def test_ping(self, server: RoleSurface, client: RoleSurface) -> None:
        """Test a single-byte scalar."""
        packet_id, payload = transmit(server, "ping", value=42)
        assert (packet_id, payload) == (0, b"*")
        assert receive(client, packet_id, payload).value == 42  # type: ignore[attr-defined]

    def test_led_control(self, server: RoleSurface, client: RoleSurface) -> None:
        """Test a fixed-size struct."""
        packet_id, payload = transmit(server, "led_control", led=2, on=True, brightness=-1.5)
        assert packet_id == 40
        assert payload[:2] == b"\x02\x01"
        assert payload[2:] == b"\x00\x00\x00\x00\x00\x00\xf8\xbf"
        msg = receive(client, packet_id, payload)
        assert (msg.led, msg.on, msg.brightness) == (2, True, -1.5)  # type: ignore[attr-defined]

    def test_reboot_bool_decode_is_permissive(self, client: RoleSurface) -> None:
        """Test any nonzero byte decodes as true."""
        assert receive(client, 1, b"\x7f").value is True  # type: ignore[attr-defined]


class TestClientToServer:
    """Test sub messages flowing from clients to the server."""

    def test_sensor_data(self, server: RoleSurface, client: RoleSurface) -> None:
        """Test a struct with an inline nested struct and a bounded field."""
        packet_id, payload = transmit(
            client,
            "sensor_data",
            timestamp=0x01020304,
            location={"x": 258, "y": -2},
            humidity=55,
            samples=[1, 513],
        )
        assert packet_id == 30
        assert payload == (
            b"\x04\x03\x02\x01"  # timestamp, little endian
            b"\x01\x02"  # location.x, big endian
            b"\xfe\xff"  # location.y, little endian
            b"\x37"  # humidity
            b"\x01\x00\x01\x02"  # samples
        )
        msg = receive(server, packet_id, payload)
        assert msg.location.x == 258  # type: ignore[attr-defined]
        assert msg.location.y == -2  # type: ignore[attr-defined]
        assert msg.samples == [1, 513]  # type: ignore[attr-defined]
        assert field_sizes(msg) == {  # type: ignore[arg-type]
            "timestamp": 4,
            "location": 4,
            "humidity": 1,
            "samples": 4,
        }

    def test_firmware_version(self, server: RoleSurface, client: RoleSurface) -> None:
        """Test a char array message."""
        packet_id, payload = transmit(client, "firmware_version", data="fw-2.4.1")
        assert payload == b"fw-2.4.1"
        assert receive(server, packet_id, payload).data == "fw-2.4.1"  # type: ignore[attr-defined]

    def test_temperature_big_endian(self, server: RoleSurface, client: RoleSurface) -> None:
        """Test a big-endian float32."""
        packet_id, payload = transmit(client, "temperature", value=23.5)
        assert payload == b"\x41\xbc\x00\x00"
        assert receive(server, packet_id, payload).value == 23.5  # type: ignore[attr-defined]

    def test_empty_bounded_field(self, server: RoleSurface, client: RoleSurface) -> None:
        """Test a bounded field with no elements."""
        packet_id, payload = transmit(client, "sensor_data", humidity=1)
        assert len(payload) == 9
        assert receive(server, packet_id, payload).samples == []  # type: ignore[attr-defined]


class TestRejections:
    """Test payloads a receiver must refuse."""

    @pytest.mark.parametrize("length", [0, 8, 10, 42])
    def test_illegal_lengths(self, server: RoleSurface, length: int) -> None:
        """Test lengths that no sensor_data encoding can have."""
        decoder = server.sensor_data
        assert not decoder.decode(decoder.new(), bytes(64), length)

    def test_capacity_too_small(self, client: RoleSurface) -> None:
        """Test encode refuses a short buffer and leaves it untouched."""
        encoder = client.sensor_data
        buf = bytearray(b"\xaa" * 10)
        assert encoder.encode(encoder.new(samples=[1]), buf) == 0
        assert buf == bytearray(b"\xaa" * 10)

    def test_wrong_role_operation(self, server: RoleSurface) -> None:
        """Test the server has no way to encode a sub message."""
        with pytest.raises(AttributeError):
            server.sensor_data.encode  # noqa: B018


class TestWorkflow:
    """Test the full load, compile, generate workflow."""

    def test_yaml_and_json_agree(self, schema_path: Path, tmp_path: Path) -> None:
        """Test the same schema in YAML compiles to the same layouts."""
        yaml_path = tmp_path / "sensor_messages.yaml"
        yaml_path.write_text(
            "version: '1.0.0'\n"
            "max_address: 255\n"
            "sensor_data:\n"
            "  packet_id: 30\n"
            "  msg_type: struct\n"
            "  direction: sub\n"
            "  msg_desc: Sensor readings\n"
            "  fields:\n"
            "    timestamp: {type: uint32}\n"
            "    location:\n"
            "      type: struct\n"
            "      fields:\n"
            "        x: {type: int16, endianess: big}\n"
            "        y: {type: int16}\n"
            "    humidity: {type: uint8}\n"
            "    samples: {type: uint16, array: true, max_length: 16}\n",
            encoding="utf-8",
        )
        from_yaml = compile_schema(load_schema(yaml_path))
        from_json = compile_schema(load_schema(schema_path))
        assert from_yaml.codec("sensor_data").definition == from_json.codec(
            "sensor_data"
        ).definition

    def test_generated_headers_match_surfaces(self, compiled: CompiledSchema) -> None:
        """Test every encoder of a role has a C encode function and vice versa."""
        headers = c.generate(compiled, base_name="sensor")
        roles = ((Role.ORIGINATOR, "sensor_server.h"), (Role.RECEIVER, "sensor_client.h"))
        for role, filename in roles:
            surface = compiled.surface(role)
            text = headers[filename]
            for name in surface.encoders:
                assert f"seridl_msg_{name}_encode(" in text
                assert f"seridl_msg_{name}_decode(" not in text
            for name in surface.decoders:
                assert f"seridl_msg_{name}_decode(" in text

    def test_independent_compilations(self, schema_path: Path) -> None:
        """Test compiling twice gives equal, independent results."""
        compiler = SchemaCompiler()
        first = compiler.compile(load_schema(schema_path))
        second = compiler.compile(load_schema(schema_path))
        assert first.constants == second.constants
        assert first.model("ping") is not second.model("ping")
