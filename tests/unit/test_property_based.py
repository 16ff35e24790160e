"""Property-based tests using hypothesis."""

from __future__ import annotations

import math
import struct

from hypothesis import given
from hypothesis import strategies as st

from seridl import (
    CharArray,
    Endian,
    FieldDefinition,
    MessageDefinition,
    Primitive,
    Scalar,
    ScalarArray,
    Struct,
    compile_schema,
    decode,
    encode,
)
from seridl.codec.primitives import float_to_bits, read_primitive, write_primitive

COMPILED = compile_schema(
    [
        MessageDefinition(
            "reading",
            None,
            fields=(
                FieldDefinition("channel", Scalar(Primitive.U8)),
                FieldDefinition("level", Scalar(Primitive.I32), endian=Endian.BIG),
            ),
        ),
        MessageDefinition(
            "report",
            1,
            fields=(
                FieldDefinition("sequence", Scalar(Primitive.U16)),
                FieldDefinition("reading", Struct("reading")),
                FieldDefinition("samples", ScalarArray(Primitive.I16), max_length=16),
                FieldDefinition("ok", Scalar(Primitive.BOOL)),
            ),
        ),
        MessageDefinition(
            "note",
            2,
            fields=(FieldDefinition("text", CharArray(), max_length=24),),
        ),
        MessageDefinition(
            "position",
            3,
            fields=(FieldDefinition("value", Scalar(Primitive.F64), endian=Endian.BIG),),
        ),
        MessageDefinition(
            "gauge",
            4,
            fields=(FieldDefinition("value", Scalar(Primitive.F32), endian=Endian.BIG),),
        ),
        MessageDefinition(
            "trace",
            5,
            fields=(FieldDefinition("points", ScalarArray(Primitive.F32), max_length=8),),
        ),
    ]
)
Report = COMPILED.model("report")
Note = COMPILED.model("note")
Position = COMPILED.model("position")
Gauge = COMPILED.model("gauge")
Trace = COMPILED.model("trace")

# Largest finite binary32 value
FLOAT32_MAX = struct.unpack("<f", b"\xff\xff\x7f\x7f")[0]

INTEGER_PRIMITIVES = [p for p in Primitive if p.is_integer]


class TestPrimitiveProperties:
    """Property-based tests for the primitive codec."""

    @given(data=st.data(), endian=st.sampled_from(list(Endian)))
    def test_integer_roundtrip(self, data: st.DataObject, endian: Endian) -> None:
        """Test every in-range integer survives a write/read."""
        primitive = data.draw(st.sampled_from(INTEGER_PRIMITIVES))
        low, high = primitive.int_range
        value = data.draw(st.integers(min_value=low, max_value=high))
        buf = bytearray(primitive.width)
        assert write_primitive(primitive, endian, value, buf) == primitive.width
        assert read_primitive(primitive, endian, buf) == value

    @given(value=st.floats(allow_nan=True, allow_infinity=True))
    def test_float64_bit_exact(self, value: float) -> None:
        """Test float64 preserves the exact bit pattern, NaN and -0.0 included."""
        buf = bytearray(8)
        write_primitive(Primitive.F64, Endian.BIG, value, buf)
        result = read_primitive(Primitive.F64, Endian.BIG, buf)
        assert struct.pack("<d", result) == struct.pack("<d", value)

    @given(value=st.integers(min_value=0, max_value=0xFFFF_FFFF))
    def test_endian_reverses_bytes(self, value: int) -> None:
        """Test big endian is the byte reversal of little endian."""
        little = bytearray(4)
        big = bytearray(4)
        write_primitive(Primitive.U32, Endian.LITTLE, value, little)
        write_primitive(Primitive.U32, Endian.BIG, value, big)
        assert bytes(big) == bytes(reversed(little))


class TestMessageProperties:
    """Property-based tests for whole messages."""

    @given(
        sequence=st.integers(min_value=0, max_value=0xFFFF),
        channel=st.integers(min_value=0, max_value=0xFF),
        level=st.integers(min_value=-(2**31), max_value=2**31 - 1),
        samples=st.lists(st.integers(min_value=-(2**15), max_value=2**15 - 1), max_size=16),
        ok=st.booleans(),
    )
    def test_report_roundtrip(
        self, sequence: int, channel: int, level: int, samples: list[int], ok: bool
    ) -> None:
        """Test decode(encode(m)) == m with a nested struct and a bounded field."""
        msg = Report(
            sequence=sequence,
            reading={"channel": channel, "level": level},
            samples=samples,
            ok=ok,
        )
        data = encode(msg)
        assert len(data) == 2 + 5 + 2 * len(samples) + 1
        assert decode(Report, data) == msg

    @given(text=st.text(alphabet=st.characters(max_codepoint=255), max_size=24))
    def test_note_roundtrip(self, text: str) -> None:
        """Test char arrays of any length up to max_length."""
        data = encode(Note(text=text))
        assert len(data) == len(text)
        assert decode(Note, data).text == text

    @given(value=st.floats(allow_nan=False))
    def test_position_roundtrip(self, value: float) -> None:
        """Test float64 scalars survive a whole-message round trip."""
        result = decode(Position, encode(Position(value=value))).value
        assert result == value
        assert math.copysign(1.0, result) == math.copysign(1.0, value)

    @given(value=st.floats(width=32))
    def test_float32_bit_exact(self, value: float) -> None:
        """Test float32 scalars keep their bit pattern, NaN payloads included."""
        msg = Gauge(value=value)
        result = decode(Gauge, encode(msg)).value
        assert float_to_bits(result, 4) == float_to_bits(value, 4)

    @given(value=st.floats(min_value=-FLOAT32_MAX, max_value=FLOAT32_MAX))
    def test_float32_roundtrip_any_value(self, value: float) -> None:
        """Test any float in range is stored as its float32 value and round-trips."""
        msg = Gauge(value=value)
        assert msg.value == struct.unpack("<f", struct.pack("<f", value))[0]
        assert decode(Gauge, encode(msg)) == msg

    @given(
        points=st.lists(
            st.floats(min_value=-FLOAT32_MAX, max_value=FLOAT32_MAX), max_size=8
        )
    )
    def test_float32_array_roundtrip(self, points: list[float]) -> None:
        """Test float32 array elements are rounded on assignment and round-trip."""
        msg = Trace(points=points)
        assert decode(Trace, encode(msg)) == msg

    @given(samples=st.lists(st.integers(min_value=0, max_value=100), max_size=16))
    def test_size_depends_only_on_length(self, samples: list[int]) -> None:
        """Test the encoded size ignores element values."""
        zeros = Report(samples=[0] * len(samples))
        assert len(encode(Report(samples=samples))) == len(encode(zeros))

    @given(length=st.integers(min_value=0, max_value=64))
    def test_legal_lengths(self, length: int) -> None:
        """Test only min_size + k * width (k <= max_length) decodes."""
        codec = COMPILED.codec("report")
        extra = length - codec.min_size
        legal = 0 <= extra <= 32 and extra % 2 == 0
        assert codec.is_legal_length(length) == legal
        assert codec.decode(codec.new(), bytes(length), length) == legal
