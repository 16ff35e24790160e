#!/usr/bin/env python3
"""Basic usage example for seridl.

This example demonstrates:
1. Loading and compiling a message schema
2. Encoding on the server side with the role surface
3. Decoding on the client side by packet id
4. Calculating message sizes
5. Generating C headers and Markdown docs
"""

from __future__ import annotations

from pathlib import Path

from seridl import compile_schema, encoded_size, field_sizes, load_schema
from seridl.emit import c, markdown

SCHEMA = Path(__file__).resolve().parent / "sensor_messages.json"


def main() -> None:
    """Run the basic usage example."""
    print("=" * 60)
    print("seridl Basic Usage Example")
    print("=" * 60)
    print()

    # Load and compile the schema
    print("1. Compiling the sensor schema...")
    compiled = compile_schema(load_schema(SCHEMA))
    for name, packet_id in compiled.packet_ids.items():
        print(f"   {packet_id:3d}  {name}")
    print()

    server = compiled.surface("server")
    client = compiled.surface("client")

    # Server side: led_control is a pub message, so the server encodes it
    print("2. Server encodes led_control...")
    msg = server.led_control.new(led=3, on=True, brightness=0.8)
    buf = bytearray(server.led_control.max_size)
    size = server.led_control.encode(msg, buf)
    print(f"   Encoded size: {size} bytes")
    print(f"   Hex: {bytes(buf[:size]).hex()}")
    print()

    # Client side: dispatch on the packet id the transport delivered
    print("3. Client decodes by packet id...")
    decoder = client.by_packet_id(server.led_control.packet_id)
    received = decoder.new()
    if decoder.decode(received, buf, size):
        print(f"   {decoder.name}: led={received.led} on={received.on} "
              f"brightness={received.brightness}")
    print()

    # Sizes follow the bounded field's current length
    print("4. Analyzing sizes of sensor_data...")
    reading = client.sensor_data.new(timestamp=1000, humidity=40, samples=[512, 513, 514])
    for field_name, nbytes in field_sizes(reading).items():
        print(f"   {field_name}: {nbytes} bytes")
    print(f"   Total: {encoded_size(reading)} bytes "
          f"(range {client.sensor_data.min_size}-{client.sensor_data.max_size})")
    print()

    # The server cannot encode sub messages: the operation does not exist
    print("5. Checking the role projection...")
    print(f"   server.sensor_data has encode: {hasattr(server.sensor_data, 'encode')}")
    print(f"   client.sensor_data has encode: {hasattr(client.sensor_data, 'encode')}")
    print()

    # Generated artifacts
    print("6. Generating C headers and documentation...")
    for filename, text in c.generate(compiled, base_name="sensor").items():
        print(f"   {filename}: {len(text.splitlines())} lines")
    docs = markdown.generate(compiled, source=SCHEMA.name)
    print(f"   COMMANDS.md: {len(docs.splitlines())} lines")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
