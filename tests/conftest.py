"""Pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from seridl import CompiledSchema, RoleSurface, compile_schema, load_schema

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


@pytest.fixture
def schema_path() -> Path:
    """Path of the example sensor schema."""
    return EXAMPLES_DIR / "sensor_messages.json"


@pytest.fixture
def compiled(schema_path: Path) -> CompiledSchema:
    """Compiled example sensor schema."""
    return compile_schema(load_schema(schema_path))


@pytest.fixture
def server(compiled: CompiledSchema) -> RoleSurface:
    """Originator surface of the example schema."""
    return compiled.surface("server")


@pytest.fixture
def client(compiled: CompiledSchema) -> RoleSurface:
    """Receiver surface of the example schema."""
    return compiled.surface("client")
