"""Pydantic instance models for seridl messages."""

from __future__ import annotations

from .base import BaseMessage
from .builder import build_model
from .fields import BoundedList, BoundedStr, NestedStruct, WireBool, WireFloat, WireInt

__all__ = [
    "BaseMessage",
    "build_model",
    "BoundedList",
    "BoundedStr",
    "NestedStruct",
    "WireBool",
    "WireFloat",
    "WireInt",
]
