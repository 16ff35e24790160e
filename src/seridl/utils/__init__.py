"""Utility functions for seridl.

This module provides identifier naming and size calculation helpers.
"""

from __future__ import annotations

from .naming import to_macro_ident, to_pascal_case, to_snake_case
from .sizing import encoded_size, field_sizes, max_encoded_size, min_encoded_size

__all__ = [
    # Naming
    "to_snake_case",
    "to_macro_ident",
    "to_pascal_case",
    # Sizing
    "encoded_size",
    "min_encoded_size",
    "max_encoded_size",
    "field_sizes",
]
