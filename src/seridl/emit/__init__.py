"""Code and documentation emitters for compiled schemas."""

from __future__ import annotations

from . import c, markdown

__all__ = ["c", "markdown"]
