"""Exception hierarchy for seridl.

All exceptions inherit from SeridlError for easy catching of any seridl-specific error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


class SeridlError(Exception):
    """Base exception for all seridl errors."""

    pass


@dataclass(frozen=True)
class SchemaIssue:
    """A single problem found while validating a schema.

    Attributes:
        message: Name of the offending message (or "<schema>" for document-level issues)
        reason: Human-readable description
        field: Name of the offending field, if the issue is field-specific
    """

    message: str
    reason: str
    field: Optional[str] = None

    def __str__(self) -> str:
        if self.field is not None:
            return f"{self.message}.{self.field}: {self.reason}"
        return f"{self.message}: {self.reason}"


class SchemaError(SeridlError):
    """Raised when a message schema is invalid.

    All issues found in one compilation pass are collected and reported together.

    Examples:
        - Duplicate packet id
        - Unresolved, forward or cyclic struct reference
        - More than one variable-length field in a message
        - Missing or invalid max_length
    """

    def __init__(self, issues: Iterable[SchemaIssue] | str) -> None:
        if isinstance(issues, str):
            issues = [SchemaIssue("<schema>", issues)]
        self.issues: list[SchemaIssue] = list(issues)
        count = len(self.issues)
        lines = [f"schema has {count} error{'s' if count != 1 else ''}:"]
        lines.extend(f"  - {issue}" for issue in self.issues)
        super().__init__("\n".join(lines))


class EncodeError(SeridlError):
    """Raised when encoding a message fails.

    Examples:
        - Value out of range for the field's wire width
        - Array longer than its max_length
        - Destination capacity smaller than the required size
    """

    pass


class DecodeError(SeridlError):
    """Raised when decoding binary data fails.

    Examples:
        - Buffer length is not a legal encoding length for the message
        - Variable-length slice not a multiple of the element width
        - Implied element count above max_length
    """

    pass
