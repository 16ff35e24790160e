"""Identifier conversion helpers used for generated names.

Conversions only split on non-alphanumeric characters; camelCase boundaries
are not detected (``HelloWorld`` becomes ``helloworld``).
"""

from __future__ import annotations


def _convert(name: str, transform, empty: str) -> str:
    result: list[str] = []
    last_was_underscore = False
    for ch in name:
        if ch.isascii() and ch.isalnum():
            if not result and ch.isdigit():
                result.append("_")
            result.append(transform(ch))
            last_was_underscore = False
        elif not last_was_underscore:
            result.append("_")
            last_was_underscore = True
    text = "".join(result)
    if text.endswith("_"):
        text = text[:-1]
    return text or empty


def to_snake_case(name: str) -> str:
    """Convert a message or field name to a lowercase identifier.

    Example:
        >>> to_snake_case("LED Control")
        'led_control'
        >>> to_snake_case("123test")
        '_123test'
    """
    return _convert(name, str.lower, "msg")


def to_macro_ident(name: str) -> str:
    """Convert a name to an uppercase macro identifier.

    Example:
        >>> to_macro_ident("firmware_version")
        'FIRMWARE_VERSION'
    """
    return _convert(name, str.upper, "MSG")


def to_pascal_case(name: str) -> str:
    """Convert a name to a PascalCase class name.

    Example:
        >>> to_pascal_case("firmware_version")
        'FirmwareVersion'
        >>> to_pascal_case("123test")
        'M123test'
    """
    result: list[str] = []
    capitalize = True
    for ch in name:
        if ch.isascii() and ch.isalnum():
            if not result and ch.isdigit():
                result.append("M")
            result.append(ch.upper() if capitalize else ch.lower())
            capitalize = False
        else:
            capitalize = True
    return "".join(result) or "Msg"
