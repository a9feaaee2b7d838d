"""Utility functions for handlebars_cli.handlebars."""

from __future__ import annotations

from typing import Any

# HTML escape mapping for `{{expression}}` output
_ESCAPE_MAP: dict[str, str] = {
    '&': '&amp;',
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&#x27;',
}


class _Undefined:
    """The result of a path that could not be resolved.

    Distinct from JSON `null` (Python `None`): it renders as an empty string and
    is falsy in blocks.
    """

    _instance: _Undefined | None = None

    def __new__(cls) -> _Undefined:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return 'UNDEFINED'


UNDEFINED: Any = _Undefined()


def escape_expression(value: str) -> str:
    """Escape a string for safe inclusion in HTML.

    Args:
        value: The string to escape.

    Returns:
        The HTML-escaped string.
    """
    result: list[str] = []
    for char in value:
        if char in _ESCAPE_MAP:
            result.append(_ESCAPE_MAP[char])
        else:
            result.append(char)
    return ''.join(result)


def to_string(value: Any) -> str:
    """Convert a scalar value to its string representation for template output.

    - None/undefined → ""
    - True → "true"
    - False → "false"
    - Numbers → `str()` representation
    """
    if value is None or value is UNDEFINED:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def is_scalar(value: Any) -> bool:
    """Whether a value can be rendered inline by `{{expression}}`."""
    return not isinstance(value, (dict, list, tuple))


def type_name(value: Any) -> str:
    """The JSON name for the type of a value, used in error messages."""
    if isinstance(value, dict):
        return 'object'
    if isinstance(value, (list, tuple)):
        return 'array'
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'boolean'
    if isinstance(value, (int, float)):
        return 'number'
    if isinstance(value, str):
        return 'string'
    return type(value).__name__


def is_falsy(value: Any) -> bool:
    """Check if a value is falsy in Handlebars semantics.

    Falsy values: False, None, undefined, "", 0.
    Note: empty lists and dicts are TRUTHY.

    Args:
        value: The value to check.

    Returns:
        True if the value is falsy.
    """
    if value is None or value is UNDEFINED:
        return True
    if isinstance(value, bool):
        return not value
    if isinstance(value, str):
        return value == ''
    if isinstance(value, (int, float)):
        return value == 0
    return False
