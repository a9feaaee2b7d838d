"""Built-in block helpers: `if`, `unless`, `each` and `with`."""

from __future__ import annotations

from typing import Any, cast

from handlebars_cli.handlebars._compiler import HelperFunc, HelperOptions
from handlebars_cli.handlebars._utils import is_falsy


def _helper_if(value: Any, options: HelperOptions) -> str:
    """The #if block helper.

    Renders the block against the unchanged context if the value is truthy.
    """
    if not is_falsy(value):
        return options.fn()
    return options.inverse()


def _helper_unless(value: Any, options: HelperOptions) -> str:
    """The #unless block helper. Inverse of #if."""
    if is_falsy(value):
        return options.fn()
    return options.inverse()


def _helper_each(value: Any, options: HelperOptions) -> str:
    """The #each block helper.

    Iterates over arrays (with @index) and objects (with @key), providing @first and @last.
    """
    parts: list[str] = []

    if isinstance(value, dict):
        dict_items = cast('dict[str, Any]', value)
        if not dict_items:
            return options.inverse()
        last = len(dict_items) - 1
        for i, (key, item) in enumerate(dict_items.items()):
            parts.append(options.fn(item, data={'key': key, 'first': i == 0, 'last': i == last}))
    elif isinstance(value, (list, tuple)):
        seq = cast('list[Any]', value)
        if not seq:
            return options.inverse()
        last = len(seq) - 1
        for i, item in enumerate(seq):
            parts.append(options.fn(item, data={'index': i, 'first': i == 0, 'last': i == last}))
    else:
        return options.inverse()

    return ''.join(parts)


def _helper_with(value: Any, options: HelperOptions) -> str:
    """The #with block helper.

    Pushes the value as the context for the block body.
    """
    if is_falsy(value):
        return options.inverse()
    return options.fn(value)


def get_default_helpers() -> dict[str, HelperFunc]:
    """Get the built-in block helpers.

    Returns:
        A dictionary mapping helper names to helper functions.
    """
    return {
        'if': _helper_if,
        'unless': _helper_unless,
        'each': _helper_each,
        'with': _helper_with,
    }
