"""Pure Python implementation of the Handlebars template language.

Supports variables, the `if`/`unless`/`each`/`with` block helpers, mustache-style
sections, partials, comments, raw blocks and `~` whitespace control.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

from handlebars_cli.handlebars._ast_nodes import Program, walk
from handlebars_cli.handlebars._compiler import MAX_PARTIAL_DEPTH, Compiler, HelperOptions
from handlebars_cli.handlebars._context import ContextStack
from handlebars_cli.handlebars._environment import NO_CONTEXT, HandlebarsEnvironment
from handlebars_cli.handlebars._exceptions import (
    DuplicateElseError,
    HandlebarsError,
    HandlebarsParseError,
    HandlebarsRuntimeError,
    MismatchedBlockError,
    MissingVariableError,
    NonScalarVariableError,
    PartialRecursionLimitError,
    UnclosedBlockError,
    UnknownPartialError,
    UnterminatedTagError,
)
from handlebars_cli.handlebars._parser import parse
from handlebars_cli.handlebars._partials import PartialRegistry
from handlebars_cli.handlebars._unparse import unparse
from handlebars_cli.handlebars._utils import UNDEFINED, escape_expression

__all__ = [
    'compile',
    'render',
    'parse',
    'unparse',
    'walk',
    'Program',
    'UNDEFINED',
    'MAX_PARTIAL_DEPTH',
    'HandlebarsError',
    'HandlebarsParseError',
    'MismatchedBlockError',
    'UnterminatedTagError',
    'UnclosedBlockError',
    'DuplicateElseError',
    'HandlebarsRuntimeError',
    'NonScalarVariableError',
    'MissingVariableError',
    'UnknownPartialError',
    'PartialRecursionLimitError',
    'HandlebarsEnvironment',
    'HelperOptions',
    'Compiler',
    'ContextStack',
    'PartialRegistry',
    'escape_expression',
]

# Default environment for module-level functions
_default_env = HandlebarsEnvironment()


class _CompiledTemplate:
    """A compiled Handlebars template."""

    def __init__(self, fn: Callable[..., str]) -> None:
        self._fn = fn

    def __call__(self, context: Any = NO_CONTEXT) -> str:
        """Render the template with the given context."""
        return self._fn(context)


def _environment(partials: Mapping[str, str | Program] | None) -> HandlebarsEnvironment:
    return HandlebarsEnvironment(partials) if partials else _default_env


def render(source: str, context: Any = NO_CONTEXT, partials: Mapping[str, str | Program] | None = None) -> str:
    """Render a Handlebars template string with the given context.

    Args:
        source: The Handlebars template string.
        context: The JSON data context for rendering.
        partials: Partials available to `{{> name}}`, as source strings or parsed programs.

    Returns:
        The rendered string.

    Example:
        ```python
        result = render('Hello {{name}}!', {'name': 'World'})
        assert result == 'Hello World!'
        ```
    """
    return _environment(partials).render(source, context)


def compile(source: str, partials: Mapping[str, str | Program] | None = None) -> _CompiledTemplate:
    """Compile a Handlebars template string into a reusable callable.

    Args:
        source: The Handlebars template string.
        partials: Partials available to `{{> name}}`.

    Returns:
        A callable that takes a JSON context and returns a rendered string.

    Example:
        ```python
        template = compile('Hello {{name}}!')
        result = template({'name': 'World'})
        assert result == 'Hello World!'
        ```
    """
    return _CompiledTemplate(_environment(partials).compile(source))
