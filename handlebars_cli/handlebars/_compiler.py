"""Compiler/renderer for Handlebars templates.

Walks the AST and produces output given a context.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol, cast

from handlebars_cli.handlebars._ast_nodes import (
    BlockStatement,
    CommentStatement,
    ContentStatement,
    MustacheStatement,
    PartialStatement,
    Program,
    RawBlock,
    Statement,
)
from handlebars_cli.handlebars._context import ContextStack
from handlebars_cli.handlebars._exceptions import (
    MissingVariableError,
    NonScalarVariableError,
    PartialRecursionLimitError,
    UnknownPartialError,
)
from handlebars_cli.handlebars._utils import UNDEFINED, escape_expression, is_falsy, is_scalar, to_string, type_name

# Maximum nesting of partials, guards against partials that include themselves
MAX_PARTIAL_DEPTH = 100

# Passed as `context` to render a block body against the unchanged stack
_KEEP: Any = object()


class _BlockFn(Protocol):
    def __call__(self, context: Any = _KEEP, *, data: dict[str, Any] | None = None) -> str: ...  # pragma: no cover


class HelperOptions:
    """Options passed to block helper functions.

    Attributes:
        fn: Renders the block body. Called with no context it renders against the current
            scope; called with a context it pushes that value (and `data`) as a new scope.
        inverse: Renders the else/inverse body, the same way.
        name: The name of the helper being invoked.
    """

    def __init__(self, *, fn: _BlockFn, inverse: _BlockFn, name: str) -> None:
        self.fn = fn
        self.inverse = inverse
        self.name = name


HelperFunc = Callable[[Any, HelperOptions], str]


class Compiler:
    """Renders a Handlebars AST into a string.

    A compiler holds the state of one render call; create a new one per call.
    """

    def __init__(
        self,
        helpers: Mapping[str, HelperFunc] | None = None,
        partials: Mapping[str, Program] | None = None,
        *,
        strict: bool = False,
        max_partial_depth: int = MAX_PARTIAL_DEPTH,
    ) -> None:
        self._helpers: Mapping[str, HelperFunc] = helpers or {}
        self._partials: Mapping[str, Program] = partials or {}
        self._strict = strict
        self._max_partial_depth = max_partial_depth
        self._partial_depth = 0
        # Most recently entered partial and its depth, reported if the interpreter stack runs out
        self._last_partial: tuple[str, int] | None = None

    def render(self, program: Program, context: Any) -> str:
        """Render a program AST with the given context.

        Args:
            program: The AST to render.
            context: The root JSON value.

        Returns:
            The rendered string.

        Raises:
            HandlebarsRuntimeError: If rendering fails; no partial output is returned.
        """
        stack = ContextStack(context)
        try:
            return self._render_program(program, stack)
        except RecursionError:
            # Blocks between partials use interpreter frames too, so the stack can run out first
            if self._last_partial is None:
                raise
            name, depth = self._last_partial
            raise PartialRecursionLimitError(name, depth) from None

    def _render_program(self, program: Program, stack: ContextStack) -> str:
        """Render a program (sequence of statements)."""
        return ''.join(self._render_statement(stmt, stack) for stmt in program.body)

    def _render_statement(self, stmt: Statement, stack: ContextStack) -> str:
        """Render a single statement."""
        if isinstance(stmt, ContentStatement):
            return stmt.value

        if isinstance(stmt, MustacheStatement):
            return self._render_mustache(stmt, stack)

        if isinstance(stmt, BlockStatement):
            return self._render_block(stmt, stack)

        if isinstance(stmt, PartialStatement):
            return self._render_partial(stmt, stack)

        if isinstance(stmt, CommentStatement):
            return ''

        if isinstance(stmt, RawBlock):  # pragma: no branch
            return stmt.body

        raise TypeError(f'Unknown statement type: {type(stmt).__name__}')  # pragma: no cover

    def _render_mustache(self, stmt: MustacheStatement, stack: ContextStack) -> str:
        """Render a variable reference."""
        value = stack.resolve(stmt.path)

        if value is UNDEFINED:
            if self._strict:
                raise MissingVariableError(stmt.path.original)
            return ''

        if not is_scalar(value):
            raise NonScalarVariableError(stmt.path.original, type_name(value))

        result = to_string(value)
        if stmt.escaped:
            result = escape_expression(result)
        return result

    def _render_block(self, stmt: BlockStatement, stack: ContextStack) -> str:
        """Render a block statement."""
        value = stack.resolve(stmt.path)
        compiler = self

        def fn(context: Any = _KEEP, *, data: dict[str, Any] | None = None) -> str:
            return compiler._render_section(stmt.body, stack, context, data)

        def inverse(context: Any = _KEEP, *, data: dict[str, Any] | None = None) -> str:
            if stmt.inverse is None:
                return ''
            return compiler._render_section(stmt.inverse, stack, context, data)

        options = HelperOptions(fn=fn, inverse=inverse, name=stmt.name)

        helper = self._helpers.get(stmt.name)
        if helper is None:
            return self._render_context_block(value, options)
        return helper(value, options)

    def _render_section(
        self, program: Program, stack: ContextStack, context: Any, data: dict[str, Any] | None
    ) -> str:
        if context is _KEEP:
            return self._render_program(program, stack)
        with stack.pushed(context, data):
            return self._render_program(program, stack)

    def _render_context_block(self, value: Any, options: HelperOptions) -> str:
        """Render a mustache-style section like `{{#person}}...{{/person}}`."""
        if is_falsy(value):
            return options.inverse()

        if isinstance(value, (list, tuple)):
            items = cast('list[Any]', value)
            if not items:
                return options.inverse()
            return ''.join(
                options.fn(item, data={'index': i, 'first': i == 0, 'last': i == len(items) - 1})
                for i, item in enumerate(items)
            )

        if value is True:
            return options.fn()

        # Use value as context
        return options.fn(value)

    def _render_partial(self, stmt: PartialStatement, stack: ContextStack) -> str:
        """Render a partial with the referenced (or current) context pushed as a new scope."""
        program = self._partials.get(stmt.name)
        if program is None:
            raise UnknownPartialError(stmt.name)

        if self._partial_depth >= self._max_partial_depth:
            raise PartialRecursionLimitError(stmt.name, self._max_partial_depth)

        context = stack.resolve(stmt.path)
        self._partial_depth += 1
        self._last_partial = (stmt.name, self._partial_depth)
        try:
            with stack.pushed(context):
                return self._render_program(program, stack)
        finally:
            self._partial_depth -= 1
