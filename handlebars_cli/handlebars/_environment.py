"""HandlebarsEnvironment class for managing partials and rendering."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from handlebars_cli.handlebars._ast_nodes import Program
from handlebars_cli.handlebars._compiler import MAX_PARTIAL_DEPTH, Compiler
from handlebars_cli.handlebars._helpers import get_default_helpers
from handlebars_cli.handlebars._parser import parse
from handlebars_cli.handlebars._partials import PartialRegistry

logger = logging.getLogger(__name__)

# Default for `context` arguments, so an explicit `None` (JSON null) is kept as the root value
NO_CONTEXT: Any = object()


class HandlebarsEnvironment:
    """An environment for rendering Handlebars templates with partials.

    The environment owns a partial registry and the rendering options, and provides
    methods for compiling and rendering templates.

    Example:
        ```python
        env = HandlebarsEnvironment()
        env.register_partial('user', '<b>{{name}}</b>')

        result = env.render('{{#each users}}{{> user}}{{/each}}', {'users': [{'name': 'Ann'}]})
        assert result == '<b>Ann</b>'
        ```

    Args:
        partials: Partials to register up front, as source strings or parsed programs.
        strict: Raise `MissingVariableError` when a `{{variable}}` cannot be resolved
            instead of rendering it as an empty string.
        max_partial_depth: How deeply partials may include other partials.
    """

    def __init__(
        self,
        partials: Mapping[str, str | Program] | None = None,
        *,
        strict: bool = False,
        max_partial_depth: int = MAX_PARTIAL_DEPTH,
    ) -> None:
        if max_partial_depth < 1:
            raise ValueError(f'max_partial_depth must be at least 1, got {max_partial_depth}')
        self._helpers = get_default_helpers()
        self._partials = PartialRegistry(partials)
        self.strict = strict
        self.max_partial_depth = max_partial_depth

    @property
    def partials(self) -> PartialRegistry:
        """The partials available to templates compiled from now on."""
        return self._partials

    def register_partial(self, name: str, source: str | Program) -> None:
        """Register a partial template.

        Args:
            name: The name used in `{{> name}}`.
            source: The partial's template source, or an already parsed program.
        """
        logger.debug('registering partial %r', name)
        self._partials.register(name, source)

    def unregister_partial(self, name: str) -> None:
        """Unregister a partial by name.

        Raises:
            KeyError: If the partial is not registered.
        """
        self._partials.unregister(name)

    def compile(self, source: str | Program) -> Callable[[Any], str]:
        """Compile a template into a reusable callable.

        The callable renders with the partials registered at compile time.

        Args:
            source: The Handlebars template string, or an already parsed program.

        Returns:
            A callable that takes a JSON context and returns a rendered string.
        """
        program = parse(source) if isinstance(source, str) else source
        helpers = dict(self._helpers)
        partials = self._partials.snapshot()
        strict = self.strict
        max_partial_depth = self.max_partial_depth
        logger.debug('compiled template with %d statements and %d partials', len(program.body), len(partials))

        def template(context: Any = NO_CONTEXT) -> str:
            ctx: Any = {} if context is NO_CONTEXT else context
            compiler = Compiler(helpers, partials, strict=strict, max_partial_depth=max_partial_depth)
            return compiler.render(program, ctx)

        return template

    def render(self, source: str | Program, context: Any = NO_CONTEXT) -> str:
        """Render a template with the given context.

        Args:
            source: The Handlebars template string.
            context: The JSON data context for rendering, `{}` when omitted.

        Returns:
            The rendered string.
        """
        template = self.compile(source)
        return template(context)
