"""The registry of named partial templates."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from handlebars_cli.handlebars._ast_nodes import Program
from handlebars_cli.handlebars._parser import parse

logger = logging.getLogger(__name__)


class PartialRegistry(Mapping[str, Program]):
    """A mapping from partial name to its parsed template.

    Partials are parsed when registered, so syntax errors surface before any rendering.
    Renders use `snapshot()`, which later registrations do not affect.

    Example:
        ```python
        partials = PartialRegistry({'greeting': 'Hello {{name}}!'})
        partials.register('farewell', 'Bye {{name}}.')
        assert sorted(partials) == ['farewell', 'greeting']
        ```
    """

    def __init__(self, partials: Mapping[str, str | Program] | None = None) -> None:
        self._partials: dict[str, Program] = {}
        for name, source in (partials or {}).items():
            self.register(name, source)

    def register(self, name: str, source: str | Program) -> None:
        """Register a partial, replacing any partial with the same name.

        Args:
            name: The name used in `{{> name}}`.
            source: The partial's template source, or an already parsed program.

        Raises:
            ValueError: If the name cannot be referenced from a template.
            HandlebarsParseError: If the source is not a valid template.
        """
        if not name or any(ch.isspace() or ch in '}~' for ch in name):
            raise ValueError(f'Invalid partial name: {name!r}')
        program = parse(source) if isinstance(source, str) else source
        if name in self._partials:
            logger.debug('replacing partial %r', name)
        self._partials[name] = program

    def unregister(self, name: str) -> None:
        """Remove a partial.

        Raises:
            KeyError: If the partial is not registered.
        """
        if name not in self._partials:
            raise KeyError(f'Partial not found: {name}')
        del self._partials[name]

    def snapshot(self) -> Mapping[str, Program]:
        """A read-only copy of the current registrations."""
        return MappingProxyType(dict(self._partials))

    def __getitem__(self, name: str) -> Program:
        return self._partials[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._partials)

    def __len__(self) -> int:
        return len(self._partials)
