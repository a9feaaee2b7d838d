"""The context stack used to resolve paths while rendering."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, cast

from handlebars_cli.handlebars._ast_nodes import PathExpression
from handlebars_cli.handlebars._utils import UNDEFINED


@dataclass(slots=True)
class Frame:
    """One scope on the context stack.

    Attributes:
        value: The JSON value that `this` refers to in this scope.
        data: Data variables visible as `@name` (`index`, `key`, `first`, `last`).
    """

    value: Any
    data: dict[str, Any] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]


class ContextStack:
    """An ordered list of frames, innermost scope last.

    `..` in a path drops one frame from the top; `@name` data lookups walk down from the
    top until a frame defines `name`. `@root` is always the bottom frame's value.
    """

    def __init__(self, root: Any) -> None:
        self._frames: list[Frame] = [Frame(root)]

    def __len__(self) -> int:
        return len(self._frames)

    @property
    def top(self) -> Any:
        """The value of the current (innermost) scope."""
        return self._frames[-1].value

    def push(self, value: Any, data: dict[str, Any] | None = None) -> None:
        self._frames.append(Frame(value, data or {}))

    def pop(self) -> Frame:
        if len(self._frames) == 1:
            raise IndexError('Cannot pop the root frame')
        return self._frames.pop()

    @contextmanager
    def pushed(self, value: Any, data: dict[str, Any] | None = None) -> Iterator[None]:
        """Push a frame for the duration of a `with` statement."""
        self.push(value, data)
        try:
            yield
        finally:
            self.pop()

    def resolve(self, path: PathExpression | None) -> Any:
        """Resolve a path against the stack.

        Returns:
            The resolved value, or `UNDEFINED` if any step of the lookup misses.
        """
        if path is None:
            return self.top

        index = len(self._frames) - 1 - path.depth
        if index < 0:
            return UNDEFINED

        if path.data:
            return self._resolve_data(path, index)

        value = self._frames[index].value
        for part in path.parts:
            value = get_property(value, part)
        return value

    def _resolve_data(self, path: PathExpression, index: int) -> Any:
        if not path.parts:
            return UNDEFINED  # pragma: no cover

        name, rest = path.parts[0], path.parts[1:]
        if name == 'root':
            value = self._frames[0].value
        else:
            value = UNDEFINED
            for frame in reversed(self._frames[: index + 1]):
                if name in frame.data:
                    value = frame.data[name]
                    break

        for part in rest:
            value = get_property(value, part)
        return value


def get_property(obj: Any, name: str) -> Any:
    """Look up a key in a JSON object or a non-negative index in a JSON array.

    Anything else, including a missing key or an out-of-range index, is `UNDEFINED`.
    """
    if isinstance(obj, dict):
        return cast('dict[str, Any]', obj).get(name, UNDEFINED)

    if isinstance(obj, (list, tuple)) and name.isascii() and name.isdigit():
        seq = cast('list[Any]', obj)
        index = int(name)
        if index < len(seq):
            return seq[index]

    return UNDEFINED
