"""AST node definitions for the Handlebars parser."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Union


@dataclass(slots=True)
class PathExpression:
    """A path expression like `foo`, `foo.bar`, `../foo`, `this`, `@index`.

    Attributes:
        parts: The individual path segments (e.g., ['foo', 'bar'] for 'foo.bar').
        original: The original text of the path.
        depth: Number of parent scope references (../ count).
        is_this: Whether the path starts with 'this' or '.'.
        data: Whether this is a @data variable (e.g., @root, @index).
    """

    parts: list[str]
    original: str
    depth: int = 0
    is_this: bool = False
    data: bool = False


@dataclass(slots=True)
class StripFlags:
    """Whitespace control flags for a single tag.

    Attributes:
        left: `{{~`, strip whitespace before the tag.
        right: `~}}`, strip whitespace after the tag.
    """

    left: bool = False
    right: bool = False


@dataclass(slots=True)
class ContentStatement:
    """Raw text content between Handlebars expressions.

    Attributes:
        value: The text emitted when rendering (after unescaping and whitespace control).
        original: The source text, exactly as written.
    """

    value: str
    original: str
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


@dataclass(slots=True)
class MustacheStatement:
    """A variable reference like `{{foo}}`, `{{{foo}}}`, or `{{&foo}}`.

    Attributes:
        path: The path to resolve.
        escaped: Whether the output should be HTML-escaped.
        strip: Whitespace stripping configuration.
    """

    path: PathExpression
    escaped: bool = True
    strip: StripFlags = field(default_factory=StripFlags)
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


@dataclass(slots=True)
class CommentStatement:
    """A comment: `{{! ... }}` or `{{!-- ... --}}`.

    Attributes:
        value: The comment text.
        long: Whether the `{{!-- --}}` form was used.
        strip: Whitespace stripping configuration.
    """

    value: str
    long: bool = False
    strip: StripFlags = field(default_factory=StripFlags)
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


@dataclass(slots=True)
class PartialStatement:
    """A partial reference like `{{> header}}` or `{{> user/card person}}`.

    Attributes:
        name: The registered partial name.
        path: The context to render the partial with, or None to reuse the current one.
        strip: Whitespace stripping configuration.
    """

    name: str
    path: PathExpression | None = None
    strip: StripFlags = field(default_factory=StripFlags)
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


@dataclass(slots=True)
class BlockStatement:
    """A block like `{{#if condition}}...{{else}}...{{/if}}`.

    Attributes:
        name: The block helper (`if`, `unless`, `each`, `with`), or the section path for
            mustache-style sections like `{{#person}}...{{/person}}`.
        path: The helper argument (or the section path). None, which the parser never produces,
            means the current context.
        body: The main body program.
        inverse: The else/inverse body program (if any).
        open_strip: Whitespace stripping for the open tag.
        close_strip: Whitespace stripping for the close tag.
        inverse_strip: Whitespace stripping for the `{{else}}` tag.
        chained: Whether this block came from an `{{else if ...}}` chain.
        inverted: Whether the block was opened with `{{^name}}`.
    """

    name: str
    path: PathExpression | None
    body: Program
    inverse: Program | None = None
    open_strip: StripFlags = field(default_factory=StripFlags)
    close_strip: StripFlags = field(default_factory=StripFlags)
    inverse_strip: StripFlags = field(default_factory=StripFlags)
    chained: bool = False
    inverted: bool = False
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


@dataclass(slots=True)
class RawBlock:
    """A raw block like `{{{{raw}}}}...{{{{/raw}}}}`.

    Content inside is not processed.
    """

    name: str
    body: str
    line: int = field(default=0, compare=False)
    column: int = field(default=0, compare=False)


# Union type for all statement nodes
Statement = Union[
    ContentStatement, MustacheStatement, CommentStatement, PartialStatement, BlockStatement, RawBlock
]


@dataclass(slots=True)
class Program:
    """A complete template or block body.

    Attributes:
        body: List of statements in this program, in rendering order.
    """

    body: list[Statement] = field(default_factory=list)  # pyright: ignore[reportUnknownVariableType]


def walk(program: Program) -> Iterator[Statement]:
    """Yield every statement in a program depth-first, in document order.

    Inverted sections store their source-first section in `inverse`, so that is visited first.
    """
    for stmt in program.body:
        yield stmt
        if isinstance(stmt, BlockStatement):
            sections = [stmt.body, stmt.inverse]
            if stmt.inverted:
                sections.reverse()
            for section in sections:
                if section is not None:
                    yield from walk(section)
