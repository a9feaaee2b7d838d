"""Exception hierarchy for handlebars_cli.handlebars."""

from __future__ import annotations


class HandlebarsError(Exception):
    """Base exception for all Handlebars errors."""


class HandlebarsParseError(HandlebarsError):
    """Raised when a template cannot be parsed.

    Attributes:
        message: The error message, without location.
        line: The line number where the error occurred (1-based).
        column: The column number where the error occurred (1-based).
    """

    def __init__(self, message: str, *, line: int | None = None, column: int | None = None) -> None:
        self.message = message
        self.line = line
        self.column = column
        if line is not None and column is not None:
            full_message = f'{message} at line {line}, column {column}'
        elif line is not None:
            full_message = f'{message} at line {line}'
        else:
            full_message = message
        super().__init__(full_message)


class MismatchedBlockError(HandlebarsParseError):
    """A closing tag does not match the innermost open block."""

    def __init__(self, expected: str, found: str, *, line: int, column: int) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"{expected} doesn't match {found}", line=line, column=column)


class UnterminatedTagError(HandlebarsParseError):
    """A `{{` (or comment / raw block) was opened and never closed."""


class UnclosedBlockError(HandlebarsParseError):
    """End of input was reached while a block was still open."""

    def __init__(self, name: str, *, line: int, column: int) -> None:
        self.name = name
        super().__init__(f'Unclosed block: {name}', line=line, column=column)


class DuplicateElseError(HandlebarsParseError):
    """A block contains more than one `{{else}}`."""

    def __init__(self, name: str, *, line: int, column: int) -> None:
        self.name = name
        super().__init__(f'Duplicate else in block: {name}', line=line, column=column)


class HandlebarsRuntimeError(HandlebarsError):
    """Raised when an error occurs during template rendering."""


class NonScalarVariableError(HandlebarsRuntimeError):
    """An object or array was rendered as an inline variable."""

    def __init__(self, path: str, value_type: str) -> None:
        self.path = path
        self.value_type = value_type
        super().__init__(f'Cannot render {value_type} value of {path!r} as text')


class MissingVariableError(HandlebarsRuntimeError):
    """A variable could not be resolved while rendering in strict mode."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'Variable {path!r} not found in strict mode')


class UnknownPartialError(HandlebarsRuntimeError):
    """A partial reference names a partial that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Partial not found: {name}')


class PartialRecursionLimitError(HandlebarsRuntimeError):
    """Partials were nested deeper than the configured limit."""

    def __init__(self, name: str, depth: int) -> None:
        self.name = name
        self.depth = depth
        super().__init__(f'Maximum partial depth of {depth} exceeded while rendering partial {name!r}')
