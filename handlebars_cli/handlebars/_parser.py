"""Parser for Handlebars templates.

Converts a token stream into an AST (Abstract Syntax Tree).
"""

from __future__ import annotations

from handlebars_cli.handlebars._ast_nodes import (
    BlockStatement,
    CommentStatement,
    ContentStatement,
    MustacheStatement,
    PartialStatement,
    PathExpression,
    Program,
    RawBlock,
    Statement,
    StripFlags,
)
from handlebars_cli.handlebars._exceptions import (
    DuplicateElseError,
    HandlebarsParseError,
    MismatchedBlockError,
    UnclosedBlockError,
)
from handlebars_cli.handlebars._tokenizer import Token, TokenType, tokenize

# The built-in block helpers; any other block name is a mustache-style section
BLOCK_HELPERS: frozenset[str] = frozenset({'if', 'unless', 'each', 'with'})

_WHITESPACE = ' \t\r\n'


def parse(source: str) -> Program:
    """Parse a Handlebars template string into an AST.

    Args:
        source: The template string to parse.

    Returns:
        The parsed AST as a Program node.

    Raises:
        HandlebarsParseError: If the template is malformed.
    """
    tokens = tokenize(source)
    parser = _Parser(tokens)
    return parser.parse()


class _Parser:
    """Recursive descent parser for Handlebars templates."""

    def __init__(self, tokens: list[Token]) -> None:
        self._tokens = tokens
        self._pos = 0

    def parse(self) -> Program:
        """Parse the token stream into a Program AST node."""
        return self._parse_program(None)

    def _current(self) -> Token:
        return self.token_at(0)

    def token_at(self, offset: int = 0) -> Token:
        """Get a token at the given offset from the current position."""
        pos = self._pos + offset
        if pos < len(self._tokens):
            return self._tokens[pos]
        return self._tokens[-1]

    def _advance(self) -> Token:
        """Consume and return the current token."""
        token = self._current()
        self._pos += 1
        return token

    def _expect(self, token_type: TokenType) -> Token:
        """Consume the current token, expecting a specific type."""
        token = self._current()
        if token.type != token_type:
            raise HandlebarsParseError(
                f'Expected {token_type.name}, got {token.type.name} ({token.text!r})',
                line=token.line,
                column=token.column,
            )
        return self._advance()

    def _at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _parse_program(self, block: tuple[str, Token] | None) -> Program:
        """Parse statements until the end of input or, inside a block, until `{{/...}}` or `{{else}}`."""
        body: list[Statement] = []

        while not self._at_end():
            token = self._current()

            if token.type == TokenType.OPEN_ENDBLOCK or self._is_else():
                if block is not None:
                    break
                raise HandlebarsParseError(
                    'Unexpected closing block' if token.type == TokenType.OPEN_ENDBLOCK else 'Unexpected else',
                    line=token.line,
                    column=token.column,
                )

            body.append(self._parse_statement())

        if block is not None and self._at_end():
            name, open_token = block
            raise UnclosedBlockError(name, line=open_token.line, column=open_token.column)

        _apply_whitespace_control(body)
        return Program(body=body)

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        token = self._current()

        if token.type == TokenType.CONTENT:
            self._advance()
            return ContentStatement(value=token.value, original=token.text, line=token.line, column=token.column)
        if token.type == TokenType.OPEN_COMMENT:
            return self._parse_comment()
        if token.type in (TokenType.OPEN, TokenType.OPEN_UNESCAPED):
            return self._parse_mustache()
        if token.type in (TokenType.OPEN_BLOCK, TokenType.OPEN_INVERSE):
            return self._parse_block()
        if token.type == TokenType.OPEN_PARTIAL:
            return self._parse_partial()
        if token.type == TokenType.OPEN_RAW_BLOCK:
            return self._parse_raw_block()

        raise HandlebarsParseError(  # pragma: no cover
            f'Unexpected {token.type.name}', line=token.line, column=token.column
        )

    def _parse_comment(self) -> CommentStatement:
        """Parse a comment: {{! ... }}."""
        open_token = self._advance()  # OPEN_COMMENT
        left = self._consume_strip()
        text = self._expect(TokenType.COMMENT)
        right = self._consume_strip()
        self._expect(TokenType.CLOSE)
        return CommentStatement(
            value=text.value,
            long=open_token.value == '{{!--',
            strip=StripFlags(left=left, right=right),
            line=open_token.line,
            column=open_token.column,
        )

    def _parse_mustache(self) -> MustacheStatement:
        """Parse a mustache expression: {{ ... }}, {{& ... }} or {{{ ... }}}."""
        open_token = self._advance()
        unescaped = open_token.type == TokenType.OPEN_UNESCAPED

        left = self._consume_strip()
        path = self._parse_path()
        right = self._consume_strip()
        self._expect_close(TokenType.CLOSE_UNESCAPED if unescaped else TokenType.CLOSE)

        return MustacheStatement(
            path=path,
            escaped=open_token.value == '{{',
            strip=StripFlags(left=left, right=right),
            line=open_token.line,
            column=open_token.column,
        )

    def _parse_partial(self) -> PartialStatement:
        """Parse a partial reference: {{> name [context]}}."""
        open_token = self._advance()  # OPEN_PARTIAL

        left = self._consume_strip()
        name = self._expect(TokenType.ID).value
        path: PathExpression | None = None
        if self._current().type not in (TokenType.CLOSE, TokenType.STRIP):
            path = self._parse_path()
        right = self._consume_strip()
        self._expect_close(TokenType.CLOSE)

        return PartialStatement(
            name=name,
            path=path,
            strip=StripFlags(left=left, right=right),
            line=open_token.line,
            column=open_token.column,
        )

    def _parse_block(self) -> BlockStatement:
        """Parse a block: {{#name path}}...[{{else}}...]{{/name}}, or an inverted {{^name}}."""
        open_token = self._advance()  # OPEN_BLOCK or OPEN_INVERSE
        inverted = open_token.type == TokenType.OPEN_INVERSE

        open_left = self._consume_strip()
        name, path = self._parse_block_head()
        open_right = self._consume_strip()
        self._expect_close(TokenType.CLOSE)

        body = self._parse_program((name, open_token))
        if open_right:
            _lstrip_first(body)

        inverse: Program | None = None
        inverse_strip = StripFlags()
        last_section = body
        if self._is_else():
            inverse, inverse_strip, last_section = self._parse_else(name, body)

        close_left, close_right = self._parse_close(name)
        if close_left:
            _rstrip_last(last_section)

        if inverted:
            # The source-first section of {{^name}} renders when `name` is falsy
            body, inverse = inverse or Program(), body

        return BlockStatement(
            name=name,
            path=path,
            body=body,
            inverse=inverse,
            open_strip=StripFlags(left=open_left, right=open_right),
            close_strip=StripFlags(left=close_left, right=close_right),
            inverse_strip=inverse_strip,
            inverted=inverted,
            line=open_token.line,
            column=open_token.column,
        )

    def _parse_block_head(self) -> tuple[str, PathExpression | None]:
        """Parse the `name path` part of a block open tag; the built-in blocks require a path."""
        token = self._current()
        if (
            token.type == TokenType.ID
            and token.value in BLOCK_HELPERS
            and not token.raw
            and self.token_at(1).type != TokenType.SEP
        ):
            self._advance()
            if self._current().type in (TokenType.CLOSE, TokenType.STRIP):
                raise HandlebarsParseError(
                    f'Block {token.value!r} requires an argument', line=token.line, column=token.column
                )
            return token.value, self._parse_path()

        path = self._parse_path()
        return path.original, path

    def _parse_else(self, block_name: str, body: Program) -> tuple[Program, StripFlags, Program]:
        """Parse `{{else}}` (or `{{^}}`) and the inverse section that follows it.

        `{{else if x}}` and friends chain a nested block as the whole inverse.

        Returns:
            Tuple of (inverse program, strip flags of the else tag, last section in source order).
        """
        else_token = self._advance()  # OPEN or OPEN_INVERSE
        left = self._consume_strip()
        if else_token.type == TokenType.OPEN:
            self._expect(TokenType.INVERSE)

        if left:
            _rstrip_last(body)

        if self._current().type == TokenType.ID:
            chained, last_section = self._parse_chained_block(else_token, left)
            return Program(body=[chained]), chained.open_strip, last_section

        right = self._consume_strip()
        self._expect_close(TokenType.CLOSE)

        inverse = self._parse_program((block_name, else_token))
        if right:
            _lstrip_first(inverse)

        if self._is_else():
            dup = self._current()
            raise DuplicateElseError(block_name, line=dup.line, column=dup.column)

        return inverse, StripFlags(left=left, right=right), inverse

    def _parse_chained_block(self, else_token: Token, left: bool) -> tuple[BlockStatement, Program]:
        """Parse the rest of `{{else if x}}...` up to (not including) the shared close tag."""
        token = self._current()
        if token.value not in BLOCK_HELPERS or token.raw:
            raise HandlebarsParseError(
                f'Unexpected {token.text!r} after else', line=token.line, column=token.column
            )
        name, path = self._parse_block_head()
        right = self._consume_strip()
        self._expect_close(TokenType.CLOSE)

        body = self._parse_program((name, else_token))
        if right:
            _lstrip_first(body)

        inverse: Program | None = None
        inverse_strip = StripFlags()
        last_section = body
        if self._is_else():
            inverse, inverse_strip, last_section = self._parse_else(name, body)

        chained = BlockStatement(
            name=name,
            path=path,
            body=body,
            inverse=inverse,
            open_strip=StripFlags(left=left, right=right),
            inverse_strip=inverse_strip,
            chained=True,
            line=else_token.line,
            column=else_token.column,
        )
        return chained, last_section

    def _parse_close(self, block_name: str) -> tuple[bool, bool]:
        """Parse and validate a closing {{/name}} tag, returning its strip flags."""
        close_token = self._expect(TokenType.OPEN_ENDBLOCK)
        left = self._consume_strip()
        found = self._parse_path().original
        if found != block_name:
            raise MismatchedBlockError(block_name, found, line=close_token.line, column=close_token.column)
        right = self._consume_strip()
        self._expect_close(TokenType.CLOSE)
        return left, right

    def _parse_raw_block(self) -> RawBlock:
        """Parse a raw block: {{{{raw}}}}...{{{{/raw}}}}."""
        open_token = self._advance()  # OPEN_RAW_BLOCK

        name_token = self._expect(TokenType.ID)
        self._expect(TokenType.CLOSE_RAW_BLOCK)

        content = ''
        if self._current().type == TokenType.RAW_CONTENT:
            content = self._advance().value

        self._expect(TokenType.END_RAW_BLOCK)

        return RawBlock(name=name_token.value, body=content, line=open_token.line, column=open_token.column)

    def _is_else(self) -> bool:
        """Check if the current position has an {{else ...}} or a bare {{^}} tag."""
        token = self._current()
        if token.type not in (TokenType.OPEN, TokenType.OPEN_INVERSE) or token.value == '{{&':
            return False
        offset = 1
        if self.token_at(offset).type == TokenType.STRIP:
            offset += 1
        if token.type == TokenType.OPEN_INVERSE:
            if self.token_at(offset).type == TokenType.STRIP:
                offset += 1
            return self.token_at(offset).type == TokenType.CLOSE
        return self.token_at(offset).type == TokenType.INVERSE

    def _consume_strip(self) -> bool:
        """Consume a strip marker (~) if present, returning whether one was found."""
        if self._current().type == TokenType.STRIP:
            self._advance()
            return True
        return False

    def _expect_close(self, token_type: TokenType) -> None:
        """Expect the closing delimiter of a tag; anything else is an extra token."""
        token = self._current()
        if token.type in (TokenType.ID, TokenType.DATA, TokenType.SEP, TokenType.PARENT, TokenType.INVERSE):
            raise HandlebarsParseError(
                f'Unexpected {token.text!r}; expressions take at most one path',
                line=token.line,
                column=token.column,
            )
        self._expect(token_type)

    def _parse_path(self) -> PathExpression:
        """Parse a path expression like foo, foo.bar, ../foo, @index, this.name, [a b]."""
        parts: list[str] = []
        depth = 0
        is_data = False
        is_this = False
        original_parts: list[str] = []

        # Handle @data prefix
        if self._current().type == TokenType.DATA:
            is_data = True
            self._advance()
            original_parts.append('@')

        # Handle parent references
        while self._current().type == TokenType.PARENT:
            depth += 1
            original_parts.append(self._advance().value)

        current = self._current()
        if current.type == TokenType.ID and current.value in ('.', 'this') and not current.raw:
            is_this = True
            original_parts.append(self._advance().value)
            # If followed by separator, consume it and read next segment
            if self._current().type == TokenType.SEP:
                original_parts.append(self._advance().value)
                token = self._expect_segment()
                parts.append(token.value)
                original_parts.append(token.text)
        elif current.type == TokenType.ID:
            token = self._advance()
            parts.append(token.value)
            original_parts.append(token.text)
        elif depth == 0 or is_data:
            raise HandlebarsParseError(
                f'Expected path expression, got {current.type.name}',
                line=current.line,
                column=current.column,
            )

        # Read subsequent path segments
        while parts and self._current().type == TokenType.SEP:
            original_parts.append(self._advance().value)
            token = self._expect_segment()
            parts.append(token.value)
            original_parts.append(token.text)

        return PathExpression(
            parts=parts,
            original=''.join(original_parts),
            depth=depth,
            is_this=is_this,
            data=is_data,
        )

    def _expect_segment(self) -> Token:
        token = self._current()
        if token.type != TokenType.ID:
            raise HandlebarsParseError(
                'Expected identifier after path separator',
                line=token.line,
                column=token.column,
            )
        return self._advance()


def _apply_whitespace_control(body: list[Statement]) -> None:
    """Strip text next to tags that carry `~` markers on their outer side."""
    for i, stmt in enumerate(body):
        if isinstance(stmt, (MustacheStatement, CommentStatement, PartialStatement)):
            left, right = stmt.strip.left, stmt.strip.right
        elif isinstance(stmt, BlockStatement):
            left, right = stmt.open_strip.left, stmt.close_strip.right
        else:
            continue

        if left and i > 0:
            prev = body[i - 1]
            if isinstance(prev, ContentStatement):
                prev.value = prev.value.rstrip(_WHITESPACE)

        if right and i < len(body) - 1:
            following = body[i + 1]
            if isinstance(following, ContentStatement):
                following.value = following.value.lstrip(_WHITESPACE)


def _lstrip_first(program: Program) -> None:
    if program.body and isinstance(program.body[0], ContentStatement):
        program.body[0].value = program.body[0].value.lstrip(_WHITESPACE)


def _rstrip_last(program: Program) -> None:
    if program.body and isinstance(program.body[-1], ContentStatement):
        program.body[-1].value = program.body[-1].value.rstrip(_WHITESPACE)
