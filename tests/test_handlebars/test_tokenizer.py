"""Tests for the Handlebars tokenizer."""

from __future__ import annotations

import pytest

from handlebars_cli.handlebars import HandlebarsParseError, UnclosedBlockError, UnterminatedTagError
from handlebars_cli.handlebars._tokenizer import TokenType, tokenize


def types_of(source: str) -> list[TokenType]:
    return [t.type for t in tokenize(source)]


class TestTextTokenization:
    def test_plain_text(self) -> None:
        tokens = tokenize('Hello World')
        assert tokens[0].type == TokenType.CONTENT
        assert tokens[0].value == 'Hello World'
        assert tokens[1].type == TokenType.EOF

    def test_empty_string(self) -> None:
        tokens = tokenize('')
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_escaped_mustache(self) -> None:
        tokens = tokenize('a \\{{b}} c')
        assert tokens[0].type == TokenType.CONTENT
        assert tokens[0].value == 'a {{b}} c'
        assert tokens[0].text == 'a \\{{b}} c'
        assert tokens[1].type == TokenType.EOF

    def test_escaped_backslash_before_mustache(self) -> None:
        tokens = tokenize('\\\\{{b}}')
        assert tokens[0].value == '\\'
        assert [t.type for t in tokens[1:]] == [TokenType.OPEN, TokenType.ID, TokenType.CLOSE, TokenType.EOF]


class TestMustacheExpressions:
    def test_simple_expression(self) -> None:
        tokens = tokenize('{{name}}')
        assert [t.type for t in tokens] == [TokenType.OPEN, TokenType.ID, TokenType.CLOSE, TokenType.EOF]
        assert tokens[1].value == 'name'

    def test_expression_with_text(self) -> None:
        tokens = tokenize('Hello {{name}}!')
        assert tokens[0].value == 'Hello '
        assert tokens[2].value == 'name'
        assert tokens[4].type == TokenType.CONTENT
        assert tokens[4].value == '!'

    def test_triple_stache(self) -> None:
        assert types_of('{{{raw}}}') == [
            TokenType.OPEN_UNESCAPED,
            TokenType.ID,
            TokenType.CLOSE_UNESCAPED,
            TokenType.EOF,
        ]

    def test_ampersand_is_an_open_token(self) -> None:
        tokens = tokenize('{{& raw}}')
        assert tokens[0].type == TokenType.OPEN
        assert tokens[0].value == '{{&'

    def test_dotted_path(self) -> None:
        assert types_of('{{a.b/c}}') == [
            TokenType.OPEN,
            TokenType.ID,
            TokenType.SEP,
            TokenType.ID,
            TokenType.SEP,
            TokenType.ID,
            TokenType.CLOSE,
            TokenType.EOF,
        ]

    def test_parent_and_this(self) -> None:
        tokens = tokenize('{{../../name}}{{.}}{{..}}')
        assert [t.type for t in tokens[:5]] == [
            TokenType.OPEN,
            TokenType.PARENT,
            TokenType.PARENT,
            TokenType.ID,
            TokenType.CLOSE,
        ]
        assert tokens[6].type == TokenType.ID
        assert tokens[6].value == '.'
        assert tokens[9].type == TokenType.PARENT
        assert tokens[9].value == '..'

    def test_data_variable(self) -> None:
        tokens = tokenize('{{@index}}')
        assert tokens[1].type == TokenType.DATA
        assert tokens[2].type == TokenType.ID
        assert tokens[2].value == 'index'

    def test_segment_literal(self) -> None:
        tokens = tokenize('{{[first name]}}')
        assert tokens[1].type == TokenType.ID
        assert tokens[1].value == 'first name'
        assert tokens[1].text == '[first name]'

    def test_else_keyword(self) -> None:
        assert types_of('{{else}}') == [TokenType.OPEN, TokenType.INVERSE, TokenType.CLOSE, TokenType.EOF]

    def test_strip_markers(self) -> None:
        assert types_of('{{~name~}}') == [
            TokenType.OPEN,
            TokenType.STRIP,
            TokenType.ID,
            TokenType.STRIP,
            TokenType.CLOSE,
            TokenType.EOF,
        ]

    def test_whitespace_inside_tag_is_ignored(self) -> None:
        assert types_of('{{  name  }}') == types_of('{{name}}')

    def test_positions_are_one_based(self) -> None:
        tokens = tokenize('ab\n  {{x}}')
        assert (tokens[1].line, tokens[1].column) == (2, 3)
        assert (tokens[2].line, tokens[2].column) == (2, 5)


class TestBlocksAndPartials:
    def test_block_tokens(self) -> None:
        assert types_of('{{#if x}}{{/if}}') == [
            TokenType.OPEN_BLOCK,
            TokenType.ID,
            TokenType.ID,
            TokenType.CLOSE,
            TokenType.OPEN_ENDBLOCK,
            TokenType.ID,
            TokenType.CLOSE,
            TokenType.EOF,
        ]

    def test_inverse_tokens(self) -> None:
        assert types_of('{{^x}}') == [TokenType.OPEN_INVERSE, TokenType.ID, TokenType.CLOSE, TokenType.EOF]

    def test_partial_name_may_contain_slashes_and_dots(self) -> None:
        tokens = tokenize('{{> layouts/main.page ctx}}')
        assert tokens[0].type == TokenType.OPEN_PARTIAL
        assert tokens[1].type == TokenType.ID
        assert tokens[1].value == 'layouts/main.page'
        assert tokens[2].value == 'ctx'

    def test_raw_block(self) -> None:
        tokens = tokenize('{{{{raw}}}}{{x}}{{{{/raw}}}}')
        assert [t.type for t in tokens] == [
            TokenType.OPEN_RAW_BLOCK,
            TokenType.ID,
            TokenType.CLOSE_RAW_BLOCK,
            TokenType.RAW_CONTENT,
            TokenType.END_RAW_BLOCK,
            TokenType.EOF,
        ]
        assert tokens[3].value == '{{x}}'


class TestComments:
    def test_short_comment(self) -> None:
        tokens = tokenize('{{! note }}')
        assert [t.type for t in tokens] == [TokenType.OPEN_COMMENT, TokenType.COMMENT, TokenType.CLOSE, TokenType.EOF]
        assert tokens[1].value == ' note '

    def test_long_comment_may_contain_mustaches(self) -> None:
        tokens = tokenize('{{!-- {{x}} --}}')
        assert tokens[0].value == '{{!--'
        assert tokens[1].value == ' {{x}} '


class TestErrors:
    def test_unterminated_tag(self) -> None:
        with pytest.raises(UnterminatedTagError) as exc_info:
            tokenize('Hello {{name')
        assert (exc_info.value.line, exc_info.value.column) == (1, 7)

    @pytest.mark.parametrize('source', ['Hello {{name}', 'Hello {{name} and more', 'Hello {{{name}'])
    def test_single_closing_brace_is_unterminated(self, source: str) -> None:
        with pytest.raises(UnterminatedTagError) as exc_info:
            tokenize(source)
        assert (exc_info.value.line, exc_info.value.column) == (1, 7)

    def test_single_closing_brace_before_a_later_close(self) -> None:
        with pytest.raises(HandlebarsParseError, match="Unexpected character: '}'"):
            tokenize('{{name} }}')

    def test_unterminated_comment(self) -> None:
        with pytest.raises(UnterminatedTagError, match='Unclosed comment'):
            tokenize('{{! never closed')

    def test_unterminated_segment_literal(self) -> None:
        with pytest.raises(HandlebarsParseError, match='Unterminated segment literal'):
            tokenize('{{[abc}}')

    def test_unexpected_character(self) -> None:
        with pytest.raises(HandlebarsParseError, match="Unexpected character: '%'"):
            tokenize('{{a%b}}')

    def test_unclosed_raw_block(self) -> None:
        with pytest.raises(UnclosedBlockError, match='Unclosed block: raw'):
            tokenize('{{{{raw}}}} text')
