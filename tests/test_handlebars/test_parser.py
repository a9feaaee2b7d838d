"""Tests for parsing templates into an AST."""

from __future__ import annotations

import pytest

from handlebars_cli.handlebars import (
    DuplicateElseError,
    HandlebarsParseError,
    MismatchedBlockError,
    Program,
    UnclosedBlockError,
    UnterminatedTagError,
    parse,
)
from handlebars_cli.handlebars._ast_nodes import (
    BlockStatement,
    CommentStatement,
    ContentStatement,
    MustacheStatement,
    PartialStatement,
    PathExpression,
    RawBlock,
)


class TestStatements:
    def test_empty_template(self) -> None:
        assert parse('') == Program(body=[])

    def test_text_and_variable(self) -> None:
        program = parse('Hello {{name}}!')
        assert program.body == [
            ContentStatement(value='Hello ', original='Hello '),
            MustacheStatement(path=PathExpression(parts=['name'], original='name')),
            ContentStatement(value='!', original='!'),
        ]

    def test_unescaped_forms(self) -> None:
        triple, ampersand = parse('{{{a}}}{{&b}}').body
        assert isinstance(triple, MustacheStatement) and not triple.escaped
        assert isinstance(ampersand, MustacheStatement) and not ampersand.escaped

    def test_comment(self) -> None:
        (comment,) = parse('{{!-- hidden --}}').body
        assert comment == CommentStatement(value=' hidden ', long=True)

    def test_partial_with_context(self) -> None:
        (partial,) = parse('{{> card person}}').body
        assert partial == PartialStatement(name='card', path=PathExpression(parts=['person'], original='person'))

    def test_partial_without_context(self) -> None:
        (partial,) = parse('{{> card}}').body
        assert isinstance(partial, PartialStatement)
        assert partial.path is None

    def test_raw_block(self) -> None:
        (raw,) = parse('{{{{raw}}}}{{#if}}{{{{/raw}}}}').body
        assert raw == RawBlock(name='raw', body='{{#if}}')

    def test_locations(self) -> None:
        program = parse('line one\n  {{#if x}}{{y}}{{/if}}')
        block = program.body[1]
        assert isinstance(block, BlockStatement)
        assert (block.line, block.column) == (2, 3)
        inner = block.body.body[0]
        assert (inner.line, inner.column) == (2, 12)


class TestPaths:
    @pytest.mark.parametrize(
        'source,expected',
        [
            ('{{a.b.c}}', PathExpression(parts=['a', 'b', 'c'], original='a.b.c')),
            ('{{a/b}}', PathExpression(parts=['a', 'b'], original='a/b')),
            ('{{this}}', PathExpression(parts=[], original='this', is_this=True)),
            ('{{.}}', PathExpression(parts=[], original='.', is_this=True)),
            ('{{this.name}}', PathExpression(parts=['name'], original='this.name', is_this=True)),
            ('{{./name}}', PathExpression(parts=['name'], original='./name', is_this=True)),
            ('{{../name}}', PathExpression(parts=['name'], original='../name', depth=1)),
            ('{{../../a.b}}', PathExpression(parts=['a', 'b'], original='../../a.b', depth=2)),
            ('{{..}}', PathExpression(parts=[], original='..', depth=1)),
            ('{{@index}}', PathExpression(parts=['index'], original='@index', data=True)),
            ('{{@root.title}}', PathExpression(parts=['root', 'title'], original='@root.title', data=True)),
            ('{{items.0}}', PathExpression(parts=['items', '0'], original='items.0')),
            ('{{[a b].c}}', PathExpression(parts=['a b', 'c'], original='[a b].c')),
        ],
    )
    def test_path(self, source: str, expected: PathExpression) -> None:
        (stmt,) = parse(source).body
        assert isinstance(stmt, MustacheStatement)
        assert stmt.path == expected


class TestBlocks:
    def test_if_else(self) -> None:
        (block,) = parse('{{#if ok}}yes{{else}}no{{/if}}').body
        assert isinstance(block, BlockStatement)
        assert block.name == 'if'
        assert block.path == PathExpression(parts=['ok'], original='ok')
        assert block.body == Program(body=[ContentStatement(value='yes', original='yes')])
        assert block.inverse == Program(body=[ContentStatement(value='no', original='no')])

    def test_caret_else(self) -> None:
        (block,) = parse('{{#if ok}}yes{{^}}no{{/if}}').body
        assert isinstance(block, BlockStatement)
        assert block.inverse == Program(body=[ContentStatement(value='no', original='no')])

    def test_block_without_else_has_no_inverse(self) -> None:
        (block,) = parse('{{#each items}}x{{/each}}').body
        assert isinstance(block, BlockStatement)
        assert block.inverse is None

    def test_nested_blocks(self) -> None:
        (outer,) = parse('{{#each a}}{{#with b}}{{c}}{{/with}}{{/each}}').body
        assert isinstance(outer, BlockStatement)
        (inner,) = outer.body.body
        assert isinstance(inner, BlockStatement)
        assert inner.name == 'with'

    def test_section(self) -> None:
        (block,) = parse('{{#person}}{{name}}{{/person}}').body
        assert isinstance(block, BlockStatement)
        assert block.name == 'person'
        assert block.path == PathExpression(parts=['person'], original='person')

    def test_section_with_dotted_name(self) -> None:
        (block,) = parse('{{#a.b}}x{{/a.b}}').body
        assert isinstance(block, BlockStatement)
        assert block.name == 'a.b'

    def test_helper_name_with_path_is_a_section(self) -> None:
        (block,) = parse('{{#if.x}}y{{/if.x}}').body
        assert isinstance(block, BlockStatement)
        assert block.name == 'if.x'
        assert block.path == PathExpression(parts=['if', 'x'], original='if.x')

    def test_inverted_section(self) -> None:
        (block,) = parse('{{^items}}none{{/items}}').body
        assert isinstance(block, BlockStatement)
        assert block.inverted
        assert block.body == Program()
        assert block.inverse == Program(body=[ContentStatement(value='none', original='none')])

    def test_else_if_chain(self) -> None:
        (block,) = parse('{{#if a}}A{{else if b}}B{{else}}C{{/if}}').body
        assert isinstance(block, BlockStatement)
        assert block.inverse is not None
        (chained,) = block.inverse.body
        assert isinstance(chained, BlockStatement)
        assert chained.chained
        assert chained.name == 'if'
        assert chained.path == PathExpression(parts=['b'], original='b')
        assert chained.inverse == Program(body=[ContentStatement(value='C', original='C')])


class TestErrors:
    def test_mismatched_block(self) -> None:
        with pytest.raises(MismatchedBlockError) as exc_info:
            parse('{{#if x}}\n{{/each}}')
        assert exc_info.value.expected == 'if'
        assert exc_info.value.found == 'each'
        assert (exc_info.value.line, exc_info.value.column) == (2, 1)
        assert str(exc_info.value) == "if doesn't match each at line 2, column 1"

    def test_unclosed_block(self) -> None:
        with pytest.raises(UnclosedBlockError) as exc_info:
            parse('{{#each items}}{{name}}')
        assert exc_info.value.name == 'each'
        assert (exc_info.value.line, exc_info.value.column) == (1, 1)

    def test_unclosed_block_reports_innermost_open_tag(self) -> None:
        with pytest.raises(UnclosedBlockError) as exc_info:
            parse('{{#if a}}\n  {{#each items}}x')
        assert exc_info.value.name == 'each'
        assert (exc_info.value.line, exc_info.value.column) == (2, 3)

    def test_unclosed_else_section_reports_else_tag(self) -> None:
        with pytest.raises(UnclosedBlockError) as exc_info:
            parse('{{#if a}}x\n{{else}}y')
        assert exc_info.value.name == 'if'
        assert (exc_info.value.line, exc_info.value.column) == (2, 1)

    @pytest.mark.parametrize('source', ['{{#if}}x{{/if}}', '{{#each~}}x{{/each}}', '{{^with}}x{{/with}}'])
    def test_builtin_block_requires_argument(self, source: str) -> None:
        with pytest.raises(HandlebarsParseError, match="requires an argument at line 1, column"):
            parse(source)

    def test_chained_block_requires_argument(self) -> None:
        with pytest.raises(HandlebarsParseError) as exc_info:
            parse('{{#if a}}x{{else unless}}y{{/if}}')
        assert exc_info.value.message == "Block 'unless' requires an argument"
        assert (exc_info.value.line, exc_info.value.column) == (1, 18)

    def test_close_tag_must_match_innermost_block(self) -> None:
        with pytest.raises(MismatchedBlockError) as exc_info:
            parse('{{#if a}}{{#with b}}{{/if}}')
        assert exc_info.value.expected == 'with'
        assert exc_info.value.found == 'if'

    def test_duplicate_else(self) -> None:
        with pytest.raises(DuplicateElseError) as exc_info:
            parse('{{#if a}}1{{else}}2{{else}}3{{/if}}')
        assert exc_info.value.name == 'if'
        assert exc_info.value.column == 20

    def test_duplicate_else_in_chain(self) -> None:
        with pytest.raises(DuplicateElseError):
            parse('{{#if a}}1{{else if b}}2{{else}}3{{else}}4{{/if}}')

    def test_unterminated_tag(self) -> None:
        with pytest.raises(UnterminatedTagError):
            parse('{{#if a}}{{name')

    def test_stray_closing_block(self) -> None:
        with pytest.raises(HandlebarsParseError, match='Unexpected closing block'):
            parse('text{{/if}}')

    def test_stray_else(self) -> None:
        with pytest.raises(HandlebarsParseError, match='Unexpected else'):
            parse('{{else}}')

    def test_trailing_tokens(self) -> None:
        with pytest.raises(HandlebarsParseError, match='expressions take at most one path'):
            parse('{{name other}}')

    def test_else_followed_by_non_helper(self) -> None:
        with pytest.raises(HandlebarsParseError, match="Unexpected 'foo' after else"):
            parse('{{#if a}}{{else foo}}{{/if}}')

    def test_empty_tag(self) -> None:
        with pytest.raises(HandlebarsParseError, match='Expected path expression'):
            parse('{{}}')

    def test_errors_share_a_base_class(self) -> None:
        for source in ('{{#if x}}{{/each}}', '{{#if x}}', '{{x', '{{#if x}}{{else}}{{else}}{{/if}}'):
            with pytest.raises(HandlebarsParseError):
                parse(source)
