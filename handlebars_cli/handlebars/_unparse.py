"""Convert a Handlebars AST back into template source.

`parse(unparse(program))` is structurally equal to `program` for any program produced by
`parse`. Text is emitted from `ContentStatement.original`, so escapes and whitespace that
`~` stripped from `value` are preserved.
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


def unparse(program: Program) -> str:
    """Render an AST as Handlebars template source."""
    return ''.join(_unparse_statement(stmt) for stmt in program.body)


def _unparse_statement(stmt: Statement) -> str:
    if isinstance(stmt, ContentStatement):
        return stmt.original

    if isinstance(stmt, MustacheStatement):
        if stmt.escaped:
            return _tag('', stmt.path.original, stmt.strip)
        return '{{{' + _tilde(stmt.strip.left) + stmt.path.original + _tilde(stmt.strip.right) + '}}}'

    if isinstance(stmt, CommentStatement):
        text = f'--{stmt.value}--' if stmt.long else stmt.value
        return '{{' + _tilde(stmt.strip.left) + '!' + text + _tilde(stmt.strip.right) + '}}'

    if isinstance(stmt, PartialStatement):
        content = stmt.name if stmt.path is None else f'{stmt.name} {stmt.path.original}'
        return _tag('> ', content, stmt.strip)

    if isinstance(stmt, BlockStatement):
        return _unparse_block(stmt)

    if isinstance(stmt, RawBlock):  # pragma: no branch
        return '{{{{' + stmt.name + '}}}}' + stmt.body + '{{{{/' + stmt.name + '}}}}'

    raise TypeError(f'Unknown statement type: {type(stmt).__name__}')  # pragma: no cover


def _unparse_block(block: BlockStatement) -> str:
    sigil = '^' if block.inverted else '#'
    parts = [_tag(sigil, _block_head(block), block.open_strip)]

    if block.inverted:
        # The source-first section of an inverted block is stored as its inverse
        parts.append(unparse(block.inverse or Program()))
        if block.body.body or block.inverse_strip != StripFlags():
            parts.append(_tag('', 'else', block.inverse_strip))
            parts.append(unparse(block.body))
    else:
        parts.append(unparse(block.body))
        parts.append(_unparse_inverse(block))

    parts.append(_tag('/', block.name, block.close_strip))
    return ''.join(parts)


def _unparse_inverse(block: BlockStatement) -> str:
    """Everything from `{{else}}` up to (not including) the closing tag."""
    if block.inverse is None:
        return ''

    body = block.inverse.body
    if len(body) == 1 and isinstance(body[0], BlockStatement) and body[0].chained:
        chained = body[0]
        head = _tag('', f'else {_block_head(chained)}', chained.open_strip)
        return head + unparse(chained.body) + _unparse_inverse(chained)

    return _tag('', 'else', block.inverse_strip) + unparse(block.inverse)


def _block_head(block: BlockStatement) -> str:
    if block.path is None:
        return block.name
    if _is_section(block.name, block.path):
        return block.path.original
    return f'{block.name} {block.path.original}'


def _is_section(name: str, path: PathExpression) -> bool:
    return name == path.original and name not in ('if', 'unless', 'each', 'with')


def _tag(sigil: str, content: str, strip: StripFlags) -> str:
    return '{{' + _tilde(strip.left) + sigil + content + _tilde(strip.right) + '}}'


def _tilde(flag: bool) -> str:
    return '~' if flag else ''
