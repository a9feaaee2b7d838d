from __future__ import annotations

from typing import Any

import pytest

from handlebars_cli.handlebars import UNDEFINED, escape_expression
from handlebars_cli.handlebars._utils import is_falsy, to_string, type_name


def test_escape_expression() -> None:
    assert escape_expression('<a href="x">Tom & Jerry\'s</a>') == (
        '&lt;a href=&quot;x&quot;&gt;Tom &amp; Jerry&#x27;s&lt;/a&gt;'
    )


def test_escape_is_not_idempotent() -> None:
    assert escape_expression('&amp;') == '&amp;amp;'


@pytest.mark.parametrize(
    'value,expected',
    [(None, ''), (UNDEFINED, ''), (True, 'true'), (False, 'false'), (3, '3'), (2.5, '2.5'), ('s', 's')],
)
def test_to_string(value: Any, expected: str) -> None:
    assert to_string(value) == expected


@pytest.mark.parametrize(
    'value,expected',
    [({}, 'object'), ([], 'array'), (None, 'null'), (True, 'boolean'), (1, 'number'), (1.5, 'number'), ('', 'string')],
)
def test_type_name(value: Any, expected: str) -> None:
    assert type_name(value) == expected


@pytest.mark.parametrize('value', [None, UNDEFINED, False, 0, 0.0, ''])
def test_falsy(value: Any) -> None:
    assert is_falsy(value)


@pytest.mark.parametrize('value', [True, 1, -0.5, 'false', '0', [], {}, [None]])
def test_truthy(value: Any) -> None:
    assert not is_falsy(value)
