from __future__ import annotations

import logging
from typing import Literal

LevelName = Literal['debug', 'info', 'warning', 'error']

LEVEL_NUMBERS: dict[LevelName, int] = {
    'debug': logging.DEBUG,
    'info': logging.INFO,
    'warning': logging.WARNING,
    'error': logging.ERROR,
}

DEFAULT_PARTIAL_EXTENSIONS: set[str] = {'.hbs', '.handlebars'}
"""File suffixes loaded as partials from a partials directory."""
