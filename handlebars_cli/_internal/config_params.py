from __future__ import annotations as _annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Set, TypeVar, get_args, get_origin

from handlebars_cli.exceptions import HandlebarsCliConfigError

from .constants import DEFAULT_PARTIAL_EXTENSIONS, LevelName
from .utils import read_toml_file

T = TypeVar('T')

CONFIG_TABLE = 'handlebars-cli'
"""The `[tool.*]` table of `pyproject.toml` read for file configuration."""


@dataclass(slots=True)
class ConfigParam:
    """A parameter that can be configured for a handlebars-cli run."""

    env_vars: list[str]
    """Environment variables to check for the parameter."""
    allow_file_config: bool = False
    """Whether the parameter can be set in the config file."""
    default: Any = None
    """Default value if no other value is found."""
    tp: Any = str
    """Type of the parameter."""


# fmt: off
STRICT = ConfigParam(env_vars=['HANDLEBARS_CLI_STRICT'], allow_file_config=True, default=False, tp=bool)
"""Whether a `{{variable}}` that cannot be resolved is an error instead of an empty string."""
MAX_PARTIAL_DEPTH = ConfigParam(env_vars=['HANDLEBARS_CLI_MAX_PARTIAL_DEPTH'], allow_file_config=True, default=100, tp=int)
"""How deeply partials may include other partials before rendering fails."""
PARTIALS_DIR = ConfigParam(env_vars=['HANDLEBARS_CLI_PARTIALS_DIR'], allow_file_config=True, default=None, tp=Path)
"""Directory whose template files are registered as partials."""
PARTIAL_EXTENSIONS = ConfigParam(env_vars=['HANDLEBARS_CLI_PARTIAL_EXTENSIONS'], allow_file_config=True, default=DEFAULT_PARTIAL_EXTENSIONS, tp=Set[str])
"""File suffixes loaded from the partials directory."""
LOG_LEVEL = ConfigParam(env_vars=['HANDLEBARS_CLI_LOG_LEVEL'], allow_file_config=True, default='warning', tp=LevelName)
"""Minimum level of the log messages written to stderr."""
# fmt: on

CONFIG_PARAMS = {
    'strict': STRICT,
    'max_partial_depth': MAX_PARTIAL_DEPTH,
    'partials_dir': PARTIALS_DIR,
    'partial_extensions': PARTIAL_EXTENSIONS,
    'log_level': LOG_LEVEL,
}


@dataclass
class ParamManager:
    """Manage parameters for a handlebars-cli run."""

    config_from_file: dict[str, Any]
    """Config loaded from the config file."""

    @classmethod
    def create(cls, config_dir: Path | None = None) -> ParamManager:
        config_dir = Path(config_dir or os.getenv('HANDLEBARS_CLI_CONFIG_DIR') or '.')
        config_from_file = _load_config_from_file(config_dir)
        return ParamManager(config_from_file=config_from_file)

    def load_param(self, name: str, runtime: Any = None) -> Any:
        """Load a parameter given its name.

        The parameter is loaded in the following order:
        1. From the runtime argument, if provided.
        2. From the environment variables.
        3. From the config file, if allowed.

        If none of the above is found, the default value is returned.

        Args:
            name: Name of the parameter.
            runtime: Value provided at runtime.

        Returns:
            The value of the parameter.
        """
        if runtime is not None:
            return runtime

        param = CONFIG_PARAMS[name]
        for env_var in param.env_vars:
            value = os.getenv(env_var)
            # `None` (unset) and `''` (empty string) are generally considered the same
            if value:
                return self._cast(value, name, param.tp)

        if param.allow_file_config:
            # TOML keys are usually kebab-case, but accept the parameter name as written too
            value = self.config_from_file.get(name, self.config_from_file.get(name.replace('_', '-')))
            if value is not None:
                return self._cast(value, name, param.tp)

        if param.default is None:
            return None
        return self._cast(param.default, name, param.tp)

    def _cast(self, value: Any, name: str, tp: type[T]) -> T | None:
        if tp is str:
            return value
        if get_origin(tp) is Literal:
            return _check_literal(value, name, tp)
        if tp is bool:
            return _check_bool(value, name)  # type: ignore
        if tp is int:
            return _check_int(value, name)  # type: ignore
        if tp is Path:
            return Path(value)  # type: ignore
        if get_origin(tp) is set and get_args(tp) == (str,):  # pragma: no branch
            return _extract_set_of_str(value)  # type: ignore
        raise RuntimeError(f'Unexpected type {tp}')  # pragma: no cover


def _check_literal(value: Any, name: str, tp: type[T]) -> T | None:
    if value is None:  # pragma: no cover
        return None
    literals = get_args(tp)
    if value not in literals:
        raise HandlebarsCliConfigError(f'Expected {name} to be one of {literals}, got {value!r}')
    return value


def _check_bool(value: Any, name: str) -> bool | None:
    if value is None:  # pragma: no cover
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        if value.lower() in ('1', 'true', 't'):
            return True
        if value.lower() in ('0', 'false', 'f'):
            return False
    raise HandlebarsCliConfigError(f'Expected {name} to be a boolean, got {value!r}')


def _check_int(value: Any, name: str) -> int:
    # `true` is an int in Python but not a depth
    if isinstance(value, int) and not isinstance(value, bool):
        result = value
    elif isinstance(value, str):
        try:
            result = int(value.strip())
        except ValueError:
            raise HandlebarsCliConfigError(f'Expected {name} to be an integer, got {value!r}') from None
    else:
        raise HandlebarsCliConfigError(f'Expected {name} to be an integer, got {value!r}')
    if result < 1:
        raise HandlebarsCliConfigError(f'Expected {name} to be at least 1, got {value!r}')
    return result


def _extract_set_of_str(value: str | list[str] | set[str]) -> set[str]:
    if isinstance(value, str):
        return {item for item in map(str.strip, value.split(',')) if item}
    return set(value)


def _load_config_from_file(config_dir: Path) -> dict[str, Any]:
    config_file = config_dir / 'pyproject.toml'
    if not config_file.exists():
        return {}
    try:
        data = read_toml_file(config_file)
        return data.get('tool', {}).get(CONFIG_TABLE, {})
    except Exception as exc:
        raise HandlebarsCliConfigError(f'Invalid config file: {config_file}') from exc
