"""The CLI for handlebars-cli."""

from __future__ import annotations

import argparse
import json
import logging
import platform
import sys
from pathlib import Path
from typing import Any, NoReturn

from opentelemetry import trace
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from handlebars_cli.exceptions import HandlebarsCliConfigError
from handlebars_cli.handlebars import (
    HandlebarsEnvironment,
    HandlebarsParseError,
    HandlebarsRuntimeError,
    Program,
    parse,
    walk,
)
from handlebars_cli.handlebars._ast_nodes import BlockStatement, MustacheStatement, PartialStatement
from handlebars_cli.handlebars._parser import BLOCK_HELPERS

from ..version import VERSION
from .config_params import ParamManager
from .constants import LEVEL_NUMBERS

logger = logging.getLogger(__name__)
__all__ = ('main',)

LOG_FORMAT = '%(levelname)s %(name)s: %(message)s'


def version_callback() -> None:
    """Show the version and exit."""
    py_impl = platform.python_implementation()
    py_version = platform.python_version()
    system = platform.system()
    print(f'Running handlebars-cli {VERSION} with {py_impl} {py_version} on {system}.')


def _fail(message: str) -> NoReturn:
    sys.stderr.write(f'{message}\n')
    sys.exit(1)


def _load_context(args: argparse.Namespace) -> Any:
    """Load the JSON data the template is rendered against."""
    if args.json is not None:
        text = args.json
    elif args.data == '-':
        text = sys.stdin.read()
    elif args.data is not None:
        try:
            text = Path(args.data).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError):
            _fail(f"Unable to read properties from '{args.data}'.")
    else:
        return {}

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        _fail(f'Unable to parse properties JSON: {exc}')


def _read_template(path: Path) -> str:
    try:
        return path.read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError):
        _fail(f"Unable to read template from '{path}'.")


def _parse_template(path: Path) -> Program:
    source = _read_template(path)
    try:
        program = parse(source)
    except HandlebarsParseError as exc:
        _fail(f"File at '{path}' was not a valid handlebars template: {exc}")
    logger.debug('parsed %s into %d top-level statements', path, len(program.body))
    return program


def _find_partials(directory: Path, extensions: set[str]) -> dict[str, Path]:
    """Map partial names to files under `directory`.

    A partial is named by its path relative to the directory, without suffix and with `/` separators,
    so `partials/layout/header.hbs` is `{{> layout/header}}`.
    """
    if not directory.is_dir():
        _fail(f"Unable to read partials from '{directory}'.")

    suffixes = {ext if ext.startswith('.') else f'.{ext}' for ext in extensions}
    found: dict[str, Path] = {}
    for path in sorted(directory.rglob('*')):
        if path.is_file() and path.suffix in suffixes:
            found[path.relative_to(directory).with_suffix('').as_posix()] = path
    logger.debug('found %d partials in %s', len(found), directory)
    return found


def _collect_partials(args: argparse.Namespace, params: ParamManager) -> dict[str, Path]:
    partials: dict[str, Path] = {}

    partials_dir = params.load_param('partials_dir', args.partials_dir)
    if partials_dir is not None:
        partials.update(_find_partials(Path(partials_dir), params.load_param('partial_extensions')))

    # Explicit `--partial` options win over files found in the partials directory
    for item in args.partial or ():
        name, sep, path = item.partition('=')
        if not sep or not name or not path:
            _fail(f"Invalid partial '{item}', expected NAME=PATH.")
        partials[name] = Path(path)
    return partials


def _register_partials(env: HandlebarsEnvironment, partials: dict[str, Path]) -> None:
    for name, path in partials.items():
        program = _parse_template(path)
        try:
            env.register_partial(name, program)
        except ValueError as exc:
            _fail(f"Unable to register partial from '{path}': {exc}")


def parse_render(args: argparse.Namespace) -> None:
    """Render a template with JSON data."""
    params: ParamManager = args._params
    context = _load_context(args)
    template_path = Path(args.template)
    program = _parse_template(template_path)

    env = HandlebarsEnvironment(
        strict=params.load_param('strict', args.strict),
        max_partial_depth=params.load_param('max_partial_depth', args.max_partial_depth),
    )
    _register_partials(env, _collect_partials(args, params))

    template = env.compile(program)
    try:
        result = template(context)
    except HandlebarsRuntimeError as exc:
        _fail(f"Template at '{template_path}' failed to render: {exc}")

    if args.output is None:
        print(result)
        return

    try:
        Path(args.output).write_text(result, encoding='utf-8')
    except OSError:
        _fail(f"Unable to write output to '{args.output}'.")
    logger.info('wrote %d characters to %s', len(result), args.output)


def _describe_block(block: BlockStatement) -> str:
    if block.path is None:
        return block.name
    if block.name == block.path.original and block.name not in BLOCK_HELPERS:
        return block.path.original
    return f'{block.name} {block.path.original}'


def parse_check(args: argparse.Namespace) -> None:
    """Check that a template parses and list the variables, blocks and partials it uses."""
    params: ParamManager = args._params
    template_path = Path(args.template)
    program = _parse_template(template_path)

    env = HandlebarsEnvironment()
    _register_partials(env, _collect_partials(args, params))

    table = Table(title=escape(str(template_path)))
    table.add_column('Line', justify='right')
    table.add_column('Kind')
    table.add_column('Reference')

    missing: list[PartialStatement] = []
    for stmt in walk(program):
        if isinstance(stmt, MustacheStatement):
            table.add_row(str(stmt.line), 'variable', escape(stmt.path.original))
        elif isinstance(stmt, BlockStatement):
            table.add_row(str(stmt.line), 'block', escape(_describe_block(stmt)))
        elif isinstance(stmt, PartialStatement):
            table.add_row(str(stmt.line), 'partial', escape(stmt.name))
            if stmt.name not in env.partials:
                missing.append(stmt)

    # Partials can include partials too
    for name, partial in env.partials.items():
        for stmt in walk(partial):
            if isinstance(stmt, PartialStatement) and stmt.name not in env.partials:
                logger.warning('partial %r includes unknown partial %r', name, stmt.name)

    Console(soft_wrap=True).print(table)

    if missing:
        for stmt in missing:
            sys.stderr.write(f"Partial '{stmt.name}' at line {stmt.line} is not registered.\n")
        sys.exit(1)
    sys.stderr.write(f'{template_path} is a valid template.\n')


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f'invalid int value: {value!r}') from None
    if number < 1:
        raise argparse.ArgumentTypeError(f'must be at least 1, got {number}')
    return number


def _add_partial_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--partial',
        action='append',
        metavar='NAME=PATH',
        help='register the template at PATH as the partial NAME (repeatable)',
    )
    parser.add_argument('--partials-dir', help='register every template file in this directory as a partial')


def _main(args: list[str] | None, log_handler: logging.Handler) -> None:
    parser = argparse.ArgumentParser(
        prog='handlebars-cli',
        description='Render Handlebars templates with JSON data.',
        epilog="Templates used to be rendered with `handlebars-cli <JSON> <TEMPLATE>`, "
        "that is now `handlebars-cli render <TEMPLATE> --json <JSON>`.",
    )

    parser.add_argument('--version', action='store_true', help='show the version and exit')
    global_opts = parser.add_argument_group(title='global options')
    global_opts.add_argument('-v', '--verbose', action='store_true', help='log debug messages to stderr')
    global_opts.add_argument('--config-dir', help='directory containing the pyproject.toml to read settings from')
    parser.set_defaults(func=lambda _: parser.print_help())  # type: ignore
    subparsers = parser.add_subparsers(title='commands', metavar='')

    cmd_check = subparsers.add_parser('check', help=parse_check.__doc__)
    cmd_check.set_defaults(func=parse_check)
    cmd_check.add_argument('template', help='path of the template file')
    _add_partial_arguments(cmd_check)

    cmd_render = subparsers.add_parser(
        'render',
        help=parse_render.__doc__,
        description=parse_render.__doc__,
    )
    cmd_render.set_defaults(func=parse_render)
    cmd_render.add_argument('template', help='path of the template file')
    data_opts = cmd_render.add_mutually_exclusive_group()
    data_opts.add_argument('--data', metavar='FILE', help="JSON file with the template data, '-' for stdin")
    data_opts.add_argument('--json', metavar='TEXT', help='template data as a JSON string')
    cmd_render.add_argument('-o', '--output', metavar='FILE', help='write the result to FILE instead of stdout')
    _add_partial_arguments(cmd_render)
    cmd_render.add_argument(
        '--strict',
        action=argparse.BooleanOptionalAction,
        default=None,
        help='fail when a variable cannot be resolved',
    )
    cmd_render.add_argument('--max-partial-depth', type=_positive_int, help='how deeply partials may nest')

    namespace = parser.parse_args(args)

    params = ParamManager.create(namespace.config_dir)
    level = 'debug' if namespace.verbose else params.load_param('log_level')
    log_handler.setLevel(LEVEL_NUMBERS[level])
    logging.getLogger('handlebars_cli').setLevel(LEVEL_NUMBERS[level])
    namespace._params = params

    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span('handlebars_cli._internal.cli'):
        if namespace.version:
            version_callback()
        else:
            namespace.func(namespace)


def main(args: list[str] | None = None) -> None:
    """Run the CLI."""
    package_logger = logging.getLogger('handlebars_cli')
    previous_level = package_logger.level
    log_handler = logging.StreamHandler(sys.stderr)
    log_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(log_handler)

    try:
        _main(args, log_handler)
    except KeyboardInterrupt:
        sys.stderr.write('User cancelled.\n')
        sys.exit(1)
    except HandlebarsCliConfigError as exc:
        sys.stderr.write(f'Invalid configuration: {exc}\n')
        sys.exit(1)
    finally:
        package_logger.removeHandler(log_handler)
        package_logger.setLevel(previous_level)
        log_handler.close()
