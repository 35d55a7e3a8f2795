"""
kscope - Command-Line Interface
===============================

This module implements the command-line interface for the kscope
frontend. It parses a source file (or standard input) one top-level unit
at a time and prints every accepted unit as soon as it is parsed.
Diagnostics go to stderr, one line per failed unit.

Usage Examples
--------------
Print canonical source for each unit:
    $ kscope demo.ks

Print the syntax trees:
    $ kscope --tree demo.ks

Read from a pipe:
    $ echo 'def binary@ 5 (a b) a - b; 1 @ 2 @ 3' | kscope

Preset an operator before parsing:
    $ kscope -D '@=5' uses_at.ks

Verbose mode:
    $ kscope -v demo.ks
"""

import logging
from typing import Iterable, TextIO

import click

from kscope import __version__
from kscope.frontend.ast import SourcePrinter, TreePrinter, TopLevelUnit
from kscope.frontend.errors import FrontendError
from kscope.frontend.operators import MIN_PRECEDENCE, MAX_PRECEDENCE
from kscope.frontend.parser import DEFAULT_MAX_DEPTH, MAX_DEPTH_LIMIT
from kscope.frontend.session import ParseSession, SessionOptions, UnitCollector
from kscope.cli.errors import ExitCode, handle_cli_exception


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def parse_operator_presets(
    ctx: click.Context,
    param: click.Parameter,
    values: tuple[str, ...],
) -> dict[str, int]:
    """
    Parse repeated ``-D SYMBOL=PRECEDENCE`` options.

    Raises:
        click.BadParameter: If a value is malformed or out of range
    """
    presets: dict[str, int] = {}
    for value in values:
        symbol, sep, precedence_text = value.partition("=")
        if not sep or len(symbol) != 1:
            raise click.BadParameter(f"expected SYMBOL=PRECEDENCE, got {value!r}")
        try:
            precedence = int(precedence_text)
        except ValueError:
            raise click.BadParameter(f"precedence must be an integer, got {precedence_text!r}")
        if not MIN_PRECEDENCE <= precedence <= MAX_PRECEDENCE:
            raise click.BadParameter(
                f"precedence must be {MIN_PRECEDENCE}..{MAX_PRECEDENCE}, got {precedence}"
            )
        presets[symbol] = precedence
    return presets


class EchoingCollector(UnitCollector):
    """Collects units and prints each one as soon as it is accepted."""

    def __init__(
        self,
        tree: bool,
        quiet: bool,
        allow_redefinition: bool,
        operators: Iterable[str] = (),
    ):
        super().__init__(allow_redefinition, operators)
        self.tree = tree
        self.quiet = quiet

    def accept(self, unit: TopLevelUnit) -> None:
        super().accept(unit)
        if self.quiet:
            return
        if self.tree:
            click.echo(TreePrinter().print(unit))
        else:
            click.echo(SourcePrinter().print_unit(unit))


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.File("r"),
    default="-",
)
@click.option(
    "--tree",
    is_flag=True,
    help="Print each unit as an indented syntax tree",
)
@click.option(
    "-q", "--quiet",
    is_flag=True,
    help="Only report errors, do not print units",
)
@click.option(
    "-D", "--operator", "operators",
    multiple=True,
    callback=parse_operator_presets,
    metavar="SYMBOL=PREC",
    help="Declare a binary operator precedence before parsing (can be repeated)",
)
@click.option(
    "--max-depth",
    type=click.IntRange(1, MAX_DEPTH_LIMIT),
    default=DEFAULT_MAX_DEPTH,
    show_default=True,
    help="Maximum expression nesting depth",
)
@click.option(
    "--max-errors",
    type=click.IntRange(min=0),
    default=0,
    help="Stop after this many errors (0 = no limit)",
)
@click.option(
    "--allow-redefinition",
    is_flag=True,
    help="Accept functions defined more than once",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="kscope")
def main(
    input_file: TextIO,
    tree: bool,
    quiet: bool,
    operators: dict[str, int],
    max_depth: int,
    max_errors: int,
    allow_redefinition: bool,
    verbose: bool,
) -> None:
    """
    Parse kscope source and print each top-level unit.

    INPUT_FILE is the source file to parse; omit it or pass '-' to read
    standard input.

    Units are printed in canonical form: every compound expression is
    parenthesized, so the output parses back to the same trees.

    \b
    Examples:
        kscope demo.ks               # Canonical source for each unit
        kscope --tree demo.ks        # Indented syntax trees
        kscope -q demo.ks            # Check only
        kscope -D '@=5' demo.ks      # Preset operator precedence
    """
    setup_logging(verbose)

    filename = getattr(input_file, "name", "<stdin>")
    if filename == "-":
        filename = "<stdin>"

    options = SessionOptions(
        filename=filename,
        max_depth=max_depth,
        max_errors=max_errors,
        allow_redefinition=allow_redefinition,
        operators=operators,
    )
    logger.debug(f"Session options: {options}")
    collector = EchoingCollector(tree, quiet, allow_redefinition, operators)

    def report(error: FrontendError) -> None:
        click.echo(str(error), err=True)

    try:
        if verbose:
            click.echo(f"Parsing {filename}...", err=True)

        session = ParseSession(input_file, options, consumer=collector, on_error=report)
        result = session.run()

        if verbose:
            click.echo(
                f"Parsed {result.unit_count} units, {len(result.errors)} errors",
                err=True,
            )
            if operators:
                click.echo(f"Operators: {session.operators!r}", err=True)

    except Exception as e:
        handle_cli_exception(e, verbose)

    if not result.success:
        raise SystemExit(ExitCode.PARSE_ERROR)


if __name__ == "__main__":
    main()
