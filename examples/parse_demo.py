#!/usr/bin/env python3
"""
kscope Frontend Demo
====================

This script demonstrates how to use the kscope frontend to:
1. Parse single expressions with the built-in operators
2. Declare new operators and watch the grouping change
3. Drive a session with a custom unit consumer
4. Recover from errors and keep parsing

Usage:
    pip install -e .
    python examples/parse_demo.py [examples/mandel.ks]
"""

import sys
from pathlib import Path

from kscope.frontend import (
    FunctionNode,
    NumberLiteral,
    OperatorTable,
    ParseSession,
    SessionOptions,
    SourcePrinter,
    TreePrinter,
    UnitConsumer,
    UnitRejectedError,
    parse_expression,
)


class CountingConsumer(UnitConsumer):
    """Prints every unit and refuses top-level expressions that are just a number."""

    def __init__(self):
        self.printer = SourcePrinter()
        self.count = 0

    def accept(self, unit):
        if isinstance(unit, FunctionNode) and unit.is_anonymous:
            if isinstance(unit.body, NumberLiteral):
                raise UnitRejectedError("a bare number does nothing", location=unit.location)
        self.count += 1
        print(f"  [{self.count}] {self.printer.print_unit(unit)}")


def main():
    printer = SourcePrinter()

    # ==========================================================================
    # 1. Built-in precedence
    # ==========================================================================
    # <  10,  + -  20,  *  40; equal precedence groups to the left

    print("Built-in operators:")
    for source in ("1 + 2 * 3", "1 - 2 - 3", "a < b + c"):
        print(f"  {source:12} => {printer.print(parse_expression(source))}")

    # ==========================================================================
    # 2. User-defined operators
    # ==========================================================================
    # The table grows as 'binary' prototypes are parsed; here we declare
    # '@' directly instead.

    table = OperatorTable()
    table.declare("@", 50)
    print("\nWith '@' at precedence 50:")
    print(f"  1 + 2 @ 3    => {printer.print(parse_expression('1 + 2 @ 3', table))}")

    table.declare("@", 5)
    print("With '@' at precedence 5:")
    print(f"  1 + 2 @ 3    => {printer.print(parse_expression('1 + 2 @ 3', table))}")

    # ==========================================================================
    # 3. A session with a consumer
    # ==========================================================================

    program = "def binary| 5 (a b) if a then 1 else b; 1 < 2 | 3 < 4; 42; (1 + ; 7 * 6"
    print("\nSession over an inline program:")

    session = ParseSession(
        program,
        SessionOptions(filename="<demo>"),
        consumer=CountingConsumer(),
        on_error=lambda error: print(f"  ! {error}"),
    )
    result = session.run()
    print(f"  accepted {result.unit_count} units, {len(result.errors)} errors")

    # ==========================================================================
    # 4. Tree dump of a file
    # ==========================================================================

    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path(__file__).with_name("mandel.ks")
    if path.exists():
        print(f"\nFirst unit of {path.name}:")
        with open(path) as f:
            session = ParseSession(f, SessionOptions(filename=str(path)))
            for unit in session.units():
                print(TreePrinter().print(unit))
                break


if __name__ == "__main__":
    main()
