"""
kscope - Frontend for a Small Expression Language with User Operators
=====================================================================

This package turns kscope source text into abstract syntax trees, one
top-level unit at a time, ready for a code generator.

kscope is an expression-oriented language: every value is a float,
every function body is one expression, and programs can declare new
prefix and infix operators with their own precedence while they are
being parsed.

Main Components
---------------
- **frontend**: lexer, operator table, parser, AST and parse session
- **cli**: the ``kscope`` command that parses files or stdin and prints
  each unit

Quick Start
-----------
Parse a program:
    >>> from kscope import parse_source
    >>> units = parse_source("def binary@ 5 (a b) a - b; 10 @ 3 @ 2")

Drive a session with your own consumer:
    >>> from kscope import ParseSession, UnitConsumer
    >>> class Printer(UnitConsumer):
    ...     def accept(self, unit):
    ...         print(unit)
    >>> ParseSession(open("demo.ks"), consumer=Printer()).run()

Or use the command-line tool:
    $ kscope demo.ks
    $ kscope --tree demo.ks

Version History
---------------
1.0.0 - Initial release with lexer, user-defined operators and CLI
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from kscope.errors import KScopeError, SourceLocation
from kscope.frontend import (
    Lexer,
    Token,
    TokenType,
    OperatorTable,
    Parser,
    ParseSession,
    SessionOptions,
    SessionResult,
    UnitConsumer,
    UnitCollector,
    parse_expression,
    parse_source,
    FrontendError,
    KSyntaxError,
    KSemanticError,
    UnitRejectedError,
    SourcePrinter,
    TreePrinter,
)

__all__ = [
    # Version info
    "__version__",
    # Errors
    "KScopeError",
    "SourceLocation",
    "FrontendError",
    "KSyntaxError",
    "KSemanticError",
    "UnitRejectedError",
    # Frontend
    "Lexer",
    "Token",
    "TokenType",
    "OperatorTable",
    "Parser",
    "ParseSession",
    "SessionOptions",
    "SessionResult",
    "UnitConsumer",
    "UnitCollector",
    "parse_expression",
    "parse_source",
    "SourcePrinter",
    "TreePrinter",
]
