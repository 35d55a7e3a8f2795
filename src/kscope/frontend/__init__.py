"""
kscope Frontend
===============

This package implements the frontend of kscope, a small expression
language in which every function body is a single expression and
programs may declare their own unary and binary operators.

- A streaming lexer with one character of lookahead
- A precedence table that grows as operators are declared
- A recursive descent parser with precedence climbing
- A session loop that hands each top-level unit to a consumer

Pipeline
--------
    Source → Lexer → Parser → unit → UnitConsumer → (code generator)

Code generation, optimization and execution are left to the consumer.

Usage
-----
>>> from kscope.frontend import parse_source, SourcePrinter
>>> units = parse_source('''
... def binary| 5 (a b) if a then 1 else if b then 1 else 0;
... 1 < 2 | 3 < 4
... ''')
>>> SourcePrinter().print_unit(units[1])
'((1 < 2) | (3 < 4))'

Language Summary
----------------
- Numbers are floats; there are no other types
- def name(a b) expr          function definition
- extern name(a b)            external declaration
- def unary!(v) expr          prefix operator
- def binary@ 5 (a b) expr    infix operator with precedence 1..100
- if c then a else b          conditional expression
- for i = 1, n, step in expr  loop expression
- # comment                   to end of line
"""

__version__ = "1.0.0"

from kscope.frontend.lexer import Lexer, Token, TokenType, KEYWORDS, parse_number
from kscope.frontend.operators import (
    OperatorTable,
    NOT_AN_OPERATOR,
    BUILTIN_PRECEDENCE,
    BUILTIN_OPERATORS,
    DEFAULT_BINARY_PRECEDENCE,
    MIN_PRECEDENCE,
    MAX_PRECEDENCE,
)
from kscope.frontend.parser import (
    Parser,
    parse_expression,
    DEFAULT_MAX_DEPTH,
    MAX_DEPTH_LIMIT,
)
from kscope.frontend.session import (
    ParseSession,
    SessionOptions,
    SessionResult,
    UnitConsumer,
    UnitCollector,
    parse_source,
)
from kscope.frontend.errors import (
    FrontendError,
    FrontendCompilationError,
    KSyntaxError,
    UnexpectedTokenError,
    MissingTokenError,
    NestingDepthError,
    KSemanticError,
    OperatorArityError,
    PrecedenceRangeError,
    UnitRejectedError,
    RedefinitionError,
    UnknownOperatorError,
    ErrorCollector,
)
from kscope.frontend.ast import (
    ANONYMOUS_FUNCTION_NAME,
    ASTNode,
    Expression,
    NumberLiteral,
    VariableExpression,
    UnaryExpression,
    BinaryExpression,
    CallExpression,
    IfExpression,
    ForExpression,
    OperatorRole,
    Prototype,
    FunctionNode,
    TopLevelUnit,
    ASTVisitor,
    SourcePrinter,
    TreePrinter,
    format_number,
)

__all__ = [
    # Version
    "__version__",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "KEYWORDS",
    "parse_number",
    # Operator table
    "OperatorTable",
    "NOT_AN_OPERATOR",
    "BUILTIN_PRECEDENCE",
    "BUILTIN_OPERATORS",
    "DEFAULT_BINARY_PRECEDENCE",
    "MIN_PRECEDENCE",
    "MAX_PRECEDENCE",
    # Parser
    "Parser",
    "parse_expression",
    "DEFAULT_MAX_DEPTH",
    "MAX_DEPTH_LIMIT",
    # Session
    "ParseSession",
    "SessionOptions",
    "SessionResult",
    "UnitConsumer",
    "UnitCollector",
    "parse_source",
    # Errors
    "FrontendError",
    "FrontendCompilationError",
    "KSyntaxError",
    "UnexpectedTokenError",
    "MissingTokenError",
    "NestingDepthError",
    "KSemanticError",
    "OperatorArityError",
    "PrecedenceRangeError",
    "UnitRejectedError",
    "RedefinitionError",
    "UnknownOperatorError",
    "ErrorCollector",
    # AST
    "ANONYMOUS_FUNCTION_NAME",
    "ASTNode",
    "Expression",
    "NumberLiteral",
    "VariableExpression",
    "UnaryExpression",
    "BinaryExpression",
    "CallExpression",
    "IfExpression",
    "ForExpression",
    "OperatorRole",
    "Prototype",
    "FunctionNode",
    "TopLevelUnit",
    "ASTVisitor",
    "SourcePrinter",
    "TreePrinter",
    "format_number",
]
