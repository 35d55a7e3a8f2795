"""
Frontend Error Hierarchy
========================

This module defines the exception hierarchy for the kscope frontend.
All exceptions inherit from FrontendError, which itself inherits from
the base KScopeError for consistent error handling across the package.

Exception Hierarchy
-------------------
FrontendError (base for all frontend errors)
├── KSyntaxError - parser syntax errors
│   ├── UnexpectedTokenError - token cannot start/continue the construct
│   ├── MissingTokenError - a required token (')', 'then', ...) is absent
│   └── NestingDepthError - input nested deeper than the parser allows
├── KSemanticError - parse-time rule violations
│   ├── OperatorArityError - wrong parameter count for an operator
│   └── PrecedenceRangeError - declared precedence outside 1..100
└── UnitRejectedError - a unit consumer refused a parsed unit
    └── RedefinitionError - function body defined twice

The lexer never raises: malformed numeric text degrades to a best-effort
value and any unrecognised character becomes a CHAR token.

Error Message Format
--------------------
Every error renders as exactly one line:

    filename:line:column: error: description

Example:
    demo.ks:3:9: error: expected ')'
"""

from typing import Optional, List

from kscope.errors import KScopeError, SourceLocation


# =============================================================================
# Base Frontend Exception
# =============================================================================

class FrontendError(KScopeError):
    """
    Base exception for all frontend errors.

    Attributes:
        message: The error description
        location: Where in the source the error occurred
        hint: A suggestion for fixing the error
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error as a single diagnostic line.

            demo.ks:1:5: error: expected ')'; hint: parentheses must balance
        """
        if self.location:
            text = f"{self.location}: error: {self.message}"
        else:
            text = f"error: {self.message}"

        if self.hint:
            text = f"{text}; hint: {self.hint}"

        return text


class FrontendCompilationError(FrontendError):
    """
    Aggregate error containing multiple errors.

    The message is already a formatted report from ErrorCollector and
    is passed through unchanged.
    """

    def _format_message(self) -> str:
        """Return message as-is - it's already a formatted aggregate report."""
        return self.message


# =============================================================================
# Syntax Errors
# =============================================================================

class KSyntaxError(FrontendError):
    """
    Syntax error in source text.

    Raised when the parser cannot complete a grammar rule: a missing
    close parenthesis, a missing 'then'/'else'/'in', a malformed argument
    list or a token that cannot start an expression.
    """
    pass


class UnexpectedTokenError(KSyntaxError):
    """
    Unexpected token during parsing.

    Raised when the current token does not fit the grammar rule being
    parsed, for example when an expression was expected.
    """

    def __init__(
        self,
        found: str,
        expected: Optional[str] = None,
        location: Optional[SourceLocation] = None,
    ):
        self.found = found
        self.expected = expected

        message = f"unexpected token '{found}'"
        if expected:
            message = f"{message} when expecting {expected}"

        super().__init__(message, location=location)


class MissingTokenError(KSyntaxError):
    """
    Required token is missing.

    Raised when a required token (like ')' or 'then') is not found
    where expected. The optional context names the construct, as in
    "expected 'in' after for".
    """

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        context: Optional[str] = None,
    ):
        self.expected = expected
        self.context = context

        message = f"expected {expected}"
        if context:
            message = f"{message} {context}"

        super().__init__(message, location=location)


class NestingDepthError(KSyntaxError):
    """Expression nesting exceeded the parser's configured limit."""

    def __init__(
        self,
        max_depth: int,
        location: Optional[SourceLocation] = None,
    ):
        self.max_depth = max_depth
        super().__init__(
            f"expression nested deeper than {max_depth} levels",
            location=location,
            hint="split the expression into helper functions",
        )


# =============================================================================
# Semantic Errors (checked while parsing)
# =============================================================================

class KSemanticError(FrontendError):
    """
    Parse-time semantic error.

    The text is syntactically well formed but violates a rule the parser
    enforces while building the AST, such as operator arity.
    """
    pass


class OperatorArityError(KSemanticError):
    """
    Operator prototype with the wrong number of parameters.

    Unary operators take exactly one parameter and binary operators
    exactly two.

    Example:
        def unary!(a b) ...     # two parameters for a unary operator
    """

    def __init__(
        self,
        name: str,
        expected: int,
        actual: int,
        location: Optional[SourceLocation] = None,
    ):
        self.name = name
        self.expected = expected
        self.actual = actual

        word = "operand" if expected == 1 else "operands"
        super().__init__(
            f"invalid number of operands for operator '{name}': "
            f"expected {expected} {word}, got {actual}",
            location=location,
        )


class PrecedenceRangeError(KSemanticError):
    """Declared binary operator precedence outside 1..100."""

    def __init__(
        self,
        value: float,
        location: Optional[SourceLocation] = None,
    ):
        self.value = value
        super().__init__(
            f"invalid precedence {value:g}: must be 1..100",
            location=location,
        )


# =============================================================================
# Consumer Rejections
# =============================================================================

class UnitRejectedError(FrontendError):
    """
    A unit consumer refused a parsed top-level unit.

    Reported through the same channel as parse errors. Rejection never
    changes the parser's state.
    """
    pass


class RedefinitionError(UnitRejectedError):
    """A function body was defined more than once."""

    def __init__(
        self,
        name: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.name = name
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{name}' was first defined at {original_location}"

        super().__init__(
            f"function '{name}' cannot be redefined",
            location=location,
            hint=hint,
        )


class UnknownOperatorError(UnitRejectedError):
    """
    A unary or user-defined binary operator with no declaration.

    The parser accepts any character as a prefix operator and stops an
    expression at an undeclared infix one, so an operator used before its
    'unary' or 'binary' prototype only fails when the unit is consumed.

    Example:
        1 @ 2                   # unary '@' applied to 2, before 'def binary@ ...'
    """

    def __init__(
        self,
        symbol: str,
        role: str,
        location: Optional[SourceLocation] = None,
    ):
        self.symbol = symbol
        self.role = role

        if role == "unary":
            example = f"def unary{symbol}(v) ..."
        else:
            example = f"def binary{symbol} PRECEDENCE (a b) ..."

        super().__init__(
            f"unknown {role} operator '{symbol}'",
            location=location,
            hint=f"declare it first with '{example}'",
        )


# =============================================================================
# Error Collection (for multi-error reporting)
# =============================================================================

class ErrorCollector:
    """
    Collects multiple errors for batch reporting.

    The parse session uses this to continue with the next top-level unit
    after a failure, reporting all errors together at the end.

    Example:
        collector = ErrorCollector(max_errors=100)

        for unit in units:
            try:
                consume(unit)
            except FrontendError as e:
                collector.add(e)
                if collector.should_stop():
                    break

        if collector.has_errors():
            print(collector.report())
    """

    def __init__(self, max_errors: int = 0):
        """
        Initialize the error collector.

        Args:
            max_errors: Maximum errors to collect before stopping (0 = no limit)
        """
        self.errors: List[FrontendError] = []
        self.max_errors = max_errors

    def add(self, error: FrontendError) -> None:
        """Add an error to the collection."""
        self.errors.append(error)

    def has_errors(self) -> bool:
        """Return True if any errors have been collected."""
        return len(self.errors) > 0

    def should_stop(self) -> bool:
        """Return True if max_errors has been reached."""
        return self.max_errors > 0 and len(self.errors) >= self.max_errors

    def error_count(self) -> int:
        """Return the number of collected errors."""
        return len(self.errors)

    def report(self) -> str:
        """Format all errors for display, one line each, plus a summary."""
        lines = [str(error) for error in self.errors]

        error_word = "error" if len(self.errors) == 1 else "errors"
        lines.append(f"{len(self.errors)} {error_word}")

        return "\n".join(lines)

    def raise_if_errors(self) -> None:
        """Raise a FrontendCompilationError if any errors were collected."""
        if self.has_errors():
            raise FrontendCompilationError(self.report())
