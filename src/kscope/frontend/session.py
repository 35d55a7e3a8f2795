"""
kscope Parse Session
====================

This module provides the driving loop of the frontend. A ParseSession
reads one top-level unit at a time and hands each accepted unit to a
UnitConsumer before reading the next one, so parsing and downstream
work (such as code generation) are interleaved:

    Source → Lexer → Parser → unit → Consumer → next unit ...

Usage
-----
Programmatic:
    >>> from kscope.frontend.session import ParseSession, UnitCollector
    >>> collector = UnitCollector()
    >>> result = ParseSession('def f(x) x * 2; f(4)', consumer=collector).run()
    >>> [unit.name for unit in collector.units]
    ['f', '__anon_expr']

Error Handling
--------------
A failed unit is reported once (to the on_error callback and the
session's ErrorCollector) and discarded. Operator declarations made
while parsing it are rolled back, the cursor skips one token and the
session continues with the next unit. End of input ends the session
without affecting units that were already accepted.

Consumers reject a unit by raising UnitRejectedError. Rejections are
reported through the same channel but do not touch the parser's state.
The default UnitCollector rejects redefined functions and operators
used before a prototype declares them.
"""

from dataclasses import dataclass, field, fields
from typing import Callable, Iterable, Iterator, Optional, TextIO
import logging

from kscope.frontend.lexer import Lexer, TokenType
from kscope.frontend.operators import OperatorTable, BUILTIN_OPERATORS
from kscope.frontend.parser import Parser, DEFAULT_MAX_DEPTH
from kscope.frontend.ast import (
    ASTNode,
    BinaryExpression,
    Expression,
    FunctionNode,
    Prototype,
    TopLevelUnit,
    UnaryExpression,
)
from kscope.frontend.errors import (
    FrontendError,
    ErrorCollector,
    UnitRejectedError,
    RedefinitionError,
    UnknownOperatorError,
)
from kscope.errors import SourceLocation


logger = logging.getLogger(__name__)


@dataclass
class SessionOptions:
    """
    Parse session configuration options.

    Attributes:
        filename: Source name used in diagnostics
        max_depth: Maximum expression nesting before the unit fails
        max_errors: Stop the session after this many errors (0 = no limit)
        allow_redefinition: Let UnitCollector accept a second body for a name
        operators: Extra binary operator precedences to start with
    """
    filename: str = "<input>"
    max_depth: int = DEFAULT_MAX_DEPTH
    max_errors: int = 0
    allow_redefinition: bool = False
    operators: dict[str, int] = field(default_factory=dict)


# =============================================================================
# Unit Consumers
# =============================================================================

class UnitConsumer:
    """
    Receives top-level units in the order they are parsed.

    Subclasses override accept(). A FunctionNode is a definition or a
    wrapped bare expression; a Prototype on its own is an extern
    declaration. Raise UnitRejectedError to refuse a unit.
    """

    def accept(self, unit: TopLevelUnit) -> None:
        """Handle one accepted unit."""
        pass


def _operator_uses(body: Expression) -> Iterator[UnaryExpression | BinaryExpression]:
    """
    Yield the unary and user-defined binary nodes of an expression.

    Walks with an explicit stack: a flat chain like 1+1+...+1 nests to any
    depth without passing through the parser's nesting guard.
    """
    pending: list[ASTNode] = [body]
    while pending:
        node = pending.pop()
        if isinstance(node, UnaryExpression):
            yield node
        elif isinstance(node, BinaryExpression) and not node.is_builtin:
            yield node
        for node_field in fields(node):
            value = getattr(node, node_field.name)
            if isinstance(value, ASTNode):
                pending.append(value)
            elif isinstance(value, list):
                pending.extend(item for item in value if isinstance(item, ASTNode))


def _source_order(node: ASTNode) -> tuple[int, int]:
    if node.location is None:
        return (0, 0)
    return (node.location.line, node.location.column)


class UnitCollector(UnitConsumer):
    """
    Collects units and checks them the way a code generator would.

    A named function body may only be defined once, and every unary or
    user-defined binary operator must have been declared by an earlier
    prototype (or by the unit's own prototype). Anonymous top-level
    expressions may repeat freely.

    Attributes:
        units: Accepted units in parse order
        allow_redefinition: Accept repeated definitions instead of rejecting
    """

    def __init__(
        self,
        allow_redefinition: bool = False,
        operators: Iterable[str] = (),
    ):
        """
        Initialize the collector.

        Args:
            allow_redefinition: Accept repeated definitions instead of rejecting
            operators: Binary operator symbols to treat as already declared
        """
        self.units: list[TopLevelUnit] = []
        self.allow_redefinition = allow_redefinition
        self._defined: dict[str, Optional[SourceLocation]] = {}
        self._operator_functions: set[str] = {f"binary{symbol}" for symbol in operators}

    def accept(self, unit: TopLevelUnit) -> None:
        prototype = unit if isinstance(unit, Prototype) else unit.prototype

        if isinstance(unit, FunctionNode):
            if not unit.is_anonymous:
                if unit.name in self._defined and not self.allow_redefinition:
                    raise RedefinitionError(
                        unit.name,
                        location=unit.location,
                        original_location=self._defined[unit.name],
                    )
            self._check_operators(unit.body, prototype)
            if not unit.is_anonymous:
                self._defined[unit.name] = unit.location

        if prototype.is_operator:
            self._operator_functions.add(prototype.name)
        self.units.append(unit)

    def _check_operators(self, body: Expression, prototype: Prototype) -> None:
        """Raise UnknownOperatorError for the first undeclared operator in body."""
        unknown = [
            node for node in _operator_uses(body)
            if node.function_name != prototype.name
            and node.function_name not in self._operator_functions
        ]
        if not unknown:
            return
        node = min(unknown, key=_source_order)
        role = "unary" if isinstance(node, UnaryExpression) else "binary"
        raise UnknownOperatorError(node.operator, role, location=node.location)

    @property
    def functions(self) -> list[FunctionNode]:
        """Accepted function definitions and wrapped expressions."""
        return [unit for unit in self.units if isinstance(unit, FunctionNode)]

    @property
    def externs(self) -> list[Prototype]:
        """Accepted extern declarations."""
        return [unit for unit in self.units if isinstance(unit, Prototype)]


# =============================================================================
# Session
# =============================================================================

@dataclass
class SessionResult:
    """
    Result of running a session to the end of input.

    Attributes:
        filename: Source name
        units: Units accepted by the consumer, in order
        errors: Parse errors and consumer rejections, in order
    """
    filename: str = ""
    units: list[TopLevelUnit] = field(default_factory=list)
    errors: list[FrontendError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def unit_count(self) -> int:
        return len(self.units)


class ParseSession:
    """
    Drives the parser over a source, one top-level unit at a time.

    The session owns the parser, its operator table and the error
    collector. It is single-use: run() or units() consume the input.

    Example:
        session = ParseSession(sys.stdin, on_error=print)
        for unit in session.units():
            backend.compile(unit)

    Attributes:
        options: Session configuration
        consumer: Receives each accepted unit
        parser: The underlying parser (exposes the operator table)
    """

    def __init__(
        self,
        source: str | TextIO,
        options: Optional[SessionOptions] = None,
        consumer: Optional[UnitConsumer] = None,
        on_error: Optional[Callable[[FrontendError], None]] = None,
        operators: Optional[OperatorTable] = None,
    ):
        """
        Initialize the session.

        Args:
            source: Source text or a text stream
            options: Session configuration (uses defaults if None)
            consumer: Unit consumer (a UnitCollector if None)
            on_error: Called once per failed or rejected unit
            operators: Operator table to share (a fresh table if None)
        """
        self.options = options or SessionOptions()
        if operators is None:
            operators = OperatorTable(self.options.operators)

        # Operators already in the table count as declared
        self.consumer = consumer or UnitCollector(
            self.options.allow_redefinition,
            [symbol for symbol, _ in operators.items() if symbol not in BUILTIN_OPERATORS],
        )
        self.on_error = on_error
        self._errors = ErrorCollector(self.options.max_errors)

        lexer = Lexer(source, self.options.filename)
        self.parser = Parser(lexer, operators, self.options.max_depth)

    @property
    def operators(self) -> OperatorTable:
        return self.parser.operators

    @property
    def errors(self) -> list[FrontendError]:
        return list(self._errors.errors)

    def raise_if_errors(self) -> None:
        """Raise FrontendCompilationError if any unit failed so far."""
        self._errors.raise_if_errors()

    def units(self) -> Iterator[TopLevelUnit]:
        """
        Parse and yield units until end of input.

        Each unit has been accepted by the consumer before it is yielded.
        """
        parser = self.parser

        while not parser.at_end():
            if self._errors.should_stop():
                logger.debug(f"Stopping after {self._errors.error_count()} errors")
                return

            # Stray semicolons between units
            if parser.current.is_char(";"):
                parser.advance()
                continue

            unit = self._parse_unit()
            if unit is None:
                continue

            try:
                self.consumer.accept(unit)
            except UnitRejectedError as e:
                logger.info(f"Unit rejected: {e.message}")
                self._report(e)
                continue

            logger.debug(f"Accepted unit '{self._unit_name(unit)}'")
            yield unit

    def run(self) -> SessionResult:
        """Parse the whole input and return the accepted units and errors."""
        units = list(self.units())
        return SessionResult(
            filename=self.options.filename,
            units=units,
            errors=self.errors,
        )

    def _parse_unit(self) -> Optional[TopLevelUnit]:
        """
        Parse one top-level unit, recovering on failure.

        Returns:
            The parsed unit, or None if parsing failed
        """
        parser = self.parser
        checkpoint = parser.operators.checkpoint()

        try:
            if parser.current.type == TokenType.DEF:
                return parser.parse_definition()
            if parser.current.type == TokenType.EXTERN:
                return parser.parse_extern()
            return parser.parse_top_level_expression()
        except FrontendError as e:
            self._report(e)
            parser.operators.restore(checkpoint)
            # Skip the offending token so the session always makes progress
            skipped = parser.current
            parser.advance()
            logger.debug(f"Recovered by skipping {skipped!r}")
            return None

    def _report(self, error: FrontendError) -> None:
        """Record an error and pass it to the diagnostic callback."""
        self._errors.add(error)
        if self.on_error is not None:
            self.on_error(error)

    @staticmethod
    def _unit_name(unit: TopLevelUnit) -> str:
        if isinstance(unit, Prototype):
            return unit.name
        return unit.prototype.name


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(
    source: str | TextIO,
    filename: str = "<input>",
    operators: Optional[OperatorTable] = None,
) -> list[TopLevelUnit]:
    """
    Parse every top-level unit of a source.

    Args:
        source: Source text or a text stream
        filename: Source name for error messages
        operators: Operator table to use and extend

    Returns:
        The accepted units in order

    Raises:
        FrontendCompilationError: If any unit failed, listing every error
    """
    session = ParseSession(source, SessionOptions(filename=filename), operators=operators)
    result = session.run()
    session.raise_if_errors()
    return result.units
