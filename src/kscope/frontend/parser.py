"""
kscope Operator-Precedence Parser
=================================

This module implements the parser for the kscope language. It pulls
tokens from the lexer one at a time and builds one AST per top-level
unit. Binary expressions are parsed by precedence climbing over an
OperatorTable that the program itself extends while it is being parsed.

Grammar (Simplified EBNF)
-------------------------
top_level       ::= definition | extern | expression
definition      ::= 'def' prototype expression
extern          ::= 'extern' prototype
prototype       ::= IDENTIFIER '(' IDENTIFIER* ')'
                  | 'unary' CHAR '(' IDENTIFIER ')'
                  | 'binary' CHAR NUMBER? '(' IDENTIFIER IDENTIFIER ')'

expression      ::= unary (binop unary)*
unary           ::= primary | CHAR unary
primary         ::= NUMBER
                  | '(' expression ')'
                  | IDENTIFIER
                  | IDENTIFIER '(' (expression (',' expression)*)? ')'
                  | 'if' expression 'then' expression 'else' expression
                  | 'for' IDENTIFIER '=' expression ',' expression
                        (',' expression)? 'in' expression

Operator Precedence
-------------------
Binary operators are looked up in the OperatorTable; any character
without a positive precedence ends the expression. Operators of equal
precedence associate to the left. Built-in precedences, lowest first:

    <  10
    +  20   -  20
    *  40

A ``binary`` prototype registers its operator (default precedence 30,
or the literal given after the symbol, 1..100) as soon as the prototype
is parsed, so the definition's own body and every later unit can use it.

Unary Operators
---------------
Any ASCII character other than ``( ) , ;`` found where an operand is
expected is treated as a prefix operator. Whether a matching ``unary``
function exists is for the code generator to check.

Example Usage
-------------
>>> from kscope.frontend.parser import Parser
>>> parser = Parser.from_source('def binary| 5 (a b) if a then 1 else b')
>>> function = parser.parse_definition()
>>> function.prototype.name
'binary|'
"""

from contextlib import contextmanager
from typing import Iterator, Optional, TextIO
import logging

from kscope.frontend.lexer import Lexer, Token, TokenType
from kscope.frontend.operators import (
    OperatorTable,
    DEFAULT_BINARY_PRECEDENCE,
    MIN_PRECEDENCE,
    MAX_PRECEDENCE,
)
from kscope.frontend.ast import (
    ANONYMOUS_FUNCTION_NAME,
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
)
from kscope.frontend.errors import (
    UnexpectedTokenError,
    MissingTokenError,
    NestingDepthError,
    OperatorArityError,
    PrecedenceRangeError,
)


logger = logging.getLogger(__name__)


# Characters that never act as prefix operators
NON_OPERATOR_CHARS = "(),;"

# Default limit on nested terms (parentheses, calls, conditionals, ...)
DEFAULT_MAX_DEPTH = 100

# Largest accepted limit; each level costs several interpreter frames
MAX_DEPTH_LIMIT = 150


class Parser:
    """
    Recursive descent parser with precedence climbing for kscope.

    The parser owns the token cursor (the current token plus the lexer's
    one character of lookahead) and the operator table. A single parser
    is used for a whole session, one top-level unit after another; it is
    not safe to share between threads.

    Attributes:
        lexer: Token source
        operators: Binary operator precedence table
        max_depth: Maximum expression nesting before NestingDepthError
    """

    def __init__(
        self,
        lexer: Lexer,
        operators: Optional[OperatorTable] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ):
        """
        Initialize the parser and read the first token.

        Args:
            lexer: Token source
            operators: Operator table to use and extend (a fresh table if None)
            max_depth: Nesting limit for expressions, 1..MAX_DEPTH_LIMIT

        Raises:
            ValueError: If max_depth is out of range
        """
        if not 1 <= max_depth <= MAX_DEPTH_LIMIT:
            raise ValueError(
                f"max_depth must be 1..{MAX_DEPTH_LIMIT}, got {max_depth}"
            )
        self.lexer = lexer
        self.operators = operators if operators is not None else OperatorTable()
        self.max_depth = max_depth

        self._depth = 0
        self._current: Token = lexer.next_token()

    @classmethod
    def from_source(
        cls,
        source: str | TextIO,
        filename: str = "<input>",
        operators: Optional[OperatorTable] = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> "Parser":
        """Create a parser reading from source text or a text stream."""
        return cls(Lexer(source, filename), operators, max_depth)

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    @property
    def current(self) -> Token:
        """The token the parser is looking at."""
        return self._current

    def at_end(self) -> bool:
        """Check if the cursor has reached the end of input."""
        return self._current.type == TokenType.EOF

    def advance(self) -> Token:
        """Consume the current token and return the new current token."""
        self._current = self.lexer.next_token()
        return self._current

    def _check(self, *types: TokenType) -> bool:
        """Check if current token is one of the given types."""
        return self._current.type in types

    def _check_char(self, char: str) -> bool:
        """Check if current token is the given character."""
        return self._current.is_char(char)

    def _expect_char(self, char: str, context: Optional[str] = None) -> Token:
        """
        Expect and consume a specific character token.

        Raises:
            MissingTokenError: If the current token is something else
        """
        if not self._check_char(char):
            raise MissingTokenError(f"'{char}'", self._current.location, context)
        token = self._current
        self.advance()
        return token

    def _expect(self, token_type: TokenType, expected: str, context: Optional[str] = None) -> Token:
        """
        Expect and consume a token of the given type.

        Raises:
            MissingTokenError: If the current token is something else
        """
        if not self._check(token_type):
            raise MissingTokenError(expected, self._current.location, context)
        token = self._current
        self.advance()
        return token

    def _token_precedence(self) -> int:
        """Precedence of the current token as a binary operator, or -1."""
        if self._current.type != TokenType.CHAR:
            return -1
        return self.operators.precedence(self._current.value)

    def _is_operator_char(self) -> bool:
        """Check if the current token can name an operator."""
        return (
            self._current.is_ascii_char()
            and self._current.value not in NON_OPERATOR_CHARS
        )

    @contextmanager
    def _nested(self) -> Iterator[None]:
        """
        Track expression nesting and fail cleanly past max_depth.

        Running out of interpreter stack first (when the parser is itself
        called from deep in the stack) is reported the same way.
        """
        if self._depth >= self.max_depth:
            raise NestingDepthError(self.max_depth, self._current.location)
        self._depth += 1
        try:
            yield
        except RecursionError:
            raise NestingDepthError(self.max_depth, self._current.location) from None
        finally:
            self._depth -= 1

    # =========================================================================
    # Expression Parsing
    # =========================================================================

    def parse_expression(self) -> Expression:
        """
        Parse an expression: a unary term followed by operator/term pairs.

        Raises:
            KSyntaxError: If the expression is malformed
        """
        lhs = self._parse_unary()
        return self._parse_binary_rhs(0, lhs)

    def _parse_binary_rhs(self, min_precedence: int, lhs: Expression) -> Expression:
        """
        Fold binary operators into lhs while their precedence >= min_precedence.

        When the operator after a right operand binds tighter than the one
        just consumed, that right operand first absorbs the tighter
        operators. Equal precedence binds immediately, which makes every
        operator left-associative.
        """
        while True:
            precedence = self._token_precedence()
            if precedence < min_precedence:
                return lhs

            operator_token = self._current
            self.advance()

            rhs = self._parse_unary()

            next_precedence = self._token_precedence()
            if precedence < next_precedence:
                with self._nested():
                    rhs = self._parse_binary_rhs(precedence + 1, rhs)

            lhs = BinaryExpression(
                operator=operator_token.value,
                left=lhs,
                right=rhs,
                location=operator_token.location,
            )

    def _parse_unary(self) -> Expression:
        """Parse a prefix operator application or a primary expression."""
        with self._nested():
            if not self._is_operator_char():
                return self._parse_primary()

            operator_token = self._current
            self.advance()
            operand = self._parse_unary()
            return UnaryExpression(
                operator=operator_token.value,
                operand=operand,
                location=operator_token.location,
            )

    def _parse_primary(self) -> Expression:
        """Parse a primary expression."""
        token = self._current

        if token.type == TokenType.IDENTIFIER:
            return self._parse_identifier()
        if token.type == TokenType.NUMBER:
            return self._parse_number()
        if token.is_char("("):
            return self._parse_paren()
        if token.type == TokenType.IF:
            return self._parse_if()
        if token.type == TokenType.FOR:
            return self._parse_for()

        raise UnexpectedTokenError(
            token.describe(),
            expected="an expression",
            location=token.location,
        )

    def _parse_number(self) -> NumberLiteral:
        """Parse a numeric literal."""
        token = self._current
        self.advance()
        return NumberLiteral(value=token.value, location=token.location)

    def _parse_paren(self) -> Expression:
        """Parse a parenthesized expression; the parentheses leave no node."""
        self.advance()  # consume '('
        expr = self.parse_expression()
        self._expect_char(")")
        return expr

    def _parse_identifier(self) -> Expression:
        """Parse a variable reference or a function call."""
        name_token = self._current
        self.advance()

        if not self._check_char("("):
            return VariableExpression(name=name_token.value, location=name_token.location)

        self.advance()  # consume '('
        arguments = []
        if not self._check_char(")"):
            while True:
                arguments.append(self.parse_expression())
                if self._check_char(")"):
                    break
                if not self._check_char(","):
                    raise MissingTokenError(
                        "')' or ','", self._current.location, "in argument list"
                    )
                self.advance()
        self.advance()  # consume ')'

        return CallExpression(
            callee=name_token.value,
            arguments=arguments,
            location=name_token.location,
        )

    def _parse_if(self) -> IfExpression:
        """Parse 'if' expression 'then' expression 'else' expression."""
        location = self._current.location
        self.advance()  # consume 'if'

        condition = self.parse_expression()
        self._expect(TokenType.THEN, "'then'")
        then_branch = self.parse_expression()
        self._expect(TokenType.ELSE, "'else'")
        else_branch = self.parse_expression()

        return IfExpression(
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
            location=location,
        )

    def _parse_for(self) -> ForExpression:
        """Parse 'for' name '=' start ',' end (',' step)? 'in' body."""
        location = self._current.location
        self.advance()  # consume 'for'

        name_token = self._expect(TokenType.IDENTIFIER, "identifier", "after for")
        self._expect_char("=", "after for")

        start = self.parse_expression()
        self._expect_char(",", "after for start value")
        end = self.parse_expression()

        if self._check_char(","):
            self.advance()
            step = self.parse_expression()
        else:
            step = NumberLiteral(value=1.0, location=self._current.location)

        self._expect(TokenType.IN, "'in'", "after for")
        body = self.parse_expression()

        return ForExpression(
            variable=name_token.value,
            start=start,
            end=end,
            step=step,
            body=body,
            location=location,
        )

    # =========================================================================
    # Declaration Parsing
    # =========================================================================

    def parse_prototype(self) -> Prototype:
        """
        Parse a plain, unary-operator or binary-operator prototype.

        A binary-operator prototype registers its precedence in the
        operator table before returning.

        Raises:
            KSyntaxError: If the prototype is malformed
            OperatorArityError: If an operator has the wrong parameter count
            PrecedenceRangeError: If a declared precedence is outside 1..100
        """
        location = self._current.location
        precedence = DEFAULT_BINARY_PRECEDENCE

        if self._check(TokenType.IDENTIFIER):
            name = self._current.value
            role = OperatorRole.PLAIN
            self.advance()

        elif self._check(TokenType.UNARY):
            self.advance()
            if not self._is_operator_char():
                raise MissingTokenError("unary operator", self._current.location)
            name = f"unary{self._current.value}"
            role = OperatorRole.UNARY
            self.advance()

        elif self._check(TokenType.BINARY):
            self.advance()
            if not self._is_operator_char():
                raise MissingTokenError("binary operator", self._current.location)
            name = f"binary{self._current.value}"
            role = OperatorRole.BINARY
            self.advance()

            if self._check(TokenType.NUMBER):
                value = self._current.value
                if not MIN_PRECEDENCE <= value <= MAX_PRECEDENCE:
                    raise PrecedenceRangeError(value, self._current.location)
                precedence = int(value)
                self.advance()

        else:
            raise MissingTokenError("function name", self._current.location, "in prototype")

        self._expect_char("(", "in prototype")
        parameters = []
        while self._check(TokenType.IDENTIFIER):
            parameters.append(self._current.value)
            self.advance()
        self._expect_char(")", "in prototype")

        if role.arity is not None and len(parameters) != role.arity:
            raise OperatorArityError(name, role.arity, len(parameters), location)

        prototype = Prototype(
            name=name,
            parameters=parameters,
            role=role,
            precedence=precedence,
            location=location,
        )

        if prototype.is_binary_operator:
            self.operators.declare(prototype.operator_symbol, precedence)
            logger.debug(
                f"Registered binary operator '{prototype.operator_symbol}' "
                f"with precedence {precedence}"
            )

        return prototype

    def parse_definition(self) -> FunctionNode:
        """Parse 'def' prototype expression."""
        location = self._current.location
        self._expect(TokenType.DEF, "'def'")
        prototype = self.parse_prototype()
        body = self.parse_expression()
        return FunctionNode(prototype=prototype, body=body, location=location)

    def parse_extern(self) -> Prototype:
        """Parse 'extern' prototype."""
        self._expect(TokenType.EXTERN, "'extern'")
        return self.parse_prototype()

    def parse_top_level_expression(self) -> FunctionNode:
        """Wrap a bare expression as an anonymous zero-parameter function."""
        location = self._current.location
        body = self.parse_expression()
        prototype = Prototype(
            name=ANONYMOUS_FUNCTION_NAME,
            parameters=[],
            location=location,
        )
        return FunctionNode(prototype=prototype, body=body, location=location)


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_expression(
    source: str,
    operators: Optional[OperatorTable] = None,
    filename: str = "<input>",
) -> Expression:
    """
    Parse a single expression from source text.

    The whole text must be consumed, apart from trailing semicolons.

    Raises:
        KSyntaxError: If parsing fails or text is left over
    """
    parser = Parser.from_source(source, filename, operators)
    expr = parser.parse_expression()
    while parser.current.is_char(";"):
        parser.advance()
    if not parser.at_end():
        raise UnexpectedTokenError(
            parser.current.describe(),
            expected="end of input",
            location=parser.current.location,
        )
    return expr
