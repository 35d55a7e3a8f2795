"""
kscope Abstract Syntax Tree (AST) Definitions
=============================================

This module defines the AST node types produced by the kscope parser.
Each top-level unit (a definition, an extern declaration or a bare
expression) becomes one tree that is handed to a unit consumer as soon
as it has been parsed.

Node Hierarchy
--------------
ASTNode (base)
├── Declarations
│   ├── Prototype - function name, parameters and operator role
│   └── FunctionNode - prototype plus a single body expression
└── Expressions
    ├── NumberLiteral - floating point constant
    ├── VariableExpression - variable reference
    ├── UnaryExpression - user-defined prefix operator
    ├── BinaryExpression - built-in or user-defined infix operator
    ├── CallExpression - function call
    ├── IfExpression - if/then/else
    └── ForExpression - bounded loop

Design Notes
------------
- All nodes are dataclasses; the node set is closed and consumers
  dispatch over it with ASTVisitor
- Each node stores its source location, which is ignored by equality so
  that trees parsed from differently formatted text compare equal
- Each composite node owns its children; trees are acyclic
"""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from enum import Enum
import math
from typing import Any, Optional

from kscope.errors import SourceLocation
from kscope.frontend.operators import BUILTIN_OPERATORS, DEFAULT_BINARY_PRECEDENCE


# Name given to the function wrapping a bare top-level expression
ANONYMOUS_FUNCTION_NAME = "__anon_expr"

# Digit run (1e309) that reads back as infinity
OVERFLOW_LITERAL = "1" + "0" * 309


# =============================================================================
# AST Node Base Classes
# =============================================================================

@dataclass
class ASTNode:
    """
    Base class for all AST nodes.

    Attributes:
        location: Source location where this node starts
    """
    location: Optional[SourceLocation] = field(
        default=None, compare=False, repr=False, kw_only=True
    )


@dataclass
class Expression(ASTNode):
    """
    Base class for all expression nodes.

    Every construct in the language is an expression that produces a
    floating point value; there are no statements.
    """
    pass


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class NumberLiteral(Expression):
    """
    Numeric literal such as ``1.5``.

    Attributes:
        value: The literal value
    """
    value: float = 0.0


@dataclass
class VariableExpression(Expression):
    """
    Variable reference.

    Attributes:
        name: The variable name
    """
    name: str = ""


@dataclass
class UnaryExpression(Expression):
    """
    Prefix operator application (``!x``).

    All unary operators are user-defined and resolve to a call of the
    function named ``"unary" + operator``.

    Attributes:
        operator: The operator character
        operand: The operand expression
    """
    operator: str = ""
    operand: Expression = None

    @property
    def function_name(self) -> str:
        """Name of the function implementing this operator."""
        return f"unary{self.operator}"


@dataclass
class BinaryExpression(Expression):
    """
    Infix operator application (``a + b``).

    The built-in operators ``< + - *`` are implemented directly by the
    code generator; any other operator resolves to a call of the function
    named ``"binary" + operator``.

    Attributes:
        operator: The operator character
        left: Left operand expression
        right: Right operand expression
    """
    operator: str = ""
    left: Expression = None
    right: Expression = None

    @property
    def is_builtin(self) -> bool:
        """True for the structural operators < + - *."""
        return self.operator in BUILTIN_OPERATORS

    @property
    def function_name(self) -> str:
        """Name of the function implementing a user-defined operator."""
        return f"binary{self.operator}"


@dataclass
class CallExpression(Expression):
    """
    Function call expression.

    Attributes:
        callee: Name of the function to call
        arguments: Argument expressions in call order
    """
    callee: str = ""
    arguments: list[Expression] = field(default_factory=list)


@dataclass
class IfExpression(Expression):
    """
    Conditional expression (``if c then a else b``).

    Both branches are mandatory.

    Attributes:
        condition: The condition expression
        then_branch: Value when the condition is non-zero
        else_branch: Value when the condition is zero
    """
    condition: Expression = None
    then_branch: Expression = None
    else_branch: Expression = None


@dataclass
class ForExpression(Expression):
    """
    Bounded loop (``for i = start, end, step in body``).

    Attributes:
        variable: Loop variable name
        start: Initial value of the loop variable
        end: Loop condition expression
        step: Increment; NumberLiteral(1.0) when omitted in the source
        body: Loop body expression
    """
    variable: str = ""
    start: Expression = None
    end: Expression = None
    step: Expression = None
    body: Expression = None


# =============================================================================
# Declaration Nodes
# =============================================================================

class OperatorRole(Enum):
    """What a prototype declares besides a function."""
    PLAIN = "plain"
    UNARY = "unary"
    BINARY = "binary"

    @property
    def arity(self) -> Optional[int]:
        """Required parameter count, or None when any count is allowed."""
        return {OperatorRole.UNARY: 1, OperatorRole.BINARY: 2}.get(self)


@dataclass
class Prototype(ASTNode):
    """
    Function prototype.

    Operator prototypes get a synthesized name: ``unary!`` or ``binary@``.

    Attributes:
        name: Function name
        parameters: Parameter names in order
        role: Plain function, unary operator or binary operator
        precedence: Declared precedence (meaningful for binary operators)
    """
    name: str = ""
    parameters: list[str] = field(default_factory=list)
    role: OperatorRole = OperatorRole.PLAIN
    precedence: int = DEFAULT_BINARY_PRECEDENCE

    @property
    def is_operator(self) -> bool:
        return self.role != OperatorRole.PLAIN

    @property
    def is_unary_operator(self) -> bool:
        return self.role == OperatorRole.UNARY

    @property
    def is_binary_operator(self) -> bool:
        return self.role == OperatorRole.BINARY

    @property
    def operator_symbol(self) -> str:
        """The declared operator character (last character of the name)."""
        if not self.is_operator:
            raise ValueError(f"'{self.name}' does not declare an operator")
        return self.name[-1]


@dataclass
class FunctionNode(ASTNode):
    """
    Function definition: a prototype and exactly one body expression.

    Attributes:
        prototype: The function prototype
        body: The body expression
    """
    prototype: Prototype = None
    body: Expression = None

    @property
    def name(self) -> str:
        return self.prototype.name

    @property
    def is_anonymous(self) -> bool:
        """True for a wrapped bare top-level expression."""
        return self.prototype.name == ANONYMOUS_FUNCTION_NAME


# A unit handed to consumers: a definition / wrapped expression, or an extern
TopLevelUnit = FunctionNode | Prototype


# =============================================================================
# Visitor Pattern for AST Traversal
# =============================================================================

class ASTVisitor:
    """
    Base class for AST visitors.

    Dispatches to ``visit_<ClassName>``; unhandled classes fall back to
    generic_visit, which visits all child nodes.

    Example:
        class VariableFinder(ASTVisitor):
            def __init__(self):
                self.names = set()

            def visit_VariableExpression(self, node):
                self.names.add(node.name)
    """

    def visit(self, node: ASTNode) -> Any:
        """Visit a node by dispatching to the appropriate method."""
        method_name = f"visit_{node.__class__.__name__}"
        visitor = getattr(self, method_name, self.generic_visit)
        return visitor(node)

    def generic_visit(self, node: ASTNode) -> None:
        """Visit all child nodes of a node."""
        for node_field in fields(node):
            value = getattr(node, node_field.name)
            if isinstance(value, ASTNode):
                self.visit(value)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, ASTNode):
                        self.visit(item)


# =============================================================================
# Canonical Source Printer
# =============================================================================

def format_number(value: float) -> str:
    """
    Format a number the way the lexer can read it back.

    Exponents and signs are not part of the literal syntax, so the
    shortest round-tripping representation is expanded to plain digits.

        >>> format_number(1.0)
        '1'
        >>> format_number(1e-05)
        '0.00001'

    Infinity (from a digit run too long for a float) is written as a
    digit run that overflows again when read back.
    """
    if math.isinf(value) and value > 0:
        return OVERFLOW_LITERAL
    if not math.isfinite(value):
        raise ValueError(f"{value!r} has no literal form")
    if value.is_integer():
        return str(int(value))
    return format(Decimal(repr(value)), "f")


class SourcePrinter(ASTVisitor):
    """
    Prints units back as kscope source.

    Every compound expression is parenthesized, so the output does not
    depend on operator precedence and parsing it again (with the same
    operators declared) yields an equal tree.

    Example:
        >>> SourcePrinter().print(tree)
        'def binary@ 5 (a b) (a + b)'
    """

    def print(self, node: ASTNode) -> str:
        """Return the source text for a node."""
        return self.visit(node)

    def generic_visit(self, node: ASTNode) -> str:
        raise TypeError(f"cannot print {type(node).__name__}")

    def visit_NumberLiteral(self, node: NumberLiteral) -> str:
        return format_number(node.value)

    def visit_VariableExpression(self, node: VariableExpression) -> str:
        return node.name

    def visit_UnaryExpression(self, node: UnaryExpression) -> str:
        return f"{node.operator}{self.visit(node.operand)}"

    def visit_BinaryExpression(self, node: BinaryExpression) -> str:
        return f"({self.visit(node.left)} {node.operator} {self.visit(node.right)})"

    def visit_CallExpression(self, node: CallExpression) -> str:
        args = ", ".join(self.visit(arg) for arg in node.arguments)
        return f"{node.callee}({args})"

    def visit_IfExpression(self, node: IfExpression) -> str:
        return (
            f"(if {self.visit(node.condition)} then {self.visit(node.then_branch)}"
            f" else {self.visit(node.else_branch)})"
        )

    def visit_ForExpression(self, node: ForExpression) -> str:
        return (
            f"(for {node.variable} = {self.visit(node.start)}, {self.visit(node.end)},"
            f" {self.visit(node.step)} in {self.visit(node.body)})"
        )

    def visit_Prototype(self, node: Prototype) -> str:
        params = " ".join(node.parameters)
        if node.role == OperatorRole.UNARY:
            return f"unary{node.operator_symbol}({params})"
        if node.role == OperatorRole.BINARY:
            return f"binary{node.operator_symbol} {node.precedence} ({params})"
        return f"{node.name}({params})"

    def visit_FunctionNode(self, node: FunctionNode) -> str:
        if node.is_anonymous:
            return self.visit(node.body)
        return f"def {self.visit(node.prototype)} {self.visit(node.body)}"

    def print_unit(self, unit: TopLevelUnit) -> str:
        """Print a top-level unit; a bare Prototype is an extern declaration."""
        if isinstance(unit, Prototype):
            return f"extern {self.visit(unit)}"
        return self.visit(unit)


# =============================================================================
# Tree Printer (for debugging)
# =============================================================================

class TreePrinter(ASTVisitor):
    """
    Prints an AST as an indented tree for debugging.

    Example output:
        Function add(a, b)
          Binary +
            Variable a
            Variable b
    """

    def __init__(self):
        self._indent_level = 0
        self._output: list[str] = []

    def print(self, node: ASTNode) -> str:
        """Print an AST node and return the formatted string."""
        self._output = []
        self._indent_level = 0
        self.visit(node)
        return "\n".join(self._output)

    def _emit(self, text: str) -> None:
        """Add a line of output with current indentation."""
        indent = "  " * self._indent_level
        self._output.append(f"{indent}{text}")

    def _child(self, node: ASTNode, label: Optional[str] = None) -> None:
        """Visit a child one level deeper, optionally under a label line."""
        self._indent_level += 1
        if label:
            self._emit(label)
            self._indent_level += 1
            self.visit(node)
            self._indent_level -= 1
        else:
            self.visit(node)
        self._indent_level -= 1

    def visit_Prototype(self, node: Prototype):
        params = ", ".join(node.parameters)
        if node.role == OperatorRole.BINARY:
            self._emit(f"Extern {node.name}({params}) [binary, precedence {node.precedence}]")
        elif node.role == OperatorRole.UNARY:
            self._emit(f"Extern {node.name}({params}) [unary]")
        else:
            self._emit(f"Extern {node.name}({params})")

    def visit_FunctionNode(self, node: FunctionNode):
        proto = node.prototype
        params = ", ".join(proto.parameters)
        suffix = ""
        if proto.role == OperatorRole.BINARY:
            suffix = f" [binary, precedence {proto.precedence}]"
        elif proto.role == OperatorRole.UNARY:
            suffix = " [unary]"
        self._emit(f"Function {proto.name}({params}){suffix}")
        self._child(node.body)

    def visit_NumberLiteral(self, node: NumberLiteral):
        self._emit(f"Number {format_number(node.value)}")

    def visit_VariableExpression(self, node: VariableExpression):
        self._emit(f"Variable {node.name}")

    def visit_UnaryExpression(self, node: UnaryExpression):
        self._emit(f"Unary {node.operator}")
        self._child(node.operand)

    def visit_BinaryExpression(self, node: BinaryExpression):
        self._emit(f"Binary {node.operator}")
        self._child(node.left)
        self._child(node.right)

    def visit_CallExpression(self, node: CallExpression):
        self._emit(f"Call {node.callee}")
        for arg in node.arguments:
            self._child(arg)

    def visit_IfExpression(self, node: IfExpression):
        self._emit("If")
        self._child(node.condition, "Condition:")
        self._child(node.then_branch, "Then:")
        self._child(node.else_branch, "Else:")

    def visit_ForExpression(self, node: ForExpression):
        self._emit(f"For {node.variable}")
        self._child(node.start, "Start:")
        self._child(node.end, "End:")
        self._child(node.step, "Step:")
        self._child(node.body, "Body:")
