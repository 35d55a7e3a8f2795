"""
Binary Operator Precedence Table
================================

The parser decides how to group binary operators by looking up each
operator character in an OperatorTable. The table starts with the
built-in operators and grows while a program is parsed: every
``binary`` prototype inserts (or overwrites) an entry for its symbol.

Built-in Precedences
--------------------
| Operator | Precedence | Meaning        |
|----------|------------|----------------|
| <        | 10         | less than      |
| + -      | 20         | additive       |
| *        | 40         | multiplicative |

User declarations are validated into 1..100 by the parser and default
to 30. Looking up a character that was never declared, or that was
stored with a precedence of 0 or less, yields NOT_AN_OPERATOR (-1)
rather than an error.
"""

from typing import Iterator, Mapping, Optional


# =============================================================================
# Constants
# =============================================================================

NOT_AN_OPERATOR = -1

MIN_PRECEDENCE = 1
MAX_PRECEDENCE = 100
DEFAULT_BINARY_PRECEDENCE = 30

BUILTIN_PRECEDENCE: dict[str, int] = {
    "<": 10,
    "+": 20,
    "-": 20,
    "*": 40,
}

# Operators the code generator implements directly instead of calling
# a user-defined "binary" function
BUILTIN_OPERATORS = frozenset(BUILTIN_PRECEDENCE)


class OperatorTable:
    """
    Mutable mapping from operator character to precedence.

    One table belongs to one parse session. Entries are only ever added
    or overwritten while parsing; checkpoint() and restore() let a session
    undo the entries a failed top-level unit registered.

    Example:
        table = OperatorTable()
        table.precedence("+")     # 20
        table.precedence("@")     # -1
        table.declare("@", 5)
        table.precedence("@")     # 5
    """

    def __init__(self, extra: Optional[Mapping[str, int]] = None):
        """
        Initialize the table with the built-in operators.

        Args:
            extra: Additional operator precedences applied after the built-ins
        """
        self._precedence: dict[str, int] = dict(BUILTIN_PRECEDENCE)
        if extra:
            for symbol, precedence in extra.items():
                self.declare(symbol, precedence)

    def precedence(self, symbol: object) -> int:
        """
        Return the binary precedence of a symbol.

        Returns NOT_AN_OPERATOR for anything that is not a single ASCII
        character with a positive precedence in the table.
        """
        if not isinstance(symbol, str) or len(symbol) != 1 or not symbol.isascii():
            return NOT_AN_OPERATOR

        precedence = self._precedence.get(symbol, 0)
        if precedence <= 0:
            return NOT_AN_OPERATOR
        return precedence

    def declare(self, symbol: str, precedence: int) -> None:
        """
        Insert or overwrite the precedence of a symbol.

        Args:
            symbol: A single operator character
            precedence: The new precedence; values <= 0 disable the operator

        Raises:
            ValueError: If symbol is not a single character
        """
        if len(symbol) != 1:
            raise ValueError(f"operator symbol must be one character, got {symbol!r}")
        self._precedence[symbol] = int(precedence)

    def is_binary_operator(self, symbol: object) -> bool:
        """Return True if the symbol currently acts as an infix operator."""
        return self.precedence(symbol) != NOT_AN_OPERATOR

    def checkpoint(self) -> dict[str, int]:
        """Return a snapshot of the current entries."""
        return dict(self._precedence)

    def restore(self, snapshot: Mapping[str, int]) -> None:
        """Replace all entries with a snapshot taken by checkpoint()."""
        self._precedence = dict(snapshot)

    def copy(self) -> "OperatorTable":
        """Return an independent table with the same entries."""
        table = OperatorTable()
        table.restore(self._precedence)
        return table

    def items(self) -> Iterator[tuple[str, int]]:
        """Iterate over (symbol, precedence) pairs, sorted by precedence."""
        return iter(sorted(self._precedence.items(), key=lambda item: (item[1], item[0])))

    def __contains__(self, symbol: object) -> bool:
        return self.is_binary_operator(symbol)

    def __len__(self) -> int:
        return len(self._precedence)

    def __repr__(self) -> str:
        entries = ", ".join(f"{symbol!r}: {precedence}" for symbol, precedence in self.items())
        return f"OperatorTable({{{entries}}})"
