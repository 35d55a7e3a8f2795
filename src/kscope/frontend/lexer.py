"""
kscope Lexer (Tokenizer)
========================

This module implements the lexer for the kscope expression language.
It converts a character stream into tokens, one token per call, for the
parser.

Token Categories
----------------
- Keywords: def, extern, if, then, else, for, in, unary, binary
- Identifiers: [A-Za-z][A-Za-z0-9]*
- Numbers: maximal runs of [0-9.] converted to float
- Characters: any other single character (operators, punctuation)

Numbers
-------
A number is any run of digits and decimal points. There is no sign and
no exponent. Malformed runs such as ``1.2.3`` are accepted and converted
the way C's strtod would: the longest valid decimal prefix wins (``1.2``)
and text with no digits at all converts to ``0.0``.

Comments
--------
``#`` starts a comment that runs to the end of the line.

Streaming
---------
The lexer reads one character at a time from a text stream and keeps a
single carried-over character of lookahead, so it can tokenize an
interactive stdin session without buffering whole lines.

Example Usage
-------------
>>> from kscope.frontend.lexer import Lexer
>>> lexer = Lexer('def add(a b) a + b', "demo.ks")
>>> for token in lexer.tokenize():
...     print(token)
Token(DEF, 'def', 1:1)
Token(IDENTIFIER, 'add', 1:5)
Token(CHAR, '(', 1:8)
Token(IDENTIFIER, 'a', 1:9)
Token(IDENTIFIER, 'b', 1:11)
Token(CHAR, ')', 1:12)
Token(IDENTIFIER, 'a', 1:14)
Token(CHAR, '+', 1:16)
Token(IDENTIFIER, 'b', 1:18)
Token(EOF, 1:19)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, TextIO
import io
import re
import string

from kscope.errors import SourceLocation


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """
    Token types for the kscope language.

    Keywords are distinguished from identifiers to simplify parsing.
    Every character that is not part of an identifier, number, comment or
    whitespace is returned as a CHAR token carrying the character itself.
    """

    # === Structural Tokens ===
    EOF = auto()            # End of input

    # === Commands ===
    DEF = auto()            # def
    EXTERN = auto()         # extern

    # === Primary ===
    IDENTIFIER = auto()     # Variable/function names
    NUMBER = auto()         # Floating point literals

    # === Control Flow ===
    IF = auto()             # if
    THEN = auto()           # then
    ELSE = auto()           # else
    FOR = auto()            # for
    IN = auto()             # in

    # === Operator Declarations ===
    UNARY = auto()          # unary
    BINARY = auto()         # binary

    # === Single Characters ===
    CHAR = auto()           # Any other character: ( ) , ; + @ ! ...


# =============================================================================
# Keyword Mapping
# =============================================================================

KEYWORDS: dict[str, TokenType] = {
    "def": TokenType.DEF,
    "extern": TokenType.EXTERN,
    "if": TokenType.IF,
    "then": TokenType.THEN,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "unary": TokenType.UNARY,
    "binary": TokenType.BINARY,
}


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token from kscope source.

    Attributes:
        type: The TokenType classification
        value: Text for identifiers, keywords and characters; float for
            numbers; None for EOF
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: str | float | None
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        """Format token for debugging output."""
        if self.value is not None:
            if isinstance(self.value, float):
                return f"Token({self.type.name}, {self.value:g}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_char(self, char: str) -> bool:
        """Return True if this is the CHAR token for the given character."""
        return self.type == TokenType.CHAR and self.value == char

    def is_ascii_char(self) -> bool:
        """Return True for CHAR tokens holding a 7-bit ASCII character."""
        return self.type == TokenType.CHAR and ord(self.value) < 128

    def describe(self) -> str:
        """Short human-readable text for diagnostics."""
        if self.type == TokenType.EOF:
            return "end of input"
        if self.type == TokenType.NUMBER:
            return f"{self.value:g}"
        return str(self.value)


# =============================================================================
# Number Conversion
# =============================================================================

# Longest prefix that strtod would accept from a [0-9.]+ run
_DECIMAL_PREFIX = re.compile(r"\d*\.?\d*")


def parse_number(text: str) -> float:
    """
    Convert a run of digits and points to a float, best effort.

    Mirrors C strtod on the restricted alphabet the lexer produces:
    the longest valid decimal prefix is converted and text without
    any digits yields 0.0.

        >>> parse_number("1.2.3")
        1.2
        >>> parse_number("...")
        0.0
    """
    prefix = _DECIMAL_PREFIX.match(text).group(0)
    if not any(char.isdigit() for char in prefix):
        return 0.0
    return float(prefix)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes kscope source text lazily.

    The only state carried between tokens is one character of lookahead:
    the character that terminated the previous token. At end of input the
    lexer keeps returning EOF tokens and never consumes past it.

    Usage:
        lexer = Lexer(source_text, filename)
        token = lexer.next_token()

    Attributes:
        filename: Name of the source (for error reporting)
    """

    # Characters that can start an identifier
    IDENT_START = string.ascii_letters

    # Characters that can continue an identifier
    IDENT_CHARS = string.ascii_letters + string.digits

    # Characters that make up a numeric literal
    NUMBER_CHARS = string.digits + "."

    # Characters that end a line comment
    COMMENT_END = "\n\r"

    def __init__(
        self,
        source: str | TextIO,
        filename: str = "<input>",
        line_number: int = 1,
    ):
        """
        Initialize the lexer.

        Args:
            source: Source text, or a text stream such as an open file or stdin
            filename: Name of the source (for error messages)
            line_number: Starting line number
        """
        if isinstance(source, str):
            source = io.StringIO(source)
        self._stream = source
        self.filename = filename

        # Carried-over lookahead; starts as whitespace so the first call reads
        self._last_char = " "

        # Position of _last_char in the source
        self._line = line_number
        self._column = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens up to and including the first EOF token.

        Yields:
            Token objects representing each lexical element
        """
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                return

    def next_token(self) -> Token:
        """
        Produce the next token from the character stream.

        Returns:
            The next Token; EOF at (and after) end of input
        """
        while True:
            # Skip whitespace
            while self._last_char.isspace():
                self._advance()

            # Comment until end of line, then scan again
            if self._last_char == "#":
                while self._last_char and self._last_char not in self.COMMENT_END:
                    self._advance()
                continue

            break

        line, column = self._line, self._column
        char = self._last_char

        # End of input is never consumed
        if char == "":
            return self._make_token(TokenType.EOF, None, line, column)

        if char in self.IDENT_START:
            return self._scan_identifier(line, column)

        if char in self.NUMBER_CHARS:
            return self._scan_number(line, column)

        # Anything else is returned as the character itself
        self._advance()
        return self._make_token(TokenType.CHAR, char, line, column)

    # =========================================================================
    # Character Access
    # =========================================================================

    def _advance(self) -> str:
        """
        Replace the lookahead with the next character from the stream.

        Updates line and column tracking. Returns "" at end of input.
        """
        previous = self._last_char
        char = self._stream.read(1)

        if previous == "\n":
            self._line += 1
            self._column = 1
        elif previous:
            self._column += 1

        self._last_char = char
        return char

    def _make_token(
        self,
        token_type: TokenType,
        value: str | float | None,
        line: int,
        column: int,
    ) -> Token:
        """Create a token at the given position."""
        return Token(
            type=token_type,
            value=value,
            line=line,
            column=column,
            filename=self.filename,
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_identifier(self, line: int, column: int) -> Token:
        """
        Scan an identifier or keyword.

        Identifiers start with a letter and continue with letters and
        digits. Keywords are distinguished by checking the keyword table.
        """
        chars = [self._last_char]
        while self._advance() and self._last_char in self.IDENT_CHARS:
            chars.append(self._last_char)

        name = "".join(chars)

        if name in KEYWORDS:
            return self._make_token(KEYWORDS[name], name, line, column)

        return self._make_token(TokenType.IDENTIFIER, name, line, column)

    def _scan_number(self, line: int, column: int) -> Token:
        """Scan a maximal run of digits and decimal points."""
        chars = [self._last_char]
        while self._advance() and self._last_char in self.NUMBER_CHARS:
            chars.append(self._last_char)

        value = parse_number("".join(chars))
        return self._make_token(TokenType.NUMBER, value, line, column)
