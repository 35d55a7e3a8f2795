# =============================================================================
# test_lexer.py - Lexer Unit Tests
# =============================================================================
# Tests for the kscope lexer/tokenizer.
#
# Test coverage includes:
#   - Keywords, identifiers and single-character tokens
#   - Numeric literals, including malformed digit/point runs
#   - Line comments ending at \n, \r or end of input
#   - Line/column tracking
#   - End-of-input behaviour and stream sources
# =============================================================================

import io

import pytest
from kscope.frontend.lexer import Lexer, TokenType, Token, parse_number


# =============================================================================
# Helper Function
# =============================================================================

def tokenize(source: str, line_number: int = 1) -> list:
    """
    Helper to tokenize and drop the trailing EOF token.

    Args:
        source: The kscope source to tokenize
        line_number: Starting line number (for position tracking tests)
    """
    lexer = Lexer(source, "<test>", line_number=line_number)
    return [t for t in lexer.tokenize() if t.type != TokenType.EOF]


def kinds(source: str) -> list:
    """Token types of the source, without EOF."""
    return [t.type for t in tokenize(source)]


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition for simple inputs."""

    def test_empty_source(self):
        """Empty input should produce only EOF."""
        assert tokenize("") == []

    def test_whitespace_only(self):
        """Whitespace of any kind produces no tokens."""
        assert tokenize("   \t \n\r\n  ") == []

    def test_identifier(self):
        """Identifiers start with a letter and continue with letters and digits."""
        tokens = tokenize("abc x1y2")
        assert [t.type for t in tokens] == [TokenType.IDENTIFIER] * 2
        assert [t.value for t in tokens] == ["abc", "x1y2"]

    def test_underscore_is_not_identifier_char(self):
        """Underscore is a single character token, not part of a name."""
        tokens = tokenize("a_b")
        assert [t.value for t in tokens] == ["a", "_", "b"]
        assert tokens[1].type == TokenType.CHAR

    def test_keywords(self):
        """Every keyword has its own token type."""
        source = "def extern if then else for in unary binary"
        assert kinds(source) == [
            TokenType.DEF,
            TokenType.EXTERN,
            TokenType.IF,
            TokenType.THEN,
            TokenType.ELSE,
            TokenType.FOR,
            TokenType.IN,
            TokenType.UNARY,
            TokenType.BINARY,
        ]

    def test_keyword_prefix_is_identifier(self):
        """A keyword followed by identifier characters is an identifier."""
        tokens = tokenize("define iff in2")
        assert all(t.type == TokenType.IDENTIFIER for t in tokens)

    def test_keywords_are_case_sensitive(self):
        """'Def' is not the keyword 'def'."""
        assert kinds("Def IF") == [TokenType.IDENTIFIER, TokenType.IDENTIFIER]

    def test_single_characters(self):
        """Any other character is returned as itself."""
        tokens = tokenize("(),;+-*<@|!")
        assert all(t.type == TokenType.CHAR for t in tokens)
        assert "".join(t.value for t in tokens) == "(),;+-*<@|!"

    def test_operators_between_identifiers(self):
        """No whitespace is needed around operators."""
        tokens = tokenize("a+b")
        assert [t.type for t in tokens] == [
            TokenType.IDENTIFIER, TokenType.CHAR, TokenType.IDENTIFIER
        ]

    def test_non_ascii_character(self):
        """Non-ASCII characters become CHAR tokens that are not ASCII."""
        tokens = tokenize("é")
        assert tokens[0].type == TokenType.CHAR
        assert tokens[0].value == "é"
        assert not tokens[0].is_ascii_char()


# =============================================================================
# Number Tests
# =============================================================================

class TestNumbers:
    """Test numeric literals."""

    def test_integer(self):
        tokens = tokenize("42")
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == 42.0

    def test_decimal(self):
        assert tokenize("3.25")[0].value == 3.25

    def test_leading_point(self):
        assert tokenize(".5")[0].value == 0.5

    def test_trailing_point(self):
        assert tokenize("7.")[0].value == 7.0

    def test_multiple_points_keep_longest_prefix(self):
        """'1.2.3' is one token whose value is 1.2."""
        tokens = tokenize("1.2.3")
        assert len(tokens) == 1
        assert tokens[0].value == 1.2

    def test_points_only_is_zero(self):
        """A run without digits converts to 0.0."""
        tokens = tokenize("...")
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.NUMBER
        assert tokens[0].value == 0.0

    def test_number_then_identifier(self):
        """'1a' is a number followed by an identifier."""
        tokens = tokenize("1a")
        assert [t.type for t in tokens] == [TokenType.NUMBER, TokenType.IDENTIFIER]

    def test_no_sign_in_literal(self):
        """'-1' is a minus character followed by a number."""
        tokens = tokenize("-1")
        assert tokens[0].is_char("-")
        assert tokens[1].value == 1.0

    @pytest.mark.parametrize("text,expected", [
        ("0", 0.0),
        ("10", 10.0),
        ("1.5", 1.5),
        ("1..5", 1.0),
        (".", 0.0),
        ("..1", 0.0),
        ("00.25", 0.25),
    ])
    def test_parse_number(self, text, expected):
        """parse_number follows strtod on digit/point runs."""
        assert parse_number(text) == expected


# =============================================================================
# Comment Tests
# =============================================================================

class TestComments:
    """Test '#' line comments."""

    def test_comment_to_end_of_line(self):
        tokens = tokenize("# a comment\nx")
        assert [t.value for t in tokens] == ["x"]

    def test_comment_after_code(self):
        tokens = tokenize("x # trailing words")
        assert [t.value for t in tokens] == ["x"]

    def test_comment_ended_by_carriage_return(self):
        tokens = tokenize("# comment\rx")
        assert [t.value for t in tokens] == ["x"]

    def test_comment_at_end_of_input(self):
        """A comment without a line ending runs to end of input."""
        lexer = Lexer("# nothing else", "<test>")
        assert lexer.next_token().type == TokenType.EOF

    def test_consecutive_comments(self):
        tokens = tokenize("# one\n# two\n\n# three\ny")
        assert [t.value for t in tokens] == ["y"]

    def test_comment_equivalent_to_whitespace(self):
        """Comments do not change the token sequence."""
        with_comments = tokenize("def f(x) # doc\n  x + 1 # body\n")
        without = tokenize("def f(x)\n  x + 1\n")
        assert [(t.type, t.value) for t in with_comments] == [
            (t.type, t.value) for t in without
        ]


# =============================================================================
# Position Tracking Tests
# =============================================================================

class TestPositions:
    """Test line and column tracking."""

    def test_columns_on_first_line(self):
        tokens = tokenize("def add(a b)")
        assert [(t.line, t.column) for t in tokens] == [
            (1, 1), (1, 5), (1, 8), (1, 9), (1, 11), (1, 12)
        ]

    def test_line_numbers(self):
        tokens = tokenize("a\n  b\n\n c")
        assert [(t.value, t.line, t.column) for t in tokens] == [
            ("a", 1, 1), ("b", 2, 3), ("c", 4, 2)
        ]

    def test_starting_line_number(self):
        tokens = tokenize("x\ny", line_number=10)
        assert [t.line for t in tokens] == [10, 11]

    def test_eof_position(self):
        lexer = Lexer("abc", "<test>")
        lexer.next_token()
        eof = lexer.next_token()
        assert (eof.line, eof.column) == (1, 4)

    def test_token_location(self):
        token = tokenize("\n  x")[0]
        assert str(token.location) == "<test>:2:3"


# =============================================================================
# Stream and EOF Tests
# =============================================================================

class TestStreaming:
    """Test end-of-input handling and stream sources."""

    def test_eof_repeats(self):
        """EOF is never consumed; further calls keep returning it."""
        lexer = Lexer("x", "<test>")
        assert lexer.next_token().value == "x"
        assert lexer.next_token().type == TokenType.EOF
        assert lexer.next_token().type == TokenType.EOF

    def test_tokenize_ends_with_single_eof(self):
        tokens = list(Lexer("a b", "<test>").tokenize())
        assert tokens[-1].type == TokenType.EOF
        assert sum(t.type == TokenType.EOF for t in tokens) == 1

    def test_text_stream_source(self):
        """The lexer reads from any text stream."""
        lexer = Lexer(io.StringIO("extern sin(x)"), "stream.ks")
        tokens = [t for t in lexer.tokenize() if t.type != TokenType.EOF]
        assert tokens[0].type == TokenType.EXTERN
        assert tokens[0].filename == "stream.ks"

    def test_lazy_reading(self):
        """Only characters up to the end of the current token are read."""
        stream = io.StringIO("abc def")
        lexer = Lexer(stream, "<test>")
        lexer.next_token()
        # One character of lookahead past 'abc'
        assert stream.tell() == 4


# =============================================================================
# Token Helper Tests
# =============================================================================

class TestTokenHelpers:
    """Test Token convenience methods."""

    def test_is_char(self):
        token = tokenize("(")[0]
        assert token.is_char("(")
        assert not token.is_char(")")

    def test_identifier_is_not_char(self):
        assert not tokenize("x")[0].is_char("x")

    def test_describe(self):
        tokens = list(Lexer("x 2.5 +", "<test>").tokenize())
        assert [t.describe() for t in tokens] == ["x", "2.5", "+", "end of input"]

    def test_repr(self):
        assert repr(Token(TokenType.EOF, None, 1, 19, "<test>")) == "Token(EOF, 1:19)"
        assert repr(Token(TokenType.NUMBER, 2.0, 1, 1, "<test>")) == "Token(NUMBER, 2, 1:1)"
        assert repr(Token(TokenType.CHAR, "+", 1, 3, "<test>")) == "Token(CHAR, '+', 1:3)"
