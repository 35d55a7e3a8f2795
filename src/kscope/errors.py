"""
kscope Error Hierarchy
======================

This module defines the root of the exception hierarchy for kscope.
All exceptions inherit from KScopeError, allowing callers to catch all
kscope-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
KScopeError (base)
└── FrontendError (lexer, parser and unit consumer errors)
    ├── KSyntaxError - source text does not match the grammar
    ├── KSemanticError - well-formed text that breaks a parse-time rule
    └── UnitRejectedError - a consumer refused an accepted unit

The frontend-specific classes live in kscope.frontend.errors.

Design Philosophy
-----------------
Each exception captures source location information (filename, line, column)
when applicable. Diagnostics are a single line so that an interactive
session prints exactly one line per failed top-level unit:

    filename:line:column: error: description
"""

from dataclasses import dataclass


# =============================================================================
# Base Exception Class
# =============================================================================

class KScopeError(Exception):
    """
    Base exception for all kscope errors.

    All exceptions in the package inherit from this class, allowing callers
    to catch every kscope error with a single except clause:

        try:
            session.run()
        except KScopeError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Tokens and AST nodes carry one of these so that diagnostics can point
    at the offending text. The immutable (frozen) design ensures locations
    cannot be accidentally modified.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"
