"""
kscope Command-Line Interface
=============================

This package provides the command-line tool for kscope:

- **kscope**: parse source files (or stdin) and print each top-level unit

The tool is implemented as a Click-based CLI application with
comprehensive help and error reporting.
"""

__all__ = ["kscope"]
