"""
Shared fixtures for the kscope test suite.
"""

import pytest

from kscope.frontend import (
    OperatorTable,
    Parser,
    ParseSession,
    SessionOptions,
    SourcePrinter,
    UnitCollector,
)


@pytest.fixture
def operators() -> OperatorTable:
    """A fresh operator table holding only the built-in operators."""
    return OperatorTable()


@pytest.fixture
def make_parser(operators):
    """Factory for parsers sharing the ``operators`` fixture table."""
    def _make(source: str, max_depth: int = 100) -> Parser:
        return Parser.from_source(source, "<test>", operators, max_depth)
    return _make


@pytest.fixture
def run_session():
    """
    Run a whole session over source text.

    Returns (result, collector, diagnostics) where diagnostics are the
    error lines passed to the on_error callback.
    """
    def _run(source: str, **options):
        diagnostics: list[str] = []
        collector = UnitCollector(
            options.get("allow_redefinition", False),
            options.get("operators", {}),
        )
        session = ParseSession(
            source,
            SessionOptions(filename="<test>", **options),
            consumer=collector,
            on_error=lambda error: diagnostics.append(str(error)),
        )
        result = session.run()
        return result, collector, diagnostics
    return _run


@pytest.fixture
def printer() -> SourcePrinter:
    return SourcePrinter()
